"""
Prefixed loggers and progress sinks for deployment output.

Every component logs through a PrefixedLogger tagged with its name. Progress
lines meant for the caller (the "Deploying function ..." messages) go through a
LogSink instead: any callable taking one string. resolve_sink picks the sink
given in DeployOptions.log, or falls back to the component logger's info level,
so library users can capture progress without configuring logging.

Usage:
    from kubefn.utils.logging import get_logger

    logger = get_logger(__name__, prefix="Rollout")
    logger.info("Waiting for pods")  # Output: [Rollout] Waiting for pods
"""

import logging
from typing import Callable, Optional, Union

LogSink = Callable[[str], None]


class PrefixedLogger(logging.LoggerAdapter):
    """Logger adapter that tags every message with a component prefix."""

    def __init__(self, logger: logging.Logger, prefix: str):
        super().__init__(logger, {})
        self.prefix = f"[{prefix}]"

    def process(self, msg, kwargs):
        return f"{self.prefix} {msg}", kwargs


def get_logger(name: str, prefix: Optional[str] = None) -> Union[logging.Logger, PrefixedLogger]:
    """
    Get a logger with an optional prefix.

    Args:
        name: Logger name (typically __name__)
        prefix: Optional component tag (e.g., "Deploy", "Ingress")

    Returns:
        The plain logger, or a PrefixedLogger wrapping it when a prefix is given
    """
    base_logger = logging.getLogger(name)

    if prefix:
        return PrefixedLogger(base_logger, prefix)

    return base_logger


def resolve_sink(sink: Optional[LogSink], fallback: Union[logging.Logger, PrefixedLogger]) -> LogSink:
    """Return the caller's progress sink, or the component logger's info method."""
    return sink if sink is not None else fallback.info
