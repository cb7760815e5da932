"""Submit Function resources and wait for their rollout."""

from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

import yaml

from kubefn.exceptions import (
    ClusterRequestError,
    DeploymentSubmissionFailed,
    DeploymentUpdateFailed,
)
from kubefn.services.cluster_client import ClusterClient
from kubefn.services.readiness import ReadinessPoller
from kubefn.utils.logging import LogSink, get_logger, resolve_sink

logger = get_logger(__name__, prefix="Deploy")

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def request_timestamp(clock: Clock = utc_now) -> datetime:
    """Pod creationTimestamp has one-second resolution, so drop sub-second precision."""
    return clock().replace(microsecond=0)


async def deploy_function_and_wait(
    manifest: Dict[str, Any],
    client: ClusterClient,
    poller: ReadinessPoller,
    namespace: str,
    verbose: bool = False,
    log: Optional[LogSink] = None,
    clock: Clock = utc_now,
) -> bool:
    """
    Create the Function resource and wait for its pods.

    Returns:
        True once the rollout succeeded, False when the function already exists

    Raises:
        DeploymentSubmissionFailed: the create call failed for any reason but a conflict
        DeploymentTimeout / DeploymentCrashLoop / ClusterRequestError: from the readiness poll
    """
    sink = resolve_sink(log, logger)
    name = manifest["metadata"]["name"]
    requested_at = request_timestamp(clock)
    sink(f"Deploying function {name}...")
    logger.debug(f"Function manifest for {name}:\n{yaml.safe_dump(manifest, default_flow_style=False)}")

    try:
        await client.create_function(namespace, manifest)
    except ClusterRequestError as e:
        if e.is_conflict:
            sink(
                f"The function {name} already exists. "
                "Redeploy it with the force option to update it."
            )
            return False
        raise DeploymentSubmissionFailed(name, e) from e

    await poller.wait_for_deployment(name, requested_at, namespace, verbose=verbose, log=log)
    return True


async def redeploy_function_and_wait(
    manifest: Dict[str, Any],
    client: ClusterClient,
    poller: ReadinessPoller,
    namespace: str,
    verbose: bool = False,
    log: Optional[LogSink] = None,
    clock: Clock = utc_now,
) -> bool:
    """
    Replace an existing Function resource and wait for the new pods.

    Raises:
        DeploymentUpdateFailed: the update call failed
        DeploymentTimeout / DeploymentCrashLoop / ClusterRequestError: from the readiness poll
    """
    sink = resolve_sink(log, logger)
    name = manifest["metadata"]["name"]
    requested_at = request_timestamp(clock)
    sink(f"Redeploying function {name}...")

    try:
        await client.update_function(namespace, name, manifest)
    except ClusterRequestError as e:
        raise DeploymentUpdateFailed(name, e) from e

    await poller.wait_for_deployment(name, requested_at, namespace, verbose=verbose, log=log)
    return True
