from kubefn.models.function import DeployOptions, EventSpec, EventType, FunctionDescriptor
from kubefn.models.rollout import (
    BatchOutcome,
    ContainerStatus,
    PodObservation,
    PollPhase,
    PollState,
)

__all__ = [
    "BatchOutcome",
    "ContainerStatus",
    "DeployOptions",
    "EventSpec",
    "EventType",
    "FunctionDescriptor",
    "PodObservation",
    "PollPhase",
    "PollState",
]
