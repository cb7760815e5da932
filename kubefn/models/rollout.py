"""Pod observations, readiness poll state, and batch results."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class PollPhase(str, Enum):
    """Readiness poll states. Everything but POLLING is terminal."""
    POLLING = "polling"
    SUCCEEDED = "succeeded"
    GIVEN_UP = "given_up"
    FATAL = "fatal"

    @property
    def is_terminal(self) -> bool:
        return self is not PollPhase.POLLING


def _prune(value):
    """Drop unset fields from a kubernetes model dict."""
    if isinstance(value, dict):
        return {k: _prune(v) for k, v in value.items() if v is not None}
    return value


class ContainerStatus(BaseModel):
    """Readiness of one container in a pod."""

    ready: bool = False
    restart_count: int = 0
    state: Optional[Dict[str, Any]] = Field(None, description="Raw container state, used for logging")


class PodObservation(BaseModel):
    """The parts of a pod the readiness poller looks at."""

    name: str
    function_label: Optional[str] = None
    creation_timestamp: Optional[datetime] = None
    container_statuses: List[ContainerStatus] = Field(default_factory=list)

    @property
    def primary_container(self) -> Optional[ContainerStatus]:
        """Function pods run a single container; only the first status counts."""
        return self.container_statuses[0] if self.container_statuses else None

    @classmethod
    def from_pod(cls, pod) -> "PodObservation":
        """Build an observation from a kubernetes V1Pod."""
        metadata = pod.metadata
        labels = metadata.labels or {}
        raw_statuses = pod.status.container_statuses if pod.status else None
        statuses = []
        for cs in raw_statuses or []:
            state = _prune(cs.state.to_dict()) if cs.state is not None else None
            statuses.append(ContainerStatus(
                ready=bool(cs.ready),
                restart_count=cs.restart_count or 0,
                state=state,
            ))
        return cls(
            name=metadata.name,
            function_label=labels.get("function"),
            creation_timestamp=metadata.creation_timestamp,
            container_statuses=statuses,
        )


class PollState(BaseModel):
    """Mutable state for a single readiness poll."""

    phase: PollPhase = PollPhase.POLLING
    retries: int = 0
    successful_count: int = 0
    previous_status_snapshot: Optional[List[str]] = None
    failure: Optional[str] = None


class BatchOutcome(BaseModel):
    """Aggregate result of a deploy() batch."""

    errors: List[str] = Field(default_factory=list)
    completed: int = 0
    expected: int = 0
    deployed: List[str] = Field(default_factory=list, description="'<function>/<event type>' pairs freshly created or updated")

    @property
    def succeeded(self) -> bool:
        return not self.errors
