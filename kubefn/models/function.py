"""
Function deployment models.

This module defines:
- EventSpec: how a function is triggered (HTTP route or pub/sub topic)
- FunctionDescriptor: a user-authored function ready to be deployed
- DeployOptions: batch-wide overrides for a deploy() call
"""

from enum import Enum
from typing import Callable, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class EventType(str, Enum):
    """Supported event sources."""
    HTTP = "http"
    TRIGGER = "trigger"


class EventSpec(BaseModel):
    """A single event binding for a function."""

    # Kept as a plain string so unsupported types surface from the manifest builder
    type: str = Field(EventType.HTTP.value, description="Event type: 'http' or 'trigger'")

    # HTTP events
    path: Optional[str] = Field(None, description="URL path to expose the function on")
    hostname: Optional[str] = Field(None, description="Host for the ingress rule")

    # Trigger events
    trigger: Optional[str] = Field(None, description="Topic the function subscribes to")


def default_events() -> List[EventSpec]:
    return [EventSpec(type=EventType.HTTP.value, path="/")]


class FunctionDescriptor(BaseModel):
    """A function to deploy as a Function resource."""

    id: str = Field(..., description="Function name, unique within its namespace")
    handler: Optional[str] = Field(None, description="Entry point, e.g. 'handler.hello'")
    runtime: Optional[str] = Field(None, description="Runtime, e.g. 'python3.11'")
    deps: Optional[str] = Field(None, description="Dependency file contents")
    text: str = Field("", description="Function source code")

    description: Optional[str] = None
    labels: Optional[Dict[str, str]] = None
    environment: Optional[Dict[str, Union[str, int, float, bool]]] = None
    memory_size: Optional[Union[int, float, str]] = Field(None, alias="memorySize")
    namespace: Optional[str] = None

    events: List[EventSpec] = Field(default_factory=default_events)

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("events", mode="before")
    @classmethod
    def fill_default_events(cls, v):
        """An empty or missing event list means a single HTTP event on '/'."""
        if not v:
            return default_events()
        return v


class DeployOptions(BaseModel):
    """Batch-wide deploy options; per-function values take precedence."""

    namespace: Optional[str] = None
    hostname: Optional[str] = None
    memory_size: Optional[Union[int, float, str]] = Field(None, alias="memorySize")
    force: bool = False
    verbose: bool = False
    log: Optional[Callable[[str], None]] = Field(
        None,
        description="Receives human-readable progress lines; defaults to the module logger",
    )

    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)
