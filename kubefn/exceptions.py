"""
Exception classes for function deployment.

Per-function failures are collected by the batch deployer; only
BatchDeploymentFailed reaches the caller of deploy().
"""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from kubefn.models.rollout import BatchOutcome


class KubefnError(Exception):
    """Base exception class for kubefn."""

    pass


# ===========================================
# Transport
# ===========================================


class ClusterRequestError(KubefnError):
    """A call to the cluster API failed."""

    def __init__(self, status: Optional[int], message: str):
        self.status = status
        self.message = message
        super().__init__(f"Cluster request failed ({status}): {message}")

    @property
    def is_conflict(self) -> bool:
        return self.status == 409


class ClusterRequestTimeout(ClusterRequestError):
    """The cluster API did not answer in time."""

    def __init__(self, message: str = "request timed out"):
        super().__init__(None, message)


# ===========================================
# Manifest construction
# ===========================================


class InvalidEventConfiguration(KubefnError):
    """An event is missing a field its type requires."""

    pass


class UnsupportedEventType(KubefnError):
    """The event type has no Function resource equivalent."""

    def __init__(self, event_type: str):
        self.event_type = event_type
        super().__init__(f"Event type {event_type} is not supported")


# ===========================================
# Deployment
# ===========================================


class FunctionListingFailed(KubefnError):
    """Existing functions in a namespace could not be listed."""

    def __init__(self, namespace: str, cause: Exception):
        self.namespace = namespace
        self.cause = cause
        super().__init__(f"Unable to list the functions in namespace {namespace}: {cause}")


def _describe_failure(action: str, function_name: str, cause: ClusterRequestError) -> str:
    return (
        f"Unable to {action} the function {function_name}. Received:\n"
        f"  Code: {cause.status}\n"
        f"  Message: {cause.message}"
    )


class DeploymentSubmissionFailed(KubefnError):
    """Creating the Function resource was rejected."""

    def __init__(self, function_name: str, cause: ClusterRequestError):
        self.function_name = function_name
        self.cause = cause
        super().__init__(_describe_failure("deploy", function_name, cause))


class DeploymentUpdateFailed(KubefnError):
    """Replacing an existing Function resource was rejected."""

    def __init__(self, function_name: str, cause: ClusterRequestError):
        self.function_name = function_name
        self.cause = cause
        super().__init__(_describe_failure("update", function_name, cause))


class DeploymentTimeout(KubefnError):
    """No pod for the function appeared within the retry budget."""

    def __init__(self, function_name: str):
        self.function_name = function_name
        super().__init__(f"Unable to retrieve the status of the {function_name} deployment")


class DeploymentCrashLoop(KubefnError):
    """A function pod keeps restarting without becoming ready."""

    def __init__(self, function_name: str, pod_name: str, restart_count: int):
        self.function_name = function_name
        self.pod_name = pod_name
        self.restart_count = restart_count
        super().__init__(
            f"Failed to deploy the function {function_name}: "
            f"pod {pod_name} restarted {restart_count} times without becoming ready"
        )


class IngressProvisioningFailed(KubefnError):
    """The ingress rule for a function could not be created."""

    def __init__(self, function_name: str, cause: ClusterRequestError):
        self.function_name = function_name
        self.cause = cause
        super().__init__(
            f"Unable to deploy the function {function_name} in the given path. "
            f"Received: {cause.message}"
        )


class BatchDeploymentFailed(KubefnError):
    """One or more function deployments in a batch failed."""

    def __init__(self, outcome: "BatchOutcome"):
        self.outcome = outcome
        super().__init__(
            "Found errors while deploying the given functions:\n"
            + "\n".join(outcome.errors)
        )
