"""
kubefn - deploy functions to Kubernetes as Function resources.

Usage:
    from kubefn import FunctionDeployer, KubernetesClusterClient

    client = KubernetesClusterClient.from_kubeconfig()
    outcome = await FunctionDeployer(client).deploy(functions, runtime="python3.11")
"""

from kubefn.exceptions import (
    BatchDeploymentFailed,
    ClusterRequestError,
    ClusterRequestTimeout,
    DeploymentCrashLoop,
    DeploymentSubmissionFailed,
    DeploymentTimeout,
    DeploymentUpdateFailed,
    FunctionListingFailed,
    IngressProvisioningFailed,
    InvalidEventConfiguration,
    KubefnError,
    UnsupportedEventType,
)
from kubefn.models import BatchOutcome, DeployOptions, EventSpec, FunctionDescriptor
from kubefn.services.cluster_client import ClusterClient, KubernetesClusterClient
from kubefn.services.deployer import FunctionDeployer, deploy

__version__ = "0.1.0"

__all__ = [
    "BatchDeploymentFailed",
    "BatchOutcome",
    "ClusterClient",
    "ClusterRequestError",
    "ClusterRequestTimeout",
    "DeployOptions",
    "DeploymentCrashLoop",
    "DeploymentSubmissionFailed",
    "DeploymentTimeout",
    "DeploymentUpdateFailed",
    "EventSpec",
    "FunctionDeployer",
    "FunctionDescriptor",
    "FunctionListingFailed",
    "IngressProvisioningFailed",
    "InvalidEventConfiguration",
    "KubefnError",
    "KubernetesClusterClient",
    "UnsupportedEventType",
    "deploy",
]
