"""Async access to the cluster resources a function deployment touches."""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

import urllib3
from kubernetes import client, config
from kubernetes.client.rest import ApiException
from kubernetes.dynamic import DynamicClient
from kubernetes.dynamic.exceptions import ResourceNotFoundError

from kubefn.config.settings import DeploySettings, get_settings
from kubefn.exceptions import ClusterRequestError, ClusterRequestTimeout
from kubefn.models.rollout import PodObservation
from kubefn.services.manifests import FUNCTION_API_VERSION, INGRESS_API_VERSION
from kubefn.utils.logging import get_logger

logger = get_logger(__name__, prefix="K8s")

FUNCTION_GROUP, FUNCTION_VERSION = FUNCTION_API_VERSION.split("/")
FUNCTION_PLURAL = "functions"


class ClusterClient(ABC):
    """Cluster operations used by the deployer. Failures raise ClusterRequestError."""

    @property
    @abstractmethod
    def api_server_url(self) -> str:
        """URL of the cluster API server."""
        pass

    @abstractmethod
    async def list_functions(self, namespace: str) -> List[Dict[str, Any]]:
        """List Function resources in a namespace."""
        pass

    @abstractmethod
    async def create_function(self, namespace: str, body: Dict[str, Any]) -> Dict[str, Any]:
        """Create a Function resource. A 409 status means it already exists."""
        pass

    @abstractmethod
    async def update_function(self, namespace: str, name: str, body: Dict[str, Any]) -> Dict[str, Any]:
        """Replace an existing Function resource."""
        pass

    @abstractmethod
    async def list_pods(self, namespace: str) -> List[PodObservation]:
        """List pods in a namespace."""
        pass

    @abstractmethod
    async def create_ingress(self, namespace: str, body: Dict[str, Any]) -> Dict[str, Any]:
        """Create an Ingress resource."""
        pass


def _is_timeout(exc: Exception) -> bool:
    if isinstance(exc, urllib3.exceptions.TimeoutError):
        return True
    if isinstance(exc, urllib3.exceptions.MaxRetryError):
        return isinstance(exc.reason, urllib3.exceptions.TimeoutError)
    return False


class KubernetesClusterClient(ClusterClient):
    """ClusterClient backed by the official kubernetes client library."""

    def __init__(
        self,
        api_client: client.ApiClient,
        request_timeout: Optional[float] = None,
        settings: Optional[DeploySettings] = None,
    ):
        self.api_client = api_client
        if request_timeout is None:
            request_timeout = (settings or get_settings()).REQUEST_TIMEOUT
        self.request_timeout = request_timeout
        self._custom_api = client.CustomObjectsApi(api_client)
        self._core_api = client.CoreV1Api(api_client)
        self._dynamic: Optional[DynamicClient] = None

    @classmethod
    def from_kubeconfig(
        cls,
        config_file: Optional[str] = None,
        context: Optional[str] = None,
        request_timeout: Optional[float] = None,
        settings: Optional[DeploySettings] = None,
    ) -> "KubernetesClusterClient":
        """Build a client from a kubeconfig without touching the global default configuration."""
        api_client = config.new_client_from_config(config_file=config_file, context=context)
        return cls(api_client, request_timeout=request_timeout, settings=settings)

    @property
    def api_server_url(self) -> str:
        return self.api_client.configuration.host

    def _dynamic_client(self) -> DynamicClient:
        # DynamicClient runs API discovery on construction
        if self._dynamic is None:
            self._dynamic = DynamicClient(self.api_client)
        return self._dynamic

    async def _call(self, description: str, fn: Callable[[], Any]) -> Any:
        loop = asyncio.get_event_loop()
        try:
            return await loop.run_in_executor(None, fn)
        except ApiException as e:
            logger.debug(f"{description} failed: {e.status} {e.reason}")
            raise ClusterRequestError(e.status, e.reason or str(e)) from e
        except urllib3.exceptions.HTTPError as e:
            if _is_timeout(e):
                logger.debug(f"{description} timed out: {e}")
                raise ClusterRequestTimeout(f"request timed out: {e}") from e
            raise ClusterRequestError(None, str(e)) from e

    async def list_functions(self, namespace: str) -> List[Dict[str, Any]]:
        result = await self._call(
            f"List functions in {namespace}",
            lambda: self._custom_api.list_namespaced_custom_object(
                group=FUNCTION_GROUP,
                version=FUNCTION_VERSION,
                namespace=namespace,
                plural=FUNCTION_PLURAL,
                _request_timeout=self.request_timeout,
            ),
        )
        return result.get("items", [])

    async def create_function(self, namespace: str, body: Dict[str, Any]) -> Dict[str, Any]:
        return await self._call(
            f"Create function {body['metadata']['name']}",
            lambda: self._custom_api.create_namespaced_custom_object(
                group=FUNCTION_GROUP,
                version=FUNCTION_VERSION,
                namespace=namespace,
                plural=FUNCTION_PLURAL,
                body=body,
                _request_timeout=self.request_timeout,
            ),
        )

    async def update_function(self, namespace: str, name: str, body: Dict[str, Any]) -> Dict[str, Any]:
        # replace requires the stored resourceVersion
        current = await self._call(
            f"Get function {name}",
            lambda: self._custom_api.get_namespaced_custom_object(
                group=FUNCTION_GROUP,
                version=FUNCTION_VERSION,
                namespace=namespace,
                plural=FUNCTION_PLURAL,
                name=name,
                _request_timeout=self.request_timeout,
            ),
        )
        resource_version = current.get("metadata", {}).get("resourceVersion")
        replacement = {**body, "metadata": {**body["metadata"]}}
        if resource_version:
            replacement["metadata"]["resourceVersion"] = resource_version
        return await self._call(
            f"Replace function {name}",
            lambda: self._custom_api.replace_namespaced_custom_object(
                group=FUNCTION_GROUP,
                version=FUNCTION_VERSION,
                namespace=namespace,
                plural=FUNCTION_PLURAL,
                name=name,
                body=replacement,
                _request_timeout=self.request_timeout,
            ),
        )

    async def list_pods(self, namespace: str) -> List[PodObservation]:
        pods = await self._call(
            f"List pods in {namespace}",
            lambda: self._core_api.list_namespaced_pod(
                namespace=namespace,
                _request_timeout=self.request_timeout,
            ),
        )
        return [PodObservation.from_pod(pod) for pod in pods.items]

    async def create_ingress(self, namespace: str, body: Dict[str, Any]) -> Dict[str, Any]:
        def _create():
            try:
                ingresses = self._dynamic_client().resources.get(
                    api_version=INGRESS_API_VERSION, kind="Ingress"
                )
            except ResourceNotFoundError as e:
                raise ClusterRequestError(404, f"{INGRESS_API_VERSION} Ingress is not served: {e}") from e
            return ingresses.create(
                body=body, namespace=namespace, _request_timeout=self.request_timeout
            ).to_dict()

        return await self._call(f"Create ingress {body['metadata']['name']}", _create)
