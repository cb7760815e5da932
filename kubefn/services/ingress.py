"""Ingress rules exposing HTTP functions on a custom path or host."""

from typing import Optional
from urllib.parse import urlparse

from kubefn.config.settings import DeploySettings, get_settings
from kubefn.exceptions import ClusterRequestError, IngressProvisioningFailed
from kubefn.models.function import EventType
from kubefn.services.cluster_client import ClusterClient
from kubefn.services.manifests import build_ingress_manifest
from kubefn.utils.logging import LogSink, get_logger, resolve_sink

logger = get_logger(__name__, prefix="Ingress")


def needs_ingress(event_type: str, path: Optional[str], hostname: Optional[str]) -> bool:
    """Only HTTP events with a non-root path or an explicit host get a rule."""
    if event_type != EventType.HTTP.value:
        return False
    return bool(path and path != "/") or bool(hostname)


def default_hostname(api_server_url: str, suffix: str = "nip.io") -> str:
    """
    Wildcard DNS name resolving to the cluster endpoint, e.g. '192.168.99.100.nip.io'.

    Raises:
        ValueError: the API server URL carries no host
    """
    host = urlparse(api_server_url).hostname
    if host is None:
        # bare "host:port" without a scheme
        host = urlparse(f"//{api_server_url}").hostname
    if not host:
        raise ValueError(f"Unable to find the cluster host in {api_server_url!r}")
    return f"{host}.{suffix}"


async def add_ingress_rule_if_necessary(
    function_name: str,
    event_type: str,
    path: Optional[str],
    hostname: Optional[str],
    namespace: str,
    client: ClusterClient,
    verbose: bool = False,
    log: Optional[LogSink] = None,
    settings: Optional[DeploySettings] = None,
) -> bool:
    """
    Create the ingress rule for a freshly deployed function when its event asks for one.

    Returns:
        True if a rule was created, False if none was needed

    Raises:
        IngressProvisioningFailed: no host could be derived, or the cluster rejected the ingress
    """
    sink = resolve_sink(log, logger)
    if not needs_ingress(event_type, path, hostname):
        if verbose:
            sink("Skipping ingress rule generation")
        return False

    settings = settings or get_settings()
    fpath = path or "/"
    absolute_path = fpath if fpath.startswith("/") else f"/{fpath}"
    try:
        host = hostname or default_hostname(client.api_server_url, settings.INGRESS_HOST_SUFFIX)
    except ValueError as e:
        raise IngressProvisioningFailed(function_name, ClusterRequestError(None, str(e))) from e
    ingress = build_ingress_manifest(function_name, absolute_path, host, settings.INGRESS_CLASS)

    try:
        await client.create_ingress(namespace, ingress)
    except ClusterRequestError as e:
        raise IngressProvisioningFailed(function_name, e) from e

    if verbose:
        sink(f"Deployed Ingress rule to map {absolute_path}")
    return True
