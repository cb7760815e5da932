"""Function and Ingress manifest generation."""

import re
from typing import Any, Dict, Optional, Union

from kubefn.exceptions import InvalidEventConfiguration, UnsupportedEventType
from kubefn.models.function import EventSpec, EventType, FunctionDescriptor

FUNCTION_API_VERSION = "k8s.io/v1"
FUNCTION_KIND = "Function"
DESCRIPTION_ANNOTATION = "kubeless.serverless.com/description"

INGRESS_API_VERSION = "extensions/v1beta1"
FUNCTION_SERVICE_PORT = 8080

_SPEC_TYPES = {
    EventType.HTTP.value: "HTTP",
    EventType.TRIGGER.value: "PubSub",
}


def normalize_memory(memory: Union[int, float, str], default_unit: str = "Mi") -> str:
    """Append the default unit when the size has no suffix ('128' -> '128Mi')."""
    memory_str = str(memory)
    if re.search(r"\d$", memory_str):
        return f"{memory_str}{default_unit}"
    return memory_str


def _env_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def build_function_manifest(
    function: FunctionDescriptor,
    event: EventSpec,
    namespace: str,
    runtime: Optional[str] = None,
    memory_size: Optional[Union[int, float, str]] = None,
    memory_unit: str = "Mi",
) -> Dict[str, Any]:
    """
    Build the Function resource for one function/event pair.

    Args:
        function: The function to deploy
        event: The event binding this resource serves
        namespace: Target namespace
        runtime: Fallback runtime when the function does not name one
        memory_size: Fallback memory size when the function does not set one
        memory_unit: Unit appended to bare numeric memory sizes

    Raises:
        InvalidEventConfiguration: trigger event without a topic
        UnsupportedEventType: event type is neither 'http' nor 'trigger'
    """
    name = function.id
    manifest: Dict[str, Any] = {
        "apiVersion": FUNCTION_API_VERSION,
        "kind": FUNCTION_KIND,
        "metadata": {
            "name": name,
            "namespace": namespace,
        },
        "spec": {
            "deps": function.deps or "",
            "function": function.text,
            "handler": function.handler,
            "runtime": function.runtime or runtime,
        },
    }

    if function.description:
        manifest["metadata"]["annotations"] = {DESCRIPTION_ANNOTATION: function.description}
    if function.labels:
        manifest["metadata"]["labels"] = dict(function.labels)

    memory = function.memory_size or memory_size
    if function.environment or memory:
        container: Dict[str, Any] = {"name": name}
        if function.environment:
            container["env"] = [
                {"name": key, "value": _env_value(value)}
                for key, value in function.environment.items()
            ]
        if memory:
            memory_with_unit = normalize_memory(memory, memory_unit)
            container["resources"] = {
                "limits": {"memory": memory_with_unit},
                "requests": {"memory": memory_with_unit},
            }
        manifest["spec"]["template"] = {"spec": {"containers": [container]}}

    spec_type = _SPEC_TYPES.get(event.type)
    if spec_type is None:
        raise UnsupportedEventType(event.type)
    manifest["spec"]["type"] = spec_type

    if event.type == EventType.TRIGGER.value:
        if not event.trigger:
            raise InvalidEventConfiguration("You should specify a topic for the trigger event")
        manifest["spec"]["topic"] = event.trigger

    return manifest


def build_ingress_manifest(
    function_name: str,
    path: str,
    hostname: str,
    ingress_class: str = "nginx",
) -> Dict[str, Any]:
    """Build an Ingress routing hostname+path to the function's service."""
    return {
        "apiVersion": INGRESS_API_VERSION,
        "kind": "Ingress",
        "metadata": {
            "name": f"ingress-{function_name}",
            "labels": {"function": function_name},
            "annotations": {
                "kubernetes.io/ingress.class": ingress_class,
                "ingress.kubernetes.io/rewrite-target": "/",
            },
        },
        "spec": {
            "rules": [{
                "host": hostname,
                "http": {
                    "paths": [{
                        "path": path,
                        "backend": {
                            "serviceName": function_name,
                            "servicePort": FUNCTION_SERVICE_PORT,
                        },
                    }],
                },
            }],
        },
    }
