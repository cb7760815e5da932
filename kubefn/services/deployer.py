"""
Batch deployment of functions.

Every function/event pair is deployed concurrently. A pair that fails records
its error in the batch outcome and does not stop the others; the batch only
raises once all pairs are done.
"""

import asyncio
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Union

from kubefn.config.settings import DeploySettings, get_settings
from kubefn.exceptions import (
    BatchDeploymentFailed,
    ClusterRequestError,
    FunctionListingFailed,
    KubefnError,
)
from kubefn.models.function import DeployOptions, EventSpec, FunctionDescriptor
from kubefn.models.rollout import BatchOutcome
from kubefn.services.cluster_client import ClusterClient
from kubefn.services.ingress import add_ingress_rule_if_necessary
from kubefn.services.manifests import build_function_manifest
from kubefn.services.readiness import ReadinessPoller
from kubefn.services.submitter import (
    Clock,
    deploy_function_and_wait,
    redeploy_function_and_wait,
    utc_now,
)
from kubefn.utils.logging import LogSink, get_logger, resolve_sink

logger = get_logger(__name__, prefix="Deploy")

FunctionsInput = Union[
    Iterable[Union[FunctionDescriptor, Dict[str, Any]]],
    Mapping[str, Union[FunctionDescriptor, Dict[str, Any]]],
]


class DeploymentAction(str, Enum):
    """What to do with a function given what is already in the cluster."""
    SKIP = "skip"
    CREATE = "create"
    UPDATE = "update"


def classify_deployment(
    manifest: Dict[str, Any],
    existing_functions: List[Dict[str, Any]],
    force: bool = False,
) -> DeploymentAction:
    """
    Compare a manifest against the functions already deployed.

    An existing function with the same name and spec is skipped. A changed
    function is updated only when forced; otherwise it goes through create,
    which reports the conflict.
    """
    name = manifest["metadata"]["name"]
    exists = False
    for item in existing_functions:
        if item.get("metadata", {}).get("name") != name:
            continue
        exists = True
        if item.get("spec") == manifest["spec"]:
            return DeploymentAction.SKIP
    if exists and force:
        return DeploymentAction.UPDATE
    return DeploymentAction.CREATE


def _as_descriptors(functions: FunctionsInput) -> List[FunctionDescriptor]:
    items = functions.values() if isinstance(functions, Mapping) else functions
    return [
        item if isinstance(item, FunctionDescriptor) else FunctionDescriptor.model_validate(item)
        for item in items
    ]


class FunctionDeployer:
    """Deploys batches of functions through one cluster client."""

    def __init__(
        self,
        client: ClusterClient,
        settings: Optional[DeploySettings] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Clock = utc_now,
    ):
        self.client = client
        self.settings = settings or get_settings()
        self.poller = ReadinessPoller(client, self.settings, sleep=sleep)
        self.clock = clock

    def resolve_namespace(self, function: FunctionDescriptor, options: DeployOptions) -> str:
        return function.namespace or options.namespace or self.settings.DEFAULT_NAMESPACE

    async def deploy(
        self,
        functions: FunctionsInput,
        runtime: Optional[str] = None,
        options: Optional[DeployOptions] = None,
    ) -> BatchOutcome:
        """
        Deploy every function/event pair and wait for all of them.

        Args:
            functions: Function descriptors (or dicts), as a list or keyed by name
            runtime: Runtime for functions that do not declare their own
            options: Batch-wide options

        Returns:
            BatchOutcome with no errors

        Raises:
            BatchDeploymentFailed: at least one pair failed; carries the outcome
        """
        options = options or DeployOptions()
        sink = resolve_sink(options.log, logger)
        outcome = BatchOutcome()

        pairs = []
        for function in _as_descriptors(functions):
            if not function.handler:
                sink(f"Skipping deployment of {function.id} since it doesn't have a handler")
                continue
            for event in function.events:
                pairs.append((function, event))

        outcome.expected = len(pairs)
        logger.debug(f"Scheduling {outcome.expected} function/event deployments")

        tasks = [
            self._run_pair(function, event, runtime, options, sink, outcome)
            for function, event in pairs
        ]
        results = await asyncio.gather(*tasks, return_exceptions=True)

        for (function, event), result in zip(pairs, results):
            if isinstance(result, BaseException):
                logger.error(f"Unexpected error deploying {function.id} ({event.type}): {result!r}")
                outcome.errors.append(str(result))

        if outcome.errors:
            raise BatchDeploymentFailed(outcome)
        return outcome

    async def _run_pair(
        self,
        function: FunctionDescriptor,
        event: EventSpec,
        runtime: Optional[str],
        options: DeployOptions,
        sink: LogSink,
        outcome: BatchOutcome,
    ) -> None:
        try:
            await self.deploy_event(function, event, runtime, options, sink, outcome)
        except KubefnError as e:
            logger.debug(f"Deployment of {function.id} ({event.type}) failed: {e}")
            outcome.errors.append(str(e))
        finally:
            outcome.completed += 1

    async def deploy_event(
        self,
        function: FunctionDescriptor,
        event: EventSpec,
        runtime: Optional[str],
        options: DeployOptions,
        sink: LogSink,
        outcome: BatchOutcome,
    ) -> DeploymentAction:
        """Deploy one function/event pair, then add its ingress rule if it was freshly created."""
        namespace = self.resolve_namespace(function, options)
        manifest = build_function_manifest(
            function,
            event,
            namespace,
            runtime=runtime,
            memory_size=options.memory_size,
            memory_unit=self.settings.DEFAULT_MEMORY_UNIT,
        )

        try:
            existing = await self.client.list_functions(namespace)
        except ClusterRequestError as e:
            raise FunctionListingFailed(namespace, e) from e

        action = classify_deployment(manifest, existing, force=options.force)
        if action is DeploymentAction.SKIP:
            sink(f"Function {function.id} has not changed. Skipping deployment")
            return action

        if action is DeploymentAction.UPDATE:
            # Redeploys keep whatever ingress the first deployment created
            await redeploy_function_and_wait(
                manifest, self.client, self.poller, namespace,
                verbose=options.verbose, log=options.log, clock=self.clock,
            )
            outcome.deployed.append(f"{function.id}/{event.type}")
            return action

        deployed = await deploy_function_and_wait(
            manifest, self.client, self.poller, namespace,
            verbose=options.verbose, log=options.log, clock=self.clock,
        )
        if not deployed:
            return DeploymentAction.SKIP

        outcome.deployed.append(f"{function.id}/{event.type}")
        await add_ingress_rule_if_necessary(
            function.id,
            event.type,
            event.path,
            event.hostname or options.hostname,
            namespace,
            self.client,
            verbose=options.verbose,
            log=options.log,
            settings=self.settings,
        )
        return action


async def deploy(
    functions: FunctionsInput,
    client: ClusterClient,
    runtime: Optional[str] = None,
    options: Optional[DeployOptions] = None,
    settings: Optional[DeploySettings] = None,
) -> BatchOutcome:
    """Deploy a batch of functions with a one-off FunctionDeployer."""
    return await FunctionDeployer(client, settings=settings).deploy(functions, runtime, options)
