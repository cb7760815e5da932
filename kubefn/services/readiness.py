"""
Rollout readiness polling.

ReadinessTracker holds the decision logic: each call to observe() takes one
pod listing and moves the poll through POLLING -> SUCCEEDED / GIVEN_UP / FATAL.
ReadinessPoller owns the timer and the cluster calls, and turns terminal
failures into exceptions.
"""

import asyncio
import json
from datetime import datetime
from typing import Awaitable, Callable, List, Optional

from kubefn.config.settings import DeploySettings, get_settings
from kubefn.exceptions import (
    ClusterRequestTimeout,
    DeploymentCrashLoop,
    DeploymentTimeout,
    KubefnError,
)
from kubefn.models.rollout import PodObservation, PollPhase, PollState
from kubefn.services.cluster_client import ClusterClient
from kubefn.utils.logging import LogSink, get_logger, resolve_sink

logger = get_logger(__name__, prefix="Rollout")


class ReadinessTracker:
    """State machine for one function's rollout."""

    def __init__(
        self,
        function_name: str,
        request_time: datetime,
        max_retries: int = 3,
        stability_threshold: int = 2,
        crash_restart_threshold: int = 2,
        verbose: bool = False,
        log: Optional[LogSink] = None,
    ):
        self.function_name = function_name
        self.request_time = request_time
        self.max_retries = max_retries
        self.stability_threshold = stability_threshold
        self.crash_restart_threshold = crash_restart_threshold
        self.verbose = verbose
        self.log = resolve_sink(log, logger)
        self.state = PollState()
        self.error: Optional[KubefnError] = None

    @property
    def phase(self) -> PollPhase:
        return self.state.phase

    def matching_pods(self, pods: List[PodObservation]) -> List[PodObservation]:
        """Pods of this function created by the current request, not a previous deployment."""
        return [
            pod for pod in pods
            if pod.function_label == self.function_name
            and (pod.creation_timestamp is None or pod.creation_timestamp >= self.request_time)
        ]

    def observe_timeout(self) -> PollPhase:
        """A pod listing timed out; try again next tick without spending a retry."""
        self._ensure_polling()
        self.log("Request timed out. Retrying...")
        return self.state.phase

    def observe(self, pods: List[PodObservation]) -> PollPhase:
        """Apply one pod listing and return the resulting phase."""
        self._ensure_polling()
        function_pods = self.matching_pods(pods)

        if not function_pods:
            self.state.retries += 1
            if self.state.retries > self.max_retries:
                self.log(f"Giving up, unable to retrieve the status of the {self.function_name} deployment.")
                return self._fail(PollPhase.GIVEN_UP, DeploymentTimeout(self.function_name))
            self.log(f"Unable to find any running pod for {self.function_name}. Retrying...")
            return self.state.phase

        running_pods = 0
        for pod in function_pods:
            container = pod.primary_container
            if container is None:
                continue
            if container.ready:
                running_pods += 1
            elif container.restart_count > self.crash_restart_threshold:
                self.log("ERROR: Failed to deploy the function")
                return self._fail(
                    PollPhase.FATAL,
                    DeploymentCrashLoop(self.function_name, pod.name, container.restart_count),
                )

        if running_pods == len(function_pods):
            # Pods may only be up for a moment; require consecutive healthy ticks
            self.state.successful_count += 1
            if self.state.successful_count >= self.stability_threshold:
                self.log(f"Function {self.function_name} successfully deployed")
                self.state.phase = PollPhase.SUCCEEDED
            return self.state.phase

        self.state.successful_count = 0
        if self.verbose:
            snapshot = [self._describe(pod) for pod in function_pods]
            if snapshot != self.state.previous_status_snapshot:
                self.log(f"Pods status: {', '.join(snapshot)}")
                self.state.previous_status_snapshot = snapshot
        return self.state.phase

    @staticmethod
    def _describe(pod: PodObservation) -> str:
        container = pod.primary_container
        if container is None:
            return "unknown"
        return json.dumps(container.state, default=str, sort_keys=True)

    def _fail(self, phase: PollPhase, error: KubefnError) -> PollPhase:
        self.state.phase = phase
        self.state.failure = str(error)
        self.error = error
        return phase

    def _ensure_polling(self):
        if self.state.phase.is_terminal:
            raise RuntimeError(f"Readiness poll for {self.function_name} already finished ({self.state.phase.value})")


class ReadinessPoller:
    """Polls pod status on a fixed interval until the tracker reaches a terminal phase."""

    def __init__(
        self,
        client: ClusterClient,
        settings: Optional[DeploySettings] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.client = client
        self.settings = settings or get_settings()
        self._sleep = sleep

    def tracker_for(
        self,
        function_name: str,
        request_time: datetime,
        verbose: bool = False,
        log: Optional[LogSink] = None,
    ) -> ReadinessTracker:
        return ReadinessTracker(
            function_name,
            request_time,
            max_retries=self.settings.MAX_POLL_RETRIES,
            stability_threshold=self.settings.STABILITY_THRESHOLD,
            crash_restart_threshold=self.settings.CRASH_RESTART_THRESHOLD,
            verbose=verbose,
            log=log,
        )

    async def wait_for_deployment(
        self,
        function_name: str,
        request_time: datetime,
        namespace: str,
        verbose: bool = False,
        log: Optional[LogSink] = None,
    ) -> None:
        """
        Wait until every pod of the function is ready on consecutive ticks.

        Raises:
            DeploymentTimeout: no pod for the function showed up
            DeploymentCrashLoop: a pod keeps restarting
            ClusterRequestError: listing pods failed for a reason other than a timeout
        """
        tracker = self.tracker_for(function_name, request_time, verbose=verbose, log=log)
        logger.debug(f"Waiting for {function_name} in {namespace} (requested at {request_time.isoformat()})")

        while not tracker.phase.is_terminal:
            await self._sleep(self.settings.POLL_INTERVAL)
            try:
                pods = await self.client.list_pods(namespace)
            except ClusterRequestTimeout:
                tracker.observe_timeout()
                continue
            tracker.observe(pods)

        if tracker.error is not None:
            raise tracker.error
