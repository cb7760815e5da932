"""
Pytest configuration and shared fixtures for kubefn tests.

Provides:
- A mocked cluster client (no cluster or network needed)
- Settings with a zero poll interval and a no-op sleep
- Pod and function factories
- A log sink that records progress lines
"""

from datetime import datetime, timedelta, timezone
from typing import List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from kubefn.config.settings import DeploySettings
from kubefn.models.function import FunctionDescriptor
from kubefn.models.rollout import ContainerStatus, PodObservation
from kubefn.services.cluster_client import ClusterClient


REQUEST_TIME = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


# =============================================================================
# Configuration Fixtures
# =============================================================================

@pytest.fixture
def settings():
    """Settings tuned for tests: polling never actually waits."""
    return DeploySettings(POLL_INTERVAL=0, DEFAULT_NAMESPACE="default")


@pytest.fixture
def no_sleep():
    """Stand-in for asyncio.sleep that returns immediately and counts ticks."""
    return AsyncMock(return_value=None)


@pytest.fixture
def request_time():
    """Moment the deployment under test was submitted."""
    return REQUEST_TIME


@pytest.fixture
def fixed_clock():
    """Clock pinned to REQUEST_TIME (with sub-second noise to exercise truncation)."""
    return lambda: REQUEST_TIME + timedelta(microseconds=250_000)


# =============================================================================
# Cluster Fixtures
# =============================================================================

@pytest.fixture
def mock_cluster_client():
    """Mock cluster client; by default no functions or pods exist."""
    cluster = MagicMock(spec=ClusterClient)
    cluster.api_server_url = "https://192.168.99.100:8443"
    cluster.list_functions = AsyncMock(return_value=[])
    cluster.create_function = AsyncMock(return_value={})
    cluster.update_function = AsyncMock(return_value={})
    cluster.create_ingress = AsyncMock(return_value={})
    cluster.list_pods = AsyncMock(side_effect=lambda namespace: [])
    return cluster


@pytest.fixture
def make_pod():
    """Factory for pod observations belonging to a function."""
    def _make(
        function: str,
        name: Optional[str] = None,
        ready: bool = True,
        restart_count: int = 0,
        created: Optional[datetime] = REQUEST_TIME,
        state: Optional[dict] = None,
        with_status: bool = True,
    ) -> PodObservation:
        statuses: List[ContainerStatus] = []
        if with_status:
            statuses.append(ContainerStatus(
                ready=ready,
                restart_count=restart_count,
                state=state or ({"running": {}} if ready else {"waiting": {"reason": "ContainerCreating"}}),
            ))
        return PodObservation(
            name=name or f"{function}-7d9f8c-abcde",
            function_label=function,
            creation_timestamp=created,
            container_statuses=statuses,
        )
    return _make


@pytest.fixture
def pods_ready_for():
    """list_pods side effect reporting one ready pod for whichever function is asked about."""
    def _build(*functions: str):
        def _list(namespace):
            return [
                PodObservation(
                    name=f"{fn}-pod",
                    function_label=fn,
                    creation_timestamp=REQUEST_TIME,
                    container_statuses=[ContainerStatus(ready=True)],
                )
                for fn in functions
            ]
        return _list
    return _build


# =============================================================================
# Test Data Fixtures
# =============================================================================

@pytest.fixture
def sample_function():
    """A plain HTTP function."""
    return FunctionDescriptor(
        id="hello",
        handler="handler.hello",
        runtime="python3.11",
        text="def hello(event, context):\n    return 'hello world'\n",
    )


@pytest.fixture
def log_lines():
    """A log sink that remembers every line it receives."""
    lines: List[str] = []

    class _Sink:
        def __call__(self, line: str) -> None:
            lines.append(line)

        @property
        def lines(self) -> List[str]:
            return lines

    return _Sink()


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
    config.addinivalue_line(
        "markers", "requires_k8s: mark test as requiring Kubernetes"
    )
