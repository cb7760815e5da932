"""
Unit tests for Function resource submission.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from kubefn.exceptions import (
    ClusterRequestError,
    DeploymentCrashLoop,
    DeploymentSubmissionFailed,
    DeploymentUpdateFailed,
)
from kubefn.models.function import EventSpec
from kubefn.services.manifests import build_function_manifest
from kubefn.services.readiness import ReadinessPoller
from kubefn.services.submitter import (
    deploy_function_and_wait,
    redeploy_function_and_wait,
    request_timestamp,
)


@pytest.fixture
def manifest(sample_function):
    return build_function_manifest(sample_function, EventSpec(), "default")


@pytest.fixture
def mock_poller():
    poller = MagicMock(spec=ReadinessPoller)
    poller.wait_for_deployment = AsyncMock(return_value=None)
    return poller


@pytest.mark.unit
class TestDeployFunctionAndWait:
    """Tests for creating a function and waiting for it."""

    @pytest.mark.asyncio
    async def test_creates_and_waits(
        self, manifest, mock_cluster_client, mock_poller, fixed_clock, request_time, log_lines
    ):
        deployed = await deploy_function_and_wait(
            manifest, mock_cluster_client, mock_poller, "default", log=log_lines, clock=fixed_clock
        )

        assert deployed is True
        mock_cluster_client.create_function.assert_awaited_once_with("default", manifest)
        mock_poller.wait_for_deployment.assert_awaited_once_with(
            "hello", request_time, "default", verbose=False, log=log_lines
        )
        assert log_lines.lines[0] == "Deploying function hello..."

    @pytest.mark.asyncio
    async def test_conflict_means_not_deployed(self, manifest, mock_cluster_client, mock_poller, log_lines):
        """An existing function is not an error; the user is told how to force it."""
        mock_cluster_client.create_function.side_effect = ClusterRequestError(409, "AlreadyExists")

        deployed = await deploy_function_and_wait(
            manifest, mock_cluster_client, mock_poller, "default", log=log_lines
        )

        assert deployed is False
        mock_poller.wait_for_deployment.assert_not_awaited()
        assert any("The function hello already exists" in line for line in log_lines.lines)

    @pytest.mark.asyncio
    async def test_other_errors_fail_submission(self, manifest, mock_cluster_client, mock_poller):
        mock_cluster_client.create_function.side_effect = ClusterRequestError(422, "Invalid spec")

        with pytest.raises(DeploymentSubmissionFailed) as exc_info:
            await deploy_function_and_wait(manifest, mock_cluster_client, mock_poller, "default")

        assert str(exc_info.value) == (
            "Unable to deploy the function hello. Received:\n"
            "  Code: 422\n"
            "  Message: Invalid spec"
        )
        mock_poller.wait_for_deployment.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_poll_failure_propagates(self, manifest, mock_cluster_client, mock_poller):
        mock_poller.wait_for_deployment.side_effect = DeploymentCrashLoop("hello", "hello-1", 3)

        with pytest.raises(DeploymentCrashLoop):
            await deploy_function_and_wait(manifest, mock_cluster_client, mock_poller, "default")


@pytest.mark.unit
class TestRedeployFunctionAndWait:
    """Tests for updating a function and waiting for it."""

    @pytest.mark.asyncio
    async def test_updates_and_waits(self, manifest, mock_cluster_client, mock_poller, fixed_clock, request_time):
        deployed = await redeploy_function_and_wait(
            manifest, mock_cluster_client, mock_poller, "default", verbose=True, clock=fixed_clock
        )

        assert deployed is True
        mock_cluster_client.update_function.assert_awaited_once_with("default", "hello", manifest)
        mock_cluster_client.create_function.assert_not_awaited()
        mock_poller.wait_for_deployment.assert_awaited_once_with(
            "hello", request_time, "default", verbose=True, log=None
        )

    @pytest.mark.asyncio
    async def test_conflict_is_an_update_failure(self, manifest, mock_cluster_client, mock_poller):
        """Updates have no conflict shortcut."""
        mock_cluster_client.update_function.side_effect = ClusterRequestError(409, "Conflict")

        with pytest.raises(DeploymentUpdateFailed, match="Unable to update the function hello"):
            await redeploy_function_and_wait(manifest, mock_cluster_client, mock_poller, "default")

        mock_poller.wait_for_deployment.assert_not_awaited()


@pytest.mark.unit
def test_request_timestamp_drops_microseconds(fixed_clock, request_time):
    assert request_timestamp(fixed_clock) == request_time
