"""Tests for deployment DTOs."""

import pytest

from rollout.application.dtos.deployment_dtos import (
    DeployRequest,
    FleetTaskRequest,
    FleetTaskResponse,
)
from rollout.application.tasks import TaskKind, TaskResult


class TestDeployRequest:
    def test_defaults(self):
        request = DeployRequest(targets=["web1"])
        assert request.run_tests is False
        assert request.pretend is False
        assert request.verbose is False

    def test_empty_targets(self):
        with pytest.raises(ValueError, match="targets"):
            DeployRequest(targets=[])


class TestFleetTaskRequest:
    def test_options_default_empty(self):
        request = FleetTaskRequest(kind=TaskKind.SETUP, targets=["web1"])
        assert request.options == {}

    def test_empty_targets(self):
        with pytest.raises(ValueError):
            FleetTaskRequest(kind=TaskKind.SETUP, targets=[])

    def test_kind_must_be_task_kind(self):
        with pytest.raises(ValueError, match="TaskKind"):
            FleetTaskRequest(kind="setup", targets=["web1"])


class TestFleetTaskResponse:
    def test_all_passed(self):
        response = FleetTaskResponse(
            kind=TaskKind.SETUP,
            results=(
                TaskResult(TaskKind.SETUP, "web1", True),
                TaskResult(TaskKind.SETUP, "web2", True, skipped=True),
            ),
        )
        assert response.succeeded
        assert response.failed_hosts == []

    def test_one_failed(self):
        response = FleetTaskResponse(
            kind=TaskKind.SETUP,
            results=(
                TaskResult(TaskKind.SETUP, "web1", True),
                TaskResult(TaskKind.SETUP, "web2", False),
            ),
        )
        assert not response.succeeded
        assert response.failed_hosts == ["web2"]

    def test_no_results_is_not_success(self):
        assert FleetTaskResponse(kind=TaskKind.SETUP).succeeded is False
