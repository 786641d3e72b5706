"""Tests for the composition root."""

from rollout.application.reporting import LoggingReporter
from rollout.application.use_cases.deploy_release import DeployRelease
from rollout.application.use_cases.run_fleet_task import RunFleetTask
from rollout.composition_root import RolloutContainer, create_container
from rollout.infrastructure.adapters.fabric_adapter import FabricAdapter
from rollout.infrastructure.config import FleetConfig, RolloutConfig
from rollout.presentation.cli.console import ConsoleReporter


class TestCreateContainer:
    def test_wires_everything(self, config):
        container = create_container(config)
        assert isinstance(container, RolloutContainer)
        assert container.config is config
        assert isinstance(container.fabric_adapter, FabricAdapter)
        assert isinstance(container.deploy_release, DeployRelease)
        assert isinstance(container.run_fleet_task, RunFleetTask)

    def test_shared_adapter_and_layout(self, config):
        container = create_container(config)
        assert container.release_store.remote_executor is container.fabric_adapter
        assert container.fleet.remote_executor is container.fabric_adapter
        assert container.release_store.layout.application_root == "/srv/shop"
        assert container.deploy_release.fleet is container.fleet
        assert container.run_fleet_task.fleet is container.fleet
        assert container.deploy_release.telemetry is container.telemetry
        assert container.deploy_release.event_bus is container.event_bus

    def test_fleet_settings_reach_adapter(self):
        config = RolloutConfig(fleet=FleetConfig(connect_timeout=7, key_filename="/k"))
        container = create_container(config)
        assert container.fabric_adapter.connect_timeout == 7
        assert container.fabric_adapter.key_filename == "/k"

    def test_empty_key_filename_is_none(self):
        assert create_container(RolloutConfig()).fabric_adapter.key_filename is None

    def test_reporter(self, config):
        assert isinstance(create_container(config).fleet.reporter, LoggingReporter)
        console = ConsoleReporter()
        assert create_container(config, reporter=console).fleet.reporter is console

    def test_audit_log_subscribed(self, config):
        container = create_container(config)
        assert container.event_bus._handlers
