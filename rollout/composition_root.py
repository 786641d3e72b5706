"""
Composition Root

Architectural Intent:
- Dependency injection composition root for the Rollout application
- Single place where all adapters and use cases are wired together
- No adapter instantiation should occur outside this module

Design Decisions:
- Uses a simple dataclass container instead of a DI framework
- Configuration is loaded once and passed down explicitly
- Telemetry is created here but initialized by the caller (it may do I/O)
"""

from dataclasses import dataclass
from typing import Optional
from rollout.application.reporting import StatusReporter
from rollout.application.use_cases.deploy_release import DeployRelease
from rollout.application.use_cases.fleet import FleetRunner
from rollout.application.use_cases.run_fleet_task import RunFleetTask
from rollout.domain.events.event_base import DomainEvent
from rollout.domain.value_objects.remote_layout import RemoteLayout
from rollout.infrastructure.adapters.fabric_adapter import FabricAdapter
from rollout.infrastructure.config import RolloutConfig, load_config
from rollout.infrastructure.event_bus import EventBus, log_event
from rollout.infrastructure.repositories.release_store import RemoteReleaseStore
from rollout.infrastructure.telemetry.otel_exporter import OTELExporter, create_exporter


@dataclass
class RolloutContainer:
    """DI container holding all wired dependencies."""

    config: RolloutConfig
    fabric_adapter: FabricAdapter
    release_store: RemoteReleaseStore
    event_bus: EventBus
    telemetry: OTELExporter
    fleet: FleetRunner
    deploy_release: DeployRelease
    run_fleet_task: RunFleetTask


def create_container(
    config: Optional[RolloutConfig] = None,
    reporter: Optional[StatusReporter] = None,
) -> RolloutContainer:
    """Create and wire all dependencies."""
    config = config or load_config()

    fabric_adapter = FabricAdapter(
        connect_timeout=config.fleet.connect_timeout,
        key_filename=config.fleet.key_filename or None,
    )
    layout = RemoteLayout(
        root_directory=config.application.root_directory,
        application_name=config.application.name,
    )
    release_store = RemoteReleaseStore(fabric_adapter, layout)

    event_bus = EventBus()
    event_bus.subscribe(DomainEvent, log_event)
    telemetry = create_exporter(
        endpoint=config.telemetry.endpoint,
        insecure=config.telemetry.insecure,
    )

    fleet = FleetRunner(fabric_adapter, release_store, config, reporter)
    deploy_release = DeployRelease(fleet, event_bus=event_bus, telemetry=telemetry)
    run_fleet_task = RunFleetTask(fleet)

    return RolloutContainer(
        config=config,
        fabric_adapter=fabric_adapter,
        release_store=release_store,
        event_bus=event_bus,
        telemetry=telemetry,
        fleet=fleet,
        deploy_release=deploy_release,
        run_fleet_task=run_fleet_task,
    )
