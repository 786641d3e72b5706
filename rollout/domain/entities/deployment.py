"""
Deployment Module

Architectural Intent:
- Deployment aggregate tracks one run of the deploy pipeline across a fleet
- Stage transitions are enforced by domain methods
- All state changes produce new instances to ensure auditability
- Domain events are collected for the event bus (audit log, telemetry, notifications)

Stage machine:
    ALLOCATING -> CLONING -> INSTALLING -> [TEST_GATE] -> PROMOTING -> DONE
    any non-terminal stage -> ABORTED

Domain Events:
- DeploymentStartedEvent: the pipeline began allocating releases
- StageCompletedEvent: a stage finished on every host
- ReleasePromotedEvent: a host's current symlink now points at the new release
- DeploymentCompletedEvent: every stage succeeded
- DeploymentAbortedEvent: a stage failed; fatal when promotion itself failed
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional, Any
import uuid

from rollout.domain.events.event_base import DomainEvent


class DeploymentStage(Enum):
    ALLOCATING = "allocating"
    CLONING = "cloning"
    INSTALLING = "installing"
    TEST_GATE = "test_gate"
    PROMOTING = "promoting"
    DONE = "done"
    ABORTED = "aborted"


TERMINAL_STAGES = frozenset({DeploymentStage.DONE, DeploymentStage.ABORTED})

_TRANSITIONS: dict[DeploymentStage, frozenset[DeploymentStage]] = {
    DeploymentStage.ALLOCATING: frozenset({DeploymentStage.CLONING}),
    DeploymentStage.CLONING: frozenset({DeploymentStage.INSTALLING}),
    DeploymentStage.INSTALLING: frozenset(
        {DeploymentStage.TEST_GATE, DeploymentStage.PROMOTING}
    ),
    DeploymentStage.TEST_GATE: frozenset({DeploymentStage.PROMOTING}),
    DeploymentStage.PROMOTING: frozenset({DeploymentStage.DONE}),
}


@dataclass(frozen=True)
class DeploymentStartedEvent(DomainEvent):
    targets: tuple[str, ...] = ()
    run_tests: bool = False
    pretend: bool = False


@dataclass(frozen=True)
class StageCompletedEvent(DomainEvent):
    stage: str = ""
    succeeded: bool = True
    duration_ms: float = 0.0


@dataclass(frozen=True)
class ReleasePromotedEvent(DomainEvent):
    host: str = ""
    release_id: int = 0
    previous_release_id: Optional[int] = None


@dataclass(frozen=True)
class DeploymentCompletedEvent(DomainEvent):
    releases: tuple[tuple[str, int], ...] = ()


@dataclass(frozen=True)
class DeploymentAbortedEvent(DomainEvent):
    stage: str = ""
    reason: str = ""
    fatal: bool = False


@dataclass(frozen=True)
class Deployment:
    """Immutable record of a deploy pipeline run."""

    deployment_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    targets: tuple[str, ...] = ()
    stage: DeploymentStage = DeploymentStage.ALLOCATING
    releases: tuple[tuple[str, int], ...] = ()
    results: tuple[Any, ...] = ()
    failed_stage: Optional[DeploymentStage] = None
    error_message: Optional[str] = None
    fatal: bool = False
    domain_events: tuple[DomainEvent, ...] = ()

    @classmethod
    def start(
        cls, targets: tuple[str, ...], run_tests: bool = False, pretend: bool = False
    ) -> Deployment:
        deployment = cls(targets=tuple(targets))
        return deployment._with_event(
            DeploymentStartedEvent(
                aggregate_id=deployment.deployment_id,
                targets=deployment.targets,
                run_tests=run_tests,
                pretend=pretend,
            )
        )

    @property
    def is_terminal(self) -> bool:
        return self.stage in TERMINAL_STAGES

    @property
    def succeeded(self) -> bool:
        return self.stage == DeploymentStage.DONE

    def release_for(self, host: str) -> Optional[int]:
        return dict(self.releases).get(host)

    def with_release(self, host: str, release_id: int) -> Deployment:
        releases = dict(self.releases)
        releases[host] = release_id
        return replace(self, releases=tuple(releases.items()))

    def record(
        self, stage: DeploymentStage, results: tuple[Any, ...], duration_ms: float = 0.0
    ) -> Deployment:
        """Attach a stage's per-host results."""
        succeeded = all(getattr(r, "succeeded", False) for r in results)
        return replace(self, results=self.results + tuple(results))._with_event(
            StageCompletedEvent(
                aggregate_id=self.deployment_id,
                stage=stage.value,
                succeeded=succeeded,
                duration_ms=duration_ms,
            )
        )

    def advance(self, stage: DeploymentStage) -> Deployment:
        if self.is_terminal:
            raise ValueError(f"Deployment already {self.stage.value}")
        if stage not in _TRANSITIONS.get(self.stage, frozenset()):
            raise ValueError(
                f"Cannot move from {self.stage.value} to {stage.value}"
            )
        return replace(self, stage=stage)

    def promoted(
        self, host: str, release_id: int, previous_release_id: Optional[int]
    ) -> Deployment:
        if self.stage != DeploymentStage.PROMOTING:
            raise ValueError("Deployment must be PROMOTING to record a promotion")
        return self._with_event(
            ReleasePromotedEvent(
                aggregate_id=self.deployment_id,
                host=host,
                release_id=release_id,
                previous_release_id=previous_release_id,
            )
        )

    def complete(self) -> Deployment:
        done = self.advance(DeploymentStage.DONE)
        return done._with_event(
            DeploymentCompletedEvent(
                aggregate_id=self.deployment_id, releases=self.releases
            )
        )

    def abort(self, reason: str, fatal: bool = False) -> Deployment:
        if self.is_terminal:
            raise ValueError(f"Deployment already {self.stage.value}")
        return replace(
            self,
            stage=DeploymentStage.ABORTED,
            failed_stage=self.stage,
            error_message=reason,
            fatal=fatal,
        )._with_event(
            DeploymentAbortedEvent(
                aggregate_id=self.deployment_id,
                stage=self.stage.value,
                reason=reason,
                fatal=fatal,
            )
        )

    def _with_event(self, event: DomainEvent) -> Deployment:
        return replace(self, domain_events=self.domain_events + (event,))
