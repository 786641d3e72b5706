"""
Deployment DTOs

Architectural Intent:
- Data Transfer Objects for use case boundaries
- Input validation at the application boundary
- Decouples the CLI's representation from the task and deployment model
"""

from dataclasses import dataclass, field
from typing import Any

from rollout.application.tasks import TaskKind, TaskResult


@dataclass(frozen=True)
class DeployRequest:
    targets: list[str]
    run_tests: bool = False
    pretend: bool = False
    verbose: bool = False

    def __post_init__(self) -> None:
        if not self.targets:
            raise ValueError("targets cannot be empty")


@dataclass(frozen=True)
class FleetTaskRequest:
    kind: TaskKind
    targets: list[str]
    pretend: bool = False
    verbose: bool = False
    options: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.targets:
            raise ValueError("targets cannot be empty")
        if not isinstance(self.kind, TaskKind):
            raise ValueError(f"kind must be a TaskKind, got {self.kind!r}")


@dataclass(frozen=True)
class FleetTaskResponse:
    kind: TaskKind
    results: tuple[TaskResult, ...] = ()

    @property
    def succeeded(self) -> bool:
        return bool(self.results) and all(r.succeeded for r in self.results)

    @property
    def failed_hosts(self) -> list[str]:
        return [r.host for r in self.results if not r.succeeded]
