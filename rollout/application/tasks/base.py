"""
Task Base

Architectural Intent:
- A Task is one named operation run against one host
- Tasks compose primitive remote-command helpers (run, run_in_folder,
  run_in_release) into higher-level actions, and may run other tasks
- Every task honours pretend mode at the granularity of the run primitive:
  commands are printed instead of executed
- Tasks are built through a factory keyed by TaskKind, never by reflection

Error Policy:
- A failed shell command is data: tasks return a TaskResult, they do not raise
- Misusing the registry or the factory raises (InvalidReleaseError, UnknownTaskError)
- TransportError from the executor propagates; the pipeline decides what it means
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable, ClassVar, Optional, Sequence, TypeVar, Union
import logging
import shlex

from rollout.application.reporting import LoggingReporter, StatusReporter
from rollout.domain.entities.release import InvalidReleaseError, Release, ReleaseRegistry
from rollout.domain.ports.remote_executor_port import ExecutionResult, RemoteExecutorPort
from rollout.domain.value_objects.node import Node
from rollout.domain.value_objects.remote_layout import RemoteLayout
from rollout.infrastructure.config import RolloutConfig

logger = logging.getLogger(__name__)

Commands = Union[str, Sequence[str]]


class TaskKind(Enum):
    SETUP = "setup"
    CLONE = "clone"
    DEPENDENCIES = "dependencies"
    TESTS = "tests"
    SYMLINK = "symlink"
    PERMISSIONS = "permissions"
    CREATE_FOLDER = "create_folder"
    REMOVE_FOLDER = "remove_folder"
    CURRENT_RELEASE = "current_release"
    ROLLBACK = "rollback"
    CLEANUP = "cleanup"
    TEARDOWN = "teardown"


class UnknownTaskError(LookupError):
    """Raised when no task is registered for a kind."""


@dataclass(frozen=True)
class RunOptions:
    pretend: bool = False
    verbose: bool = False


@dataclass(frozen=True)
class TaskContext:
    """Everything a task needs; shared by a task and the subtasks it runs."""
    node: Node
    registry: ReleaseRegistry
    executor: RemoteExecutorPort
    layout: RemoteLayout
    config: RolloutConfig
    options: RunOptions = field(default_factory=RunOptions)
    reporter: StatusReporter = field(default_factory=LoggingReporter)


@dataclass(frozen=True)
class TaskResult:
    kind: TaskKind
    host: str
    succeeded: bool
    output: str = ""
    message: str = ""
    skipped: bool = False

    @property
    def verdict(self) -> str:
        if not self.succeeded:
            return "failed"
        return "skipped" if self.skipped else "passed"


class Task(ABC):
    kind: ClassVar[TaskKind]

    def __init__(self, context: TaskContext) -> None:
        self.context = context

    @property
    def slug(self) -> str:
        return self.kind.value

    @property
    def node(self) -> Node:
        return self.context.node

    @property
    def registry(self) -> ReleaseRegistry:
        return self.context.registry

    @property
    def layout(self) -> RemoteLayout:
        return self.context.layout

    @property
    def config(self) -> RolloutConfig:
        return self.context.config

    @property
    def pretend(self) -> bool:
        return self.context.options.pretend

    @property
    def verbose(self) -> bool:
        return self.context.options.verbose

    @property
    def release(self) -> Release:
        """The release under construction on this host."""
        release = self.registry.target_release()
        if release is None:
            raise InvalidReleaseError(f"No release to work on for {self.node.host}")
        return release

    @abstractmethod
    async def execute(self) -> TaskResult:
        """Run the task. Re-running must converge on the same end state."""

    async def perform(self) -> TaskResult:
        """Run the task wrapped in its configured before/after hooks."""
        before = self.config.hooks.commands("before", self.slug)
        if before:
            hooked = await self.execute_batch(self._in_hook_folder(before))
            if not hooked.succeeded:
                self.error(f"Before-{self.slug} hooks failed")
                return self.failure(hooked.output, f"before-{self.slug} hooks failed")

        result = await self.execute()

        after = self.config.hooks.commands("after", self.slug)
        if after and result.succeeded:
            hooked = await self.execute_batch(self._in_hook_folder(after))
            if not hooked.succeeded:
                self.error(f"After-{self.slug} hooks failed")
                return replace(
                    result,
                    succeeded=False,
                    output=hooked.output,
                    message=f"after-{self.slug} hooks failed",
                )
        return result

    # Primitives

    async def execute_batch(self, commands: Commands) -> ExecutionResult:
        """
        Run a batch on the host and gather its full output.

        In pretend mode the commands are printed and nothing is dispatched.
        """
        batch = [commands] if isinstance(commands, str) else list(commands)

        if self.pretend:
            self.context.reporter.line("\n".join(batch))
            return ExecutionResult(output="", succeeded=True, pretended=True)

        chunks: list[str] = []
        result = await self.context.executor.execute(
            self.node, batch, on_output=chunks.append
        )
        output = ("".join(chunks) if chunks else result.output).strip()

        if self.verbose and output:
            self.context.reporter.line(output)
        if not result.succeeded:
            logger.debug(
                "Batch failed on %s (exit %s): %s", self.node, result.exit_code, batch
            )
        return replace(result, output=output)

    async def run(self, commands: Commands) -> str:
        return (await self.execute_batch(commands)).output

    async def run_in_folder(self, folder: Optional[str], commands: Commands) -> str:
        return (await self.execute_batch(self._in_folder(folder, commands))).output

    async def run_in_release(self, commands: Commands) -> str:
        return await self.run_in_folder(self.release.path, commands)

    async def execute_subtask(self, kind: TaskKind, **options) -> TaskResult:
        return await create_task(kind, self.context, **options).perform()

    async def resolve_binary(
        self, name: str, fallback: Optional[str] = None
    ) -> Optional[str]:
        """Locate an executable on the host, trying the fallback path second."""
        location = await self._which(name)
        if location:
            return location
        if fallback and await self._which(fallback):
            return fallback
        return None

    # Helpers

    def _in_folder(self, folder: Optional[str], commands: Commands) -> list[str]:
        batch = [commands] if isinstance(commands, str) else list(commands)
        return [f"cd {shlex.quote(self.layout.resolve(folder))}"] + batch

    def _in_hook_folder(self, commands: list[str]) -> list[str]:
        target = self.registry.target_release()
        return self._in_folder(target.path if target else None, commands)

    async def _which(self, binary: str) -> Optional[str]:
        result = await self.execute_batch(f"which {shlex.quote(binary)}")
        location = result.output.strip()
        if not result.succeeded or not location:
            return None
        if location.endswith("not found") or location.startswith("which: no"):
            return None
        return location.splitlines()[0]

    def info(self, message: str) -> None:
        self.context.reporter.info(f"[{self.node.host}] {message}")

    def comment(self, message: str) -> None:
        self.context.reporter.comment(f"[{self.node.host}] {message}")

    def error(self, message: str) -> None:
        self.context.reporter.error(f"[{self.node.host}] {message}")

    def success(self, output: str = "", message: str = "") -> TaskResult:
        return TaskResult(self.kind, self.node.host, True, output, message)

    def failure(self, output: str = "", message: str = "") -> TaskResult:
        return TaskResult(self.kind, self.node.host, False, output, message)

    def skipped(self, message: str) -> TaskResult:
        return TaskResult(self.kind, self.node.host, True, "", message, skipped=True)


_TASKS: dict[TaskKind, type[Task]] = {}

T = TypeVar("T", bound=type[Task])


def register_task(kind: TaskKind) -> Callable[[T], T]:
    """Class decorator binding a Task subclass to its kind."""

    def decorator(cls: T) -> T:
        cls.kind = kind
        _TASKS[kind] = cls
        return cls

    return decorator


def create_task(kind: TaskKind, context: TaskContext, **options) -> Task:
    try:
        task_cls = _TASKS[kind]
    except KeyError:
        raise UnknownTaskError(f"No task registered for {kind!r}") from None
    return task_cls(context, **options)


def registered_kinds() -> list[TaskKind]:
    return list(_TASKS)
