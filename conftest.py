"""Global test configuration.

Provides a scripted Remote Executor and a recording reporter so tasks, the
deploy pipeline and the CLI can be exercised without SSH.
"""

from dataclasses import dataclass
from typing import Optional

import pytest

from rollout.application.reporting import StatusReporter
from rollout.application.tasks import RunOptions, TaskContext
from rollout.domain.entities.release import ReleaseRegistry
from rollout.domain.ports.remote_executor_port import (
    ExecutionResult,
    RemoteExecutorPort,
    TransportError,
)
from rollout.domain.value_objects.node import Node
from rollout.domain.value_objects.remote_layout import RemoteLayout
from rollout.infrastructure.config import (
    ApplicationConfig,
    RepositoryConfig,
    RolloutConfig,
)


@dataclass
class _Rule:
    fragment: str
    chunks: tuple[str, ...]
    succeeded: bool
    host: Optional[str]
    transport_error: Optional[str]


class ScriptedExecutor(RemoteExecutorPort):
    """
    Executor answering batches from registered rules.

    A rule matches when its fragment appears in the joined batch; the most
    recently registered matching rule wins. Unmatched batches succeed with no
    output.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[Node, list[str]]] = []
        self._rules: list[_Rule] = []

    def when(
        self,
        fragment: str,
        output: str = "",
        succeeded: bool = True,
        chunks: tuple[str, ...] = (),
        host: Optional[str] = None,
        transport_error: Optional[str] = None,
    ) -> "ScriptedExecutor":
        self._rules.append(
            _Rule(
                fragment=fragment,
                chunks=chunks or ((output,) if output else ()),
                succeeded=succeeded,
                host=host,
                transport_error=transport_error,
            )
        )
        return self

    async def execute(self, node, commands, on_output=None):
        self.calls.append((node, list(commands)))
        joined = " && ".join(commands)
        for rule in reversed(self._rules):
            if rule.fragment not in joined:
                continue
            if rule.host is not None and rule.host != node.host:
                continue
            if rule.transport_error:
                raise TransportError(node, rule.transport_error)
            if on_output:
                for chunk in rule.chunks:
                    on_output(chunk)
            return ExecutionResult(
                output="".join(rule.chunks),
                succeeded=rule.succeeded,
                exit_code=0 if rule.succeeded else 1,
            )
        return ExecutionResult(output="", succeeded=True)

    def commands(self, host: Optional[str] = None) -> list[str]:
        return [
            command
            for node, batch in self.calls
            if host is None or node.host == host
            for command in batch
        ]


class RecordingReporter(StatusReporter):
    def __init__(self) -> None:
        self.lines: list[tuple[str, str]] = []

    def info(self, message: str) -> None:
        self.lines.append(("info", message))

    def comment(self, message: str) -> None:
        self.lines.append(("comment", message))

    def error(self, message: str) -> None:
        self.lines.append(("error", message))

    def line(self, message: str) -> None:
        self.lines.append(("line", message))

    def messages(self, severity: Optional[str] = None) -> list[str]:
        return [m for s, m in self.lines if severity is None or s == severity]


class Clock:
    """Manually advanced clock for release id allocation."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def executor():
    return ScriptedExecutor()


@pytest.fixture
def reporter():
    return RecordingReporter()


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def config():
    return RolloutConfig(
        application=ApplicationConfig(name="shop", root_directory="/srv"),
        repository=RepositoryConfig(url="git@example.com:acme/shop.git", branch="main"),
    )


@pytest.fixture
def layout(config):
    return RemoteLayout(
        root_directory=config.application.root_directory,
        application_name=config.application.name,
    )


@pytest.fixture
def node():
    return Node(host="10.0.0.1", user="deploy")


@pytest.fixture
def registry(layout, clock):
    return ReleaseRegistry(layout.releases_root, clock=clock)


@pytest.fixture
def make_context(node, registry, executor, layout, config, reporter):
    def _make(pretend=False, verbose=False, **overrides):
        values = dict(
            node=node,
            registry=registry,
            executor=executor,
            layout=layout,
            config=config,
            options=RunOptions(pretend=pretend, verbose=verbose),
            reporter=reporter,
        )
        values.update(overrides)
        return TaskContext(**values)

    return _make
