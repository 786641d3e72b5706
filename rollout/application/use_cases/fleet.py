"""
Fleet Runner

Architectural Intent:
- Shared plumbing for use cases that drive tasks on many hosts
- Each host gets its own TaskContext and its own ReleaseRegistry, read back
  from the host; nothing mutable is shared between hosts
- Hosts are independent, so a step runs on all of them concurrently and the
  caller joins before moving on

Error Policy:
- TransportError is the only exception turned into a failed TaskResult; any
  other exception is a programming error and propagates
"""

from __future__ import annotations
from typing import Awaitable, Callable, Iterable, Optional
import asyncio
import logging

from rollout.application.reporting import LoggingReporter, StatusReporter
from rollout.application.tasks import (
    RunOptions,
    TaskContext,
    TaskKind,
    TaskResult,
    create_task,
)
from rollout.domain.ports.remote_executor_port import RemoteExecutorPort, TransportError
from rollout.domain.value_objects.node import Node
from rollout.domain.value_objects.remote_layout import RemoteLayout
from rollout.infrastructure.config import RolloutConfig
from rollout.infrastructure.repositories.release_store import RemoteReleaseStore

logger = logging.getLogger(__name__)

HostStep = Callable[[Node], Awaitable[list[TaskResult]]]


class FleetRunner:
    def __init__(
        self,
        remote_executor: RemoteExecutorPort,
        release_store: RemoteReleaseStore,
        config: RolloutConfig,
        reporter: Optional[StatusReporter] = None,
    ) -> None:
        self.remote_executor = remote_executor
        self.release_store = release_store
        self.config = config
        self.reporter = reporter or LoggingReporter()

    @property
    def layout(self) -> RemoteLayout:
        return self.release_store.layout

    def nodes(self, targets: Iterable[str]) -> list[Node]:
        fleet = self.config.fleet
        return [Node.parse(t, user=fleet.user, port=fleet.port) for t in targets]

    async def open(self, node: Node, options: RunOptions) -> TaskContext:
        """Build a host's context around its registry. Raises TransportError."""
        registry = await self.release_store.load(node)
        return TaskContext(
            node=node,
            registry=registry,
            executor=self.remote_executor,
            layout=self.layout,
            config=self.config,
            options=options,
            reporter=self.reporter,
        )

    async def run_task(
        self, node: Node, kind: TaskKind, options: RunOptions, **task_options
    ) -> TaskResult:
        """Open a host and run one task on it."""

        async def step(node: Node) -> list[TaskResult]:
            context = await self.open(node, options)
            return [await create_task(kind, context, **task_options).perform()]

        return (await self.guarded(node, kind, step))[0]

    async def guarded(self, node: Node, kind: TaskKind, step: HostStep) -> list[TaskResult]:
        """Run a host step, reporting an unreachable host as a failed result."""
        try:
            return await step(node)
        except TransportError as e:
            self.reporter.error(f"[{node.host}] Unable to reach host: {e.reason}")
            return [
                TaskResult(kind, node.host, False, message=f"transport failure: {e.reason}")
            ]

    async def gather(
        self, nodes: list[Node], kind: TaskKind, step: HostStep
    ) -> list[TaskResult]:
        """Run a step on every host concurrently and flatten the results."""
        per_host = await asyncio.gather(*(self.guarded(n, kind, step) for n in nodes))
        return [result for results in per_host for result in results]
