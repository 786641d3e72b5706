"""
Deploy Release Use Case

Architectural Intent:
- The deploy pipeline: allocate -> clone -> install -> [test gate] -> promote
- Every stage runs on all hosts concurrently and joins before the next stage;
  a stage passes only if it passed on every host
- Rollback is achieved by never promoting: a failure before PROMOTING leaves
  the previously active release live on every host
- A failed swap while promoting is fatal and not retried; hosts may be left with
  a bad current pointer and need manual intervention
- A failed after-symlink hook on a host whose swap went through aborts the run
  without being fatal: the new release is live and recorded as promoted

Telemetry:
- Each stage records its duration and outcome and runs inside a span
- Domain events collected on the Deployment are published once the run ends
"""

from __future__ import annotations
from typing import Optional
import time
import logging

from rollout.application.dtos.deployment_dtos import DeployRequest
from rollout.application.tasks import RunOptions, TaskContext, TaskKind, TaskResult, create_task
from rollout.application.use_cases.fleet import FleetRunner, HostStep
from rollout.domain.entities.deployment import Deployment, DeploymentStage
from rollout.domain.value_objects.node import Node
from rollout.infrastructure.event_bus import EventBus
from rollout.infrastructure.telemetry.otel_exporter import OTELExporter

logger = logging.getLogger(__name__)

_FAILURE_REASONS = {
    DeploymentStage.ALLOCATING: "Could not prepare a new release",
    DeploymentStage.CLONING: "Clone failed",
    DeploymentStage.INSTALLING: "Installing dependencies failed",
    DeploymentStage.TEST_GATE: "Tests failed, release not promoted",
    DeploymentStage.PROMOTING: (
        "Promotion failed, current symlink may be invalid: manual intervention required"
    ),
}

_HOOKS_FAILED_AFTER_PROMOTION = "Release is live but after-symlink hooks failed"

_STAGE_KINDS = {
    DeploymentStage.ALLOCATING: TaskKind.SETUP,
    DeploymentStage.CLONING: TaskKind.CLONE,
    DeploymentStage.INSTALLING: TaskKind.DEPENDENCIES,
    DeploymentStage.TEST_GATE: TaskKind.TESTS,
    DeploymentStage.PROMOTING: TaskKind.SYMLINK,
}


class DeployRelease:
    def __init__(
        self,
        fleet: FleetRunner,
        event_bus: Optional[EventBus] = None,
        telemetry: Optional[OTELExporter] = None,
        clock=time.time,
    ):
        self.fleet = fleet
        self.event_bus = event_bus
        self.telemetry = telemetry
        self._clock = clock

    async def execute(self, request: DeployRequest) -> Deployment:
        options = RunOptions(pretend=request.pretend, verbose=request.verbose)
        nodes = self.fleet.nodes(request.targets)
        contexts: dict[Node, TaskContext] = {}
        stamp = self._clock()

        deployment = Deployment.start(
            tuple(str(n) for n in nodes),
            run_tests=request.run_tests,
            pretend=request.pretend,
        )

        async def allocate(node: Node) -> list[TaskResult]:
            context = await self.fleet.open(node, options)
            setup = await create_task(TaskKind.SETUP, context).perform()
            if setup.succeeded:
                release = context.registry.allocate(at=stamp)
                contexts[node] = context
                self.fleet.reporter.info(f"[{node.host}] Allocated release {release.id}")
            return [setup]

        async def clone(node: Node) -> list[TaskResult]:
            return [await create_task(TaskKind.CLONE, contexts[node]).perform()]

        async def install(node: Node) -> list[TaskResult]:
            context = contexts[node]
            results = [await create_task(TaskKind.DEPENDENCIES, context).perform()]
            for folder in self.fleet.config.permissions.folders:
                if not results[-1].succeeded:
                    break
                results.append(
                    await create_task(TaskKind.PERMISSIONS, context, folder=folder).perform()
                )
            return results

        async def test_gate(node: Node) -> list[TaskResult]:
            return [await create_task(TaskKind.TESTS, contexts[node]).perform()]

        promotions: list[tuple[str, int, Optional[int]]] = []

        async def promote(node: Node) -> list[TaskResult]:
            context = contexts[node]
            release = context.registry.target_release()
            displaced = context.registry.current_release()
            result = await create_task(
                TaskKind.SYMLINK, context, release_id=release.id
            ).perform()
            live = context.registry.current_release()
            if live is not None and live.id == release.id:
                promotions.append(
                    (node.host, release.id, displaced.id if displaced else None)
                )
            return [result]

        stages: list[tuple[DeploymentStage, HostStep]] = [
            (DeploymentStage.ALLOCATING, allocate),
            (DeploymentStage.CLONING, clone),
            (DeploymentStage.INSTALLING, install),
        ]
        if request.run_tests:
            stages.append((DeploymentStage.TEST_GATE, test_gate))
        stages.append((DeploymentStage.PROMOTING, promote))

        for stage, step in stages:
            if stage != DeploymentStage.ALLOCATING:
                deployment = deployment.advance(stage)
            deployment, passed = await self._run_stage(deployment, stage, nodes, step)

            if stage == DeploymentStage.ALLOCATING:
                for node, context in contexts.items():
                    deployment = deployment.with_release(
                        node.host, context.registry.target_release().id
                    )
            if stage == DeploymentStage.PROMOTING:
                for host, release_id, previous_id in promotions:
                    deployment = deployment.promoted(host, release_id, previous_id)

            if not passed:
                live_hosts = frozenset(host for host, _, _ in promotions)
                deployment = self._abort(deployment, stage, live_hosts)
                break
        else:
            deployment = deployment.complete()
            self.fleet.reporter.info(
                f"Deployed release(s) {dict(deployment.releases)} to {len(nodes)} host(s)"
            )

        if self.telemetry:
            stage = deployment.failed_stage or deployment.stage
            self.telemetry.record_deployment(deployment.succeeded, stage.value, deployment.fatal)
        if self.event_bus:
            await self.event_bus.publish(list(deployment.domain_events))
        return deployment

    async def _run_stage(
        self,
        deployment: Deployment,
        stage: DeploymentStage,
        nodes: list[Node],
        step: HostStep,
    ) -> tuple[Deployment, bool]:
        logger.info("Stage %s on %d host(s)", stage.value, len(nodes))
        span = self.telemetry.start_span(f"rollout.{stage.value}") if self.telemetry else None
        started = time.monotonic()

        results = await self.fleet.gather(nodes, _STAGE_KINDS[stage], step)

        duration_ms = (time.monotonic() - started) * 1000
        passed = bool(results) and all(r.succeeded for r in results)
        if self.telemetry:
            self.telemetry.record_stage(stage.value, passed, duration_ms, len(nodes))
            self.telemetry.end_span(span)
        return deployment.record(stage, tuple(results), duration_ms), passed

    def _abort(
        self,
        deployment: Deployment,
        stage: DeploymentStage,
        live_hosts: frozenset[str] = frozenset(),
    ) -> Deployment:
        failed = sorted({r.host for r in deployment.results if not r.succeeded})
        fatal = False
        if stage == DeploymentStage.PROMOTING:
            broken = [host for host in failed if host not in live_hosts]
            fatal = bool(broken)
            if not fatal:
                reason = f"{_HOOKS_FAILED_AFTER_PROMOTION} on {', '.join(failed)}"
            else:
                reason = f"{_FAILURE_REASONS[stage]} on {', '.join(broken)}"
        else:
            reason = f"{_FAILURE_REASONS[stage]} on {', '.join(failed)}"
        self.fleet.reporter.error(reason)
        logger.error("Deployment %s aborted: %s", deployment.deployment_id, reason)
        return deployment.abort(reason, fatal=fatal)
