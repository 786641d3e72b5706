"""
Maintenance Tasks

Architectural Intent:
- Fleet housekeeping built by composing the release tasks
- Setup/Teardown prepare and remove the application folders
- Rollback re-promotes an earlier release through the Symlink task
- Cleanup prunes old releases beyond the retention count
"""

from __future__ import annotations
from datetime import datetime, UTC
from typing import Optional
import shlex

from rollout.application.tasks.base import Task, TaskKind, TaskResult, register_task
from rollout.domain.value_objects.remote_layout import RELEASES


@register_task(TaskKind.SETUP)
class SetupTask(Task):
    """Create the application and releases folders."""

    async def execute(self) -> TaskResult:
        self.comment(f"Preparing {self.layout.application_root}")
        for folder in (None, RELEASES):
            result = await self.execute_subtask(TaskKind.CREATE_FOLDER, folder=folder)
            if not result.succeeded:
                return self.failure(result.output, result.message)
        return self.success()


@register_task(TaskKind.TEARDOWN)
class TeardownTask(Task):
    """Remove the application, its releases and its marker from the host."""

    async def execute(self) -> TaskResult:
        self.info(f"Removing {self.layout.application_root}")
        result = await self.execute_subtask(TaskKind.REMOVE_FOLDER, folder=None)
        if not result.succeeded:
            return self.failure(result.output, result.message)
        return self.success(message="application removed")


@register_task(TaskKind.CURRENT_RELEASE)
class CurrentReleaseTask(Task):
    async def execute(self) -> TaskResult:
        current = self.registry.current_release()
        if current is None:
            self.error("No release has yet been deployed")
            return self.failure(message="no release deployed")

        deployed_at = datetime.fromtimestamp(current.id, UTC).strftime("%Y-%m-%d %H:%M:%S")
        message = f"The current release is {current.id} (deployed at {deployed_at})"
        self.info(message)
        return self.success(str(current.id), message)


@register_task(TaskKind.ROLLBACK)
class RollbackTask(Task):
    """Promote an earlier release, the previous one unless told otherwise."""

    def __init__(self, context, release_id: Optional[int] = None) -> None:
        super().__init__(context)
        self.release_id = release_id

    async def execute(self) -> TaskResult:
        if self.release_id is not None:
            target = self.registry.get(self.release_id)
        else:
            target = self.registry.previous_release()
        if target is None:
            self.error("No previous release to roll back to")
            return self.failure(message="no previous release")

        self.info(f"Rolling back to release {target.id}")
        result = await self.execute_subtask(TaskKind.SYMLINK, release_id=target.id)
        if not result.succeeded:
            return self.failure(result.output, result.message)
        return self.success(result.output, f"rolled back to {target.id}")


@register_task(TaskKind.CLEANUP)
class CleanupTask(Task):
    """Delete releases beyond the retention count, never current or previous."""

    def __init__(self, context, keep: Optional[int] = None) -> None:
        super().__init__(context)
        self.keep = self.config.application.keep_releases if keep is None else keep

    async def execute(self) -> TaskResult:
        deprecated = self.registry.deprecated_releases(self.keep)
        if not deprecated:
            self.comment("No releases to prune from the server")
            return self.success(message="nothing to prune")

        self.info(f"Removing {len(deprecated)} release(s) from the server")
        paths = " ".join(shlex.quote(release.path) for release in deprecated)
        result = await self.execute_batch(f"rm -rf {paths}")
        if not result.succeeded:
            self.error("Unable to remove old releases")
            return self.failure(result.output, "cleanup failed")

        if not self.pretend:
            self.registry.discard(self.keep)
        pruned = ", ".join(str(release.id) for release in deprecated)
        return self.success(result.output, f"pruned {pruned}")
