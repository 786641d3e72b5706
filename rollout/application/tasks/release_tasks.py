"""
Release Tasks

Architectural Intent:
- Thin specializations of Task that build, verify and promote one release
- Shell command templates for git, the dependency manager and the test runner
  live here; the tools themselves are swappable through configuration
- Symlink is the sole promotion point: everything before it is preparatory
  and undone by simply never promoting

Security:
- Every path, branch and repository URL is quoted via shlex.quote()
"""

from __future__ import annotations
from typing import Optional
import shlex

from rollout.application.tasks.base import Task, TaskKind, TaskResult, register_task
from rollout.domain.entities.release import InvalidReleaseError
from rollout.domain.value_objects.release_marker import ReleaseMarker


@register_task(TaskKind.CLONE)
class CloneTask(Task):
    """Clone the configured branch into the new release folder."""

    async def execute(self) -> TaskResult:
        repository = self.config.repository
        path = shlex.quote(self.release.path)
        self.info(f'Cloning repository in "{self.release.path}"')

        result = await self.execute_batch(
            f"test -d {path}/.git || git clone -b {shlex.quote(repository.branch)} "
            f"{shlex.quote(repository.url)} {path}"
        )
        if not result.succeeded:
            self.error("Unable to clone the repository")
            return self.failure(result.output, "clone failed")
        return self.success(result.output)


@register_task(TaskKind.DEPENDENCIES)
class DependenciesTask(Task):
    """Install the release's dependencies with the configured manager."""

    async def execute(self) -> TaskResult:
        settings = self.config.dependencies
        fallback = f"{self.release.path}/{settings.fallback}" if settings.fallback else None
        manager = await self.resolve_binary(settings.binary, fallback)
        if not manager:
            if self.pretend:
                manager = settings.binary
            else:
                self.error(f"No {settings.binary} found, dependencies not installed")
                return self.failure(message=f"{settings.binary} not found")

        self.comment(f"Installing dependencies with {manager}")
        result = await self.execute_batch(
            self._in_folder(self.release.path, f"{manager} {settings.arguments}".strip())
        )
        if not result.succeeded:
            self.error("Dependency installation failed")
            return self.failure(result.output, "dependency installation failed")
        return self.success(result.output)


@register_task(TaskKind.TESTS)
class RunTestsTask(Task):
    """
    The test gate.

    A missing runner is not a failure: the gate is reported as skipped and
    does not block promotion. Otherwise the suite runs with stop-on-failure
    and passes when the output carries the passed or the no-tests marker.
    """

    def __init__(self, context, arguments: str = "") -> None:
        super().__init__(context)
        self.arguments = arguments

    async def execute(self) -> TaskResult:
        settings = self.config.tests
        runner = await self.resolve_binary(
            settings.binary, f"{self.release.path}/{settings.fallback}"
        )
        if not runner:
            if not self.pretend:
                self.comment(f"No {settings.binary} found, tests skipped")
                return self.skipped(f"{settings.binary} not found")
            runner = settings.binary

        self.info("Running tests...")
        command = " ".join(
            part for part in (runner, settings.arguments, self.arguments) if part
        )
        result = await self.execute_batch(self._in_folder(self.release.path, command))

        if result.pretended:
            return self.success(message="tests not run in pretend mode")
        if self.tests_passed(result.output):
            self.info("Tests ran with success")
            return self.success(result.output)

        self.error("Tests failed")
        if not self.verbose:
            self.context.reporter.line(result.output)
        return self.failure(result.output, "tests failed")

    def tests_passed(self, output: str) -> bool:
        settings = self.config.tests
        return settings.passed_marker in output or settings.empty_marker in output


@register_task(TaskKind.SYMLINK)
class SymlinkTask(Task):
    """
    Point the current symlink at a release, then record it as active.

    The link is swapped through a temporary link and a rename so the current
    path never dangles, and the marker is rewritten in the same batch. The
    registry is only updated once that batch succeeded.
    """

    def __init__(self, context, release_id: Optional[int] = None) -> None:
        super().__init__(context)
        self.release_id = release_id

    async def execute(self) -> TaskResult:
        release = (
            self.registry.get(self.release_id)
            if self.release_id is not None
            else self.release
        )
        if not release.is_live:
            raise InvalidReleaseError(f"Release {release.id} has been discarded")
        displaced = self.registry.current_release()
        previous_id = displaced.id if displaced and displaced.id != release.id else None
        if displaced and displaced.id == release.id:
            kept = self.registry.previous_release()
            previous_id = kept.id if kept else None

        current = shlex.quote(self.layout.current_path)
        staging = shlex.quote(f"{self.layout.current_path}.tmp")
        marker = ReleaseMarker(current=release.id, previous=previous_id)

        self.info(f"Updating current symlink to release {release.id}")
        result = await self.execute_batch([
            f"ln -sfn {shlex.quote(release.path)} {staging}",
            f"mv -Tf {staging} {current}",
            f"printf '%s' {shlex.quote(marker.to_json())} > "
            f"{shlex.quote(self.layout.marker_path)}",
        ])
        if not result.succeeded:
            self.error(f"Unable to point {self.layout.current_path} at {release.path}")
            return self.failure(result.output, "symlink update failed")

        if not self.pretend:
            self.registry.promote(release)
        return self.success(result.output, f"release {release.id} is live")


@register_task(TaskKind.PERMISSIONS)
class PermissionsTask(Task):
    """Make a release subfolder executable and owned by the web user."""

    def __init__(self, context, folder: str) -> None:
        super().__init__(context)
        self.folder = folder

    async def execute(self) -> TaskResult:
        folder = f"{self.release.path}/{self.folder.strip('/')}"
        self.comment(f"Setting permissions for {folder}")

        quoted = shlex.quote(folder)
        result = await self.execute_batch([
            f"chmod -R +x {quoted}",
            f"chown -R {shlex.quote(self.config.permissions.owner)} {quoted}",
        ])
        if not result.succeeded:
            self.error(f"Unable to set permissions for {folder}")
            return self.failure(result.output, "permissions failed")
        return self.success(result.output)


@register_task(TaskKind.CREATE_FOLDER)
class CreateFolderTask(Task):
    def __init__(self, context, folder: Optional[str] = None) -> None:
        super().__init__(context)
        self.folder = folder

    async def execute(self) -> TaskResult:
        path = self.layout.resolve(self.folder)
        result = await self.execute_batch(f"mkdir -p {shlex.quote(path)}")
        if not result.succeeded:
            self.error(f"Unable to create {path}")
            return self.failure(result.output, f"could not create {path}")
        return self.success(result.output)


@register_task(TaskKind.REMOVE_FOLDER)
class RemoveFolderTask(Task):
    def __init__(self, context, folder: Optional[str] = None) -> None:
        super().__init__(context)
        self.folder = folder

    async def execute(self) -> TaskResult:
        path = self.layout.resolve(self.folder)
        result = await self.execute_batch(f"rm -rf {shlex.quote(path)}")
        if not result.succeeded:
            self.error(f"Unable to remove {path}")
            return self.failure(result.output, f"could not remove {path}")
        return self.success(result.output)
