"""
Release Module

Architectural Intent:
- Release is one timestamped, independently-pathed snapshot of the codebase on a host
- ReleaseRegistry is the consistency boundary for a host's releases and its
  current/previous pointers
- Identifiers are strictly increasing even when allocated within the same second
- Promotion and allocation are serialized by a registry-level lock
- Releases are never removed silently; discarding is explicit and returns what
  the caller must delete on disk

Invariants:
- The current id, when present, always refers to a known release
- Release ids are unique and kept in ascending (creation) order
- At most one ACTIVE and at most one PREVIOUS release
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable, Optional, Union
import posixpath
import threading
import time


class ReleaseState(Enum):
    PENDING = "pending"
    ACTIVE = "active"
    PREVIOUS = "previous"
    DISCARDED = "discarded"


class InvalidReleaseError(ValueError):
    """Raised when the registry is asked to act on a release it cannot use."""


@dataclass
class Release:
    id: int
    path: str
    state: ReleaseState = field(default=ReleaseState.PENDING, compare=False)

    @property
    def is_live(self) -> bool:
        return self.state != ReleaseState.DISCARDED

    def __str__(self) -> str:
        return str(self.id)


ReleaseRef = Union[Release, int]


class ReleaseRegistry:
    """Tracks the releases of one host and which of them is current."""

    def __init__(
        self,
        releases_root: str,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not releases_root:
            raise ValueError("releases_root cannot be empty")
        self._releases_root = releases_root
        self._clock = clock
        self._releases: list[Release] = []
        self._by_id: dict[int, Release] = {}
        self._current_id: Optional[int] = None
        self._previous_id: Optional[int] = None
        self._target_id: Optional[int] = None
        self._last_issued = 0
        self._lock = threading.RLock()

    @classmethod
    def restore(
        cls,
        releases_root: str,
        release_ids: Iterable[int],
        current_id: Optional[int] = None,
        previous_id: Optional[int] = None,
        infer_previous: bool = False,
        clock: Callable[[], float] = time.time,
    ) -> ReleaseRegistry:
        """
        Rebuild a registry from persisted state.

        Pointers naming releases that are not present are dropped. With
        infer_previous, the previous release is the one immediately before
        current in creation order.
        """
        registry = cls(releases_root, clock=clock)
        for release_id in sorted(set(release_ids)):
            registry._append(release_id)

        if current_id in registry._by_id:
            registry._set_current(current_id)
            if infer_previous:
                earlier = [r for r in registry._releases if r.id < current_id]
                previous_id = earlier[-1].id if earlier else None
            if previous_id in registry._by_id and previous_id != current_id:
                registry._set_previous(previous_id)
        return registry

    @property
    def releases_root(self) -> str:
        return self._releases_root

    @property
    def releases(self) -> list[Release]:
        """All known releases, oldest first."""
        return list(self._releases)

    def live_releases(self) -> list[Release]:
        return [r for r in self._releases if r.is_live]

    def path_for(self, release_id: int) -> str:
        return posixpath.join(self._releases_root, str(release_id))

    # Queries

    def get(self, release_id: int) -> Release:
        release = self._by_id.get(release_id)
        if release is None:
            raise InvalidReleaseError(f"Unknown release: {release_id}")
        return release

    def current_release(self) -> Optional[Release]:
        if self._current_id is None:
            return None
        return self._by_id[self._current_id]

    def previous_release(self) -> Optional[Release]:
        if self._previous_id is None:
            return None
        return self._by_id[self._previous_id]

    def target_release(self) -> Optional[Release]:
        """The release under construction, falling back to the current one."""
        if self._target_id is not None:
            return self._by_id[self._target_id]
        return self.current_release()

    def deprecated_releases(self, keep: int) -> list[Release]:
        """
        Releases a cleanup with the given retention would discard.

        The active release is always kept, plus the `keep` most recent other
        live releases. The previous release is never deprecated.
        """
        if keep < 0:
            raise ValueError(f"keep must be >= 0, got {keep}")
        with self._lock:
            others = [r for r in self.live_releases() if r.id != self._current_id]
            kept = {r.id for r in others[len(others) - keep:]} if keep else set()
            return [
                r
                for r in others
                if r.id not in kept and r.id != self._previous_id
            ]

    # Mutations

    def allocate(self, at: Optional[float] = None) -> Release:
        """Append a new PENDING release and make it the target release."""
        with self._lock:
            stamp = int(self._clock() if at is None else at)
            release_id = max(stamp, self._last_issued + 1)
            release = self._append(release_id)
            self._target_id = release_id
            return release

    def promote(self, release: ReleaseRef) -> Release:
        """Make a release ACTIVE; the one it displaces becomes PREVIOUS."""
        release_id = release.id if isinstance(release, Release) else release
        with self._lock:
            candidate = self._by_id.get(release_id)
            if candidate is None:
                raise InvalidReleaseError(f"Cannot promote unknown release {release_id}")
            if candidate.state == ReleaseState.ACTIVE:
                return candidate
            if candidate.state == ReleaseState.DISCARDED:
                raise InvalidReleaseError(
                    f"Cannot promote discarded release {release_id}"
                )

            displaced = self._current_id
            if self._previous_id not in (None, displaced, release_id):
                self._by_id[self._previous_id].state = ReleaseState.PENDING
            self._previous_id = None

            self._set_current(release_id)
            if displaced is not None:
                self._set_previous(displaced)
            return candidate

    def discard(self, keep: int) -> list[Release]:
        """Mark deprecated releases DISCARDED and return them, oldest first."""
        with self._lock:
            discarded = self.deprecated_releases(keep)
            for release in discarded:
                release.state = ReleaseState.DISCARDED
                if self._target_id == release.id:
                    self._target_id = None
            return discarded

    # Internals

    def _append(self, release_id: int) -> Release:
        if release_id <= self._last_issued:
            raise InvalidReleaseError(
                f"Release {release_id} is not newer than {self._last_issued}"
            )
        release = Release(id=release_id, path=self.path_for(release_id))
        self._releases.append(release)
        self._by_id[release_id] = release
        self._last_issued = release_id
        return release

    def _set_current(self, release_id: int) -> None:
        self._by_id[release_id].state = ReleaseState.ACTIVE
        self._current_id = release_id

    def _set_previous(self, release_id: int) -> None:
        self._by_id[release_id].state = ReleaseState.PREVIOUS
        self._previous_id = release_id

    def __repr__(self) -> str:
        return (
            f"ReleaseRegistry(root={self._releases_root!r}, "
            f"releases={[r.id for r in self._releases]}, "
            f"current={self._current_id}, previous={self._previous_id})"
        )
