"""
Remote Release Store

Architectural Intent:
- Rebuilds a host's ReleaseRegistry from what is actually on the host
- Release directories are listed from the releases root; the marker file only
  records the current and previous ids
- Read-only: the marker is rewritten by the symlink promotion batch, never here

Design Decisions:
- A missing releases root or marker means nothing has been deployed yet
- Directory names that are not all digits are ignored
- A marker naming a release that is no longer on disk is ignored
"""

from __future__ import annotations
from typing import Callable
import logging
import shlex
import time

from rollout.domain.entities.release import ReleaseRegistry
from rollout.domain.ports.remote_executor_port import RemoteExecutorPort
from rollout.domain.value_objects.node import Node
from rollout.domain.value_objects.release_marker import ReleaseMarker
from rollout.domain.value_objects.remote_layout import RemoteLayout

logger = logging.getLogger(__name__)


class RemoteReleaseStore:
    def __init__(
        self,
        remote_executor: RemoteExecutorPort,
        layout: RemoteLayout,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.remote_executor = remote_executor
        self.layout = layout
        self._clock = clock

    async def load(self, node: Node) -> ReleaseRegistry:
        """Read the releases and pointers of a host. Raises TransportError."""
        listing = await self.remote_executor.execute(
            node, [f"ls -1 {shlex.quote(self.layout.releases_root)} 2>/dev/null"]
        )
        release_ids = (
            [
                int(name)
                for name in listing.output.split()
                if name.isascii() and name.isdigit()
            ]
            if listing.succeeded
            else []
        )

        raw_marker = await self.remote_executor.execute(
            node, [f"cat {shlex.quote(self.layout.marker_path)} 2>/dev/null"]
        )
        marker = (
            ReleaseMarker.parse(raw_marker.output)
            if raw_marker.succeeded
            else ReleaseMarker()
        )

        if marker.current is not None and marker.current not in release_ids:
            logger.warning(
                "Marker on %s names release %s which is not on disk",
                node, marker.current,
            )

        registry = ReleaseRegistry.restore(
            self.layout.releases_root,
            release_ids,
            current_id=marker.current,
            previous_id=marker.previous,
            infer_previous=not marker.has_previous,
            clock=self._clock,
        )
        logger.debug("Loaded %r from %s", registry, node)
        return registry
