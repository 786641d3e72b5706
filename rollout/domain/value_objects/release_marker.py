"""
Release Marker Value Object

Architectural Intent:
- The persisted form of a host's release pointers
- Written by the symlink promotion batch, read back by the release store
- Release directories themselves are inferred from the releases root, not stored here
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional
import json


@dataclass(frozen=True)
class ReleaseMarker:
    current: Optional[int] = None
    previous: Optional[int] = None
    has_previous: bool = True

    def to_json(self) -> str:
        return json.dumps({"current": self.current, "previous": self.previous})

    @classmethod
    def parse(cls, raw: str) -> ReleaseMarker:
        """Parse marker contents; anything unreadable means nothing deployed."""
        raw = raw.strip()
        if not raw:
            return cls()
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            return cls()

        # Bare id written by hand or by an older tool
        if isinstance(data, int) and not isinstance(data, bool):
            return cls(current=data, has_previous=False)
        if not isinstance(data, dict):
            return cls()

        return cls(
            current=_as_id(data.get("current")),
            previous=_as_id(data.get("previous")),
            has_previous="previous" in data,
        )


def _as_id(value: object) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.isascii() and value.isdigit():
        return int(value)
    return None
