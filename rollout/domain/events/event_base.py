"""
Domain Events Module

Architectural Intent:
- Base class for domain events raised by the deploy pipeline
- Events are immutable and capture significant lifecycle occurrences
- Events are collected on the Deployment aggregate and dispatched via the event bus
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime, UTC
from typing import Any


@dataclass(frozen=True)
class DomainEvent:
    occurred_at: str = field(
        default_factory=lambda: datetime.now(UTC).isoformat(), init=False, repr=False
    )
    aggregate_id: str = ""

    @property
    def event_type(self) -> str:
        return self.__class__.__name__

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["event_type"] = self.event_type
        return data
