"""
Event Bus Infrastructure

Architectural Intent:
- In-memory event bus implementation for publishing domain events
- Supports async subscription handlers
- Subscribing to DomainEvent itself receives every event (audit logging)
"""

import logging
from typing import Callable, Awaitable
from rollout.domain.events.event_base import DomainEvent

logger = logging.getLogger(__name__)

Handler = Callable[[DomainEvent], Awaitable[None]]


class EventBus:
    def __init__(self) -> None:
        self._handlers: dict[type, list[Handler]] = {}

    async def publish(self, events: list[DomainEvent]) -> None:
        for event in events:
            for event_type in type(event).__mro__:
                for handler in self._handlers.get(event_type, []):
                    await handler(event)

    def subscribe(self, event_type: type, handler: Handler) -> None:
        if event_type not in self._handlers:
            self._handlers[event_type] = []
        self._handlers[event_type].append(handler)


async def log_event(event: DomainEvent) -> None:
    """Audit handler: one log line per domain event."""
    logger.info("%s %s", event.event_type, event.to_dict())
