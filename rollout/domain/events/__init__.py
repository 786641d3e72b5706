"""
Domain Events Package

Architectural Intent:
- Base class for events raised over a deployment's lifecycle
- Concrete deployment events live beside the Deployment aggregate
"""

from rollout.domain.events.event_base import DomainEvent

__all__ = ["DomainEvent"]
