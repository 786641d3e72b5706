"""
Domain Ports Package

Architectural Intent:
- Contains port interfaces (abstract contracts) for external dependencies
- Ports define what the domain needs, adapters implement how
- Follows Hexagonal Architecture principles
"""

from rollout.domain.ports.remote_executor_port import (
    RemoteExecutorPort,
    ExecutionResult,
    TransportError,
)

__all__ = [
    "RemoteExecutorPort",
    "ExecutionResult",
    "TransportError",
]
