"""
Rollout Telemetry Infrastructure

Architectural Intent:
- OpenTelemetry integration for deploy pipeline observability
- Stage duration metrics, deployment outcome metrics, per-stage spans
"""

from rollout.infrastructure.telemetry.otel_exporter import (
    OTELExporter,
    OTELConfig,
    create_exporter,
)

__all__ = [
    "OTELExporter",
    "OTELConfig",
    "create_exporter",
]
