"""Telemetry module - Observability for weft runs.

This module provides:
- init_telemetry / shutdown_telemetry: OpenTelemetry tracing setup
- events: in-process observability events (budget warnings, compactions)
"""

from . import events
from .tracing import init_telemetry, shutdown_telemetry

__all__ = [
    "events",
    "init_telemetry",
    "shutdown_telemetry",
]
