"""Telemetry port and in-memory backend."""

from anima.telemetry.base import TelemetryPort, emit_incr
from anima.telemetry.inmemory import InMemoryTelemetry

__all__ = ["InMemoryTelemetry", "TelemetryPort", "emit_incr"]
