"""Telemetry port protocol."""

from __future__ import annotations

from typing import Protocol, TypeAlias, runtime_checkable

from loguru import logger

MetricLabels: TypeAlias = tuple[tuple[str, str], ...]


@runtime_checkable
class TelemetryPort(Protocol):
    """Metric sink used by the throttle, completion client and agents.

    - Counters: admitted/rejected requests, tokens, chat outcomes
    - Gauges: active agents, available permits
    - Timing: completion round-trip duration
    """

    def incr(self, name: str, value: int = 1, labels: MetricLabels = ()) -> None:
        """Increase a named counter by ``value``.

        Args:
            name: Metric name (e.g., "throttle_rejected_total")
            value: Amount to increment (default 1)
            labels: Optional label tuples (e.g., (("reason", "rate_limit"),))
        """

    def gauge(self, name: str, value: float, labels: MetricLabels = ()) -> None:
        """Set a point-in-time value (e.g., "agents_active")."""

    def timing(self, name: str, value: float, labels: MetricLabels = ()) -> None:
        """Record a duration in seconds (e.g., "llm_request_duration_seconds")."""


def emit_incr(
    telemetry: TelemetryPort | None,
    name: str,
    value: int = 1,
    labels: MetricLabels = (),
) -> None:
    """Increase a counter on an optional sink; sink failures are logged and dropped."""
    if telemetry is None:
        return
    try:
        telemetry.incr(name, value, labels)
    except Exception as exc:  # pragma: no cover
        logger.debug("telemetry incr failed {}={}: {}", name, value, exc)
