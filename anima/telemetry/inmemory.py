"""In-memory telemetry backend for tests and the CLI ``stats`` command."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field

from anima.telemetry.base import MetricLabels


@dataclass
class InMemoryTelemetry:
    """Keeps every metric in process memory so it can be inspected."""

    counters: dict[str, int] = field(default_factory=lambda: defaultdict(int))
    gauges: dict[str, float] = field(default_factory=dict)
    timings: dict[str, list[float]] = field(default_factory=lambda: defaultdict(list))

    def incr(self, name: str, value: int = 1, labels: MetricLabels = ()) -> None:
        self.counters[self._make_key(name, labels)] += value

    def gauge(self, name: str, value: float, labels: MetricLabels = ()) -> None:
        self.gauges[self._make_key(name, labels)] = value

    def timing(self, name: str, value: float, labels: MetricLabels = ()) -> None:
        self.timings[self._make_key(name, labels)].append(value)

    @staticmethod
    def _make_key(name: str, labels: MetricLabels) -> str:
        if not labels:
            return name
        label_str = ",".join(f"{k}={v}" for k, v in labels)
        return f"{name}{{{label_str}}}"

    # ── Inspection ───────────────────────────────────────────────────────

    def get_counter(self, name: str, labels: MetricLabels = ()) -> int:
        return int(self.counters.get(self._make_key(name, labels), 0))

    def get_gauge(self, name: str, labels: MetricLabels = ()) -> float | None:
        return self.gauges.get(self._make_key(name, labels))

    def get_timing_values(self, name: str, labels: MetricLabels = ()) -> list[float]:
        return list(self.timings.get(self._make_key(name, labels), ()))

    def snapshot(self) -> dict[str, float]:
        """Flat view of counters and gauges, sorted by key."""
        merged: dict[str, float] = {**self.counters, **self.gauges}
        return dict(sorted(merged.items()))

    def reset(self) -> None:
        self.counters.clear()
        self.gauges.clear()
        self.timings.clear()
