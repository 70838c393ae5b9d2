"""Admission control in front of the completion endpoint.

Two independent limits apply to every request:

- a fixed one-minute window capped at ``rate_limit_rpm`` admissions, reset
  lazily on the first check after the window elapses;
- a pool of ``max_concurrent`` permits, waited on for at most
  ``acquire_timeout_seconds``.

Bursts straddling a window boundary can briefly exceed the nominal rate by up
to one window's worth of requests.
"""

from __future__ import annotations

import asyncio
import threading
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Callable

from loguru import logger

from anima.telemetry.base import TelemetryPort, emit_incr

WINDOW_SECONDS = 60.0


@dataclass(frozen=True, slots=True, kw_only=True)
class ThrottleStats:
    """Counters accumulated since construction or the last reset."""

    total_requests: int
    rejected_requests: int
    prompt_tokens: int
    completion_tokens: int
    in_flight: int
    max_concurrent: int
    window_requests: int
    rate_limit_rpm: int

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens


class RequestThrottle:
    """Rate window + bounded concurrency shared by every agent."""

    def __init__(
        self,
        max_concurrent: int = 5,
        rate_limit_rpm: int = 60,
        acquire_timeout_seconds: float = 30.0,
        *,
        window_seconds: float = WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        telemetry: TelemetryPort | None = None,
    ) -> None:
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be >= 1")
        if rate_limit_rpm < 1:
            raise ValueError("rate_limit_rpm must be >= 1")
        self.max_concurrent = max_concurrent
        self.rate_limit_rpm = rate_limit_rpm
        self.acquire_timeout_seconds = acquire_timeout_seconds
        self.window_seconds = window_seconds
        self.telemetry = telemetry
        self._clock = clock
        self._semaphore = asyncio.Semaphore(max_concurrent)
        self._lock = threading.Lock()
        self._window_start = clock()
        self._window_count = 0
        self._in_flight = 0
        self._total_requests = 0
        self._rejected_requests = 0
        self._prompt_tokens = 0
        self._completion_tokens = 0
        logger.info(
            "Request throttle ready: max_concurrent={}, rate_limit={}/min",
            max_concurrent,
            rate_limit_rpm,
        )

    @classmethod
    def from_config(cls, config, *, telemetry: TelemetryPort | None = None) -> RequestThrottle:
        """Build from a ``ThrottleConfig`` section."""
        return cls(
            max_concurrent=config.max_concurrent,
            rate_limit_rpm=config.rate_limit_rpm,
            acquire_timeout_seconds=config.acquire_timeout_seconds,
            telemetry=telemetry,
        )

    # ── Admission ────────────────────────────────────────────────────────

    async def acquire(self) -> bool:
        """Ask for admission. A True result must be paired with ``release()``."""
        if not self._window_has_room():
            self._reject("rate_limit")
            return False

        try:
            await asyncio.wait_for(self._semaphore.acquire(), timeout=self.acquire_timeout_seconds)
        except TimeoutError:
            self._reject("timeout")
            return False

        with self._lock:
            self._roll_window()
            admitted = self._window_count < self.rate_limit_rpm
            if admitted:
                self._window_count += 1
                self._total_requests += 1
                self._in_flight += 1
        if not admitted:
            # The window filled while this caller waited for a permit.
            self._semaphore.release()
            self._reject("rate_limit")
            return False

        emit_incr(self.telemetry, "throttle_admitted_total")
        return True

    def release(self) -> None:
        """Return a permit obtained from a successful ``acquire()``."""
        with self._lock:
            if self._in_flight <= 0:
                raise RuntimeError("release() called without a matching acquire()")
            self._in_flight -= 1
        self._semaphore.release()

    @asynccontextmanager
    async def admit(self) -> AsyncIterator[bool]:
        """Scope one admission; the permit is returned on every exit path."""
        admitted = await self.acquire()
        try:
            yield admitted
        finally:
            if admitted:
                self.release()

    def _window_has_room(self) -> bool:
        with self._lock:
            self._roll_window()
            return self._window_count < self.rate_limit_rpm

    def _roll_window(self) -> None:
        now = self._clock()
        if now - self._window_start >= self.window_seconds:
            self._window_start = now
            self._window_count = 0

    def _reject(self, reason: str) -> None:
        with self._lock:
            self._rejected_requests += 1
        if reason == "timeout":
            logger.warning("Request rejected: no concurrency permit within {}s", self.acquire_timeout_seconds)
        else:
            logger.warning("Request rejected by rate limit ({}/min)", self.rate_limit_rpm)
        emit_incr(self.telemetry, "throttle_rejected_total", labels=(("reason", reason),))

    # ── Accounting ───────────────────────────────────────────────────────

    def record_usage(self, prompt_tokens: int, completion_tokens: int) -> None:
        """Add token usage of a finished call. Never rejects."""
        prompt = max(0, int(prompt_tokens))
        completion = max(0, int(completion_tokens))
        with self._lock:
            self._prompt_tokens += prompt
            self._completion_tokens += completion
        emit_incr(self.telemetry, "llm_tokens_total", prompt, (("kind", "prompt"),))
        emit_incr(self.telemetry, "llm_tokens_total", completion, (("kind", "completion"),))

    def remaining_wait_seconds(self) -> float:
        """Seconds until the rate window has room again (0 when it has room now)."""
        with self._lock:
            self._roll_window()
            if self._window_count < self.rate_limit_rpm:
                return 0.0
            return max(0.0, self.window_seconds - (self._clock() - self._window_start))

    @property
    def available_permits(self) -> int:
        with self._lock:
            return self.max_concurrent - self._in_flight

    def stats(self) -> ThrottleStats:
        with self._lock:
            return ThrottleStats(
                total_requests=self._total_requests,
                rejected_requests=self._rejected_requests,
                prompt_tokens=self._prompt_tokens,
                completion_tokens=self._completion_tokens,
                in_flight=self._in_flight,
                max_concurrent=self.max_concurrent,
                window_requests=self._window_count,
                rate_limit_rpm=self.rate_limit_rpm,
            )

    def stats_summary(self) -> str:
        s = self.stats()
        return (
            f"LLM stats: requests={s.total_requests}, tokens={s.total_tokens} "
            f"(prompt={s.prompt_tokens}, completion={s.completion_tokens}), "
            f"rejected={s.rejected_requests}, concurrency={s.in_flight}/{s.max_concurrent}"
        )

    def reset_stats(self) -> None:
        """Zero the cumulative counters; window and permits are untouched."""
        with self._lock:
            self._total_requests = 0
            self._rejected_requests = 0
            self._prompt_tokens = 0
            self._completion_tokens = 0
        logger.info("Request throttle statistics reset")
