"""Per-persona mood state machine with smoothing and time decay."""

from __future__ import annotations

import threading
import time
from typing import Callable

from loguru import logger

from anima.mood.events import MoodEventChannel
from anima.mood.models import MoodChangeEvent, MoodSnapshot, MoodState, MoodTrigger
from anima.utils.helpers import clamp

SMOOTHING = 0.3
STATE_THRESHOLD = 0.4
NEUTRAL_THRESHOLD = STATE_THRESHOLD * 0.5
DECAY_RATE = 0.02
INTENSITY_FLOOR = 0.1
DEFAULT_INTENSITY = 0.5


def _lerp(a: float, b: float, t: float) -> float:
    return a + (b - a) * t


class MoodEngine:
    """
    Emotional state of one persona.

    Triggers nudge valence through a smoothing factor, intensity follows the
    magnitude of valence, and the discrete state flips to the trigger's
    suggested state only when intensity clears the threshold. Time decay pulls
    everything back toward neutral.

    All mutations are serialized by an internal lock. Change events are
    published after the lock is released, on the mutating thread.
    """

    def __init__(
        self,
        persona_id: str,
        *,
        events: MoodEventChannel | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.persona_id = persona_id
        self.events = events or MoodEventChannel()
        self._clock = clock
        self._lock = threading.RLock()
        self._state = MoodState.NEUTRAL
        self._intensity = DEFAULT_INTENSITY
        self._valence = 0.0
        self._last_update = clock()

    # ── Mutations ────────────────────────────────────────────────────────

    def apply_trigger(self, trigger: MoodTrigger | str, multiplier: float = 1.0) -> bool:
        """Apply one stimulus. Returns True when the discrete state changed."""
        if isinstance(trigger, str) and not isinstance(trigger, MoodTrigger):
            resolved = MoodTrigger.find(trigger)
            if resolved is None:
                logger.warning("[{}] ignoring unknown mood trigger: {}", self.persona_id, trigger)
                return False
            trigger = resolved

        with self._lock:
            previous = self._state
            self._valence = clamp(
                self._valence + trigger.valence_delta * multiplier * SMOOTHING, -1.0, 1.0
            )
            self._intensity = clamp(_lerp(self._intensity, abs(self._valence), SMOOTHING), 0.0, 1.0)

            if self._intensity >= STATE_THRESHOLD:
                self._state = trigger.suggested_state
            elif self._intensity < NEUTRAL_THRESHOLD:
                self._state = MoodState.NEUTRAL

            self._last_update = self._clock()
            event = self._change_event(previous)

        if event is not None:
            logger.debug(
                "[{}] mood {} -> {} (intensity {:.2f}, trigger {})",
                self.persona_id,
                event.previous,
                event.current,
                event.intensity,
                trigger,
            )
            self.events.publish(event)
        return event is not None

    def set_state(self, state: MoodState, intensity: float) -> bool:
        """Override the state directly; valence follows the state's base valence."""
        with self._lock:
            previous = self._state
            self._state = state
            self._intensity = clamp(intensity, 0.0, 1.0)
            self._valence = clamp(state.base_valence * self._intensity, -1.0, 1.0)
            self._last_update = self._clock()
            event = self._change_event(previous)

        if event is not None:
            logger.debug(
                "[{}] mood set {} (intensity {:.2f})", self.persona_id, state, event.intensity
            )
            self.events.publish(event)
        return event is not None

    def decay(self, elapsed_seconds: float) -> bool:
        """Decay valence and intensity by ``elapsed_seconds`` of wall time."""
        if elapsed_seconds <= 0:
            return False

        with self._lock:
            previous = self._state
            amount = DECAY_RATE * elapsed_seconds
            if self._valence > 0:
                self._valence = max(0.0, self._valence - amount)
            elif self._valence < 0:
                self._valence = min(0.0, self._valence + amount)

            self._intensity = max(INTENSITY_FLOOR, self._intensity - amount * 0.5)

            if self._intensity < NEUTRAL_THRESHOLD and self._state is not MoodState.NEUTRAL:
                self._state = MoodState.NEUTRAL
            self._last_update = self._clock()
            event = self._change_event(previous)

        if event is not None:
            logger.debug("[{}] mood decayed {} -> neutral", self.persona_id, event.previous)
            self.events.publish(event)
        return event is not None

    def update(self, now: float | None = None) -> bool:
        """Apply decay for the time elapsed since the last mutation."""
        current = self._clock() if now is None else now
        with self._lock:
            elapsed = current - self._last_update
        return self.decay(elapsed)

    def _change_event(self, previous: MoodState) -> MoodChangeEvent | None:
        if previous is self._state:
            return None
        return MoodChangeEvent(
            persona_id=self.persona_id,
            previous=previous,
            current=self._state,
            intensity=self._intensity,
        )

    # ── Reads ────────────────────────────────────────────────────────────

    @property
    def state(self) -> MoodState:
        with self._lock:
            return self._state

    @property
    def intensity(self) -> float:
        with self._lock:
            return self._intensity

    @property
    def valence(self) -> float:
        with self._lock:
            return self._valence

    @property
    def intensity_percent(self) -> int:
        return round(self.intensity * 100)

    def snapshot(self) -> MoodSnapshot:
        with self._lock:
            return MoodSnapshot(
                state=self._state,
                intensity=self._intensity,
                valence=self._valence,
                last_update=self._last_update,
            )

    def is_positive(self) -> bool:
        snap = self.snapshot()
        return snap.state.is_positive() and snap.intensity > STATE_THRESHOLD

    def is_negative(self) -> bool:
        snap = self.snapshot()
        return snap.state.is_negative() and snap.intensity > STATE_THRESHOLD

    def describe(self) -> str:
        """Short human-readable mood phrase for prompts."""
        snap = self.snapshot()
        if snap.state is MoodState.NEUTRAL:
            return "情绪平静"
        if snap.intensity < 0.3:
            level = "轻微"
        elif snap.intensity < 0.6:
            level = "一般"
        elif snap.intensity < 0.8:
            level = "明显"
        else:
            level = "强烈"
        return level + snap.state.display_name

    def info(self) -> dict[str, object]:
        """Host-facing mood payload."""
        snap = self.snapshot()
        return {
            "state": snap.state.value,
            "displayName": snap.state.display_name,
            "intensity": snap.intensity,
            "description": self.describe(),
            "isPositive": self.is_positive(),
            "isNegative": self.is_negative(),
        }
