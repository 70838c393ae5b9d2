"""Mood states, triggers and value types."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum


class MoodState(StrEnum):
    """Discrete emotional state of a persona."""

    NEUTRAL = "neutral"
    HAPPY = "happy"
    EXCITED = "excited"
    SAD = "sad"
    ANGRY = "angry"
    SURPRISED = "surprised"
    SHY = "shy"
    CONFUSED = "confused"
    THINKING = "thinking"
    TIRED = "tired"
    WORRIED = "worried"
    ANTICIPATING = "anticipating"

    @property
    def display_name(self) -> str:
        return _STATE_DISPLAY[self]

    @property
    def base_valence(self) -> float:
        return _STATE_VALENCE[self]

    def is_positive(self) -> bool:
        return self.base_valence > 0.1

    def is_negative(self) -> bool:
        return self.base_valence < -0.1

    @classmethod
    def from_id(cls, raw: str | None) -> MoodState:
        """Case-insensitive lookup; unknown ids resolve to NEUTRAL."""
        if not raw:
            return cls.NEUTRAL
        try:
            return cls(raw.strip().lower())
        except ValueError:
            return cls.NEUTRAL


_STATE_DISPLAY: dict[MoodState, str] = {
    MoodState.NEUTRAL: "平静",
    MoodState.HAPPY: "开心",
    MoodState.EXCITED: "兴奋",
    MoodState.SAD: "难过",
    MoodState.ANGRY: "生气",
    MoodState.SURPRISED: "惊讶",
    MoodState.SHY: "害羞",
    MoodState.CONFUSED: "困惑",
    MoodState.THINKING: "思考中",
    MoodState.TIRED: "疲惫",
    MoodState.WORRIED: "担心",
    MoodState.ANTICIPATING: "期待",
}

_STATE_VALENCE: dict[MoodState, float] = {
    MoodState.NEUTRAL: 0.0,
    MoodState.HAPPY: 0.7,
    MoodState.EXCITED: 0.9,
    MoodState.SAD: -0.6,
    MoodState.ANGRY: -0.8,
    MoodState.SURPRISED: 0.3,
    MoodState.SHY: 0.4,
    MoodState.CONFUSED: -0.2,
    MoodState.THINKING: 0.0,
    MoodState.TIRED: -0.3,
    MoodState.WORRIED: -0.4,
    MoodState.ANTICIPATING: 0.5,
}


class UnknownTriggerError(LookupError):
    """Raised when a trigger id is not in the catalogue."""

    def __init__(self, trigger_id: str) -> None:
        super().__init__(f"Unknown mood trigger: {trigger_id}")
        self.trigger_id = trigger_id


class MoodTrigger(StrEnum):
    """Named stimulus with a valence delta and a suggested state."""

    RECEIVED_GIFT = "received_gift"
    RECEIVED_FAVORITE_GIFT = "received_favorite_gift"
    RECEIVED_COMPLIMENT = "received_compliment"
    TASK_COMPLETED = "task_completed"
    GREETED = "greeted"
    CONVERSATION_STARTED = "conversation_started"
    ATTACKED = "attacked"
    TASK_FAILED = "task_failed"
    IGNORED = "ignored"
    RECEIVED_DISLIKED_GIFT = "received_disliked_gift"
    INTERRUPTED = "interrupted"
    SAW_INTERESTING = "saw_interesting"
    ASKED_QUESTION = "asked_question"
    TIME_PASSED = "time_passed"
    CONVERSATION_ENDED = "conversation_ended"

    @property
    def valence_delta(self) -> float:
        return _TRIGGER_EFFECTS[self][0]

    @property
    def suggested_state(self) -> MoodState:
        return _TRIGGER_EFFECTS[self][1]

    @classmethod
    def find(cls, raw: str | None) -> MoodTrigger | None:
        """Case-insensitive lookup returning None for unknown ids."""
        if not raw:
            return None
        try:
            return cls(raw.strip().lower())
        except ValueError:
            return None

    @classmethod
    def from_id(cls, raw: str) -> MoodTrigger:
        """Case-insensitive lookup raising ``UnknownTriggerError``."""
        trigger = cls.find(raw)
        if trigger is None:
            raise UnknownTriggerError(raw)
        return trigger


_TRIGGER_EFFECTS: dict[MoodTrigger, tuple[float, MoodState]] = {
    MoodTrigger.RECEIVED_GIFT: (0.5, MoodState.HAPPY),
    MoodTrigger.RECEIVED_FAVORITE_GIFT: (0.8, MoodState.EXCITED),
    MoodTrigger.RECEIVED_COMPLIMENT: (0.4, MoodState.HAPPY),
    MoodTrigger.TASK_COMPLETED: (0.6, MoodState.HAPPY),
    MoodTrigger.GREETED: (0.3, MoodState.HAPPY),
    MoodTrigger.CONVERSATION_STARTED: (0.2, MoodState.ANTICIPATING),
    MoodTrigger.ATTACKED: (-0.7, MoodState.ANGRY),
    MoodTrigger.TASK_FAILED: (-0.5, MoodState.SAD),
    MoodTrigger.IGNORED: (-0.3, MoodState.SAD),
    MoodTrigger.RECEIVED_DISLIKED_GIFT: (-0.2, MoodState.CONFUSED),
    MoodTrigger.INTERRUPTED: (-0.4, MoodState.ANGRY),
    MoodTrigger.SAW_INTERESTING: (0.3, MoodState.SURPRISED),
    MoodTrigger.ASKED_QUESTION: (0.1, MoodState.THINKING),
    MoodTrigger.TIME_PASSED: (0.0, MoodState.NEUTRAL),
    MoodTrigger.CONVERSATION_ENDED: (-0.1, MoodState.NEUTRAL),
}


@dataclass(frozen=True, slots=True, kw_only=True)
class MoodSnapshot:
    """Point-in-time copy of a mood engine's state."""

    state: MoodState
    intensity: float
    valence: float
    last_update: float

    @property
    def intensity_percent(self) -> int:
        return round(self.intensity * 100)


@dataclass(frozen=True, slots=True, kw_only=True)
class MoodChangeEvent:
    """Published whenever a persona's discrete mood state changes."""

    persona_id: str
    previous: MoodState
    current: MoodState
    intensity: float
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass(frozen=True, slots=True, kw_only=True)
class MoodInference:
    """Mood change inferred from text: either a trigger or a direct state."""

    trigger: MoodTrigger | None = None
    multiplier: float = 1.0
    state: MoodState | None = None
    intensity: float = 0.5

    @classmethod
    def from_trigger(cls, trigger: MoodTrigger, multiplier: float = 1.0) -> MoodInference:
        return cls(trigger=trigger, multiplier=multiplier)

    @classmethod
    def from_state(cls, state: MoodState, intensity: float) -> MoodInference:
        return cls(state=state, intensity=intensity)
