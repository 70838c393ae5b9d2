"""Typed models for immediate and short-term memory."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import Any, Literal, TypeAlias

from anima.utils.helpers import clamp

MemoryType: TypeAlias = Literal["dialogue", "event", "observation", "emotion"]

MEMORY_TYPES: frozenset[str] = frozenset({"dialogue", "event", "observation", "emotion"})


def _new_id() -> str:
    return uuid.uuid4().hex


def _now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True, slots=True, kw_only=True)
class MemoryEntry:
    """One remembered fact. Immutable; use the ``with_*`` helpers to derive copies."""

    type: MemoryType
    content: str
    source: str
    id: str = field(default_factory=_new_id)
    timestamp: datetime = field(default_factory=_now)
    importance: float = 0.5
    emotional_valence: float = 0.0
    location: str | None = None
    participants: tuple[str, ...] = ()

    @classmethod
    def dialogue(cls, content: str, source: str) -> MemoryEntry:
        return cls(type="dialogue", content=content, source=source)

    @classmethod
    def event(cls, content: str) -> MemoryEntry:
        return cls(type="event", content=content, source="environment")

    @classmethod
    def observation(cls, content: str) -> MemoryEntry:
        return cls(type="observation", content=content, source="self")

    @classmethod
    def emotion(cls, content: str, valence: float) -> MemoryEntry:
        return cls(
            type="emotion",
            content=content,
            source="self",
            importance=0.6,
            emotional_valence=clamp(valence, -1.0, 1.0),
        )

    def with_importance(self, importance: float) -> MemoryEntry:
        return replace(self, importance=clamp(importance, 0.0, 1.0))

    def with_emotional_valence(self, valence: float) -> MemoryEntry:
        return replace(self, emotional_valence=clamp(valence, -1.0, 1.0))

    def with_location(self, location: str | None) -> MemoryEntry:
        return replace(self, location=location)

    def with_participants(self, *participants: str) -> MemoryEntry:
        return replace(self, participants=tuple(participants))

    def relevance(self, hours_decay_factor: float = 0.95, *, now: datetime | None = None) -> float:
        """Importance discounted by the age of the entry in hours."""
        current = now or _now()
        hours = max(0.0, (current - self.timestamp).total_seconds() / 3600)
        return self.importance * (hours_decay_factor**hours)

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "content": self.content,
            "source": self.source,
            "timestamp": self.timestamp.isoformat(),
            "importance": self.importance,
            "emotionalValence": self.emotional_valence,
            "location": self.location,
            "participants": list(self.participants),
        }

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> MemoryEntry:
        """Rebuild an entry from ``to_payload`` output; raises ValueError on bad input."""
        if not isinstance(payload, dict):
            raise ValueError("memory entry payload must be an object")
        kind = str(payload.get("type") or "").lower()
        if kind not in MEMORY_TYPES:
            raise ValueError(f"unknown memory entry type: {payload.get('type')!r}")
        raw_ts = payload.get("timestamp")
        timestamp = datetime.fromisoformat(str(raw_ts)) if raw_ts else _now()
        if timestamp.tzinfo is None:
            timestamp = timestamp.astimezone()
        participants = payload.get("participants") or ()
        return cls(
            id=str(payload.get("id") or _new_id()),
            type=kind,  # type: ignore[arg-type]
            content=str(payload.get("content") or ""),
            source=str(payload.get("source") or ""),
            timestamp=timestamp,
            importance=clamp(float(payload.get("importance", 0.5)), 0.0, 1.0),
            emotional_valence=clamp(float(payload.get("emotionalValence", 0.0)), -1.0, 1.0),
            location=payload.get("location"),
            participants=tuple(str(p) for p in participants),
        )
