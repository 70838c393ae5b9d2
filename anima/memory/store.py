"""Per-persona memory composed of immediate and short-term tiers."""

from __future__ import annotations

import threading
from datetime import date
from pathlib import Path
from typing import Callable

from loguru import logger

from anima.core.models import ChatMessage
from anima.memory.immediate import DEFAULT_CAPACITY, ImmediateMemory
from anima.memory.models import MemoryEntry
from anima.memory.short_term import DEFAULT_RETENTION_DAYS, MAX_ENTRIES_PER_DAY, ShortTermMemory

EXTRACTION_THRESHOLD = 0.7
SUMMARY_MAX_ENTRIES = 10
OBSERVATION_IMPORTANCE = 0.3


class MemoryStore:
    """Immediate window + persisted short-term store for one persona.

    A single lock serializes saves with every other mutation of this persona's
    memory.
    """

    def __init__(
        self,
        persona_id: str,
        storage_dir: Path,
        *,
        immediate_capacity: int = DEFAULT_CAPACITY,
        retention_days: int = DEFAULT_RETENTION_DAYS,
        max_entries_per_day: int = MAX_ENTRIES_PER_DAY,
        extraction_threshold: float = EXTRACTION_THRESHOLD,
        summary_max_entries: int = SUMMARY_MAX_ENTRIES,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.persona_id = persona_id
        self.extraction_threshold = extraction_threshold
        self.summary_max_entries = summary_max_entries
        self._lock = threading.RLock()
        self.immediate = ImmediateMemory(immediate_capacity)
        self.short_term = ShortTermMemory(
            persona_id,
            storage_dir,
            retention_days=retention_days,
            max_entries_per_day=max_entries_per_day,
            today=today,
        )

    # ── Recording ────────────────────────────────────────────────────────

    def record_user_message(self, content: str) -> MemoryEntry:
        with self._lock:
            return self.immediate.add_user_message(content)

    def record_assistant_message(self, content: str) -> MemoryEntry:
        with self._lock:
            return self.immediate.add_assistant_message(content)

    def record_event(self, description: str, importance: float = 0.5) -> MemoryEntry:
        """Record an event; important events go straight to short-term memory too."""
        entry = MemoryEntry.event(description).with_importance(importance)
        with self._lock:
            self.immediate.add(entry)
            if entry.importance >= self.extraction_threshold:
                self.short_term.add(entry)
        return entry

    def record_observation(self, observation: str) -> MemoryEntry:
        entry = MemoryEntry.observation(observation).with_importance(OBSERVATION_IMPORTANCE)
        with self._lock:
            self.immediate.add(entry)
        return entry

    def record_emotion(self, description: str, valence: float) -> MemoryEntry:
        entry = MemoryEntry.emotion(description, valence)
        with self._lock:
            self.immediate.add(entry)
        return entry

    # ── Reading ──────────────────────────────────────────────────────────

    def conversation_history(self) -> list[ChatMessage]:
        return self.immediate.messages()

    def recent_conversation(self, count: int) -> list[ChatMessage]:
        return self.immediate.recent_messages(count)

    def build_context(self) -> str:
        """Prompt section with recent short-term memories and the live conversation."""
        with self._lock:
            summary = self.short_term.build_summary(self.summary_max_entries)
            current = self.immediate.build_context_summary()
        sections: list[str] = []
        if summary:
            sections.append(f"【近期记忆】\n{summary}")
        if current:
            sections.append(f"【当前对话】\n{current}")
        return "\n\n".join(sections)

    def search(self, keyword: str, limit: int = 10) -> list[MemoryEntry]:
        return self.short_term.search(keyword, limit)

    @property
    def immediate_message_count(self) -> int:
        return self.immediate.message_count

    @property
    def short_term_entry_count(self) -> int:
        return self.short_term.total_entries

    # ── Lifecycle ────────────────────────────────────────────────────────

    def end_session(self) -> bool:
        """Promote important entries, persist, then clear the immediate window."""
        with self._lock:
            self.short_term.extract_from_immediate(self.immediate, self.extraction_threshold)
            saved = self.short_term.save()
            self.immediate.clear()
        logger.info("[{}] session ended (memory saved={})", self.persona_id, saved)
        return saved

    def clear_immediate(self) -> None:
        with self._lock:
            self.immediate.clear()

    def daily_maintenance(self) -> bool:
        with self._lock:
            self.short_term.extract_from_immediate(self.immediate, self.extraction_threshold)
            self.short_term.cleanup()
            saved = self.short_term.save()
        logger.debug("[{}] daily memory maintenance done", self.persona_id)
        return saved

    def save(self) -> bool:
        with self._lock:
            return self.short_term.save()
