"""Bounded in-process memory of the current conversation."""

from __future__ import annotations

import threading
from collections import deque

from loguru import logger

from anima.core.models import ChatMessage
from anima.memory.models import MemoryEntry
from anima.utils.helpers import truncate_string

DEFAULT_CAPACITY = 20
USER_SOURCE = "player"
SELF_SOURCE = "self"


def role_for_source(source: str) -> str:
    return "assistant" if source == SELF_SOURCE else "user"


class ImmediateMemory:
    """
    FIFO window of role-tagged messages plus a buffer of memory entries.

    ``capacity`` bounds the message window; the entry buffer defaults to twice
    that so events and observations survive alongside the dialogue.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY, entry_capacity: int | None = None) -> None:
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self.capacity = capacity
        self.entry_capacity = entry_capacity if entry_capacity is not None else capacity * 2
        self._lock = threading.RLock()
        self._messages: deque[ChatMessage] = deque(maxlen=self.capacity)
        self._entries: deque[MemoryEntry] = deque(maxlen=self.entry_capacity)

    def add(self, entry: MemoryEntry) -> None:
        """Append one entry; dialogue entries also join the message window."""
        with self._lock:
            self._entries.append(entry)
            if entry.type == "dialogue":
                self._messages.append({"role": role_for_source(entry.source), "content": entry.content})

    def add_user_message(self, content: str) -> MemoryEntry:
        entry = MemoryEntry.dialogue(content, USER_SOURCE)
        self.add(entry)
        return entry

    def add_assistant_message(self, content: str) -> MemoryEntry:
        entry = MemoryEntry.dialogue(content, SELF_SOURCE)
        self.add(entry)
        return entry

    def messages(self) -> list[ChatMessage]:
        with self._lock:
            return [dict(m) for m in self._messages]

    def recent_messages(self, n: int) -> list[ChatMessage]:
        with self._lock:
            if n <= 0:
                return []
            return [dict(m) for m in list(self._messages)[-n:]]

    def entries(self) -> list[MemoryEntry]:
        with self._lock:
            return list(self._entries)

    def important_entries(self, min_importance: float, limit: int) -> list[MemoryEntry]:
        """Entries at or above ``min_importance``, most important first."""
        with self._lock:
            candidates = [e for e in self._entries if e.importance >= min_importance]
        candidates.sort(key=lambda e: e.importance, reverse=True)
        return candidates[: max(0, limit)]

    def build_context_summary(self, last: int = 5) -> str:
        """Render the last few entries as prompt lines."""
        with self._lock:
            recent = list(self._entries)[-last:]
        lines: list[str] = []
        for entry in recent:
            if entry.type == "dialogue":
                lines.append(f"- {entry.source}: {truncate_string(entry.content, 50)}")
            elif entry.type == "event":
                lines.append(f"- [事件] {entry.content}")
            elif entry.type == "observation":
                lines.append(f"- [观察] {entry.content}")
        return "\n".join(lines)

    def clear(self) -> None:
        with self._lock:
            self._messages.clear()
            self._entries.clear()
        logger.debug("immediate memory cleared")

    @property
    def message_count(self) -> int:
        with self._lock:
            return len(self._messages)

    @property
    def entry_count(self) -> int:
        with self._lock:
            return len(self._entries)
