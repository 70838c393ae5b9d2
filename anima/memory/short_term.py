"""Date-bucketed, file-backed short-term memory for one persona."""

from __future__ import annotations

import json
import os
import threading
from datetime import date, timedelta
from pathlib import Path
from typing import Callable

from loguru import logger

from anima.memory.immediate import ImmediateMemory
from anima.memory.models import MemoryEntry
from anima.utils.helpers import date_key, ensure_dir, safe_filename, truncate_string

DEFAULT_RETENTION_DAYS = 7
MAX_ENTRIES_PER_DAY = 20
EXTRACTION_LIMIT = 5


class PersistenceError(RuntimeError):
    """Short-term memory could not be read from or written to disk."""


def summarize_entry(entry: MemoryEntry) -> str:
    """One-line rendering of an entry for prompt summaries."""
    content = truncate_string(entry.content, 100)
    if entry.type == "dialogue":
        return f'{entry.source}说: "{content}"'
    if entry.type == "event":
        return f"[事件] {content}"
    if entry.type == "observation":
        return f"观察到: {content}"
    return f"感受到: {content}"


class ShortTermMemory:
    """
    Persisted ``{YYYY-MM-DD: [entry, ...]}`` store with per-day cap and retention.

    The backing file is ``<storage_dir>/<persona_id>_memory.json``. It is read
    once at construction and written only by ``save()`` (and by ``cleanup()``
    when it drops expired days). Write failures are logged, never raised.
    """

    def __init__(
        self,
        persona_id: str,
        storage_dir: Path,
        *,
        retention_days: int = DEFAULT_RETENTION_DAYS,
        max_entries_per_day: int = MAX_ENTRIES_PER_DAY,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.persona_id = persona_id
        self.storage_dir = storage_dir.expanduser()
        self.retention_days = retention_days
        self.max_entries_per_day = max_entries_per_day
        self._today = today
        self._lock = threading.RLock()
        self._buckets: dict[str, list[MemoryEntry]] = {}
        self.load()

    @property
    def path(self) -> Path:
        return self.storage_dir / f"{safe_filename(self.persona_id.lower())}_memory.json"

    # ── Writes ───────────────────────────────────────────────────────────

    def add(self, entry: MemoryEntry) -> None:
        """Add one entry to the bucket of its local calendar date."""
        key = date_key(entry.timestamp)
        with self._lock:
            bucket = self._buckets.setdefault(key, [])
            if any(existing.id == entry.id for existing in bucket):
                return
            bucket.append(entry)
            if len(bucket) > self.max_entries_per_day:
                self._buckets[key] = self._trim(bucket)
        logger.debug("[{}] short-term memory added {} entry", self.persona_id, entry.type)

    def _trim(self, bucket: list[MemoryEntry]) -> list[MemoryEntry]:
        ranked = sorted(range(len(bucket)), key=lambda i: bucket[i].importance, reverse=True)
        keep = set(ranked[: self.max_entries_per_day])
        return [entry for i, entry in enumerate(bucket) if i in keep]

    def extract_from_immediate(self, immediate: ImmediateMemory, threshold: float) -> int:
        """Copy the most important immediate entries in. Returns how many were offered."""
        selected = immediate.important_entries(threshold, EXTRACTION_LIMIT)
        for entry in selected:
            self.add(entry)
        if selected:
            logger.debug(
                "[{}] extracted {} entries from immediate memory", self.persona_id, len(selected)
            )
        return len(selected)

    def cleanup(self) -> int:
        """Drop date buckets older than the retention window. Returns days removed."""
        cutoff = date_key(self._today() - timedelta(days=self.retention_days))
        with self._lock:
            expired = [key for key in self._buckets if key < cutoff]
            for key in expired:
                del self._buckets[key]
        if expired:
            logger.info("[{}] removed {} expired memory day(s)", self.persona_id, len(expired))
            self.save()
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._buckets.clear()

    # ── Reads ────────────────────────────────────────────────────────────

    def entries_for_date(self, day: date) -> list[MemoryEntry]:
        with self._lock:
            return list(self._buckets.get(date_key(day), ()))

    def today_entries(self) -> list[MemoryEntry]:
        return self.entries_for_date(self._today())

    def recent_entries(self, days: int) -> list[MemoryEntry]:
        """Entries from the last ``days`` calendar days, oldest first."""
        today = self._today()
        keys = {date_key(today - timedelta(days=i)) for i in range(max(0, days))}
        with self._lock:
            result = [e for key, bucket in self._buckets.items() if key in keys for e in bucket]
        result.sort(key=lambda e: e.timestamp)
        return result

    def search(self, keyword: str, limit: int = 10) -> list[MemoryEntry]:
        """Case-insensitive substring search, newest first."""
        needle = keyword.lower()
        if not needle:
            return []
        with self._lock:
            hits = [e for bucket in self._buckets.values() for e in bucket if needle in e.content.lower()]
        hits.sort(key=lambda e: e.timestamp, reverse=True)
        return hits[: max(0, limit)]

    def build_summary(self, max_entries: int) -> str:
        """Render the most recent entries grouped by date, oldest date first."""
        if max_entries <= 0:
            return ""
        recent = self.recent_entries(self.retention_days + 1)[-max_entries:]
        if not recent:
            return ""
        grouped: dict[str, list[MemoryEntry]] = {}
        for entry in recent:
            grouped.setdefault(date_key(entry.timestamp), []).append(entry)
        lines: list[str] = []
        for key in sorted(grouped):
            lines.append(f"【{key}】")
            lines.extend(f"- {summarize_entry(entry)}" for entry in grouped[key])
        return "\n".join(lines)

    def buckets(self) -> dict[str, list[MemoryEntry]]:
        with self._lock:
            return {key: list(bucket) for key, bucket in sorted(self._buckets.items())}

    @property
    def total_entries(self) -> int:
        with self._lock:
            return sum(len(bucket) for bucket in self._buckets.values())

    @property
    def day_count(self) -> int:
        with self._lock:
            return len(self._buckets)

    # ── Persistence ──────────────────────────────────────────────────────

    def save(self) -> bool:
        """Write all buckets atomically. Returns False (and logs) on failure."""
        with self._lock:
            payload = {
                key: [entry.to_payload() for entry in bucket]
                for key, bucket in sorted(self._buckets.items())
            }
            try:
                self._write(payload)
            except PersistenceError as e:
                logger.error("[{}] failed to save short-term memory: {}", self.persona_id, e)
                return False
        logger.debug("[{}] short-term memory saved ({} days)", self.persona_id, len(payload))
        return True

    def _write(self, payload: dict[str, list[dict[str, object]]]) -> None:
        path = self.path
        tmp_path = path.with_name(f".{path.name}.tmp-{os.getpid()}")
        try:
            ensure_dir(path.parent)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(payload, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, path)
        except (OSError, TypeError, ValueError) as e:
            raise PersistenceError(f"{path}: {e}") from e

    def load(self) -> bool:
        """Replace in-memory buckets with the file contents, then clean up."""
        path = self.path
        if not path.exists():
            logger.debug("[{}] no short-term memory file yet at {}", self.persona_id, path)
            return False
        try:
            loaded = self._read(path)
        except PersistenceError as e:
            logger.error("[{}] failed to load short-term memory: {}", self.persona_id, e)
            return False

        with self._lock:
            self._buckets = loaded
        self.cleanup()
        logger.info("[{}] loaded short-term memory ({} days)", self.persona_id, self.day_count)
        return True

    def _read(self, path: Path) -> dict[str, list[MemoryEntry]]:
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise PersistenceError(f"{path}: {e}") from e
        if not isinstance(raw, dict):
            raise PersistenceError(f"{path}: root must be a JSON object")

        buckets: dict[str, list[MemoryEntry]] = {}
        for key, items in raw.items():
            if not isinstance(items, list):
                logger.warning("[{}] skipping malformed memory day {}", self.persona_id, key)
                continue
            bucket: list[MemoryEntry] = []
            for item in items:
                try:
                    bucket.append(MemoryEntry.from_payload(item))
                except (TypeError, ValueError) as e:
                    logger.warning("[{}] skipping malformed memory entry: {}", self.persona_id, e)
            if bucket:
                buckets[str(key)] = bucket
        return buckets
