"""Two-tier persona memory: immediate conversation window and short-term store."""

from anima.memory.immediate import ImmediateMemory
from anima.memory.models import MemoryEntry, MemoryType
from anima.memory.short_term import PersistenceError, ShortTermMemory
from anima.memory.store import MemoryStore

__all__ = [
    "ImmediateMemory",
    "MemoryEntry",
    "MemoryStore",
    "MemoryType",
    "PersistenceError",
    "ShortTermMemory",
]
