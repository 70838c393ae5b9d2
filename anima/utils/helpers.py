"""Utility functions for anima."""

import os
from datetime import date, datetime
from pathlib import Path


def ensure_dir(path: Path) -> Path:
    """Ensure a directory exists, creating it if necessary."""
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_path() -> Path:
    """Get the anima data directory.

    Respects ANIMA_HOME environment variable; falls back to ~/.anima.
    """
    anima_home = os.environ.get("ANIMA_HOME", "").strip()
    if anima_home:
        return ensure_dir(Path(anima_home))
    return ensure_dir(Path.home() / ".anima")


def resolve_data_path(raw: str) -> Path:
    """Expand a configured path; relative paths live under the data directory."""
    candidate = Path(raw).expanduser()
    if candidate.is_absolute():
        return candidate
    return get_data_path() / candidate


def get_memory_path(configured: str | None = None) -> Path:
    """Get the short-term memory directory (~/.anima/data/memory by default)."""
    return ensure_dir(resolve_data_path(configured or "data/memory"))


def get_personas_path(configured: str | None = None) -> Path:
    """Get the persona definitions directory (~/.anima/personas by default)."""
    return ensure_dir(resolve_data_path(configured or "personas"))


def date_key(value: date | datetime) -> str:
    """Format a date (or the local date of a datetime) as YYYY-MM-DD."""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone()
        value = value.date()
    return value.isoformat()


def truncate_string(s: str, max_len: int = 100, suffix: str = "...") -> str:
    """Truncate a string to max length, adding suffix if truncated."""
    if len(s) <= max_len:
        return s
    return s[: max_len - len(suffix)] + suffix


def safe_filename(name: str) -> str:
    """Convert a string to a safe filename."""
    unsafe = '<>:"/\\|?*'
    for char in unsafe:
        name = name.replace(char, "_")
    return name.strip()


def clamp(value: float, low: float, high: float) -> float:
    """Clamp ``value`` into ``[low, high]``."""
    return max(low, min(high, value))
