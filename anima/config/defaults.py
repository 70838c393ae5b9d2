"""Centralized defaults for generated config files."""

from __future__ import annotations

from copy import deepcopy
from typing import Any

PLACEHOLDER_API_KEY = "your-api-key-here"

DEFAULT_LLM: dict[str, Any] = {
    "base_url": "https://api.openai.com/v1",
    "model": "gpt-4o-mini",
    "api_key": "",
    "max_tokens": 1024,
    "temperature": 0.7,
    "request_timeout_seconds": 30,
}

DEFAULT_THROTTLE: dict[str, Any] = {
    "max_concurrent": 5,
    "rate_limit_rpm": 60,
    "acquire_timeout_seconds": 30,
}

DEFAULT_MEMORY: dict[str, Any] = {
    "storage_dir": "data/memory",
    "immediate_capacity": 20,
    "retention_days": 7,
    "max_entries_per_day": 20,
    "extraction_threshold": 0.7,
    "summary_max_entries": 10,
}

DEFAULT_AGENT: dict[str, Any] = {
    "max_history": 20,
}

DEFAULT_PERSONAS: dict[str, Any] = {
    "dir": "personas",
    "seed_defaults": True,
}


def apply_missing_defaults(data: dict[str, Any]) -> None:
    """Fill missing sections of a snake_case config payload in place."""
    sections = {
        "llm": DEFAULT_LLM,
        "throttle": DEFAULT_THROTTLE,
        "memory": DEFAULT_MEMORY,
        "agent": DEFAULT_AGENT,
        "personas": DEFAULT_PERSONAS,
    }
    for name, defaults in sections.items():
        section = data.get(name)
        if not isinstance(section, dict):
            section = {}
            data[name] = section
        for key, value in defaults.items():
            section.setdefault(key, deepcopy(value))
