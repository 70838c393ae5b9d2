"""CLI entry point: importing the command modules registers them on ``app``."""

from . import chat_commands, memory_commands, mood_commands, persona_commands, status_commands
from .core import app

__all__ = [
    "app",
    "chat_commands",
    "memory_commands",
    "mood_commands",
    "persona_commands",
    "status_commands",
]
