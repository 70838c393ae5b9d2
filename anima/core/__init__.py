"""Typed core models and ports."""

from anima.core.models import ChatMessage, ChatResult, ErrorKind
from anima.core.ports import CompletionPort, MoodClassifierPort, PersonaSourcePort

__all__ = [
    "ChatMessage",
    "ChatResult",
    "CompletionPort",
    "ErrorKind",
    "MoodClassifierPort",
    "PersonaSourcePort",
]
