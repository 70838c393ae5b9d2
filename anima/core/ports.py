"""Port interfaces for the agent runtime."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from anima.core.models import ChatMessage, ChatResult

if TYPE_CHECKING:
    from anima.mood.models import MoodInference
    from anima.persona.models import Persona


class CompletionPort(Protocol):
    """Remote chat-completion port."""

    async def complete(
        self,
        messages: list[ChatMessage],
        *,
        model: str | None = None,
        temperature: float | None = None,
    ) -> ChatResult:
        """Run one completion and return a typed result; never raises for remote failures."""


class MoodClassifierPort(Protocol):
    """Infers a mood change from assistant reply text."""

    def classify(self, text: str) -> MoodInference | None:
        """Return the inferred change, or None when the text carries no signal."""


class PersonaSourcePort(Protocol):
    """Read-only persona lookup."""

    def get(self, persona_id: str) -> Persona | None:
        """Look up one persona by id (case-insensitive)."""

    def all(self) -> list[Persona]:
        """Return every configured persona."""
