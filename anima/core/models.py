"""Typed result models shared across the agent runtime."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, TypeAlias

ErrorKind: TypeAlias = Literal[
    "configuration",
    "throttled",
    "transport",
    "upstream",
    "parse",
    "not_found",
    "persistence",
]
ChatRole: TypeAlias = Literal["system", "user", "assistant"]
ChatMessage: TypeAlias = dict[str, str]

_RETRYABLE_KINDS: frozenset[str] = frozenset({"throttled", "transport"})
_RETRYABLE_STATUS: frozenset[int] = frozenset({408, 425, 429})


@dataclass(frozen=True, slots=True, kw_only=True)
class ChatResult:
    """Outcome of one completion call or chat turn.

    Exactly one of ``content`` (on success) or ``error`` (on failure) is set.
    """

    success: bool
    content: str | None = None
    error: str | None = None
    error_kind: ErrorKind | None = None
    status_code: int | None = None
    prompt_tokens: int = 0
    completion_tokens: int = 0

    @classmethod
    def ok(cls, content: str, *, prompt_tokens: int = 0, completion_tokens: int = 0) -> ChatResult:
        return cls(
            success=True,
            content=content,
            prompt_tokens=max(0, prompt_tokens),
            completion_tokens=max(0, completion_tokens),
        )

    @classmethod
    def failure(cls, kind: ErrorKind, error: str, *, status_code: int | None = None) -> ChatResult:
        return cls(success=False, error=error, error_kind=kind, status_code=status_code)

    @property
    def retryable(self) -> bool:
        """Whether repeating the same request later may succeed."""
        if self.success or self.error_kind is None:
            return False
        if self.error_kind in _RETRYABLE_KINDS:
            return True
        if self.error_kind == "upstream" and self.status_code is not None:
            return self.status_code >= 500 or self.status_code in _RETRYABLE_STATUS
        return False

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens

    def to_payload(self) -> dict[str, object]:
        """Host-facing mapping of this result."""
        payload: dict[str, object] = {"success": self.success}
        if self.success:
            payload["content"] = self.content or ""
            payload["promptTokens"] = self.prompt_tokens
            payload["completionTokens"] = self.completion_tokens
        else:
            payload["error"] = self.error or ""
            payload["errorKind"] = self.error_kind
            payload["retryable"] = self.retryable
        return payload
