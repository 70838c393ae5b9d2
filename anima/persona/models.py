"""Persona definition schema."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ExampleDialogue(BaseModel):
    """One few-shot user/assistant exchange."""

    model_config = ConfigDict(extra="ignore")

    user: str
    assistant: str


class Persona(BaseModel):
    """Static identity, style and prompt text of one character."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    id: str
    name: str
    name_en: str | None = None
    school: str | None = None
    club: str | None = None
    role: str | None = None
    personality_traits: list[str] = Field(default_factory=list)
    speech_patterns: list[str] = Field(default_factory=list)
    system_prompt: str | None = None
    example_dialogues: list[ExampleDialogue] = Field(default_factory=list)
    model_override: str | None = None
    temperature_override: float | None = Field(default=None, ge=0.0, le=2.0)

    @field_validator("id")
    @classmethod
    def _normalize_id(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError("persona id must not be empty")
        return normalized

    @property
    def key(self) -> str:
        """Case-insensitive lookup key."""
        return self.id.lower()

    def build_system_prompt(self) -> str:
        """Configured system prompt, or one generated from the identity fields."""
        if self.system_prompt and self.system_prompt.strip():
            return self.system_prompt.strip()

        intro = f"你是{self.name}"
        if self.name_en:
            intro += f"（{self.name_en}）"
        intro += "。"
        if self.school:
            intro += f"你来自{self.school}。"
        if self.club:
            intro += f"你是{self.club}的成员。"
        if self.role:
            intro += f"你的身份是{self.role}。"

        parts = [intro]
        if self.personality_traits:
            parts.append("【性格特点】\n" + "\n".join(f"- {t}" for t in self.personality_traits))
        if self.speech_patterns:
            parts.append("【说话风格】\n" + "\n".join(f"- {p}" for p in self.speech_patterns))
        return "\n\n".join(parts)

    def summary(self) -> dict[str, object]:
        """Identity fields for listings."""
        return {
            "id": self.id,
            "name": self.name,
            "nameEn": self.name_en,
            "school": self.school,
            "club": self.club,
            "role": self.role,
        }
