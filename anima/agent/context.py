"""Context builder for assembling persona prompts."""

from __future__ import annotations

from typing import Any

from anima.core.models import ChatMessage
from anima.persona.models import Persona

_KNOWN_PERCEPTION_KEYS = frozenset({"time", "player", "nearbyEntities", "nearby_entities"})


class ContextBuilder:
    """
    Builds the context (system prompt + messages) for one persona turn.

    The system prompt is the persona's own prompt followed by the current
    mood, the optional perception snapshot and the memory context.
    """

    def __init__(self, persona: Persona) -> None:
        self.persona = persona

    def build_system_prompt(
        self,
        *,
        mood_description: str,
        perception: dict[str, Any] | None = None,
        memory_context: str = "",
    ) -> str:
        parts = [self.persona.build_system_prompt()]
        parts.append(f"【当前状态】\n- 情绪: {mood_description}")

        rendered = render_perception(perception)
        if rendered:
            parts.append(rendered)

        if memory_context:
            parts.append(memory_context)

        return "\n\n".join(parts)

    def build_messages(
        self,
        *,
        system_prompt: str,
        history: list[ChatMessage],
        user_message: str,
    ) -> list[ChatMessage]:
        """System prompt, few-shot examples (first turn only), history, new message."""
        messages: list[ChatMessage] = [{"role": "system", "content": system_prompt}]
        if not history:
            for example in self.persona.example_dialogues:
                messages.append({"role": "user", "content": example.user})
                messages.append({"role": "assistant", "content": example.assistant})
        messages.extend(dict(m) for m in history)
        messages.append({"role": "user", "content": user_message})
        return messages


def render_perception(perception: dict[str, Any] | None) -> str:
    """Render a host perception snapshot as a prompt section ("" when empty)."""
    if not perception:
        return ""

    lines: list[str] = []
    time_info = perception.get("time")
    if isinstance(time_info, dict):
        time_of_day = time_info.get("timeOfDay") or time_info.get("time_of_day")
        if time_of_day:
            lines.append(f"- 时间: {time_of_day}")
    elif isinstance(time_info, str) and time_info:
        lines.append(f"- 时间: {time_info}")

    player = perception.get("player")
    if isinstance(player, dict):
        if player.get("position"):
            lines.append(f"- 玩家位置: {player['position']}")
        held = player.get("heldItem") or player.get("held_item")
        if held:
            lines.append(f"- 玩家手持: {held}")

    nearby = perception.get("nearbyEntities", perception.get("nearby_entities"))
    if isinstance(nearby, list):
        lines.append(f"- 附近实体: {len(nearby)}个")

    for key, value in perception.items():
        if key in _KNOWN_PERCEPTION_KEYS:
            continue
        if isinstance(value, (str, int, float, bool)) and value != "":
            lines.append(f"- {key}: {value}")

    if not lines:
        return ""
    return "【环境感知】\n" + "\n".join(lines)
