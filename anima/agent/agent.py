"""Per-persona conversational agent."""

from __future__ import annotations

import asyncio
import threading
from typing import Any, Literal, TypeAlias

from loguru import logger

from anima.agent.context import ContextBuilder
from anima.core.models import ChatMessage, ChatResult
from anima.core.ports import CompletionPort, MoodClassifierPort
from anima.memory.store import MemoryStore
from anima.mood.classifier import KeywordMoodClassifier
from anima.mood.engine import MoodEngine
from anima.mood.models import MoodChangeEvent, MoodInference, MoodTrigger
from anima.persona.models import Persona
from anima.providers.throttle import RequestThrottle
from anima.telemetry.base import MetricLabels, TelemetryPort, emit_incr

MAX_HISTORY = 20

AgentState: TypeAlias = Literal["idle", "awaiting_reply"]


class ConversationalAgent:
    """
    One persona's conversation: mood, memory, history and the turn loop.

    Turns are serialized per agent, so at most one completion call is in
    flight for a persona at a time. History and memory change only after a
    successful completion; a denied or failed turn leaves both untouched.
    """

    def __init__(
        self,
        persona: Persona,
        *,
        completion: CompletionPort,
        throttle: RequestThrottle,
        memory: MemoryStore,
        mood: MoodEngine | None = None,
        classifier: MoodClassifierPort | None = None,
        max_history: int = MAX_HISTORY,
        telemetry: TelemetryPort | None = None,
    ) -> None:
        self.persona = persona
        self.completion = completion
        self.throttle = throttle
        self.memory = memory
        self.mood = mood or MoodEngine(persona.id)
        self.classifier = classifier or KeywordMoodClassifier()
        self.max_history = max_history
        self.telemetry = telemetry
        self.context = ContextBuilder(persona)
        self.state: AgentState = "idle"
        self.perception: dict[str, Any] | None = None
        self._history: list[ChatMessage] = []
        self._history_lock = threading.Lock()
        self._turn_lock = asyncio.Lock()
        self._pending_emotions: list[MoodChangeEvent] | None = None
        self.mood.events.subscribe(self._remember_mood_change)

    @property
    def id(self) -> str:
        return self.persona.id

    # ── Turn loop ────────────────────────────────────────────────────────

    async def chat(self, user_message: str, perception: dict[str, Any] | None = None) -> ChatResult:
        """Run one conversational turn and return the typed outcome."""
        async with self._turn_lock:
            async with self.throttle.admit() as admitted:
                if not admitted:
                    logger.warning("[{}] chat rejected by request throttle", self.id)
                    self._metric("chat_turns_total", labels=(("outcome", "throttled"),))
                    return ChatResult.failure("throttled", "overloaded: too many requests, retry later")
                return await self._run_turn(user_message, perception)

    async def _run_turn(self, user_message: str, perception: dict[str, Any] | None) -> ChatResult:
        if perception is not None:
            self.perception = perception

        history = self.history()
        pending: list[MoodChangeEvent] = []
        if not history:
            # Held back so a failed turn leaves memory untouched.
            self._pending_emotions = pending
            try:
                self.mood.apply_trigger(MoodTrigger.CONVERSATION_STARTED)
            finally:
                self._pending_emotions = None

        system_prompt = self.context.build_system_prompt(
            mood_description=self.mood.describe(),
            perception=self.perception,
            memory_context=self.memory.build_context(),
        )
        messages = self.context.build_messages(
            system_prompt=system_prompt,
            history=history,
            user_message=user_message,
        )

        self.state = "awaiting_reply"
        try:
            result = await self.completion.complete(
                messages,
                model=self.persona.model_override,
                temperature=self.persona.temperature_override,
            )
        finally:
            self.state = "idle"

        if not result.success:
            logger.warning("[{}] chat failed ({}): {}", self.id, result.error_kind, result.error)
            self._metric("chat_turns_total", labels=(("outcome", str(result.error_kind)),))
            return result

        for event in pending:
            self._record_emotion(event)
        reply = result.content or ""
        self._append_history(user_message, reply)
        self.memory.record_user_message(user_message)
        self.memory.record_assistant_message(reply)
        self._apply_reply_mood(reply)
        self.throttle.record_usage(result.prompt_tokens, result.completion_tokens)
        self._metric("chat_turns_total", labels=(("outcome", "ok"),))
        logger.debug(
            "[{}] reply ok (tokens {}/{}), mood={}",
            self.id,
            result.prompt_tokens,
            result.completion_tokens,
            self.mood.state,
        )
        return result

    def _append_history(self, user_message: str, reply: str) -> None:
        with self._history_lock:
            self._history.append({"role": "user", "content": user_message})
            self._history.append({"role": "assistant", "content": reply})
            overflow = len(self._history) - self.max_history
            if overflow > 0:
                del self._history[:overflow]

    def _apply_reply_mood(self, reply: str) -> None:
        inference = self.classifier.classify(reply)
        if inference is None:
            return
        self.apply_inference(inference)

    def apply_inference(self, inference: MoodInference) -> bool:
        if inference.trigger is not None:
            return self.mood.apply_trigger(inference.trigger, inference.multiplier)
        if inference.state is not None:
            return self.mood.set_state(inference.state, inference.intensity)
        return False

    def _remember_mood_change(self, event: MoodChangeEvent) -> None:
        pending = self._pending_emotions
        if pending is not None:
            pending.append(event)
            return
        self._record_emotion(event)

    def _record_emotion(self, event: MoodChangeEvent) -> None:
        self.memory.record_emotion(
            f"情绪从{event.previous.display_name}变为{event.current.display_name}",
            event.current.base_valence,
        )

    # ── Session & state ──────────────────────────────────────────────────

    def history(self) -> list[ChatMessage]:
        with self._history_lock:
            return [dict(m) for m in self._history]

    @property
    def history_size(self) -> int:
        with self._history_lock:
            return len(self._history)

    @property
    def has_active_session(self) -> bool:
        return self.history_size > 0

    def set_perception(self, perception: dict[str, Any] | None) -> None:
        """Default perception snapshot used when a turn passes none."""
        self.perception = perception

    def clear_history(self) -> None:
        with self._history_lock:
            self._history.clear()
        self.memory.clear_immediate()
        logger.debug("[{}] conversation history cleared", self.id)

    def end_session(self) -> bool:
        """Close the session: mood cools, memory is promoted and saved, history resets."""
        self.mood.apply_trigger(MoodTrigger.CONVERSATION_ENDED)
        saved = self.memory.end_session()
        with self._history_lock:
            self._history.clear()
        return saved

    def apply_trigger(self, trigger: MoodTrigger | str, multiplier: float = 1.0) -> bool:
        return self.mood.apply_trigger(trigger, multiplier)

    def tick(self) -> bool:
        """Apply mood decay for the time elapsed since the last mood change."""
        return self.mood.update()

    def daily_maintenance(self) -> bool:
        return self.memory.daily_maintenance()

    def mood_info(self) -> dict[str, object]:
        return self.mood.info()

    def snapshot(self) -> dict[str, object]:
        """Persona identity plus live session facts."""
        return {
            **self.persona.summary(),
            "hasActiveSession": self.has_active_session,
            "historySize": self.history_size,
            "mood": self.mood.state.value,
        }

    def close(self) -> None:
        self.mood.events.unsubscribe(self._remember_mood_change)

    def _metric(self, name: str, value: int = 1, labels: MetricLabels = ()) -> None:
        emit_incr(self.telemetry, name, value, labels)
