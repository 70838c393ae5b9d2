"""Explicitly constructed cache of conversational agents, keyed by persona id."""

from __future__ import annotations

import threading
from datetime import date
from pathlib import Path
from typing import Any, Callable

from loguru import logger

from anima.agent.agent import MAX_HISTORY, ConversationalAgent
from anima.config.schema import MemoryConfig
from anima.core.models import ChatResult
from anima.core.ports import CompletionPort, MoodClassifierPort, PersonaSourcePort
from anima.memory.store import MemoryStore
from anima.mood.engine import MoodEngine
from anima.mood.events import MoodEventChannel, MoodListener
from anima.mood.models import MoodTrigger
from anima.persona.models import Persona
from anima.providers.throttle import RequestThrottle
from anima.telemetry.base import TelemetryPort


class AgentRegistry:
    """
    Host-facing entry point: resolves personas to agents and delegates to them.

    Lookups are case-insensitive. Concurrent misses for the same id may both
    build an agent, but only the first one inserted is ever cached and
    returned. Every agent's mood changes are forwarded to ``mood_events``.
    """

    def __init__(
        self,
        personas: PersonaSourcePort,
        *,
        completion: CompletionPort,
        throttle: RequestThrottle,
        memory_dir: Path,
        memory_config: MemoryConfig | None = None,
        max_history: int = MAX_HISTORY,
        classifier_factory: Callable[[], MoodClassifierPort] | None = None,
        telemetry: TelemetryPort | None = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.personas = personas
        self.completion = completion
        self.throttle = throttle
        self.memory_dir = memory_dir
        self.memory_config = memory_config or MemoryConfig()
        self.max_history = max_history
        self.classifier_factory = classifier_factory
        self.telemetry = telemetry
        self.mood_events = MoodEventChannel()
        self._today = today
        self._lock = threading.Lock()
        self._agents: dict[str, ConversationalAgent] = {}

    # ── Agent lifecycle ──────────────────────────────────────────────────

    def get(self, persona_id: str) -> ConversationalAgent | None:
        """Cached agent for ``persona_id``, building it on first use. None if unknown."""
        key = (persona_id or "").strip().lower()
        if not key:
            return None
        with self._lock:
            cached = self._agents.get(key)
        if cached is not None:
            return cached

        persona = self.personas.get(key)
        if persona is None:
            logger.warning("Unknown persona: {}", persona_id)
            return None

        candidate = self._build_agent(persona)
        with self._lock:
            agent = self._agents.setdefault(key, candidate)
            count = len(self._agents)
        if agent is not candidate:
            self._discard(candidate)
        else:
            logger.info("Created agent for {} ({})", persona.name, persona.id)
            if self.telemetry is not None:
                self.telemetry.gauge("agents_active", count)
        return agent

    def _build_agent(self, persona: Persona) -> ConversationalAgent:
        cfg = self.memory_config
        memory = MemoryStore(
            persona.key,
            self.memory_dir,
            immediate_capacity=cfg.immediate_capacity,
            retention_days=cfg.retention_days,
            max_entries_per_day=cfg.max_entries_per_day,
            extraction_threshold=cfg.extraction_threshold,
            summary_max_entries=cfg.summary_max_entries,
            today=self._today,
        )
        mood = MoodEngine(persona.id)
        mood.events.subscribe(self.mood_events.publish)
        return ConversationalAgent(
            persona,
            completion=self.completion,
            throttle=self.throttle,
            memory=memory,
            mood=mood,
            classifier=self.classifier_factory() if self.classifier_factory else None,
            max_history=self.max_history,
            telemetry=self.telemetry,
        )

    def _discard(self, agent: ConversationalAgent) -> None:
        agent.mood.events.unsubscribe(self.mood_events.publish)
        agent.close()

    def remove_agent(self, persona_id: str) -> bool:
        """End the agent's session and drop it from the cache."""
        with self._lock:
            agent = self._agents.pop(persona_id.strip().lower(), None)
        if agent is None:
            return False
        agent.end_session()
        self._discard(agent)
        logger.info("Removed agent {}", agent.id)
        return True

    def close(self) -> None:
        """End every session and empty the cache."""
        with self._lock:
            agents = list(self._agents.values())
            self._agents.clear()
        for agent in agents:
            agent.end_session()
            self._discard(agent)
        logger.debug("Agent registry closed ({} agents)", len(agents))

    @property
    def active_agent_count(self) -> int:
        with self._lock:
            return len(self._agents)

    def agents(self) -> list[ConversationalAgent]:
        with self._lock:
            return list(self._agents.values())

    # ── Host operations ──────────────────────────────────────────────────

    async def chat(
        self,
        persona_id: str,
        message: str,
        perception: dict[str, Any] | None = None,
    ) -> ChatResult:
        agent = self.get(persona_id)
        if agent is None:
            return ChatResult.failure("not_found", f"Unknown persona: {persona_id}")
        return await agent.chat(message, perception)

    def clear_history(self, persona_id: str | None = None) -> bool:
        """Clear one agent's history, or every agent's when no id is given."""
        if persona_id is None:
            self.clear_all_history()
            return True
        with self._lock:
            agent = self._agents.get(persona_id.strip().lower())
        if agent is None:
            return False
        agent.clear_history()
        return True

    def clear_all_history(self) -> None:
        for agent in self.agents():
            agent.clear_history()
        logger.info("Cleared history of all agents")

    def list_available(self) -> list[dict[str, object]]:
        """Every configured persona, with live session facts where an agent exists."""
        with self._lock:
            agents = dict(self._agents)
        listing: list[dict[str, object]] = []
        for persona in self.personas.all():
            agent = agents.get(persona.key)
            listing.append(
                {
                    **persona.summary(),
                    "hasActiveSession": bool(agent and agent.has_active_session),
                    "historySize": agent.history_size if agent else 0,
                }
            )
        return listing

    def persona_snapshot(self, persona_id: str) -> dict[str, object] | None:
        persona = self.personas.get(persona_id)
        if persona is None:
            return None
        with self._lock:
            agent = self._agents.get(persona.key)
        if agent is not None:
            return agent.snapshot()
        return {**persona.summary(), "hasActiveSession": False, "historySize": 0}

    def get_mood(self, persona_id: str) -> dict[str, object] | None:
        agent = self.get(persona_id)
        if agent is None:
            return None
        return agent.mood_info()

    def trigger_mood(
        self,
        persona_id: str,
        trigger_id: str,
        multiplier: float = 1.0,
    ) -> dict[str, object]:
        agent = self.get(persona_id)
        if agent is None:
            return {"error": f"Unknown persona: {persona_id}"}
        trigger = MoodTrigger.find(trigger_id)
        if trigger is None:
            return {"error": f"Unknown mood trigger: {trigger_id}"}
        agent.apply_trigger(trigger, multiplier)
        snap = agent.mood.snapshot()
        return {"newState": snap.state.value, "newIntensity": snap.intensity}

    def tick(self) -> int:
        """Decay every agent's mood. Returns how many changed state."""
        return sum(1 for agent in self.agents() if agent.tick())

    def daily_maintenance(self) -> None:
        for agent in self.agents():
            agent.daily_maintenance()

    def reload_personas(self) -> int:
        reload = getattr(self.personas, "reload", None)
        if reload is None:
            return len(self.personas.all())
        return reload()

    # ── Mood notifications ───────────────────────────────────────────────

    def subscribe_mood(self, listener: MoodListener) -> None:
        self.mood_events.subscribe(listener)

    def unsubscribe_mood(self, listener: MoodListener) -> None:
        self.mood_events.unsubscribe(listener)
