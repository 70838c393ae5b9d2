"""Runtime wiring: config -> personas, throttle, completion client, registry."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from loguru import logger

from anima.agent.registry import AgentRegistry
from anima.persona.catalog import PersonaCatalog
from anima.providers.openai_compatible import CompletionClient
from anima.providers.throttle import RequestThrottle
from anima.telemetry.inmemory import InMemoryTelemetry

if TYPE_CHECKING:
    from anima.config.schema import Config
    from anima.core.ports import CompletionPort


@dataclass(slots=True)
class AnimaRuntime:
    """Lifecycle holder for one composed runtime. Close it with ``aclose()``."""

    config: Config
    personas: PersonaCatalog
    completion: CompletionPort
    throttle: RequestThrottle
    registry: AgentRegistry
    telemetry: InMemoryTelemetry

    async def aclose(self) -> None:
        self.registry.close()
        aclose = getattr(self.completion, "aclose", None)
        if aclose is not None:
            await aclose()
        logger.debug("anima runtime closed")

    async def __aenter__(self) -> AnimaRuntime:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()


def build_runtime(
    config: Config,
    *,
    completion: CompletionPort | None = None,
    telemetry: InMemoryTelemetry | None = None,
) -> AnimaRuntime:
    """Compose a runtime from config; ``completion`` may be swapped for tests or hosts."""
    telemetry = telemetry or InMemoryTelemetry()

    personas = PersonaCatalog(config.personas.path, seed_defaults=config.personas.seed_defaults)
    personas.load()

    throttle = RequestThrottle.from_config(config.throttle, telemetry=telemetry)
    if completion is None:
        completion = CompletionClient.from_config(config.llm, telemetry=telemetry)
        if not config.llm.api_key_configured:
            logger.warning("No API key configured; chat turns will fail until llm.apiKey is set")

    registry = AgentRegistry(
        personas,
        completion=completion,
        throttle=throttle,
        memory_dir=config.memory.storage_path,
        memory_config=config.memory,
        max_history=config.agent.max_history,
        telemetry=telemetry,
    )
    return AnimaRuntime(
        config=config,
        personas=personas,
        completion=completion,
        throttle=throttle,
        registry=registry,
        telemetry=telemetry,
    )
