"""Configuration schema using Pydantic."""

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings

from anima.config.defaults import (
    DEFAULT_AGENT,
    DEFAULT_LLM,
    DEFAULT_MEMORY,
    DEFAULT_PERSONAS,
    DEFAULT_THROTTLE,
    PLACEHOLDER_API_KEY,
)


class LLMConfig(BaseModel):
    """OpenAI-compatible chat-completion endpoint settings."""

    model_config = ConfigDict(extra="ignore")

    base_url: str = str(DEFAULT_LLM["base_url"])
    model: str = str(DEFAULT_LLM["model"])
    api_key: str = str(DEFAULT_LLM["api_key"])
    max_tokens: int = Field(default=int(DEFAULT_LLM["max_tokens"]), ge=1)
    temperature: float = Field(default=float(DEFAULT_LLM["temperature"]), ge=0.0, le=2.0)
    request_timeout_seconds: float = Field(
        default=float(DEFAULT_LLM["request_timeout_seconds"]), gt=0
    )

    @property
    def chat_completions_url(self) -> str:
        return self.base_url.rstrip("/") + "/chat/completions"

    @property
    def api_key_configured(self) -> bool:
        key = self.api_key.strip()
        return bool(key) and key != PLACEHOLDER_API_KEY


class ThrottleConfig(BaseModel):
    """Admission control in front of the completion endpoint."""

    model_config = ConfigDict(extra="ignore")

    max_concurrent: int = Field(default=int(DEFAULT_THROTTLE["max_concurrent"]), ge=1)
    rate_limit_rpm: int = Field(default=int(DEFAULT_THROTTLE["rate_limit_rpm"]), ge=1)
    acquire_timeout_seconds: float = Field(
        default=float(DEFAULT_THROTTLE["acquire_timeout_seconds"]), ge=0
    )


class MemoryConfig(BaseModel):
    """Immediate and short-term memory settings."""

    model_config = ConfigDict(extra="ignore")

    storage_dir: str = str(DEFAULT_MEMORY["storage_dir"])
    immediate_capacity: int = Field(default=int(DEFAULT_MEMORY["immediate_capacity"]), ge=1)
    retention_days: int = Field(default=int(DEFAULT_MEMORY["retention_days"]), ge=1)
    max_entries_per_day: int = Field(default=int(DEFAULT_MEMORY["max_entries_per_day"]), ge=1)
    extraction_threshold: float = Field(
        default=float(DEFAULT_MEMORY["extraction_threshold"]), ge=0.0, le=1.0
    )
    summary_max_entries: int = Field(default=int(DEFAULT_MEMORY["summary_max_entries"]), ge=0)

    @property
    def storage_path(self) -> Path:
        from anima.utils.helpers import get_memory_path
        return get_memory_path(self.storage_dir)


class AgentConfig(BaseModel):
    """Per-agent conversation settings."""

    model_config = ConfigDict(extra="ignore")

    max_history: int = Field(default=int(DEFAULT_AGENT["max_history"]), ge=2)


class PersonasConfig(BaseModel):
    """Where persona definitions live."""

    model_config = ConfigDict(extra="ignore")

    dir: str = str(DEFAULT_PERSONAS["dir"])
    seed_defaults: bool = bool(DEFAULT_PERSONAS["seed_defaults"])

    @property
    def path(self) -> Path:
        from anima.utils.helpers import get_personas_path
        return get_personas_path(self.dir)


class Config(BaseSettings):
    """Root configuration for anima."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True, env_prefix="ANIMA_", env_nested_delimiter="__")

    config_version: int = 1
    llm: LLMConfig = Field(default_factory=LLMConfig)
    throttle: ThrottleConfig = Field(default_factory=ThrottleConfig)
    memory: MemoryConfig = Field(default_factory=MemoryConfig)
    agent: AgentConfig = Field(default_factory=AgentConfig)
    personas: PersonasConfig = Field(default_factory=PersonasConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        # ANIMA_* environment variables win over values read from config.json.
        return env_settings, init_settings, dotenv_settings, file_secret_settings
