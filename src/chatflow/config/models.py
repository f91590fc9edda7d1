"""Configuration models for chatflow."""

from typing import Literal

from pydantic import BaseModel, Field

from chatflow.core.constants import (
    FALLBACK_REPLY,
    INVALID_SELECTION_MESSAGE,
    MAX_CONFLICT_RETRIES,
    MAX_STEPS,
    TRIGGER_MISSING_MESSAGE,
)


class EngineSettings(BaseModel):
    """Interpreter limits and user-facing fixed messages."""

    max_steps: int = Field(default=MAX_STEPS, ge=1, description="Step bound per request")
    max_conflict_retries: int = Field(
        default=MAX_CONFLICT_RETRIES,
        ge=0,
        description="Re-runs allowed when a concurrent request updated the same session",
    )
    fallback_reply: str = Field(default=FALLBACK_REPLY)
    invalid_selection_message: str = Field(default=INVALID_SELECTION_MESSAGE)
    trigger_missing_message: str = Field(default=TRIGGER_MISSING_MESSAGE)


class AISettings(BaseModel):
    """Language model used by ai nodes."""

    enabled: bool = Field(default=True)
    provider: str = Field(default="openai", description="Model provider (openai, anthropic, etc.)")
    model: str = Field(default="gpt-4o-mini", description="Model identifier")
    temperature: float = Field(default=0.3)
    use_reasoning: bool = Field(default=False, description="Use ChainOfThought for reasoning")
    timeout: float = Field(default=30.0, gt=0, description="Seconds before falling back")
    api_key_env: str | None = Field(
        default="OPENAI_API_KEY",
        description="Env var that must be set for the provider; None skips the check",
    )


class PersistenceSettings(BaseModel):
    """Session persistence configuration."""

    backend: Literal["memory", "sqlite"] = Field(default="sqlite")
    path: str = Field(default="chatflow.db", description="SQLite database path")


class LoggingSettings(BaseModel):
    level: str = Field(default="INFO")
    json_file: str | None = Field(default=None, description="Rotating JSON log file")
    trace: bool = Field(default=False, description="Log every interpreter step")


class FlowsSettings(BaseModel):
    directory: str = Field(default="flows", description="Directory of flow graph files")
    cache_ttl: float = Field(default=30.0, ge=0)


class SettingsConfig(BaseModel):
    """Global settings configuration."""

    engine: EngineSettings = Field(default_factory=EngineSettings)
    ai: AISettings = Field(default_factory=AISettings)
    persistence: PersistenceSettings = Field(default_factory=PersistenceSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


class ChatflowConfig(BaseModel):
    """Root configuration document (chatflow.yaml)."""

    version: str = Field(default="1.0")
    flows: FlowsSettings = Field(default_factory=FlowsSettings)
    settings: SettingsConfig = Field(default_factory=SettingsConfig)
