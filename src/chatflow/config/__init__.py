"""Configuration for chatflow."""

from chatflow.config.loader import ConfigLoader
from chatflow.config.models import (
    AISettings,
    ChatflowConfig,
    EngineSettings,
    FlowsSettings,
    LoggingSettings,
    PersistenceSettings,
    SettingsConfig,
)

__all__ = [
    "ConfigLoader",
    "ChatflowConfig",
    "SettingsConfig",
    "EngineSettings",
    "AISettings",
    "PersistenceSettings",
    "LoggingSettings",
    "FlowsSettings",
]
