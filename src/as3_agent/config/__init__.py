"""Agent configuration."""
from .settings import AgentParams, SettingsError, load_settings

__all__ = ["AgentParams", "SettingsError", "load_settings"]
