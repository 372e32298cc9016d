"""Configuration module for the DeepSearch server."""

from .agent import AgentConfig
from .defaults import get_default_config
from .manager import ConfigManager, create_config_manager
from .providers import ConfigProvider, LocalFileConfigProvider
from .settings import Settings, settings

__all__ = [
    "settings",
    "Settings",
    "AgentConfig",
    "ConfigManager",
    "ConfigProvider",
    "LocalFileConfigProvider",
    "create_config_manager",
    "get_default_config",
]
