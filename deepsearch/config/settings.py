"""Configuration settings for the DeepSearch server.

Property-based access to configuration values. Values come from the
ConfigManager when one is attached, then from environment variables, then
from hard-coded defaults.
"""

from __future__ import annotations

import os
from typing import Any

from deepsearch.config.agent import AgentConfig
from deepsearch.config.constants import (
    DEFAULT_DATABASE_PATH,
    DEFAULT_MAX_STEPS,
    DEFAULT_MODEL,
    DEFAULT_SEARCH_RESULT_COUNT,
    DEFAULT_SEARCH_TIMEOUT,
    DEFAULT_SERPER_BASE_URL,
    DEFAULT_TITLE_MAX_LENGTH,
)
from deepsearch.config.manager import ConfigManager


class Settings:
    """Application settings with hot-reload support."""

    def __init__(self, config_manager: ConfigManager | None = None):
        self._config_manager = config_manager

    def validate_or_raise(self) -> None:
        if not self.model:
            raise ValueError("LLM model not configured. Set 'model' in config.json")
        if not self.openai_api_key:
            raise ValueError(
                "OpenAI API key not configured. Set providers.openai.api_key "
                "or OPENAI_API_KEY"
            )
        if self.search_provider == "serper" and not self.serper_api_key:
            raise ValueError(
                "search.provider is 'serper' but no Serper API key is configured"
            )

    def validation_status(self) -> tuple[bool, list[str]]:
        """Return (is_valid, errors) without raising."""
        try:
            self.validate_or_raise()
            return True, []
        except ValueError as exc:
            return False, [str(exc)]

    def _get(
        self,
        key: str,
        default: Any,
        env_key: str | None = None,
    ) -> Any:
        """Get config value from manager, fallback to env, then default.

        Dotted keys walk nested sections ("agent.max_steps").
        """
        value: Any = None
        if self._config_manager:
            node: Any = self._config_manager.get_all()
            for part in key.split("."):
                if isinstance(node, dict) and part in node:
                    node = node[part]
                else:
                    node = None
                    break
            value = node
        if value is not None:
            return value
        if env_key and (env_val := os.getenv(env_key)):
            if isinstance(default, bool):
                return env_val.lower() in ("true", "1", "yes")
            elif isinstance(default, int):
                return int(env_val)
            elif isinstance(default, float):
                return float(env_val)
            return env_val
        return default

    # LLM
    @property
    def model(self) -> str:
        return self._get("model", DEFAULT_MODEL, "DEEPSEARCH_MODEL")

    @property
    def openai_api_key(self) -> str | None:
        return self._get("providers.openai.api_key", None, "OPENAI_API_KEY")

    @property
    def openai_base_url(self) -> str | None:
        return self._get("providers.openai.base_url", None, "OPENAI_BASE_URL")

    @property
    def openai_options(self) -> dict:
        opts = self._get("providers.openai.options", {})
        return opts if isinstance(opts, dict) else {}

    # Agent policy
    @property
    def max_steps(self) -> int:
        return self._get("agent.max_steps", DEFAULT_MAX_STEPS, "DEEPSEARCH_MAX_STEPS")

    @property
    def search_result_count(self) -> int:
        return self._get("agent.search_result_count", DEFAULT_SEARCH_RESULT_COUNT)

    @property
    def title_max_length(self) -> int:
        return self._get("agent.title_max_length", DEFAULT_TITLE_MAX_LENGTH)

    def agent_config(self) -> AgentConfig:
        return AgentConfig(
            model=self.model,
            max_steps=self.max_steps,
            search_result_count=self.search_result_count,
            title_max_length=self.title_max_length,
        )

    # Search
    @property
    def serper_api_key(self) -> str | None:
        return self._get("search.serper_api_key", None, "SERPER_API_KEY")

    @property
    def serper_base_url(self) -> str:
        return self._get("search.serper_base_url", DEFAULT_SERPER_BASE_URL)

    @property
    def search_timeout(self) -> float:
        return float(self._get("search.timeout", DEFAULT_SEARCH_TIMEOUT))

    @property
    def search_provider(self) -> str:
        provider = self._get("search.provider", None, "DEEPSEARCH_SEARCH_PROVIDER")
        if provider:
            return provider
        return "serper" if self.serper_api_key else "duckduckgo"

    # Auth
    @property
    def auth_tokens(self) -> dict[str, dict[str, Any]]:
        tokens = self._get("auth.tokens", {})
        return tokens if isinstance(tokens, dict) else {}

    # Storage
    @property
    def database_path(self) -> str:
        return self._get("database_path", DEFAULT_DATABASE_PATH, "DEEPSEARCH_DB_PATH")

    # Server
    @property
    def server_host(self) -> str:
        return self._get("server_host", "localhost", "SERVER_HOST")

    @property
    def server_port(self) -> int:
        return self._get("server_port", 8765, "SERVER_PORT")

    # Logging
    @property
    def log_level(self) -> str:
        return self._get("log_level", "INFO", "LOG_LEVEL")

    @property
    def log_format(self) -> str:
        return self._get("log_format", "pretty", "LOG_FORMAT")

    @property
    def log_colors(self) -> bool:
        return self._get("log_colors", True, "LOG_COLORS")


# Global settings instance (config manager attached at startup)
settings = Settings()
