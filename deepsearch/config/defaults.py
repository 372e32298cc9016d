"""Default configuration values for DeepSearch."""

from typing import Any

from deepsearch.config.constants import (
    DEFAULT_MAX_STEPS,
    DEFAULT_SEARCH_RESULT_COUNT,
    DEFAULT_SEARCH_TIMEOUT,
    DEFAULT_SERPER_BASE_URL,
    DEFAULT_TITLE_MAX_LENGTH,
)


def get_default_config() -> dict[str, Any]:
    """Return the default configuration dictionary."""
    return {
        "providers": {
            "openai": {
                "api_key": None,
                "base_url": None,
                "options": {},
            },
        },
        # null values fall back to environment variables, then built-in defaults
        "model": None,
        "agent": {
            "max_steps": DEFAULT_MAX_STEPS,
            "search_result_count": DEFAULT_SEARCH_RESULT_COUNT,
            "title_max_length": DEFAULT_TITLE_MAX_LENGTH,
        },
        # provider: "serper" | "duckduckgo"; null picks serper when a key is set
        "search": {
            "provider": None,
            "serper_api_key": None,
            "serper_base_url": DEFAULT_SERPER_BASE_URL,
            "timeout": DEFAULT_SEARCH_TIMEOUT,
        },
        # token -> {"id": ..., "name": ...}
        "auth": {"tokens": {}},
        "database_path": None,
        "server_host": None,
        "server_port": None,
        "log_level": "INFO",
        "log_format": "pretty",
        "log_colors": True,
    }
