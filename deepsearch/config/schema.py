from __future__ import annotations

from copy import deepcopy
from typing import Any

ALLOWED_SEARCH_PROVIDERS = ("serper", "duckduckgo")


def deep_merge(base: dict[str, Any], updates: dict[str, Any]) -> dict[str, Any]:
    """Deep-merge updates into base without mutating inputs.

    - Keys present in updates with non-None values are merged/overwritten
    - Keys present in updates with None values are skipped (preserve base value)
    - Keys not present in updates are preserved from base
    """
    result = deepcopy(base)
    for key, value in updates.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        elif key in result and value is None:
            continue
        else:
            result[key] = value
    return result


def validate_config(config: dict[str, Any]) -> dict[str, Any]:
    """Check the structure of a merged config, raising ValueError on problems."""
    agent = config.get("agent", {})
    if not isinstance(agent, dict):
        raise ValueError("'agent' must be an object")
    for key in ("max_steps", "search_result_count", "title_max_length"):
        value = agent.get(key)
        if value is not None and (not isinstance(value, int) or value < 1):
            raise ValueError(f"agent.{key} must be a positive integer")

    search = config.get("search", {})
    if not isinstance(search, dict):
        raise ValueError("'search' must be an object")
    provider = search.get("provider")
    if provider is not None and provider not in ALLOWED_SEARCH_PROVIDERS:
        raise ValueError(
            f"search.provider must be one of {', '.join(ALLOWED_SEARCH_PROVIDERS)}"
        )

    auth = config.get("auth", {})
    tokens = auth.get("tokens", {}) if isinstance(auth, dict) else None
    if not isinstance(tokens, dict):
        raise ValueError("auth.tokens must be an object")
    for token, identity in tokens.items():
        if not isinstance(identity, dict) or not identity.get("id"):
            raise ValueError(f"auth.tokens entry for '{token[:4]}…' needs an 'id'")
    return config
