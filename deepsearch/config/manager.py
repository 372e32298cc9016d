"""Configuration manager with hot-reload support."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

from deepsearch.config.providers import ConfigProvider, LocalFileConfigProvider
from deepsearch.utils.logger import get_logger

logger = get_logger("config.manager")

ChangeCallback = Callable[[dict[str, Any]], None]


class ConfigManager:
    """Holds the merged configuration and fans file changes out to listeners.

    The server never writes the config itself; edits land in the JSON file
    and reach `Settings` through the provider's watcher.
    """

    def __init__(self, provider: ConfigProvider):
        self.provider = provider
        self._config: dict[str, Any] = {}
        self._change_callbacks: list[ChangeCallback] = []

    async def initialize(self) -> None:
        self._config = await self.provider.load()
        logger.info("Configuration initialized", config_keys=sorted(self._config))

    async def start_watching(self) -> None:
        await self.provider.watch(self._on_config_changed)

    async def stop_watching(self) -> None:
        await self.provider.stop_watching()

    def get_all(self) -> dict[str, Any]:
        return self._config.copy()

    def register_change_callback(self, callback: ChangeCallback) -> None:
        self._change_callbacks.append(callback)

    def _on_config_changed(self, new_config: dict[str, Any]) -> None:
        old_config = self._config
        self._config = new_config
        changed = sorted(
            key
            for key in set(old_config) | set(new_config)
            if old_config.get(key) != new_config.get(key)
        )
        if not changed:
            logger.debug("Configuration reloaded with no changes")
            return
        logger.info("Configuration reloaded", changed_keys=changed)
        for callback in self._change_callbacks:
            try:
                callback(new_config.copy())
            except Exception as e:
                # One broken listener must not stop the others
                logger.error(
                    "Config change callback failed",
                    error=str(e),
                    callback=getattr(callback, "__name__", repr(callback)),
                )


def create_config_manager(
    config_dir: Path, *, defaults: dict[str, Any] | None = None
) -> ConfigManager:
    """Config manager backed by <config_dir>/config.json."""
    config_path = config_dir / "config.json"
    logger.info("Config manager created", config_path=str(config_path))
    return ConfigManager(LocalFileConfigProvider(config_path, defaults=defaults))
