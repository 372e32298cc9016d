"""Configuration providers - abstract base and the local JSON file provider."""

import asyncio
import json
from abc import ABC, abstractmethod
from collections.abc import Callable
from pathlib import Path
from typing import Any

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from deepsearch.config.schema import deep_merge, validate_config
from deepsearch.utils.logger import get_logger

logger = get_logger("config.providers")


class ConfigProvider(ABC):
    """Abstract base class for configuration providers."""

    @abstractmethod
    async def load(self) -> dict[str, Any]:
        """Load configuration from the provider."""
        pass

    @abstractmethod
    async def save(self, config: dict[str, Any]) -> None:
        """Save configuration to the provider."""
        pass

    @abstractmethod
    async def watch(self, callback: Callable[[dict[str, Any]], None]) -> None:
        """Watch for configuration changes and call callback when changed."""
        pass

    @abstractmethod
    async def stop_watching(self) -> None:
        """Stop watching for configuration changes."""
        pass


class LocalFileConfigProvider(ConfigProvider):
    """Configuration provider that stores config in a local JSON file."""

    def __init__(
        self,
        config_path: Path,
        defaults: dict[str, Any] | None = None,
        *,
        create_if_missing: bool = True,
    ):
        self.config_path = config_path
        self.defaults = defaults or {}
        self.create_if_missing = create_if_missing
        self._observer: Any = None
        self._callback: Callable[[dict[str, Any]], None] | None = None
        self._last_mtime: float | None = None
        self._last_valid_config: dict[str, Any] | None = None
        self._loop: asyncio.AbstractEventLoop | None = None

    async def load(self) -> dict[str, Any]:
        """Load configuration from file, creating it with defaults if missing."""
        if not self.config_path.exists():
            if self.create_if_missing:
                logger.info(
                    "Config file not found, creating with defaults",
                    path=str(self.config_path),
                )
                await self.save(self.defaults.copy())
            merged = self.defaults.copy()
            self._last_valid_config = merged.copy()
            return merged

        try:
            content = self.config_path.read_text(encoding="utf-8")
            config = json.loads(content)
            self._last_mtime = self.config_path.stat().st_mtime
            merged = validate_config(deep_merge(self.defaults, config))
            self._last_valid_config = merged.copy()
            logger.debug("Config loaded from file", path=str(self.config_path))
            return merged
        except json.JSONDecodeError as e:
            logger.error(
                "Invalid JSON syntax in config file",
                error=str(e),
                line=e.lineno,
                column=e.colno,
                path=str(self.config_path),
            )
            if self._last_valid_config is not None:
                logger.warning(
                    "Using last valid configuration due to JSON error",
                    path=str(self.config_path),
                )
                return self._last_valid_config.copy()
            return self.defaults.copy()
        except ValueError as exc:
            logger.error(
                "Invalid configuration structure",
                error=str(exc),
                path=str(self.config_path),
            )
            raise

    async def save(self, config: dict[str, Any]) -> None:
        """Atomically save configuration to file."""
        merged = validate_config(deep_merge(self.defaults, config))
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.config_path.with_suffix(".tmp")
        tmp_path.write_text(
            json.dumps(merged, ensure_ascii=False, indent=2), encoding="utf-8"
        )
        tmp_path.replace(self.config_path)
        self._last_mtime = self.config_path.stat().st_mtime
        self._last_valid_config = merged.copy()
        logger.debug("Config saved to file", path=str(self.config_path))

    async def watch(self, callback: Callable[[dict[str, Any]], None]) -> None:
        """Watch for file changes and reload configuration."""
        self._callback = callback
        self._loop = asyncio.get_running_loop()

        class ConfigFileHandler(FileSystemEventHandler):
            def __init__(self, provider: LocalFileConfigProvider):
                self.provider = provider

            def _handle_event(self, event):
                if event.is_directory:
                    return
                if (
                    Path(event.src_path).resolve()
                    != self.provider.config_path.resolve()
                ):
                    return

                # Duplicate events for one write carry the same mtime
                try:
                    current_mtime = self.provider.config_path.stat().st_mtime
                except FileNotFoundError:
                    return
                if self.provider._last_mtime == current_mtime:
                    return

                logger.debug("Config file changed, reloading", path=event.src_path)
                if self.provider._loop and not self.provider._loop.is_closed():
                    asyncio.run_coroutine_threadsafe(
                        self.provider._handle_file_change(), self.provider._loop
                    )

            def on_modified(self, event):
                self._handle_event(event)

            def on_created(self, event):
                self._handle_event(event)

        self._observer = Observer()
        # Watching the file directly doesn't work on all systems
        self._observer.schedule(
            ConfigFileHandler(self), str(self.config_path.parent), recursive=False
        )
        self._observer.start()
        logger.info("Started watching config file", path=str(self.config_path))

    async def _handle_file_change(self) -> None:
        try:
            new_config = await self.load()
        except ValueError as e:
            logger.error("Ignoring invalid config change", error=str(e))
            return
        if self._callback:
            self._callback(new_config)

    async def stop_watching(self) -> None:
        """Stop watching for file changes."""
        if not self._observer:
            return
        observer = self._observer
        self._observer = None
        loop = asyncio.get_running_loop()
        try:
            await asyncio.wait_for(loop.run_in_executor(None, observer.stop), 2.0)
            await asyncio.wait_for(
                loop.run_in_executor(None, lambda: observer.join(timeout=1.0)), 2.0
            )
            logger.info("Stopped watching config file")
        except (TimeoutError, asyncio.CancelledError) as e:
            logger.debug(f"Observer stop interrupted: {type(e).__name__}")
            observer.stop()
