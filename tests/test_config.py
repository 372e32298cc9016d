"""Tests for config merging, validation, settings lookup and the file provider."""

import json

import pytest

from deepsearch.config import (
    ConfigManager,
    LocalFileConfigProvider,
    Settings,
    get_default_config,
)
from deepsearch.config.schema import deep_merge, validate_config


def test_deep_merge_nested_and_none_preserves():
    base = {"agent": {"max_steps": 10, "title_max_length": 100}, "model": "a"}
    merged = deep_merge(base, {"agent": {"max_steps": 3}, "model": None})

    assert merged == {"agent": {"max_steps": 3, "title_max_length": 100}, "model": "a"}
    assert base["agent"]["max_steps"] == 10


def test_defaults_are_valid():
    assert validate_config(get_default_config())


@pytest.mark.parametrize(
    "config",
    [
        {"agent": {"max_steps": 0}},
        {"agent": {"search_result_count": "ten"}},
        {"search": {"provider": "bing"}},
        {"auth": {"tokens": {"abc": {"name": "no id"}}}},
        {"auth": {"tokens": []}},
    ],
)
def test_validate_config_rejects(config):
    with pytest.raises(ValueError):
        validate_config(config)


class StaticManager:
    def __init__(self, config):
        self.config = config

    def get_all(self):
        return self.config


def test_settings_prefers_config_then_env_then_default(monkeypatch):
    monkeypatch.setenv("DEEPSEARCH_MODEL", "env-model")
    monkeypatch.delenv("DEEPSEARCH_MAX_STEPS", raising=False)

    configured = Settings(StaticManager({"model": "cfg-model", "agent": {"max_steps": 4}}))
    assert configured.model == "cfg-model"
    assert configured.max_steps == 4

    from_env = Settings(StaticManager({"model": None}))
    assert from_env.model == "env-model"
    assert from_env.max_steps == 10


def test_settings_env_values_are_coerced(monkeypatch):
    monkeypatch.setenv("SERVER_PORT", "9001")
    monkeypatch.setenv("LOG_COLORS", "false")
    s = Settings()
    assert s.server_port == 9001
    assert s.log_colors is False


def test_agent_config_from_settings():
    s = Settings(
        StaticManager(
            {"model": "m", "agent": {"max_steps": 2, "search_result_count": 5}}
        )
    )
    config = s.agent_config()
    assert (config.model, config.max_steps, config.search_result_count) == ("m", 2, 5)


def test_validation_status_reports_missing_key(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    valid, errors = Settings(StaticManager({"model": "m"})).validation_status()
    assert not valid
    assert "OpenAI API key" in errors[0]


@pytest.mark.asyncio
async def test_file_provider_creates_defaults(tmp_path):
    path = tmp_path / "config.json"
    provider = LocalFileConfigProvider(path, defaults=get_default_config())

    config = await provider.load()

    assert path.exists()
    assert config["agent"]["max_steps"] == 10


@pytest.mark.asyncio
async def test_file_provider_keeps_last_valid_on_bad_json(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"model": "good"}), encoding="utf-8")
    provider = LocalFileConfigProvider(path, defaults=get_default_config())
    assert (await provider.load())["model"] == "good"

    path.write_text("{not json", encoding="utf-8")
    assert (await provider.load())["model"] == "good"


@pytest.mark.asyncio
async def test_file_change_reaches_callbacks(tmp_path):
    path = tmp_path / "config.json"
    provider = LocalFileConfigProvider(path, defaults=get_default_config())
    manager = ConfigManager(provider)
    await manager.initialize()

    def broken(config):
        raise RuntimeError("listener bug")

    seen = []
    manager.register_change_callback(broken)
    manager.register_change_callback(seen.append)
    provider._callback = manager._on_config_changed

    path.write_text(json.dumps({"agent": {"max_steps": 5}}), encoding="utf-8")
    await provider._handle_file_change()

    assert manager.get_all()["agent"]["max_steps"] == 5
    assert len(seen) == 1 and seen[0]["agent"]["max_steps"] == 5

    # Unchanged content does not notify again
    await provider._handle_file_change()
    assert len(seen) == 1


@pytest.mark.asyncio
async def test_invalid_file_change_is_ignored(tmp_path):
    path = tmp_path / "config.json"
    provider = LocalFileConfigProvider(path, defaults=get_default_config())
    manager = ConfigManager(provider)
    await manager.initialize()
    seen = []
    manager.register_change_callback(seen.append)
    provider._callback = manager._on_config_changed

    path.write_text(json.dumps({"search": {"provider": "bing"}}), encoding="utf-8")
    await provider._handle_file_change()

    assert seen == []
    assert manager.get_all()["search"]["provider"] is None
