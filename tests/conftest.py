"""Shared pytest fixtures for all tests."""

from __future__ import annotations

from pathlib import Path

import pytest
from fakes import FakeSearchProvider

from deepsearch.search import SearchToolAdapter
from deepsearch.storage.conversations import ConversationStore
from deepsearch.tools.build_registry import build_registry


@pytest.fixture
def store(tmp_path: Path):
    """Store on a fresh SQLite file with two registered users."""
    with ConversationStore(tmp_path / "chats.sqlite") as s:
        s.ensure_user("user-a", "Alice")
        s.ensure_user("user-b", "Bob")
        yield s


@pytest.fixture
def search_provider() -> FakeSearchProvider:
    return FakeSearchProvider()


@pytest.fixture
def tool_registry(search_provider: FakeSearchProvider):
    return build_registry(SearchToolAdapter(search_provider, result_count=10))
