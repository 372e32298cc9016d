from __future__ import annotations

from pathlib import Path

from fastapi import Depends, HTTPException, Request

from deepsearch.agents.orchestrator import AgentOrchestrator
from deepsearch.auth.session_guard import (
    BearerTokenSessionGuard,
    Identity,
    SessionGuard,
)
from deepsearch.config import settings
from deepsearch.llm.openai_provider import OpenAIProvider
from deepsearch.search import SearchToolAdapter, build_search_provider
from deepsearch.storage.conversations import ConversationStore
from deepsearch.tools.build_registry import build_registry
from deepsearch.utils.logger import api_logger

_store: ConversationStore | None = None
_orchestrator: AgentOrchestrator | None = None
_session_guard: SessionGuard | None = None


def get_store() -> ConversationStore:
    """Singleton store bound to the configured SQLite file (relative to workdir)."""
    global _store
    if _store is None:
        _store = ConversationStore(Path(settings.database_path))
    return _store


def build_orchestrator(store: ConversationStore) -> AgentOrchestrator:
    config = settings.agent_config()
    adapter = SearchToolAdapter(
        build_search_provider(settings), result_count=config.search_result_count
    )
    return AgentOrchestrator(
        store=store,
        llm_provider=OpenAIProvider(model=config.model),
        tool_registry=build_registry(adapter),
        config=config,
    )


def get_orchestrator(
    store: ConversationStore = Depends(get_store),  # noqa: B008
) -> AgentOrchestrator:
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = build_orchestrator(store)
        api_logger.info("Orchestrator built", model=_orchestrator.config.model)
    return _orchestrator


def invalidate_orchestrator() -> None:
    """Drop the cached orchestrator; turns already running keep their own."""
    global _orchestrator
    _orchestrator = None


def get_session_guard(
    store: ConversationStore = Depends(get_store),  # noqa: B008
) -> SessionGuard:
    global _session_guard
    if _session_guard is None:
        _session_guard = BearerTokenSessionGuard(store, lambda: settings.auth_tokens)
    return _session_guard


async def get_identity(
    request: Request,
    guard: SessionGuard = Depends(get_session_guard),  # noqa: B008
) -> Identity:
    identity = await guard.authenticate(request)
    if identity is None:
        raise HTTPException(
            status_code=401,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return identity


def dispose_store() -> None:
    """Dispose the shared store (called on app shutdown)."""
    global _store, _session_guard, _orchestrator
    try:
        if _store is not None:
            _store.dispose()
    finally:
        _store = None
        _session_guard = None
        _orchestrator = None
