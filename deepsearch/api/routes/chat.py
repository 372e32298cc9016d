from __future__ import annotations

import time
from collections.abc import AsyncIterator

from fastapi import APIRouter, Depends, HTTPException, Request

from deepsearch.agents.orchestrator import AgentOrchestrator
from deepsearch.api.deps import get_identity, get_orchestrator
from deepsearch.api.schemas import ChatRequest, ChatResponse
from deepsearch.api.sse import stream_response
from deepsearch.auth.session_guard import Identity
from deepsearch.core.errors import (
    AuthorizationError,
    DeepSearchError,
    PersistenceError,
)
from deepsearch.domain.events import (
    GENERIC_ERROR_MESSAGE,
    PERSISTENCE_ERROR_MESSAGE,
    BaseEvent,
)
from deepsearch.utils.logger import api_logger, request_log

router = APIRouter()


async def _replay_first(
    first: BaseEvent, rest: AsyncIterator[BaseEvent]
) -> AsyncIterator[BaseEvent]:
    yield first
    async for event in rest:
        yield event


@router.post("/api/chat")
async def chat(
    request: ChatRequest,
    raw_request: Request,
    identity: Identity = Depends(get_identity),  # noqa: B008
    orchestrator: AgentOrchestrator = Depends(get_orchestrator),  # noqa: B008
):
    start_time = time.time()
    client_host = raw_request.client.host if raw_request.client else "unknown"

    api_logger.info(
        "Chat request received",
        client=client_host,
        user_id=identity.id,
        chat_id=request.chat_id,
        streaming=request.stream,
        message_count=len(request.messages),
    )

    try:
        if request.stream:
            events = orchestrator.stream_turn(
                identity.id, request.messages, request.chat_id
            )
            # Pull the first event here so ownership problems and a failed
            # initial snapshot become HTTP errors instead of stream events
            first = await anext(events)
            response = stream_response(_replay_first(first, events))

            duration_ms = (time.time() - start_time) * 1000
            request_log(
                api_logger, "POST", "/api/chat", 200, duration_ms, streaming=True
            )
            return response

        result = await orchestrator.run_turn(
            identity.id, request.messages, request.chat_id
        )
        duration_ms = (time.time() - start_time) * 1000
        request_log(
            api_logger,
            "POST",
            "/api/chat",
            200,
            duration_ms,
            streaming=False,
            response_length=len(result.text),
        )
        return ChatResponse(
            chat_id=result.chat_id,
            content=result.text,
            finish_reason=result.finish_reason.value,
            messages=result.messages,
        )

    except AuthorizationError as e:
        api_logger.warning(
            "Chat request rejected", user_id=identity.id, error_code=e.code
        )
        raise HTTPException(status_code=403, detail="Forbidden") from e
    except PersistenceError as e:
        api_logger.error("Chat persistence failed", exc_info=True, error=str(e))
        raise HTTPException(status_code=500, detail=PERSISTENCE_ERROR_MESSAGE) from e
    except DeepSearchError as e:
        api_logger.error("Chat request failed", exc_info=True, error_code=e.code)
        raise HTTPException(status_code=500, detail=GENERIC_ERROR_MESSAGE) from e
