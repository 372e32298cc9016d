from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends, HTTPException

from deepsearch.api.deps import get_identity, get_store
from deepsearch.api.schemas import ChatListResponse
from deepsearch.auth.session_guard import Identity
from deepsearch.core.errors import PersistenceError
from deepsearch.domain.messages import Chat
from deepsearch.storage.conversations import ConversationStore
from deepsearch.utils.logger import api_logger

router = APIRouter()


@router.get("/api/chats", response_model=ChatListResponse)
async def list_chats(
    identity: Identity = Depends(get_identity),  # noqa: B008
    store: ConversationStore = Depends(get_store),  # noqa: B008
):
    """Caller's chats, most recently updated first."""
    try:
        chats = await asyncio.to_thread(store.list, identity.id)
    except PersistenceError as e:
        api_logger.error("Failed to list chats", exc_info=True, user_id=identity.id)
        raise HTTPException(status_code=500, detail="Failed to list chats") from e
    return ChatListResponse(chats=chats)


@router.get("/api/chats/{chat_id}", response_model=Chat)
async def get_chat(
    chat_id: str,
    identity: Identity = Depends(get_identity),  # noqa: B008
    store: ConversationStore = Depends(get_store),  # noqa: B008
):
    try:
        chat = await asyncio.to_thread(store.get, identity.id, chat_id)
    except PersistenceError as e:
        api_logger.error("Failed to load chat", exc_info=True, chat_id=chat_id)
        raise HTTPException(status_code=500, detail="Failed to load chat") from e
    # Foreign chats look exactly like missing ones
    if chat is None:
        raise HTTPException(status_code=404, detail="Chat not found")
    return chat
