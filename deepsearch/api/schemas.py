"""API request/response schemas."""

from __future__ import annotations

from pydantic import BaseModel, Field

from deepsearch.domain.messages import ChatSummary, Message


class ChatRequest(BaseModel):
    messages: list[Message] = Field(..., min_length=1)
    chat_id: str | None = None
    stream: bool = True


class ChatResponse(BaseModel):
    chat_id: str
    content: str
    finish_reason: str
    messages: list[Message]


class ChatListResponse(BaseModel):
    chats: list[ChatSummary]


class HealthResponse(BaseModel):
    status: str = "ok"
    service: str = "deepsearch"
    version: str
    config_valid: bool | None = None
    config_errors: list[str] | None = None
