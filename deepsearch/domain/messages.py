"""Chat, Message and Part types.

`Part` is a closed discriminated union; every consumer matches on the concrete
classes and ends with `assert_never` so a new variant cannot slip through
unhandled.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, model_validator

from deepsearch.config.constants import DEFAULT_CHAT_TITLE, DEFAULT_TITLE_MAX_LENGTH
from deepsearch.core.errors import InvalidPartTransitionError

Role = Literal["user", "assistant", "system"]


class ToolInvocationState(str, Enum):
    PARTIAL_CALL = "partial-call"
    CALL = "call"
    RESULT = "result"

    @property
    def rank(self) -> int:
        return _STATE_ORDER.index(self)


_STATE_ORDER = [
    ToolInvocationState.PARTIAL_CALL,
    ToolInvocationState.CALL,
    ToolInvocationState.RESULT,
]


class ToolInvocation(BaseModel):
    tool_call_id: str
    tool_name: str
    args: dict[str, Any] = Field(default_factory=dict)
    state: ToolInvocationState = ToolInvocationState.PARTIAL_CALL
    result: Any | None = None

    @property
    def is_error(self) -> bool:
        return isinstance(self.result, dict) and self.result.get("type") == "tool_error"

    def advance(
        self,
        state: ToolInvocationState,
        *,
        args: dict[str, Any] | None = None,
        result: Any | None = None,
    ) -> None:
        """Move to `state`, never backwards and never after a result."""
        if self.state is ToolInvocationState.RESULT:
            raise InvalidPartTransitionError(
                f"Tool invocation {self.tool_call_id} already has a result"
            )
        if state.rank < self.state.rank:
            raise InvalidPartTransitionError(
                f"Tool invocation {self.tool_call_id} cannot move "
                f"from {self.state.value} to {state.value}"
            )
        if state is ToolInvocationState.RESULT and result is None:
            raise InvalidPartTransitionError(
                f"Tool invocation {self.tool_call_id} needs a result to resolve"
            )
        if args is not None:
            self.args = args
        if result is not None:
            self.result = result
        self.state = state


class TextPart(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ToolInvocationPart(BaseModel):
    type: Literal["tool-invocation"] = "tool-invocation"
    tool_invocation: ToolInvocation


Part = Annotated[TextPart | ToolInvocationPart, Field(discriminator="type")]


class Message(BaseModel):
    id: str | None = None
    role: Role
    content: str = ""
    parts: list[Part] = Field(default_factory=list)

    @model_validator(mode="after")
    def _sync_content_and_parts(self) -> Message:
        # Plain-content messages get a single text part; part-only messages
        # get their text mirrored into content.
        if not self.parts and self.content:
            self.parts = [TextPart(text=self.content)]
        elif self.parts and not self.content:
            self.content = self.text
        return self

    @property
    def text(self) -> str:
        return "".join(part.text for part in self.parts if isinstance(part, TextPart))

    @property
    def tool_invocations(self) -> list[ToolInvocation]:
        return [
            part.tool_invocation
            for part in self.parts
            if isinstance(part, ToolInvocationPart)
        ]


class ChatSummary(BaseModel):
    id: str
    title: str
    created_at: datetime
    updated_at: datetime


class Chat(ChatSummary):
    messages: list[Message] = Field(default_factory=list)


class UpsertResult(BaseModel):
    chat_id: str
    title: str


def derive_title(
    messages: list[Message], max_length: int = DEFAULT_TITLE_MAX_LENGTH
) -> str:
    """Title from the first user message, truncated; "New Chat" when empty."""
    for message in messages:
        if message.role == "user":
            title = message.text.strip()[:max_length].strip()
            return title or DEFAULT_CHAT_TITLE
    return DEFAULT_CHAT_TITLE
