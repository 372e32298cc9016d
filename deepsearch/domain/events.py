"""Stream event types and factory for the chat SSE protocol.

Content events carry text deltas and tool invocation transitions; control
events (`new_chat_created`, `error`, `done`) carry metadata about the stream
itself.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, ClassVar, Literal


class EventType(str, Enum):
    NEW_CHAT_CREATED = "new_chat_created"
    STEP_START = "step_start"
    TEXT = "text"
    TOOL_INVOCATION = "tool_invocation"
    STEP_FINISH = "step_finish"
    ERROR = "error"
    DONE = "done"


class FinishReason(str, Enum):
    STOP = "stop"
    LENGTH = "length"
    CONTENT_FILTER = "content_filter"
    TOOL_CALLS = "tool_calls"
    UNKNOWN = "unknown"


@dataclass
class BaseEvent:
    chat_id: str | None = None

    control: ClassVar[bool] = False

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        for k, v in list(data.items()):
            if isinstance(v, Enum):
                data[k] = v.value
        return {k: v for k, v in data.items() if v is not None}

    def to_sse(self) -> dict[str, str]:
        return {"data": json.dumps(self.to_dict(), ensure_ascii=False)}


@dataclass
class NewChatCreatedEvent(BaseEvent):
    type: Literal[EventType.NEW_CHAT_CREATED] = EventType.NEW_CHAT_CREATED

    control: ClassVar[bool] = True


@dataclass
class StepStartEvent(BaseEvent):
    type: Literal[EventType.STEP_START] = EventType.STEP_START
    step: int = 0


@dataclass
class TextEvent(BaseEvent):
    type: Literal[EventType.TEXT] = EventType.TEXT
    content: str = ""


@dataclass
class ToolInvocationEvent(BaseEvent):
    type: Literal[EventType.TOOL_INVOCATION] = EventType.TOOL_INVOCATION
    # Snapshot of the invocation at emission time
    tool_invocation: dict[str, Any] = field(default_factory=dict)


@dataclass
class StepFinishEvent(BaseEvent):
    type: Literal[EventType.STEP_FINISH] = EventType.STEP_FINISH
    step: int = 0
    finish_reason: FinishReason = FinishReason.UNKNOWN


@dataclass
class ErrorEvent(BaseEvent):
    type: Literal[EventType.ERROR] = EventType.ERROR
    code: str = "generation_failed"
    error: str = ""

    control: ClassVar[bool] = True


@dataclass
class DoneEvent(BaseEvent):
    type: Literal[EventType.DONE] = EventType.DONE
    finish_reason: FinishReason = FinishReason.STOP
    done: bool = True

    control: ClassVar[bool] = True


StreamEvent = (
    NewChatCreatedEvent
    | StepStartEvent
    | TextEvent
    | ToolInvocationEvent
    | StepFinishEvent
    | ErrorEvent
    | DoneEvent
)

GENERIC_ERROR_MESSAGE = "Oops, an error occurred!"
PERSISTENCE_ERROR_MESSAGE = "Failed to save chat."

_EVENT_CLASSES: dict[str, type[BaseEvent]] = {
    EventType.NEW_CHAT_CREATED.value: NewChatCreatedEvent,
    EventType.STEP_START.value: StepStartEvent,
    EventType.TEXT.value: TextEvent,
    EventType.TOOL_INVOCATION.value: ToolInvocationEvent,
    EventType.STEP_FINISH.value: StepFinishEvent,
    EventType.ERROR.value: ErrorEvent,
    EventType.DONE.value: DoneEvent,
}


class EventFactory:
    @staticmethod
    def new_chat_created(chat_id: str) -> NewChatCreatedEvent:
        return NewChatCreatedEvent(chat_id=chat_id)

    @staticmethod
    def step_start(step: int, chat_id: str | None = None) -> StepStartEvent:
        return StepStartEvent(step=step, chat_id=chat_id)

    @staticmethod
    def text(content: str, chat_id: str | None = None) -> TextEvent:
        return TextEvent(content=content, chat_id=chat_id)

    @staticmethod
    def tool_invocation(
        tool_invocation: dict[str, Any], chat_id: str | None = None
    ) -> ToolInvocationEvent:
        return ToolInvocationEvent(tool_invocation=tool_invocation, chat_id=chat_id)

    @staticmethod
    def step_finish(
        step: int, finish_reason: FinishReason, chat_id: str | None = None
    ) -> StepFinishEvent:
        return StepFinishEvent(step=step, finish_reason=finish_reason, chat_id=chat_id)

    @staticmethod
    def error(
        code: str = "generation_failed",
        message: str = GENERIC_ERROR_MESSAGE,
        chat_id: str | None = None,
    ) -> ErrorEvent:
        return ErrorEvent(code=code, error=message, chat_id=chat_id)

    @staticmethod
    def persistence_error(chat_id: str | None = None) -> ErrorEvent:
        return ErrorEvent(
            code="persistence_failed", error=PERSISTENCE_ERROR_MESSAGE, chat_id=chat_id
        )

    @staticmethod
    def done(
        finish_reason: FinishReason = FinishReason.STOP, chat_id: str | None = None
    ) -> DoneEvent:
        return DoneEvent(finish_reason=finish_reason, chat_id=chat_id)

    @staticmethod
    def from_dict(data: dict[str, Any]) -> BaseEvent:
        """Rebuild a typed event from its wire form (used by clients and tests)."""
        payload = dict(data)
        event_cls = _EVENT_CLASSES.get(payload.get("type", ""))
        if event_cls is None:
            raise ValueError(f"Unknown event type: {payload.get('type')!r}")
        payload.pop("type")
        if "finish_reason" in payload:
            payload["finish_reason"] = FinishReason(payload["finish_reason"])
        return event_cls(**payload)
