"""Conversion from stored chat messages to LangChain messages.

Assistant messages are split at tool invocations: text before a run of
invocations becomes the `AIMessage` that declares them, followed by one
`ToolMessage` per result. Invocations that never resolved (an aborted turn)
are dropped, since a tool call without its result is rejected by the API.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from typing import assert_never

from langchain_core.messages import (
    AIMessage,
    BaseMessage,
    HumanMessage,
    SystemMessage,
    ToolMessage,
)

from deepsearch.domain.messages import (
    Message,
    TextPart,
    ToolInvocation,
    ToolInvocationPart,
    ToolInvocationState,
)


def tool_result_content(result: object) -> str:
    return json.dumps(result, ensure_ascii=False)


def _assistant_messages(message: Message) -> list[BaseMessage]:
    out: list[BaseMessage] = []
    text = ""
    calls: list[ToolInvocation] = []

    def flush_calls() -> None:
        nonlocal text
        out.append(
            AIMessage(
                content=text,
                tool_calls=[
                    {"name": c.tool_name, "args": c.args, "id": c.tool_call_id}
                    for c in calls
                ],
            )
        )
        out.extend(
            ToolMessage(
                content=tool_result_content(c.result), tool_call_id=c.tool_call_id
            )
            for c in calls
        )
        text = ""
        calls.clear()

    for part in message.parts:
        if isinstance(part, TextPart):
            if calls:
                flush_calls()
            text += part.text
        elif isinstance(part, ToolInvocationPart):
            if part.tool_invocation.state is ToolInvocationState.RESULT:
                calls.append(part.tool_invocation)
        else:
            assert_never(part)

    if calls:
        flush_calls()
    if text:
        out.append(AIMessage(content=text))
    return out


def to_langchain_messages(
    messages: Sequence[Message], system_prompt: str | None = None
) -> list[BaseMessage]:
    converted: list[BaseMessage] = []
    if system_prompt:
        converted.append(SystemMessage(content=system_prompt))
    for message in messages:
        if message.role == "user":
            converted.append(HumanMessage(content=message.text))
        elif message.role == "system":
            converted.append(SystemMessage(content=message.text))
        elif message.role == "assistant":
            converted.extend(_assistant_messages(message))
        else:
            raise ValueError(f"Unknown role: {message.role}")
    return converted
