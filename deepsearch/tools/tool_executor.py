from __future__ import annotations

import asyncio
import json
import uuid
from collections.abc import AsyncIterator
from contextlib import aclosing
from dataclasses import dataclass, field
from typing import Any

from langchain_core.messages import AIMessage, BaseMessage, ToolMessage

from deepsearch.config.constants import DEFAULT_MAX_STEPS
from deepsearch.core.errors import GenerationError
from deepsearch.domain.events import BaseEvent, EventFactory, FinishReason
from deepsearch.domain.messages import (
    Message,
    Part,
    TextPart,
    ToolInvocation,
    ToolInvocationPart,
    ToolInvocationState,
)
from deepsearch.llm.messages import tool_result_content
from deepsearch.llm.provider import LLMProvider
from deepsearch.utils.logger import agent_logger

from .core.types import ToolError
from .registry import ToolRegistry

_FINISH_REASONS = {
    "stop": FinishReason.STOP,
    "length": FinishReason.LENGTH,
    "content_filter": FinishReason.CONTENT_FILTER,
    "tool_calls": FinishReason.TOOL_CALLS,
    "function_call": FinishReason.TOOL_CALLS,
}


@dataclass
class Transcript:
    """The assistant side of one turn, built up as the loop runs."""

    parts: list[Part] = field(default_factory=list)
    finish_reason: FinishReason = FinishReason.UNKNOWN
    steps: int = 0

    def append_text(self, delta: str) -> None:
        if self.parts and isinstance(self.parts[-1], TextPart):
            self.parts[-1].text += delta
        else:
            self.parts.append(TextPart(text=delta))

    def add_invocation(self, invocation: ToolInvocation) -> None:
        self.parts.append(ToolInvocationPart(tool_invocation=invocation))

    @property
    def text(self) -> str:
        return "".join(p.text for p in self.parts if isinstance(p, TextPart))

    def to_message(self) -> Message:
        return Message(role="assistant", parts=list(self.parts))


@dataclass
class _PendingCall:
    index: int
    id: str = ""
    name: str = ""
    args: str = ""
    invocation: ToolInvocation | None = None


def _chunk_text(content: Any) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        # Newer models stream content as a list of typed blocks
        return "".join(
            item if isinstance(item, str) else item.get("text", "")
            for item in content
            if isinstance(item, str | dict)
        )
    return ""


def _snapshot(invocation: ToolInvocation) -> dict[str, Any]:
    return invocation.model_dump(mode="json", exclude_none=True)


class ToolExecutor:
    """Bridge between LLM tool calls and concrete tool execution.

    Runs the bounded step loop for one turn: stream a step, surface text and
    tool invocation transitions as events, execute the step's tool calls
    concurrently, feed results back and go again until the model stops
    asking for tools or the step cap is hit.
    """

    def __init__(
        self,
        tool_registry: ToolRegistry,
        llm_provider: LLMProvider,
        max_steps: int = DEFAULT_MAX_STEPS,
    ) -> None:
        self.tool_registry = tool_registry
        self.llm_provider = llm_provider
        self.max_steps = max_steps

    def _bind_tools(self):
        return self.llm_provider.bind_tools(list(self.tool_registry.list_tools()))

    async def run(
        self, conversation: list[BaseMessage], transcript: Transcript
    ) -> AsyncIterator[BaseEvent]:
        """Drive the loop, mutating `conversation` and `transcript` in place.

        Raises GenerationError when a model step fails. Tool failures never
        raise; they resolve the invocation with a `tool_error` result.
        """
        bound_llm = self._bind_tools()

        for step in range(1, self.max_steps + 1):
            transcript.steps = step
            yield EventFactory.step_start(step)

            content = ""
            calls: dict[int, _PendingCall] = {}
            last_index = 0
            raw_finish: str | None = None

            agent_logger.info("LLM streaming", step=step, messages=len(conversation))
            try:
                async for chunk in bound_llm.astream(conversation):
                    text = _chunk_text(getattr(chunk, "content", None))
                    if text:
                        content += text
                        transcript.append_text(text)
                        yield EventFactory.text(text)

                    for tc_chunk in getattr(chunk, "tool_call_chunks", None) or []:
                        index = tc_chunk.get("index")
                        if index is None:
                            index = last_index
                        last_index = index
                        call = calls.get(index)
                        if call is None:
                            call = calls[index] = _PendingCall(index=index)
                        if tc_chunk.get("id") and not call.id:
                            call.id = tc_chunk["id"]
                        if tc_chunk.get("name"):
                            call.name += tc_chunk["name"]
                        if tc_chunk.get("args"):
                            call.args += tc_chunk["args"]

                        # Surface the call as soon as it is addressable
                        if call.invocation is None and call.id and call.name:
                            call.invocation = ToolInvocation(
                                tool_call_id=call.id, tool_name=call.name
                            )
                            transcript.add_invocation(call.invocation)
                            yield EventFactory.tool_invocation(
                                _snapshot(call.invocation)
                            )

                    metadata = getattr(chunk, "response_metadata", None) or {}
                    raw_finish = metadata.get("finish_reason") or raw_finish
            except asyncio.CancelledError:
                raise
            except Exception as e:
                raise GenerationError(f"Model step {step} failed") from e

            pending = [c for c in sorted(calls.values(), key=lambda c: c.index) if c.name]
            if not pending:
                finish = (
                    _FINISH_REASONS.get(raw_finish, FinishReason.UNKNOWN)
                    if raw_finish
                    else FinishReason.STOP
                )
                if finish is FinishReason.TOOL_CALLS:
                    finish = FinishReason.STOP
                transcript.finish_reason = finish
                yield EventFactory.step_finish(step, finish)
                agent_logger.info("Turn finished", steps=step, finish_reason=finish.value)
                return

            # Calls that never got an id from the provider still need one
            issued: list[tuple[_PendingCall, ToolInvocation]] = []
            for call in pending:
                if call.invocation is None:
                    call.id = call.id or f"call_{uuid.uuid4().hex[:12]}"
                    call.invocation = ToolInvocation(
                        tool_call_id=call.id, tool_name=call.name
                    )
                    transcript.add_invocation(call.invocation)
                    yield EventFactory.tool_invocation(_snapshot(call.invocation))
                issued.append((call, call.invocation))

            runnable: list[tuple[_PendingCall, ToolInvocation, dict[str, Any]]] = []
            for call, invocation in issued:
                try:
                    args = json.loads(call.args or "{}")
                    if not isinstance(args, dict):
                        raise ValueError("tool arguments must be a JSON object")
                except ValueError as e:
                    agent_logger.warning(
                        "Malformed tool arguments", tool=call.name, error=str(e)
                    )
                    invocation.advance(ToolInvocationState.CALL)
                    yield EventFactory.tool_invocation(_snapshot(invocation))
                    invocation.advance(
                        ToolInvocationState.RESULT,
                        result=ToolError(
                            name=call.name,
                            code="args_validation",
                            error="Arguments were not valid JSON",
                            error_type=type(e).__name__,
                        ).model_dump(exclude_none=True),
                    )
                    yield EventFactory.tool_invocation(_snapshot(invocation))
                    continue
                invocation.advance(ToolInvocationState.CALL, args=args)
                yield EventFactory.tool_invocation(_snapshot(invocation))
                runnable.append((call, invocation, args))

            conversation.append(
                AIMessage(
                    content=content,
                    tool_calls=[
                        {"name": call.name, "args": invocation.args, "id": call.id}
                        for call, invocation in issued
                    ],
                )
            )

            async with aclosing(self._execute(runnable)) as results:
                async for event in results:
                    yield event

            for call, invocation in issued:
                conversation.append(
                    ToolMessage(
                        content=tool_result_content(invocation.result),
                        tool_call_id=call.id,
                    )
                )

            transcript.finish_reason = FinishReason.TOOL_CALLS
            yield EventFactory.step_finish(step, FinishReason.TOOL_CALLS)

        agent_logger.warning(
            "Step cap reached with tool calls still requested",
            max_steps=self.max_steps,
        )

    async def _execute(
        self, runnable: list[tuple[_PendingCall, ToolInvocation, dict[str, Any]]]
    ) -> AsyncIterator[BaseEvent]:
        """Run calls concurrently; resolve each invocation as its task completes.

        Results are applied only here, on the consumer side of the tasks, so
        once this generator is cancelled or closed no result can land.
        """
        tasks: dict[asyncio.Task, tuple[int, ToolInvocation]] = {}
        waiting: set[asyncio.Task] = set()
        try:
            for call, invocation, args in runnable:
                task = asyncio.create_task(
                    self.tool_registry.run_tool(call.name, **args),
                    name=f"tool:{call.name}:{call.id}",
                )
                tasks[task] = (call.index, invocation)
                waiting.add(task)

            while waiting:
                done, waiting = await asyncio.wait(
                    waiting, return_when=asyncio.FIRST_COMPLETED
                )
                for task in sorted(done, key=lambda t: tasks[t][0]):
                    _, invocation = tasks[task]
                    invocation.advance(
                        ToolInvocationState.RESULT, result=task.result()
                    )
                    yield EventFactory.tool_invocation(_snapshot(invocation))
        finally:
            if waiting:
                agent_logger.info("Cancelling tool calls", count=len(waiting))
                for task in waiting:
                    task.cancel()
                await asyncio.gather(*waiting, return_exceptions=True)
