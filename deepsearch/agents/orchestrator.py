"""One chat turn: resolve the chat, run the step loop, persist the snapshot.

Only two snapshots of a turn are durable: the initial one written before
generation starts for a brand new chat, and the final one written after the
loop finishes. Intermediate steps are not checkpointed, so a crash or a
disconnect mid-turn leaves the chat at its initial snapshot.
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import AsyncIterator, Sequence
from contextlib import aclosing
from dataclasses import dataclass, field

from deepsearch.config.agent import AgentConfig
from deepsearch.core.errors import (
    DeepSearchError,
    GenerationError,
    PersistenceError,
)
from deepsearch.domain.events import (
    BaseEvent,
    ErrorEvent,
    EventFactory,
    FinishReason,
)
from deepsearch.domain.messages import Message, derive_title
from deepsearch.llm.messages import to_langchain_messages
from deepsearch.llm.provider import LLMProvider
from deepsearch.storage.conversations import ConversationStore
from deepsearch.tools.registry import ToolRegistry
from deepsearch.tools.tool_executor import ToolExecutor, Transcript
from deepsearch.utils.logger import agent_logger


@dataclass
class TurnResult:
    chat_id: str
    text: str = ""
    messages: list[Message] = field(default_factory=list)
    finish_reason: FinishReason = FinishReason.UNKNOWN


class AgentOrchestrator:
    """Drives turns for any number of independent requests.

    Holds no per-turn state; everything a turn mutates lives in locals of
    `stream_turn`, so concurrent turns never share anything but the store.
    """

    def __init__(
        self,
        store: ConversationStore,
        llm_provider: LLMProvider,
        tool_registry: ToolRegistry,
        config: AgentConfig | None = None,
    ) -> None:
        self.store = store
        self.config = config or AgentConfig()
        self.tool_executor = ToolExecutor(
            tool_registry, llm_provider, max_steps=self.config.max_steps
        )

    def stream_turn(
        self,
        owner_id: str,
        messages: Sequence[Message],
        chat_id: str | None = None,
    ) -> AsyncIterator[BaseEvent]:
        """Events for one turn, ending with exactly one `done` or `error`.

        Nothing runs until the first event is requested. Authorization errors
        for a supplied `chat_id`, and any failure of the initial snapshot for
        a new chat, are raised from that first request instead of being
        turned into events, so callers can reject the request up front.
        """
        return self._turn(owner_id, list(messages), chat_id, TurnResult(chat_id or ""))

    async def run_turn(
        self,
        owner_id: str,
        messages: Sequence[Message],
        chat_id: str | None = None,
    ) -> TurnResult:
        """Non-streaming turn; raises GenerationError or PersistenceError."""
        outcome = TurnResult(chat_id or "")
        async for event in self._turn(owner_id, list(messages), chat_id, outcome):
            if isinstance(event, ErrorEvent):
                if event.code == PersistenceError.code:
                    raise PersistenceError(f"Failed to save chat {outcome.chat_id}")
                raise GenerationError(f"Turn failed for chat {outcome.chat_id}")
        return outcome

    async def _turn(
        self,
        owner_id: str,
        history: list[Message],
        chat_id: str | None,
        outcome: TurnResult,
    ) -> AsyncIterator[BaseEvent]:
        title = derive_title(history, self.config.title_max_length)

        # A blank id from the client means "start a new chat"
        if not chat_id:
            chat_id = str(uuid.uuid4())
            outcome.chat_id = chat_id
            await asyncio.to_thread(
                self.store.upsert, owner_id, chat_id, title, history
            )
            agent_logger.info("Chat created", chat_id=chat_id, title=title)
            yield EventFactory.new_chat_created(chat_id)
        else:
            exists = await asyncio.to_thread(self.store.check_access, owner_id, chat_id)
            agent_logger.info("Continuing chat", chat_id=chat_id, exists=exists)

        transcript = Transcript()
        conversation = to_langchain_messages(history, self.config.system_prompt)
        try:
            async with aclosing(
                self.tool_executor.run(conversation, transcript)
            ) as events:
                async for event in events:
                    event.chat_id = chat_id
                    yield event
        except asyncio.CancelledError:
            agent_logger.info(
                "Turn cancelled", chat_id=chat_id, steps=transcript.steps
            )
            raise
        except Exception as e:
            agent_logger.error(
                "Turn failed",
                exc_info=True,
                chat_id=chat_id,
                steps=transcript.steps,
                error=str(e),
                error_type=type(e).__name__,
            )
            yield EventFactory.error(chat_id=chat_id)
            return

        final = history + [transcript.to_message()] if transcript.parts else history
        outcome.text = transcript.text
        outcome.messages = final
        outcome.finish_reason = transcript.finish_reason

        try:
            await asyncio.to_thread(self.store.upsert, owner_id, chat_id, title, final)
        except DeepSearchError as e:
            agent_logger.error(
                "Final snapshot not saved",
                exc_info=True,
                chat_id=chat_id,
                error_code=e.code,
            )
            yield EventFactory.persistence_error(chat_id=chat_id)
            return

        yield EventFactory.done(transcript.finish_reason, chat_id=chat_id)
