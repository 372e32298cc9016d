"""End-to-end turn tests: orchestrator + executor + registry + store."""

import asyncio
import re

import pytest
from fakes import (
    FakeSearchProvider,
    make_results,
    scripted_provider,
    text_chunk,
    tool_chunk,
)

from deepsearch.agents.orchestrator import AgentOrchestrator
from deepsearch.config.agent import AgentConfig
from deepsearch.core.errors import (
    ChatOwnershipError,
    GenerationError,
    PersistenceError,
    UnknownOwnerError,
)
from deepsearch.domain.events import (
    GENERIC_ERROR_MESSAGE,
    EventType,
    FinishReason,
)
from deepsearch.domain.messages import Message
from deepsearch.search import SearchToolAdapter
from deepsearch.storage.conversations import ConversationStore
from deepsearch.tools.build_registry import build_registry


def user(text: str) -> Message:
    return Message(role="user", content=text)


def make_orchestrator(store, provider, tool_registry, **config):
    return AgentOrchestrator(
        store=store,
        llm_provider=provider,
        tool_registry=tool_registry,
        config=AgentConfig(**config),
    )


async def collect(events):
    return [event async for event in events]


def search_step(query: str, call_id: str = "call_1"):
    return [tool_chunk("searchWeb", f'{{"query": "{query}"}}', call_id)]


@pytest.mark.asyncio
async def test_new_chat_created_is_first_and_only_once(store, tool_registry):
    provider = scripted_provider([text_chunk("Hi!", "stop")])
    orchestrator = make_orchestrator(store, provider, tool_registry)

    events = await collect(orchestrator.stream_turn("user-a", []))

    types = [e.type for e in events]
    assert types[0] is EventType.NEW_CHAT_CREATED
    assert types.count(EventType.NEW_CHAT_CREATED) == 1
    assert types[-1] is EventType.DONE

    chat_id = events[0].chat_id
    assert all(e.chat_id == chat_id for e in events)
    chat = store.get("user-a", chat_id)
    assert chat.title == "New Chat"
    assert [m.role for m in chat.messages] == ["assistant"]


@pytest.mark.asyncio
async def test_search_turn_streams_and_persists(store, search_provider):
    search_provider.results = make_results(15, prefix="Paris")
    registry = build_registry(SearchToolAdapter(search_provider, result_count=10))
    provider = scripted_provider(
        search_step("weather in Paris"),
        [
            text_chunk("It is sunny, see "),
            text_chunk("[Paris 0](https://example.com/paris/0)."),
            text_chunk("", "stop"),
        ],
    )
    orchestrator = make_orchestrator(store, provider, registry)

    events = await collect(
        orchestrator.stream_turn("user-a", [user("What's the weather in Paris?")])
    )

    snaps = [e.tool_invocation for e in events if e.type is EventType.TOOL_INVOCATION]
    assert snaps[0]["state"] == "partial-call"
    assert snaps[-1]["state"] == "result"
    results = snaps[-1]["result"]["results"]
    assert 0 < len(results) <= 10

    text = "".join(e.content for e in events if e.type is EventType.TEXT)
    links = re.findall(r"\[[^\]]+\]\(([^)]+)\)", text)
    assert links and set(links) <= {r["link"] for r in results}

    assert events[-1].type is EventType.DONE
    assert events[-1].finish_reason is FinishReason.STOP

    chat = store.get("user-a", events[0].chat_id)
    assert chat.title == "What's the weather in Paris?"
    assert [m.role for m in chat.messages] == ["user", "assistant"]
    assistant = chat.messages[1]
    assert assistant.tool_invocations[0].state.value == "result"
    assert assistant.text == text


@pytest.mark.asyncio
async def test_search_failure_still_completes_turn(store):
    search_provider = FakeSearchProvider(error=ConnectionError("dns failure"))
    registry = build_registry(SearchToolAdapter(search_provider))
    provider = scripted_provider(
        search_step("paris"),
        [text_chunk("I could not search right now.", "stop")],
    )
    orchestrator = make_orchestrator(store, provider, registry)

    events = await collect(orchestrator.stream_turn("user-a", [user("paris")]))

    last_snap = [
        e.tool_invocation for e in events if e.type is EventType.TOOL_INVOCATION
    ][-1]
    assert last_snap["result"]["type"] == "tool_error"
    assert "dns failure" not in last_snap["result"]["error"]
    assert events[-1].type is EventType.DONE


@pytest.mark.asyncio
async def test_step_cap_persists_last_snapshot(store, tool_registry):
    provider = scripted_provider(
        *[search_step(f"q{i}", f"call_{i}") for i in range(5)]
    )
    orchestrator = make_orchestrator(store, provider, tool_registry, max_steps=3)

    events = await collect(orchestrator.stream_turn("user-a", [user("loop")]))

    assert provider.llm.astream.call_count == 3
    done = events[-1]
    assert done.type is EventType.DONE
    assert done.finish_reason is FinishReason.TOOL_CALLS

    chat = store.get("user-a", events[0].chat_id)
    assert len(chat.messages[-1].tool_invocations) == 3


@pytest.mark.asyncio
async def test_generation_failure_emits_generic_error(store, tool_registry):
    provider = scripted_provider(RuntimeError("api key sk-123 invalid"))
    orchestrator = make_orchestrator(store, provider, tool_registry)

    events = await collect(orchestrator.stream_turn("user-a", [user("hello")]))

    types = [e.type for e in events]
    assert EventType.DONE not in types
    error = events[-1]
    assert error.type is EventType.ERROR
    assert error.error == GENERIC_ERROR_MESSAGE
    assert "sk-123" not in error.to_sse()["data"]

    # Only the initial snapshot was written
    chat = store.get("user-a", events[0].chat_id)
    assert [m.role for m in chat.messages] == ["user"]


class FlakyStore(ConversationStore):
    """Fails every upsert after the first `ok` ones."""

    def __init__(self, *args, ok: int = 1, **kwargs):
        super().__init__(*args, **kwargs)
        self.ok = ok
        self.upserts = 0

    def upsert(self, *args, **kwargs):
        self.upserts += 1
        if self.upserts > self.ok:
            raise PersistenceError("disk full")
        return super().upsert(*args, **kwargs)


@pytest.mark.asyncio
async def test_final_persistence_failure_emits_error_not_done(tmp_path, tool_registry):
    with FlakyStore(tmp_path / "flaky.sqlite") as store:
        store.ensure_user("user-a")
        provider = scripted_provider([text_chunk("answer", "stop")])
        orchestrator = make_orchestrator(store, provider, tool_registry)

        events = await collect(orchestrator.stream_turn("user-a", [user("q")]))

        types = [e.type for e in events]
        assert EventType.DONE not in types
        assert events[-1].type is EventType.ERROR
        assert events[-1].code == "persistence_failed"


@pytest.mark.asyncio
async def test_initial_persistence_failure_raises_on_first_event(
    tmp_path, tool_registry
):
    with FlakyStore(tmp_path / "flaky.sqlite", ok=0) as store:
        store.ensure_user("user-a")
        provider = scripted_provider([text_chunk("never")])
        orchestrator = make_orchestrator(store, provider, tool_registry)

        events = orchestrator.stream_turn("user-a", [user("q")])
        with pytest.raises(PersistenceError):
            await anext(events)
        provider.llm.astream.assert_not_called()


@pytest.mark.asyncio
async def test_foreign_chat_is_rejected_before_streaming(store, tool_registry):
    store.upsert("user-a", "chat-a", "Mine", [user("secret")])
    provider = scripted_provider([text_chunk("leak")])
    orchestrator = make_orchestrator(store, provider, tool_registry)

    events = orchestrator.stream_turn("user-b", [user("hi")], chat_id="chat-a")
    with pytest.raises(ChatOwnershipError):
        await anext(events)

    provider.llm.astream.assert_not_called()
    assert [m.text for m in store.get("user-a", "chat-a").messages] == ["secret"]


@pytest.mark.asyncio
async def test_unknown_owner_is_rejected(store, tool_registry):
    orchestrator = make_orchestrator(
        store, scripted_provider([text_chunk("x")]), tool_registry
    )
    with pytest.raises(UnknownOwnerError):
        await anext(orchestrator.stream_turn("ghost", [user("hi")]))


@pytest.mark.asyncio
async def test_existing_chat_is_replaced_without_new_chat_event(store, tool_registry):
    first = user("first question")
    store.upsert("user-a", "chat-a", "first question", [first])
    provider = scripted_provider([text_chunk("second answer", "stop")])
    orchestrator = make_orchestrator(store, provider, tool_registry)

    history = [
        first,
        Message(role="assistant", content="first answer"),
        user("second question"),
    ]
    events = await collect(
        orchestrator.stream_turn("user-a", history, chat_id="chat-a")
    )

    assert EventType.NEW_CHAT_CREATED not in [e.type for e in events]
    assert all(e.chat_id == "chat-a" for e in events)
    chat = store.get("user-a", "chat-a")
    assert [m.text for m in chat.messages] == [
        "first question",
        "first answer",
        "second question",
        "second answer",
    ]


@pytest.mark.asyncio
async def test_cancelled_turn_leaves_initial_snapshot(store):
    search_provider = FakeSearchProvider(block=True)
    registry = build_registry(SearchToolAdapter(search_provider))
    provider = scripted_provider(search_step("slow"))
    orchestrator = make_orchestrator(store, provider, registry)

    seen = []

    async def consume():
        async for event in orchestrator.stream_turn("user-a", [user("slow")]):
            seen.append(event)

    task = asyncio.create_task(consume())
    await asyncio.wait_for(search_provider.started.wait(), timeout=5)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    await asyncio.sleep(0.05)

    assert search_provider.cancelled
    assert seen[0].type is EventType.NEW_CHAT_CREATED
    assert all(e.type not in (EventType.DONE, EventType.ERROR) for e in seen)
    chat = store.get("user-a", seen[0].chat_id)
    assert [m.role for m in chat.messages] == ["user"]


@pytest.mark.asyncio
async def test_run_turn_returns_outcome(store, tool_registry):
    provider = scripted_provider(
        search_step("paris"), [text_chunk("Done.", "stop")]
    )
    orchestrator = make_orchestrator(store, provider, tool_registry)

    result = await orchestrator.run_turn("user-a", [user("paris")])

    assert result.text == "Done."
    assert result.finish_reason is FinishReason.STOP
    assert [m.role for m in result.messages] == ["user", "assistant"]
    assert store.get("user-a", result.chat_id) is not None


@pytest.mark.asyncio
async def test_run_turn_raises_generation_error(store, tool_registry):
    orchestrator = make_orchestrator(
        store, scripted_provider(RuntimeError("boom")), tool_registry
    )
    with pytest.raises(GenerationError):
        await orchestrator.run_turn("user-a", [user("x")])


@pytest.mark.asyncio
async def test_system_prompt_leads_conversation(store, tool_registry):
    provider = scripted_provider([text_chunk("ok")])
    orchestrator = make_orchestrator(
        store, provider, tool_registry, system_prompt="Be terse."
    )

    await collect(orchestrator.stream_turn("user-a", [user("hi")]))

    first = provider.seen[0][0]
    assert first.type == "system"
    assert first.content == "Be terse."


@pytest.mark.asyncio
async def test_partial_tool_failure_still_reaches_done(store):
    search_provider = FakeSearchProvider(errors={"broken": TimeoutError("slow")})
    registry = build_registry(SearchToolAdapter(search_provider))
    provider = scripted_provider(
        [
            tool_chunk("searchWeb", '{"query": "broken"}', "call_bad", index=0),
            tool_chunk("searchWeb", '{"query": "fine", "name": "n"}', "call_ok", index=1),
        ],
        [text_chunk("Here is what I found.", "stop")],
    )
    orchestrator = make_orchestrator(store, provider, registry)

    events = await collect(orchestrator.stream_turn("user-a", [user("two searches")]))

    result_types = sorted(
        e.tool_invocation["result"]["type"]
        for e in events
        if e.type is EventType.TOOL_INVOCATION
        and e.tool_invocation["state"] == "result"
    )
    assert result_types == ["search_web_result", "tool_error"]
    assert events[-1].type is EventType.DONE

    chat = store.get("user-a", events[0].chat_id)
    assert len(chat.messages[-1].tool_invocations) == 2


@pytest.mark.asyncio
async def test_blank_chat_id_starts_a_new_chat(store, tool_registry):
    provider = scripted_provider([text_chunk("hello", "stop")])
    orchestrator = make_orchestrator(store, provider, tool_registry)

    events = await collect(orchestrator.stream_turn("user-a", [user("q")], chat_id=""))

    assert events[0].type is EventType.NEW_CHAT_CREATED
    chat_id = events[0].chat_id
    assert chat_id
    assert [c.id for c in store.list("user-a")] == [chat_id]
