"""Tests for the bounded event sink and the SSE response wrapper."""

import asyncio

import pytest

from deepsearch.api.sse import EventSink, pump, stream_response
from deepsearch.core.errors import StreamClosedError
from deepsearch.domain.events import GENERIC_ERROR_MESSAGE, EventFactory, EventType


async def drain(sink: EventSink):
    return [event async for event in sink]


@pytest.mark.asyncio
async def test_sink_preserves_order():
    sink = EventSink(maxsize=8)
    for i in range(3):
        await sink.send(EventFactory.text(str(i)))
    await sink.close()

    events = await drain(sink)
    assert [e.content for e in events] == ["0", "1", "2"]


@pytest.mark.asyncio
async def test_send_blocks_while_consumer_is_behind():
    sink = EventSink(maxsize=1)
    await sink.send(EventFactory.text("a"))

    blocked = asyncio.create_task(sink.send(EventFactory.text("b")))
    await asyncio.sleep(0.01)
    assert not blocked.done()

    iterator = aiter(sink)
    first = await anext(iterator)
    await asyncio.wait_for(blocked, timeout=1)
    second = await anext(iterator)
    assert [first.content, second.content] == ["a", "b"]


@pytest.mark.asyncio
async def test_send_after_close_raises():
    sink = EventSink()
    await sink.close()
    assert sink.closed
    with pytest.raises(StreamClosedError):
        await sink.send(EventFactory.text("late"))


@pytest.mark.asyncio
async def test_close_with_error_ends_with_generic_error():
    sink = EventSink()
    await sink.send(EventFactory.text("partial"))
    await sink.close(RuntimeError("db password is hunter2"))

    events = await drain(sink)
    assert events[-1].type is EventType.ERROR
    assert events[-1].error == GENERIC_ERROR_MESSAGE
    assert "hunter2" not in events[-1].to_sse()["data"]


@pytest.mark.asyncio
async def test_pump_closes_sink_on_producer_crash():
    async def producer():
        yield EventFactory.text("one")
        raise ValueError("boom")

    sink = EventSink()
    await pump(producer(), sink)

    events = await drain(sink)
    assert [e.type for e in events] == [EventType.TEXT, EventType.ERROR]


@pytest.mark.asyncio
async def test_stream_response_cancels_producer_when_client_leaves():
    cancelled = asyncio.Event()

    async def producer():
        yield EventFactory.text("first")
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            cancelled.set()
            raise

    response = stream_response(producer())
    assert response.headers["cache-control"] == "no-cache"
    assert response.headers["x-accel-buffering"] == "no"

    frames = response.body_iterator
    frame = await anext(frames)
    assert '"content": "first"' in frame["data"]

    # The client going away closes the frame generator
    await frames.aclose()
    assert cancelled.is_set()
