"""Event stream encoder.

A turn's events flow producer -> `EventSink` -> SSE frames. The sink is a
bounded queue, so a slow client blocks the producer in `send` instead of
letting events pile up in memory. The producer runs as its own task; when the
client goes away the consumer side cancels it, and that cancellation reaches
every outstanding tool call of the turn.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any

from sse_starlette.sse import EventSourceResponse

from deepsearch.config.constants import DEFAULT_STREAM_QUEUE_SIZE
from deepsearch.core.errors import StreamClosedError
from deepsearch.domain.events import BaseEvent, EventFactory
from deepsearch.utils.logger import api_logger, stream_log


@dataclass(frozen=True)
class _Close:
    error: BaseException | None = None


class EventSink:
    """Single-producer, single-consumer channel of stream events."""

    def __init__(self, maxsize: int = DEFAULT_STREAM_QUEUE_SIZE) -> None:
        self._queue: asyncio.Queue[BaseEvent | _Close] = asyncio.Queue(maxsize)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def send(self, event: BaseEvent) -> None:
        """Enqueue an event, waiting while the consumer is behind."""
        if self._closed:
            raise StreamClosedError("Event sink is closed")
        await self._queue.put(event)

    async def close(self, error: BaseException | None = None) -> None:
        if self._closed:
            return
        self._closed = True
        await self._queue.put(_Close(error))

    async def __aiter__(self) -> AsyncIterator[BaseEvent]:
        while True:
            item = await self._queue.get()
            if isinstance(item, _Close):
                if item.error is not None:
                    yield EventFactory.error()
                return
            yield item


async def pump(events: AsyncIterator[BaseEvent], sink: EventSink) -> None:
    """Copy events into the sink, then close it (with the error, if any)."""
    try:
        async for event in events:
            await sink.send(event)
    except asyncio.CancelledError:
        raise
    except Exception as e:
        api_logger.error("SSE producer crashed", exc_info=True, error=str(e))
        await sink.close(e)
        return
    await sink.close()


def stream_response(
    events: AsyncIterator[BaseEvent],
    *,
    maxsize: int = DEFAULT_STREAM_QUEUE_SIZE,
) -> EventSourceResponse:
    async def frames() -> AsyncIterator[dict[str, Any]]:
        sink = EventSink(maxsize)
        producer = asyncio.create_task(pump(events, sink), name="sse-producer")
        try:
            async for event in sink:
                stream_log(api_logger, event.type.value, chat_id=event.chat_id)
                yield event.to_sse()
        finally:
            if not producer.done():
                api_logger.info("SSE client gone; cancelling turn")
                producer.cancel()
            await asyncio.gather(producer, return_exceptions=True)

    return EventSourceResponse(
        frames(),
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",
        },
    )
