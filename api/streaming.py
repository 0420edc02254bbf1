"""
Server-sent event framing for chat streams.

Turns orchestrator events into `data: <json>\\n\\n` frames.
"""

import json
import logging
from contextlib import aclosing
from typing import AsyncIterator, Callable, Optional

from fastapi.responses import StreamingResponse

from llm.events import ChatEvent

logger = logging.getLogger(__name__)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def encode_event(event: ChatEvent) -> str:
    """Frame a single event."""
    return f"data: {json.dumps(event.to_dict(), default=str)}\n\n"


async def event_stream(
    events: AsyncIterator[ChatEvent],
    observer: Optional[Callable[[ChatEvent], None]] = None,
) -> AsyncIterator[str]:
    """Encode events as they are produced; closing this closes the source."""
    async with aclosing(events) as source:
        async for event in source:
            if observer:
                observer(event)
            yield encode_event(event)


def sse_response(
    events: AsyncIterator[ChatEvent],
    observer: Optional[Callable[[ChatEvent], None]] = None,
) -> StreamingResponse:
    """Wrap an event iterator in a text/event-stream response."""
    return StreamingResponse(
        event_stream(events, observer),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
