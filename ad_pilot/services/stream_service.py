# Server-sent event stream
# Serializes loop events into `data: <json>` frames and terminates the stream
# with a single `[DONE]` sentinel

import json
import logging
from typing import AsyncIterator

from ad_pilot.core.errors import StreamClosedError
from ad_pilot.models.schemas import ErrorEvent, StreamEvent, TextEvent, WidgetEvent
from ad_pilot.services.conversation_service import APOLOGY_MESSAGE

logger = logging.getLogger(__name__)

DONE_SENTINEL = "[DONE]"

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


def event_payload(event: StreamEvent) -> dict:
    """JSON object sent for an event; exactly one key"""
    if isinstance(event, TextEvent):
        return {"content": event.content}
    if isinstance(event, WidgetEvent):
        return {"widget": event.widget.model_dump(exclude_none=True)}
    if isinstance(event, ErrorEvent):
        return {"content": event.message}
    raise TypeError(f"Unsupported stream event: {event!r}")


def format_sse(data: str) -> str:
    return f"data: {data}\n\n"


class StreamEmitter:
    """Ordered event channel for one response, closed by the sentinel"""

    def __init__(self):
        self.closed = False
        self.sent = 0

    def emit(self, event: StreamEvent) -> str:
        if self.closed:
            raise StreamClosedError("Stream already terminated")
        self.sent += 1
        return format_sse(json.dumps(event_payload(event), ensure_ascii=False))

    def close(self) -> str:
        if self.closed:
            raise StreamClosedError("Stream already terminated")
        self.closed = True
        return format_sse(DONE_SENTINEL)

    async def relay(self, events: AsyncIterator[StreamEvent]) -> AsyncIterator[str]:
        """Forward events in order, then the sentinel"""
        try:
            async for event in events:
                yield self.emit(event)
        except Exception:
            logger.exception("[STREAM] Event source failed")
            yield self.emit(ErrorEvent(message=APOLOGY_MESSAGE))
        logger.info(f"[STREAM] Closing stream after {self.sent} events")
        yield self.close()
