"""
Tagged orchestration events and the bounded channel that carries them to the relay.
"""

import asyncio
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, AsyncIterator, Dict, Optional


class EventType(str, Enum):
    RECOGNIZING = "recognizing"
    RECOGNIZED = "recognized"
    AUDIO_READY = "audio-ready"
    ERROR = "error"
    COMPLETE = "complete"

    @property
    def is_terminal(self) -> bool:
        return self in (EventType.ERROR, EventType.COMPLETE)


@dataclass
class StreamEvent:
    type: EventType
    data: Dict[str, Any] = field(default_factory=dict)

    def to_sse(self) -> str:
        """Server-Sent Events frame: `event:` line, one JSON `data:` line, blank line."""
        return f"event: {self.type.value}\ndata: {json.dumps(self.data, ensure_ascii=False)}\n\n"


class EventChannel:
    """
    Bounded FIFO between one orchestration (producer) and one subscriber (consumer).

    Once the subscriber detaches, emits are dropped so the producer never blocks on
    a reader that is gone.
    """

    def __init__(self, maxsize: int = 64):
        self._queue: "asyncio.Queue[Optional[StreamEvent]]" = asyncio.Queue(maxsize=maxsize)
        self._detached = False
        self._closed = False

    @property
    def detached(self) -> bool:
        return self._detached

    async def emit(self, event_type: EventType, data: Optional[Dict[str, Any]] = None) -> None:
        if self._detached or self._closed:
            return
        await self._queue.put(StreamEvent(event_type, data or {}))

    async def close(self) -> None:
        """Signal end of stream to the subscriber."""
        if self._closed:
            return
        self._closed = True
        if not self._detached:
            await self._queue.put(None)

    def detach(self) -> None:
        """Subscriber went away: drop anything queued and unblock a waiting producer."""
        self._detached = True
        while not self._queue.empty():
            self._queue.get_nowait()

    async def __aiter__(self) -> AsyncIterator[StreamEvent]:
        while True:
            event = await self._queue.get()
            if event is None:
                return
            yield event
