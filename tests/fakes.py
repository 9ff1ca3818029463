"""
Test doubles: scripted speech client, manual timer, recording event sink.
"""

import asyncio
from typing import Any, Callable, Dict, List, Optional, Tuple

from core.speech_service import SpeechClient
from streaming.events import EventType


class FakeSpeechClient(SpeechClient):
    """Yields a scripted list of recognition results; synthesis returns fixed bytes."""

    def __init__(
        self,
        results: Optional[list] = None,
        audio: bytes = b"RIFF\x00\x00\x00\x00WAVEsynth",
        synth_error: Optional[Exception] = None,
        gate: Optional[asyncio.Event] = None,
    ):
        self.results = list(results or [])
        self.audio = audio
        self.synth_error = synth_error
        self.gate = gate
        self.recognize_calls: List[Tuple[int, str, str]] = []
        self.synth_calls: List[Tuple[str, str, Optional[str]]] = []

    async def recognize_and_translate(self, wav_bytes, source_language, target_language):
        self.recognize_calls.append((len(wav_bytes), source_language, target_language))
        if self.gate is not None:
            await self.gate.wait()
        for result in self.results:
            await asyncio.sleep(0)
            yield result

    async def synthesize(self, text, target_language, voice_name=None):
        self.synth_calls.append((text, target_language, voice_name))
        if self.synth_error is not None:
            raise self.synth_error
        return self.audio


class ManualScheduler:
    """call_later without real time; advance() fires due callbacks."""

    def __init__(self):
        self.now = 0.0
        self._pending: List[Tuple[float, Callable[[], Any]]] = []

    def call_later(self, delay: float, callback: Callable[[], Any]) -> None:
        self._pending.append((self.now + delay, callback))

    @property
    def pending(self) -> int:
        return len(self._pending)

    def advance(self, seconds: float) -> None:
        self.now += seconds
        due = [cb for t, cb in self._pending if t <= self.now]
        self._pending = [(t, cb) for t, cb in self._pending if t > self.now]
        for cb in due:
            cb()


class RecordingSink:
    """Stands in for EventChannel; keeps (event name, data) pairs."""

    def __init__(self):
        self.events: List[Tuple[str, Dict[str, Any]]] = []

    async def emit(self, event_type: EventType, data: Optional[Dict[str, Any]] = None) -> None:
        self.events.append((event_type.value, data or {}))

    @property
    def names(self) -> List[str]:
        return [name for name, _ in self.events]


def parse_sse(text: str) -> List[Tuple[str, str]]:
    """Split an SSE body into (event, data-json) pairs."""
    out = []
    for block in text.split("\n\n"):
        if not block.strip():
            continue
        event, data = "", ""
        for line in block.split("\n"):
            if line.startswith("event: "):
                event = line[len("event: "):]
            elif line.startswith("data: "):
                data = line[len("data: "):]
        out.append((event, data))
    return out
