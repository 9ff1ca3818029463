"""
Event relay: SSE framing, terminal events, claim-once, disconnect and error cleanup.
"""
import asyncio
import json
import os
import tempfile
import unittest

import metrics.streaming_metrics as streaming_metrics
from core.speech_service import Canceled, Final, Interim, NoMatch
from streaming.cleanup import CleanupScheduler
from streaming.errors import InvalidState, NotFound
from streaming.events import EventChannel, EventType, StreamEvent
from streaming.ingest import IngestController
from streaming.relay import EventRelay
from streaming.session_store import SessionStatus, SessionStore
from tests.fakes import FakeSpeechClient, ManualScheduler, parse_sse


async def _wait_for(predicate, attempts: int = 400) -> None:
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0.005)
    raise AssertionError("condition not reached")


class RelayTestCase(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        streaming_metrics.reset()
        self._tmp = tempfile.TemporaryDirectory()
        self.store = SessionStore(self._tmp.name)
        self.ingest = IngestController(self.store, "en-US", "es-ES")
        self.cleanup = CleanupScheduler(self.store, scheduler=ManualScheduler())

    async def asyncTearDown(self):
        self._tmp.cleanup()

    async def _ready_session(self):
        session = self.ingest.start_session(16000)
        await self.ingest.append_chunk(session.session_id, b"\x00" * 3200)
        await self.ingest.finalize_session(session.session_id)
        return session

    def _relay(self, client):
        return EventRelay(self.store, client, self.cleanup, queue_size=4)

    async def _collect(self, relay, session_id):
        frames = [frame async for frame in relay.open_event_stream(session_id)]
        return parse_sse("".join(frames))


class TestOpenEventStream(RelayTestCase):
    async def test_unknown_session(self):
        relay = self._relay(FakeSpeechClient())
        with self.assertRaises(NotFound):
            relay.open_event_stream("missing")

    async def test_collecting_session_not_ready(self):
        relay = self._relay(FakeSpeechClient())
        session = self.ingest.start_session(16000)
        with self.assertRaises(NotFound):
            relay.open_event_stream(session.session_id)
        self.assertFalse(session.orchestration_claimed)

    async def test_success_stream_ends_with_complete_and_keeps_session(self):
        session = await self._ready_session()
        client = FakeSpeechClient([Interim("hola", "hello"), Final("Hola.", "Hello.")])
        events = await self._collect(self._relay(client), session.session_id)

        self.assertEqual([e for e, _ in events], ["recognizing", "recognized", "audio-ready", "complete"])
        self.assertEqual(json.loads(events[-1][1]), {"message": "Translation complete"})
        self.assertIs(self.store.get(session.session_id), session)
        self.assertEqual(session.synthesized_audio, client.audio)
        self.assertFalse(session.orchestration_running)
        snapshot = streaming_metrics.get_snapshot()
        self.assertEqual(snapshot["active_streams"], 0)
        self.assertEqual(snapshot["latency_sample_count"], 1)

    async def test_no_match_still_completes(self):
        session = await self._ready_session()
        events = await self._collect(self._relay(FakeSpeechClient([NoMatch()])), session.session_id)
        self.assertEqual([e for e, _ in events], ["error", "complete"])
        self.assertIsNotNone(self.store.get(session.session_id))

    async def test_cancellation_emits_error_and_releases_session(self):
        session = await self._ready_session()
        client = FakeSpeechClient([Canceled("Error", "Connection was closed")])
        events = await self._collect(self._relay(client), session.session_id)

        self.assertEqual(events, [("error", json.dumps({"message": "Connection was closed"}))])
        self.assertIsNone(self.store.get(session.session_id))
        self.assertEqual(session.status, SessionStatus.ERROR)
        self.assertFalse(os.path.exists(session.raw_audio_path))
        self.assertFalse(os.path.exists(session.finalized_audio_path))
        self.assertEqual(streaming_metrics.get_snapshot()["recognition_failure_count"], 1)

    async def test_second_subscriber_rejected(self):
        session = await self._ready_session()
        gate = asyncio.Event()
        relay = self._relay(FakeSpeechClient([Final("a", "b")], gate=gate))
        frames = relay.open_event_stream(session.session_id)
        with self.assertRaises(InvalidState):
            relay.open_event_stream(session.session_id)
        gate.set()
        self.assertEqual([e for e, _ in parse_sse("".join([f async for f in frames]))][-1], "complete")

    async def test_disconnect_does_not_stop_orchestration(self):
        session = await self._ready_session()
        gate = asyncio.Event()
        client = FakeSpeechClient([Interim("a", "b"), Final("a.", "b.")], gate=gate)
        relay = self._relay(client)
        frames = relay.open_event_stream(session.session_id)
        gate.set()
        first = await frames.__anext__()
        self.assertTrue(first.startswith("event: recognizing\n"))
        await frames.aclose()

        await _wait_for(lambda: not session.orchestration_running)
        self.assertEqual(session.synthesized_audio, client.audio)
        self.assertIsNotNone(self.store.get(session.session_id))


class TestEventChannel(unittest.IsolatedAsyncioTestCase):
    async def test_fifo_until_close(self):
        channel = EventChannel(maxsize=8)
        await channel.emit(EventType.RECOGNIZING, {"n": 1})
        await channel.emit(EventType.COMPLETE, {"n": 2})
        await channel.close()
        events = [e async for e in channel]
        self.assertEqual([e.type for e in events], [EventType.RECOGNIZING, EventType.COMPLETE])
        self.assertTrue(events[1].type.is_terminal)

    async def test_detach_unblocks_producer(self):
        channel = EventChannel(maxsize=1)
        await channel.emit(EventType.RECOGNIZING)
        blocked = asyncio.ensure_future(channel.emit(EventType.RECOGNIZING))
        await asyncio.sleep(0)
        self.assertFalse(blocked.done())
        channel.detach()
        await asyncio.wait_for(blocked, timeout=1.0)
        await channel.emit(EventType.COMPLETE)
        await channel.close()

    def test_sse_frame(self):
        frame = StreamEvent(EventType.AUDIO_READY, {"sessionId": "abc"}).to_sse()
        self.assertEqual(frame, 'event: audio-ready\ndata: {"sessionId": "abc"}\n\n')


if __name__ == "__main__":
    unittest.main()
