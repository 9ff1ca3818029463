"""
Event relay for GET /api/stream/translate/{session_id}.

- Only a `ready` session can be subscribed; one orchestration per session.
- The orchestration runs as its own task feeding a bounded EventChannel, so a
  disconnected subscriber does not stop it; session state is still updated.
- Events are forwarded as SSE frames in arrival order, ending with `complete`
  or `error`.
- On orchestration error the session is released immediately; on success it is
  kept so the synthesized audio can be pulled.
"""

import asyncio
import logging
import time
from typing import AsyncIterator, Optional, Set

import metrics.streaming_metrics as streaming_metrics
from core.speech_service import SpeechClient
from streaming.cleanup import CleanupScheduler
from streaming.errors import InvalidState, NotFound, RecognitionFailed, StreamingError
from streaming.events import EventChannel, EventType
from streaming.orchestrator import translate_session
from streaming.session_store import Session, SessionStatus, SessionStore

logger = logging.getLogger(__name__)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


class EventRelay:
    def __init__(
        self,
        store: SessionStore,
        speech_client: SpeechClient,
        cleanup: CleanupScheduler,
        voice_name: Optional[str] = None,
        queue_size: int = 64,
    ):
        self.store = store
        self.speech_client = speech_client
        self.cleanup = cleanup
        self.voice_name = voice_name
        self.queue_size = queue_size
        self._tasks: Set[asyncio.Task] = set()

    def open_event_stream(self, session_id: str) -> AsyncIterator[str]:
        """
        Claim the session, start its orchestration and return the SSE frame iterator.

        Raises:
            NotFound: unknown session or not ready.
            InvalidState: a translation was already started for this session.
        """
        session = self.store.get(session_id)
        if session is None or session.status != SessionStatus.READY:
            raise NotFound("Session not found or not ready")
        if session.orchestration_claimed:
            raise InvalidState("Translation already started for this session")
        session.orchestration_claimed = True
        session.orchestration_running = True

        channel = EventChannel(maxsize=self.queue_size)
        task = asyncio.get_running_loop().create_task(self._drive(session, channel))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return self._drain(channel)

    async def _drive(self, session: Session, channel: EventChannel) -> None:
        session_id = session.session_id
        streaming_metrics.record_stream_open()
        t0 = time.perf_counter()
        try:
            await translate_session(session, channel, self.speech_client, self.voice_name)
            await channel.emit(EventType.COMPLETE, {"message": "Translation complete"})
            # Session is kept: audio is fetched separately, then released after the grace delay.
        except Exception as e:
            logger.exception("Translation error for session %s", session_id)
            if isinstance(e, RecognitionFailed):
                streaming_metrics.record_recognition_failure()
            message = e.message if isinstance(e, StreamingError) else str(e)
            session.status = SessionStatus.ERROR
            await channel.emit(EventType.ERROR, {"message": message or "Translation failed"})
            self.cleanup.release_now(session_id)
        finally:
            session.orchestration_running = False
            session.touch(self.store.clock())
            streaming_metrics.record_latency_ms(round((time.perf_counter() - t0) * 1000))
            streaming_metrics.record_stream_close()
            await channel.close()

    async def _drain(self, channel: EventChannel) -> AsyncIterator[str]:
        try:
            async for event in channel:
                yield event.to_sse()
        finally:
            channel.detach()

    async def shutdown(self) -> None:
        """Cancel orchestrations still running (app shutdown)."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
