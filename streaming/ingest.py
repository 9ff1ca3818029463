"""
Streaming ingest controller: session start, chunk append, finalize.

State machine per session: collecting -> ready, or collecting -> error (finalize
failure, session destroyed on the spot). Nothing leaves `ready`.
"""

import asyncio
import logging
from typing import Optional

from streaming.errors import (
    ChunkWriteFailed,
    FinalizationFailed,
    InvalidArgument,
    InvalidState,
    NotFound,
    PayloadTooLarge,
)
from streaming.pcm_framer import frame, pcm_samples
from streaming.session_store import Session, SessionStatus, SessionStore

logger = logging.getLogger(__name__)


def _append_bytes(path: str, data: bytes) -> None:
    with open(path, "ab") as f:
        f.write(data)


def _read_bytes(path: str) -> bytes:
    with open(path, "rb") as f:
        return f.read()


def _write_bytes(path: str, data: bytes) -> None:
    with open(path, "wb") as f:
        f.write(data)


class IngestController:
    def __init__(
        self,
        store: SessionStore,
        default_source_language: str,
        default_target_language: str,
        max_chunk_bytes: Optional[int] = None,
    ):
        self.store = store
        self.default_source_language = default_source_language
        self.default_target_language = default_target_language
        self.max_chunk_bytes = max_chunk_bytes

    def start_session(
        self,
        sample_rate,
        source_language: Optional[str] = None,
        target_language: Optional[str] = None,
    ) -> Session:
        """Create a collecting session. Languages fall back to the process defaults."""
        if isinstance(sample_rate, bool) or not isinstance(sample_rate, int) or sample_rate <= 0:
            raise InvalidArgument("sampleRate is required")
        session = self.store.create(
            sample_rate=sample_rate,
            source_language=source_language or self.default_source_language,
            target_language=target_language or self.default_target_language,
        )
        logger.info(
            "Started streaming session %s (%d Hz, %s -> %s)",
            session.session_id, sample_rate, session.source_language, session.target_language,
        )
        return session

    def _get(self, session_id: str) -> Session:
        session = self.store.get(session_id) if session_id else None
        if session is None:
            raise NotFound("Session not found")
        return session

    async def append_chunk(self, session_id: str, data: bytes) -> Session:
        """Append raw PCM to the session's backing file, in call order."""
        session = self._get(session_id)
        if not data:
            raise InvalidArgument("Chunk payload missing or empty")
        if self.max_chunk_bytes and len(data) > self.max_chunk_bytes:
            raise PayloadTooLarge(f"Chunk exceeds {self.max_chunk_bytes} bytes")

        async with session.lock:
            if session.status != SessionStatus.COLLECTING:
                raise InvalidState(f"Session is {session.status.value}, not accepting chunks")
            loop = asyncio.get_running_loop()
            try:
                await loop.run_in_executor(None, _append_bytes, session.raw_audio_path, data)
            except OSError as e:
                logger.exception("Failed to append audio chunk for session %s", session_id)
                raise ChunkWriteFailed("Failed to append chunk", details=str(e)) from e
            session.bytes_appended += len(data)
            session.total_samples = pcm_samples(session.bytes_appended)
            session.touch(self.store.clock())
        return session

    async def finalize_session(self, session_id: str) -> Session:
        """
        Frame the accumulated PCM into the .wav container and mark the session ready.
        A second call raises InvalidState. On I/O failure the session is destroyed
        and FinalizationFailed is raised.
        """
        session = self._get(session_id)
        async with session.lock:
            if session.status != SessionStatus.COLLECTING:
                raise InvalidState(f"Session is already {session.status.value}")
            logger.info("Stopping stream session %s", session_id)
            loop = asyncio.get_running_loop()
            wav_path = self.store.finalized_path_for(session_id)
            try:
                raw = await loop.run_in_executor(None, _read_bytes, session.raw_audio_path)
                logger.info("Raw PCM size: %d bytes, samples: %d", len(raw), session.total_samples)
                wav = frame(raw, session.sample_rate)
                session.finalized_audio_path = wav_path
                await loop.run_in_executor(None, _write_bytes, wav_path, wav)
            except (OSError, ValueError) as e:
                logger.exception("Stream finalization failed for session %s", session_id)
                session.status = SessionStatus.ERROR
                self.store.remove(session_id)
                raise FinalizationFailed("Failed to finalize stream", details=str(e)) from e
            session.status = SessionStatus.READY
            session.touch(self.store.clock())
        logger.info("WAV file created: %s (%d bytes)", wav_path, len(wav))
        return session
