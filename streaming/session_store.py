"""
Process-wide registry of streaming sessions.

The store is an explicit object injected into the ingest controller, relay and
cleanup scheduler. All mutation happens on the event loop thread; per-session
file I/O is serialized with the session's own asyncio.Lock.
"""

import asyncio
import logging
import os
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Iterator, List, Optional

logger = logging.getLogger(__name__)


class SessionStatus(str, Enum):
    COLLECTING = "collecting"
    READY = "ready"
    ERROR = "error"


@dataclass
class Session:
    """One client's audio capture and its translation artifacts."""
    session_id: str
    sample_rate: int
    source_language: str
    target_language: str
    raw_audio_path: str
    status: SessionStatus = SessionStatus.COLLECTING
    bytes_appended: int = 0
    total_samples: int = 0
    finalized_audio_path: Optional[str] = None
    recognized_text: Optional[str] = None
    translated_text: Optional[str] = None
    synthesized_audio: Optional[bytes] = None
    created_at: float = 0.0
    last_activity: float = 0.0
    orchestration_claimed: bool = False
    orchestration_running: bool = False
    release_scheduled: bool = False
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False, compare=False)

    def touch(self, now: float) -> None:
        self.last_activity = now

    def temp_files(self) -> List[str]:
        return [p for p in (self.raw_audio_path, self.finalized_audio_path) if p]


class SessionStore:
    """In-memory session_id -> Session map that owns the sessions' temp directory."""

    def __init__(self, upload_dir: str, clock: Callable[[], float] = time.monotonic):
        self.upload_dir = upload_dir
        self.clock = clock
        self._sessions: Dict[str, Session] = {}
        os.makedirs(upload_dir, exist_ok=True)

    def create(self, sample_rate: int, source_language: str, target_language: str) -> Session:
        """Register a new collecting session backed by an empty .pcm file."""
        session_id = str(uuid.uuid4())
        raw_path = os.path.join(self.upload_dir, f"{session_id}.pcm")
        with open(raw_path, "wb"):
            pass
        now = self.clock()
        session = Session(
            session_id=session_id,
            sample_rate=sample_rate,
            source_language=source_language,
            target_language=target_language,
            raw_audio_path=raw_path,
            created_at=now,
            last_activity=now,
        )
        self._sessions[session_id] = session
        return session

    def finalized_path_for(self, session_id: str) -> str:
        return os.path.join(self.upload_dir, f"{session_id}.wav")

    def get(self, session_id: str) -> Optional[Session]:
        return self._sessions.get(session_id)

    def remove(self, session_id: str) -> Optional[Session]:
        """Unregister a session and delete its temp files. Returns the removed session, if any."""
        session = self._sessions.pop(session_id, None)
        if session is None:
            return None
        for path in session.temp_files():
            try:
                if os.path.exists(path):
                    os.remove(path)
            except OSError as e:
                logger.warning("Could not delete %s for session %s: %s", path, session_id, e)
        return session

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def __iter__(self) -> Iterator[Session]:
        return iter(list(self._sessions.values()))
