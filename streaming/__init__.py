"""
Streaming session pipeline.

- pcm_framer: raw PCM -> 44-byte-header WAV container.
- session_store: in-memory session registry.
- ingest: start / chunk / stop state machine.
- orchestrator: recognize -> translate -> synthesize, as ordered events (import separately).
- relay: SSE push of orchestration events (import separately with FastAPI wiring).
- cleanup: grace-delay, on-error and idle-sweep teardown.
"""

from streaming.cleanup import CleanupScheduler, LoopScheduler
from streaming.events import EventChannel, EventType, StreamEvent
from streaming.ingest import IngestController
from streaming.pcm_framer import frame, parse_header
from streaming.session_store import Session, SessionStatus, SessionStore

__all__ = [
    "CleanupScheduler",
    "EventChannel",
    "EventType",
    "IngestController",
    "LoopScheduler",
    "Session",
    "SessionStatus",
    "SessionStore",
    "StreamEvent",
    "frame",
    "parse_header",
]
