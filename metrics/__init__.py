"""
Observability and streaming metrics.
"""

from metrics.streaming_metrics import (
    get_snapshot,
    record_latency_ms,
    record_no_match,
    record_recognition_failure,
    record_sessions_swept,
    record_stream_close,
    record_stream_open,
    record_synthesis_failure,
    reset,
)

__all__ = [
    "get_snapshot",
    "record_latency_ms",
    "record_no_match",
    "record_recognition_failure",
    "record_sessions_swept",
    "record_stream_close",
    "record_stream_open",
    "record_synthesis_failure",
    "reset",
]
