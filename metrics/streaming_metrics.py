"""
Streaming observability metrics.

Thread-safe counters and latency samples for the translate event streams.
Exposed via GET /metrics/streaming (JSON snapshot).
"""

import threading
from collections import deque
from typing import Any, Dict

# ----- Shared state (module-level for singleton behavior) -----
_lock = threading.Lock()
_active_streams = 0
_latency_samples: deque = deque(maxlen=1000)  # last N orchestration total_ms values
_recognition_failure_count = 0
_no_match_count = 0
_synthesis_failure_count = 0
_sessions_swept = 0


def record_stream_open() -> None:
    """Call when a translate event stream starts."""
    with _lock:
        global _active_streams
        _active_streams += 1


def record_stream_close() -> None:
    """Call when a translate event stream has sent its terminal event."""
    with _lock:
        global _active_streams
        _active_streams = max(0, _active_streams - 1)


def record_latency_ms(total_ms: float) -> None:
    """Record one recognize -> translate -> synthesize round trip."""
    with _lock:
        _latency_samples.append(total_ms)


def record_recognition_failure() -> None:
    with _lock:
        global _recognition_failure_count
        _recognition_failure_count += 1


def record_no_match() -> None:
    with _lock:
        global _no_match_count
        _no_match_count += 1


def record_synthesis_failure() -> None:
    with _lock:
        global _synthesis_failure_count
        _synthesis_failure_count += 1


def record_sessions_swept(count: int) -> None:
    """Call after the idle sweep reclaimed `count` sessions."""
    with _lock:
        global _sessions_swept
        _sessions_swept += count


def reset() -> None:
    """Zero all counters (tests)."""
    global _active_streams, _recognition_failure_count, _no_match_count
    global _synthesis_failure_count, _sessions_swept
    with _lock:
        _active_streams = 0
        _latency_samples.clear()
        _recognition_failure_count = 0
        _no_match_count = 0
        _synthesis_failure_count = 0
        _sessions_swept = 0


def get_snapshot() -> Dict[str, Any]:
    """
    Return a JSON-serializable snapshot of streaming metrics.
    Used by GET /metrics/streaming.
    """
    with _lock:
        samples = list(_latency_samples)
        snapshot = {
            "active_streams": _active_streams,
            "recognition_failure_count": _recognition_failure_count,
            "no_match_count": _no_match_count,
            "synthesis_failure_count": _synthesis_failure_count,
            "sessions_swept": _sessions_swept,
        }
    n = len(samples)
    if n == 0:
        avg_latency_ms = None
        p95_latency_ms = None
    else:
        avg_latency_ms = round(sum(samples) / n, 2)
        sorted_s = sorted(samples)
        idx = max(0, int(0.95 * n) - 1)
        p95_latency_ms = round(sorted_s[idx], 2)
    snapshot.update({
        "avg_latency_ms": avg_latency_ms,
        "p95_latency_ms": p95_latency_ms,
        "latency_sample_count": n,
    })
    return snapshot
