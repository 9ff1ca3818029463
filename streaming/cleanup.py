"""
Session teardown: delayed release after audio retrieval, immediate release on
error paths, and a periodic sweep of idle sessions (never finalized, never
translated or never retrieved) so temp files do not leak.
"""

import asyncio
import logging
from typing import Any, Callable, List, Optional

import metrics.streaming_metrics as streaming_metrics
from streaming.session_store import SessionStore

logger = logging.getLogger(__name__)


class LoopScheduler:
    """Delayed callbacks on the running asyncio loop."""

    def call_later(self, delay: float, callback: Callable[[], Any]) -> asyncio.TimerHandle:
        return asyncio.get_running_loop().call_later(delay, callback)


class CleanupScheduler:
    def __init__(
        self,
        store: SessionStore,
        grace_seconds: float = 1.0,
        idle_ttl_seconds: float = 600.0,
        sweep_interval_seconds: float = 60.0,
        scheduler: Optional[Any] = None,
    ):
        """
        Args:
            store: Registry whose sessions are torn down.
            grace_seconds: Delay between audio retrieval and deletion (tolerates re-reads).
            idle_ttl_seconds: Sessions idle longer than this are swept (0 disables the sweep).
            sweep_interval_seconds: Period of the background sweeper.
            scheduler: Object with call_later(delay, callback); defaults to LoopScheduler.
        """
        self.store = store
        self.grace_seconds = grace_seconds
        self.idle_ttl_seconds = idle_ttl_seconds
        self.sweep_interval_seconds = sweep_interval_seconds
        self.scheduler = scheduler or LoopScheduler()
        self._sweeper: Optional[asyncio.Task] = None

    def release_now(self, session_id: str) -> bool:
        """Delete the session's temp files and registry entry. Returns False if already gone."""
        removed = self.store.remove(session_id)
        if removed is not None:
            logger.info("Cleaned up session %s", session_id)
        return removed is not None

    def schedule_release(self, session_id: str) -> bool:
        """Release the session after the grace delay; scheduled at most once per session."""
        session = self.store.get(session_id)
        if session is None or session.release_scheduled:
            return False
        session.release_scheduled = True
        self.scheduler.call_later(self.grace_seconds, lambda: self.release_now(session_id))
        return True

    def sweep_idle(self) -> List[str]:
        """Release sessions idle for longer than the TTL, skipping running orchestrations."""
        if self.idle_ttl_seconds <= 0:
            return []
        now = self.store.clock()
        expired = [
            s.session_id
            for s in self.store
            if not s.orchestration_running and now - s.last_activity >= self.idle_ttl_seconds
        ]
        for session_id in expired:
            logger.info("Sweeping idle session %s", session_id)
            self.release_now(session_id)
        if expired:
            streaming_metrics.record_sessions_swept(len(expired))
        return expired

    def release_all(self) -> int:
        count = 0
        for session in self.store:
            if self.release_now(session.session_id):
                count += 1
        return count

    async def _run_sweeper(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval_seconds)
            self.sweep_idle()

    def start(self) -> None:
        if self._sweeper is None and self.idle_ttl_seconds > 0:
            self._sweeper = asyncio.get_running_loop().create_task(self._run_sweeper())

    async def stop(self) -> None:
        if self._sweeper is not None:
            self._sweeper.cancel()
            try:
                await self._sweeper
            except asyncio.CancelledError:
                pass
            self._sweeper = None
        released = self.release_all()
        if released:
            logger.info("Released %d sessions on shutdown", released)
