"""Activity tracking and idle shutdown.

Every request touches the tracker. The IdleMonitor polls it from a
background task and fires a shutdown callback once the server has been idle
for longer than the configured timeout.
"""
from __future__ import annotations

import asyncio
import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ActivityTracker:
    """Thread-safe last-activity timestamp."""

    def __init__(self, clock: Callable[[], datetime] = _utcnow):
        self._clock = clock
        self._lock = threading.Lock()
        self._last_activity = clock()

    def touch(self) -> None:
        now = self._clock()
        with self._lock:
            self._last_activity = now

    @property
    def last_activity(self) -> datetime:
        with self._lock:
            return self._last_activity

    def idle_since(self) -> timedelta:
        """Elapsed time since the last recorded activity."""
        return self._clock() - self.last_activity


class IdleMonitor:
    """Signals shutdown after a span with no activity."""

    def __init__(
        self,
        tracker: ActivityTracker,
        idle_timeout: float,
        on_idle: Callable[[], None],
    ):
        """
        Args:
            tracker: Activity source polled each cycle.
            idle_timeout: Seconds of inactivity before ``on_idle`` fires.
            on_idle: Called once, from the event loop, when the timeout is hit.
        """
        self._tracker = tracker
        self._idle_timeout = idle_timeout
        self._on_idle = on_idle
        self._task: asyncio.Task | None = None
        self.fired = False

    async def start(self, interval: float = 30.0) -> None:
        """Start polling in a background task."""
        if self._task is not None:
            return
        self._task = asyncio.create_task(self._poll_loop(interval))
        logger.info(
            "Idle timeout enabled (timeout=%.0fs, interval=%.1fs)",
            self._idle_timeout,
            interval,
        )

    def stop(self) -> None:
        """Cancel the background task."""
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def _poll_loop(self, interval: float) -> None:
        while True:
            try:
                await asyncio.sleep(interval)
                if self.check_once():
                    return
            except asyncio.CancelledError:
                break
            except Exception:
                logger.exception("IdleMonitor poll error")

    def check_once(self) -> bool:
        """Single poll cycle. Returns True when shutdown was signalled."""
        idle = self._tracker.idle_since().total_seconds()
        if idle >= self._idle_timeout:
            logger.info(f"Server idle for {idle:.0f}s, initiating shutdown")
            self.fired = True
            self._on_idle()
            return True

        remaining = self._idle_timeout - idle
        logger.debug(f"Idle for {idle:.0f}s, shutdown in {remaining:.0f}s if no activity")
        return False
