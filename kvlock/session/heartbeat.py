"""
Heartbeat Runner: Background Session Keep-Alive

Polls SessionManager.heartbeat() on a fixed cadence from an asyncio task.
The manager's own throttle decides when a renew request actually goes
out, so the poll interval can be short.

A TransportError from a renewal is logged and polling continues; the
throttle has already recorded the attempt. Any other exception ends the
task and is re-raised from stop().
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from kvlock.core import constants as C
from kvlock.core.errors import ConfigurationError, TransportError
from kvlock.session.manager import SessionManager

logger = logging.getLogger(__name__)


class HeartbeatRunner:
    """
    Keeps a session alive while locks are held.

    Usage:
        async with HeartbeatRunner(sessions):
            handle = await coordinator.lock("jobs/nightly")
            await long_running_job()
    """

    __slots__ = ("_sessions", "_poll_interval_s", "_task", "_failures")

    def __init__(
        self,
        sessions: SessionManager,
        poll_interval_s: float = C.DEFAULT_HEARTBEAT_POLL_S,
    ) -> None:
        if poll_interval_s <= 0:
            raise ConfigurationError.invalid_value(
                "poll_interval_s", poll_interval_s, "must be > 0"
            )
        self._sessions = sessions
        self._poll_interval_s = poll_interval_s
        self._task: Optional[asyncio.Task[None]] = None
        self._failures = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def failures(self) -> int:
        """Renewals that raised TransportError since start()."""
        return self._failures

    def start(self) -> None:
        if self.running:
            return
        self._failures = 0
        self._task = asyncio.create_task(self._run(), name="kvlock-heartbeat")

    async def stop(self) -> None:
        """Cancel the polling task and surface any error that ended it."""
        task, self._task = self._task, None
        if task is None:
            return

        if not task.done():
            task.cancel()
        # asyncio.wait leaves a cancellation of the caller to propagate.
        await asyncio.wait((task,))
        if not task.cancelled():
            task.result()

    async def __aenter__(self) -> HeartbeatRunner:
        self.start()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.stop()

    async def _run(self) -> None:
        while True:
            try:
                await self._sessions.heartbeat()
            except TransportError as e:
                self._failures += 1
                logger.warning(f"Session heartbeat failed: {e}")
            except Exception:
                logger.exception("Heartbeat loop stopped")
                raise
            await asyncio.sleep(self._poll_interval_s)
