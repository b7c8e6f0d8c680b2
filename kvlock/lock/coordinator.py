"""
Lock Coordinator: Session-Guarded Try-Locks

Acquires, releases and validates named locks through the store's
conditional writes:

    lock(name)          PUT  key=name  ?acquire=<session>   -> "true" | "false"
    release(handle)     PUT  key=name  ?release=<session>   (body ignored)
    is_valid(name, h)   GET  key=name  -> [{"Session": ...}] compared to h

Safety:
    Mutual exclusion is decided entirely by the store. Nothing about lock
    ownership is cached here; every validity check is a fresh read.

Semantics:
    - Single attempt, no retry or backoff (try-lock, not a queue)
    - Not acquired / not valid are return values, never exceptions
    - Transport failures propagate unchanged
    - Re-locking a held name re-confirms ownership; there is no reentrancy
"""

from __future__ import annotations

import json
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Optional

from kvlock.core import constants as C
from kvlock.session.manager import SessionManager
from kvlock.storage.protocols import CoordinationStore

logger = logging.getLogger(__name__)


# =============================================================================
# LOCK HANDLE
# =============================================================================
@dataclass(frozen=True, slots=True)
class LockHandle:
    """
    Proof that a session was granted a named lock.

    Handles carry no expiry. Whether one still authorizes anything must
    be re-derived with LockCoordinator.is_valid(). Obtain handles from
    LockCoordinator.lock() rather than constructing them.
    """
    name: str
    session_id: str


# =============================================================================
# LOCK COORDINATOR
# =============================================================================
class LockCoordinator:
    """
    Non-blocking distributed lock over a session-bearing KV store.

    Usage:
        coordinator = LockCoordinator(sessions, store)

        handle = await coordinator.lock("jobs/nightly")
        if handle is None:
            return  # someone else holds it
        try:
            await run_job()
        finally:
            await coordinator.release(handle)
    """

    __slots__ = ("_sessions", "_store")

    def __init__(self, sessions: SessionManager, store: CoordinationStore) -> None:
        self._sessions = sessions
        self._store = store

    @property
    def sessions(self) -> SessionManager:
        return self._sessions

    async def lock(self, name: str, value: str = "") -> Optional[LockHandle]:
        """
        Attempt to acquire a lock once.

        Returns a LockHandle on success, None if another session holds
        the lock. Session creation and transport errors propagate.
        """
        session_id = await self._sessions.get_session_id()
        body = await self._store.kv_put(name, value, acquire=session_id)

        if body == C.ACQUIRE_FAILED_BODY:
            logger.debug(f"Lock {name!r} not acquired by session {session_id}")
            return None

        logger.debug(f"Lock {name!r} acquired by session {session_id}")
        return LockHandle(name=name, session_id=session_id)

    async def release(self, handle: LockHandle) -> None:
        """
        Release a lock. Fire-and-forget.

        The store decides whether the release meant anything; releasing a
        lock this session does not hold is a no-op there.
        """
        await self._store.kv_put(handle.name, "", release=handle.session_id)
        logger.debug(f"Lock {handle.name!r} released by session {handle.session_id}")

    async def is_valid(self, name: str, handle: LockHandle) -> bool:
        """
        Check whether handle currently authorizes operations on name.

        Absent keys, malformed bodies, unowned keys and foreign owners all
        answer False. Only a failed fetch raises (TransportError).
        """
        if handle.name != name:
            return False

        body = await self._store.kv_get(handle.name)
        if not body:
            return False

        try:
            records = json.loads(body)
        except ValueError:
            logger.warning(f"Undecodable KV response for {name!r}: {body[:200]!r}")
            return False

        if not isinstance(records, list) or not records:
            return False

        record = records[0]
        if not isinstance(record, dict) or C.SESSION_FIELD not in record:
            return False

        return record[C.SESSION_FIELD] == handle.session_id

    @asynccontextmanager
    async def hold(self, name: str, value: str = "") -> AsyncIterator[Optional[LockHandle]]:
        """
        Acquire a lock for the duration of a block.

        Yields the handle, or None if the lock was not acquired. An
        acquired lock is released on exit.

        Usage:
            async with coordinator.hold("jobs/nightly") as handle:
                if handle is None:
                    return
                await run_job()
        """
        handle = await self.lock(name, value)
        try:
            yield handle
        finally:
            if handle is not None:
                await self.release(handle)
