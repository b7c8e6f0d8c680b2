"""
In-Memory Coordination Store

Simulates the Consul KV + Session semantics the lock core relies on:
- Sessions with a TTL, expired lazily against an injectable clock
- acquire: succeeds iff the key is unowned or owned by the same session
- release: clears ownership iff the releasing session holds the key
- Session end (destroy or expiry) applies the session behavior to every
  key it holds: RELEASE clears the Session field, DELETE removes the key
- LockDelay: after a session ends, its keys refuse acquisition by other
  sessions until the delay elapses (only when the session asked for one)

Responses are Consul-shaped raw bodies, so the same parsing code runs
against this store and a real agent.

Thread Safety:
    All operations are async-safe via a single internal asyncio.Lock,
    which gives linearizable conditional writes per key.
"""

from __future__ import annotations

import asyncio
import base64
import json
import logging
from collections import Counter
from dataclasses import dataclass
from typing import Any, Optional
from uuid import uuid4

from kvlock.core.errors import TransportError
from kvlock.core.types import Clock, MonotonicClock
from kvlock.storage.protocols import SessionBehavior, SessionSpec

logger = logging.getLogger(__name__)


# =============================================================================
# STORE STATE
# =============================================================================
@dataclass(slots=True)
class _SessionState:
    session_id: str
    spec: SessionSpec
    expires_at: float
    create_index: int


@dataclass(slots=True)
class _KeyState:
    key: str
    value: bytes
    create_index: int
    modify_index: int
    lock_index: int = 0
    flags: int = 0
    session: Optional[str] = None

    def to_record(self) -> dict[str, Any]:
        """Consul KV entry shape. Session is omitted when unowned."""
        record: dict[str, Any] = {
            "LockIndex": self.lock_index,
            "Key": self.key,
            "Flags": self.flags,
            "Value": base64.b64encode(self.value).decode("ascii") if self.value else None,
            "CreateIndex": self.create_index,
            "ModifyIndex": self.modify_index,
        }
        if self.session:
            record["Session"] = self.session
        return record


# =============================================================================
# IN-MEMORY STORE
# =============================================================================
class InMemoryCoordinationStore:
    """
    Process-local CoordinationStore for tests, demos and local development.

    Usage:
        clock = FakeClock()
        store = InMemoryCoordinationStore(clock=clock)
        alice = LockCoordinator(SessionManager(store, 10, clock), store)
        bob = LockCoordinator(SessionManager(store, 10, clock), store)
    """

    __slots__ = (
        "_clock", "_lock", "_sessions", "_keys",
        "_lock_delays", "_index", "calls",
    )

    def __init__(self, clock: Optional[Clock] = None) -> None:
        self._clock: Clock = clock or MonotonicClock()
        self._lock = asyncio.Lock()
        self._sessions: dict[str, _SessionState] = {}
        self._keys: dict[str, _KeyState] = {}
        self._lock_delays: dict[str, float] = {}
        self._index = 0
        self.calls: Counter[str] = Counter()

    # -------------------------------------------------------------------------
    # SESSION OPERATIONS
    # -------------------------------------------------------------------------
    async def session_create(self, spec: SessionSpec) -> str:
        async with self._lock:
            self.calls["session_create"] += 1
            self._expire_sessions()

            session_id = str(uuid4())
            self._sessions[session_id] = _SessionState(
                session_id=session_id,
                spec=spec,
                expires_at=self._clock.now() + spec.ttl_seconds,
                create_index=self._next_index(),
            )
            return json.dumps({"ID": session_id})

    async def session_renew(self, session_id: str) -> str:
        async with self._lock:
            self.calls["session_renew"] += 1
            self._expire_sessions()

            state = self._sessions.get(session_id)
            if state is None:
                raise TransportError.unexpected_status(
                    "session_renew", 404, f"Session id '{session_id}' not found"
                )

            state.expires_at = self._clock.now() + state.spec.ttl_seconds
            return json.dumps([{
                "ID": state.session_id,
                "Name": state.spec.name or "",
                "TTL": state.spec.ttl,
                "Behavior": state.spec.behavior.value,
                "CreateIndex": state.create_index,
            }])

    async def session_destroy(self, session_id: str) -> str:
        async with self._lock:
            self.calls["session_destroy"] += 1
            self._expire_sessions()
            self._invalidate(session_id)
            return "true"

    # -------------------------------------------------------------------------
    # KV OPERATIONS
    # -------------------------------------------------------------------------
    async def kv_put(
        self,
        key: str,
        value: str = "",
        *,
        acquire: Optional[str] = None,
        release: Optional[str] = None,
    ) -> str:
        if acquire is not None and release is not None:
            raise ValueError("acquire and release are mutually exclusive")

        async with self._lock:
            self.calls["kv_put"] += 1
            self._expire_sessions()
            data = value.encode("utf-8")

            if acquire is not None:
                return self._acquire(key, data, acquire)
            if release is not None:
                return self._release(key, data, release)

            self._write(key, data)
            return "true"

    async def kv_get(self, key: str) -> str:
        async with self._lock:
            self.calls["kv_get"] += 1
            self._expire_sessions()

            state = self._keys.get(key)
            if state is None:
                return ""
            return json.dumps([state.to_record()])

    async def close(self) -> None:
        return None

    # -------------------------------------------------------------------------
    # INSPECTION
    # -------------------------------------------------------------------------
    def holder(self, key: str) -> Optional[str]:
        """Session currently owning key, without expiring anything."""
        state = self._keys.get(key)
        return state.session if state else None

    def has_key(self, key: str) -> bool:
        return key in self._keys

    @property
    def session_ids(self) -> frozenset[str]:
        return frozenset(self._sessions)

    def expire_session(self, session_id: str) -> None:
        """Force a session to lapse as if its TTL ran out."""
        self._invalidate(session_id)

    # -------------------------------------------------------------------------
    # INTERNALS
    # -------------------------------------------------------------------------
    def _acquire(self, key: str, data: bytes, session_id: str) -> str:
        if session_id not in self._sessions:
            raise TransportError.unexpected_status(
                "kv_put", 500, f'invalid session "{session_id}"'
            )

        state = self._keys.get(key)
        owner = state.session if state else None

        if owner is not None and owner != session_id:
            return "false"
        if owner is None and self._clock.now() < self._lock_delays.get(key, 0.0):
            return "false"

        state = self._write(key, data)
        if state.session != session_id:
            state.session = session_id
            state.lock_index += 1
        return "true"

    def _release(self, key: str, data: bytes, session_id: str) -> str:
        state = self._keys.get(key)
        if state is None or state.session != session_id:
            return "false"

        state = self._write(key, data)
        state.session = None
        return "true"

    def _write(self, key: str, data: bytes) -> _KeyState:
        index = self._next_index()
        state = self._keys.get(key)
        if state is None:
            state = _KeyState(key=key, value=data, create_index=index, modify_index=index)
            self._keys[key] = state
        else:
            state.value = data
            state.modify_index = index
        return state

    def _expire_sessions(self) -> None:
        now = self._clock.now()
        expired = [
            sid for sid, state in self._sessions.items()
            if state.expires_at <= now
        ]
        for sid in expired:
            logger.debug(f"Session {sid} expired")
            self._invalidate(sid)

        lapsed = [key for key, until in self._lock_delays.items() if until <= now]
        for key in lapsed:
            del self._lock_delays[key]

    def _invalidate(self, session_id: str) -> None:
        state = self._sessions.pop(session_id, None)
        if state is None:
            return

        delay = state.spec.lock_delay_seconds or 0
        held = [k for k, v in self._keys.items() if v.session == session_id]

        for key in held:
            if state.spec.behavior is SessionBehavior.DELETE:
                del self._keys[key]
            else:
                self._keys[key].session = None
                self._keys[key].modify_index = self._next_index()
            if delay:
                self._lock_delays[key] = self._clock.now() + delay

    def _next_index(self) -> int:
        self._index += 1
        return self._index
