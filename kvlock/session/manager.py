"""
Session Manager: Lazy, Throttled Lock Sessions

Owns exactly one renewable session per manager instance:
- Created lazily on first get_session_id()/create_session()
- Renewed by heartbeat(), at most once per HEARTBEAT_INTERVAL_S
- Destroyed by destroy_session(); the next request creates a fresh one

Heartbeat Throttle:
    heartbeat() is meant to be called from tight processing loops. A renew
    request goes out only when HEARTBEAT_INTERVAL_S has elapsed since the
    last attempt. The attempt time is recorded whether or not the renew
    succeeds, so a failing store cannot turn a polling loop into a request
    storm. Callers must therefore heartbeat often enough relative to the
    TTL that an occasional lost renewal does not let the session lapse.

Thread Safety:
    Session state is mutated only under an internal asyncio.Lock.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Optional

from kvlock.core import constants as C
from kvlock.core.config import SessionConfig
from kvlock.core.errors import ConfigurationError, MalformedResponseError
from kvlock.core.types import Clock, MonotonicClock
from kvlock.storage.protocols import CoordinationStore, SessionBehavior, SessionSpec

logger = logging.getLogger(__name__)


class SessionManager:
    """
    Lifecycle manager for a single store session.

    Usage:
        sessions = SessionManager(store, ttl_seconds=15)

        session_id = await sessions.get_session_id()
        while working:
            do_work()
            await sessions.heartbeat()
        await sessions.destroy_session()
    """

    HEARTBEAT_INTERVAL_S: int = C.HEARTBEAT_INTERVAL_S

    __slots__ = (
        "_store", "_spec", "_clock", "_lock",
        "_session_id", "_last_heartbeat_at",
    )

    def __init__(
        self,
        store: CoordinationStore,
        ttl_seconds: int = C.DEFAULT_SESSION_TTL_S,
        clock: Optional[Clock] = None,
        *,
        name: Optional[str] = None,
        behavior: SessionBehavior = SessionBehavior.RELEASE,
        lock_delay_seconds: Optional[int] = None,
    ) -> None:
        try:
            ttl = int(ttl_seconds)
        except (TypeError, ValueError) as e:
            raise ConfigurationError.invalid_ttl(ttl_seconds) from e

        if ttl <= 0:
            raise ConfigurationError.invalid_ttl(ttl_seconds)

        if ttl <= self.HEARTBEAT_INTERVAL_S:
            logger.warning(
                f"Session TTL {ttl}s does not exceed the heartbeat interval "
                f"{self.HEARTBEAT_INTERVAL_S}s; sessions may lapse between renewals"
            )

        self._store = store
        self._spec = SessionSpec(
            ttl_seconds=ttl,
            name=name,
            behavior=behavior,
            lock_delay_seconds=lock_delay_seconds,
        )
        self._clock: Clock = clock or MonotonicClock()
        self._lock = asyncio.Lock()
        self._session_id: Optional[str] = None
        self._last_heartbeat_at: Optional[float] = None

    @classmethod
    def from_config(
        cls,
        store: CoordinationStore,
        config: SessionConfig,
        clock: Optional[Clock] = None,
    ) -> SessionManager:
        return cls(
            store,
            config.ttl_seconds,
            clock,
            name=config.name,
            behavior=SessionBehavior(config.behavior),
            lock_delay_seconds=config.lock_delay_seconds,
        )

    # -------------------------------------------------------------------------
    # PROPERTIES
    # -------------------------------------------------------------------------
    @property
    def ttl_seconds(self) -> int:
        return self._spec.ttl_seconds

    @property
    def session_id(self) -> Optional[str]:
        """Current session id, or None. Never creates a session."""
        return self._session_id

    @property
    def last_heartbeat_at(self) -> Optional[float]:
        return self._last_heartbeat_at

    # -------------------------------------------------------------------------
    # LIFECYCLE
    # -------------------------------------------------------------------------
    async def create_session(self) -> str:
        """
        Create a session if none exists and return its identifier.

        Idempotent: while a session exists, no request is issued and the
        same identifier is returned.

        Raises:
            MalformedResponseError: the create response has no "ID" field
            TransportError: the create request failed
        """
        async with self._lock:
            if self._session_id:
                return self._session_id

            body = await self._store.session_create(self._spec)
            self._session_id = self._parse_session_id(body)
            logger.info(
                f"Created session {self._session_id} (ttl={self._spec.ttl})"
            )
            return self._session_id

    async def get_session_id(self) -> str:
        """Return the current session identifier, creating one if needed."""
        return await self.create_session()

    async def heartbeat(self) -> bool:
        """
        Renew the session TTL, throttled to one request per interval.

        Returns True if a renew request was issued. A failed renew still
        counts as an attempt for throttling, and its error propagates.
        """
        async with self._lock:
            if not self._session_id:
                return False

            now = self._clock.now()
            if (
                self._last_heartbeat_at is not None
                and now < self._last_heartbeat_at + self.HEARTBEAT_INTERVAL_S
            ):
                return False

            try:
                await self._store.session_renew(self._session_id)
                logger.debug(f"Renewed session {self._session_id}")
            finally:
                self._last_heartbeat_at = self._clock.now()
            return True

    async def destroy_session(self) -> None:
        """
        Destroy the current session, if any.

        Local state is cleared only once the store accepted the destroy,
        so a failed attempt can be repeated.
        """
        async with self._lock:
            if not self._session_id:
                return

            session_id = self._session_id
            await self._store.session_destroy(session_id)
            self._session_id = None
            self._last_heartbeat_at = None
            logger.info(f"Destroyed session {session_id}")

    async def __aenter__(self) -> SessionManager:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.destroy_session()

    # -------------------------------------------------------------------------
    # INTERNALS
    # -------------------------------------------------------------------------
    @staticmethod
    def _parse_session_id(body: str) -> str:
        try:
            data = json.loads(body)
        except (TypeError, ValueError) as e:
            raise MalformedResponseError.undecodable("session_create", body, e) from e

        session_id = data.get(C.SESSION_ID_FIELD) if isinstance(data, dict) else None
        if not session_id:
            raise MalformedResponseError.missing_field(
                "session_create", C.SESSION_ID_FIELD, body
            )
        return str(session_id)

    def __repr__(self) -> str:
        return (
            f"SessionManager(session_id={self._session_id!r}, "
            f"ttl={self._spec.ttl})"
        )
