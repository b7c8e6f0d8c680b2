"""
Coordination Store Protocol: KV + Session Capability

Structural subtyping protocol (PEP 544) for the store the lock core is
layered on. The core depends only on this surface:

    session_create(spec)              -> body '{"ID": "<id>"}'
    session_renew(session_id)         -> body (ignored)
    session_destroy(session_id)       -> body (ignored)
    kv_put(key, value, acquire=id)    -> body "true" | "false"
    kv_put(key, value, release=id)    -> body "true" | "false"
    kv_get(key)                       -> body JSON list of records | ""

Bodies are returned raw. Parsing and shape tolerance belong to the
caller, so every adapter reports exactly what the store said.

Failure contract:
    Any request that cannot be completed, or that the store rejects with a
    non-success status, raises TransportError. A missing key on kv_get is
    NOT a failure: adapters return "".
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Protocol, runtime_checkable


# =============================================================================
# SESSION BEHAVIOR
# =============================================================================
class SessionBehavior(Enum):
    """What the store does with held keys when a session ends."""
    RELEASE = "release"  # Clear the Session field, keep the key
    DELETE = "delete"    # Delete the key


# =============================================================================
# SESSION SPEC
# =============================================================================
@dataclass(frozen=True, slots=True)
class SessionSpec:
    """Parameters for a session create request."""
    ttl_seconds: int
    name: Optional[str] = None
    behavior: SessionBehavior = SessionBehavior.RELEASE
    lock_delay_seconds: Optional[int] = None

    @property
    def ttl(self) -> str:
        """TTL in the store's duration notation."""
        return f"{self.ttl_seconds}s"

    def to_payload(self) -> dict[str, Any]:
        """Request body for session create."""
        payload: dict[str, Any] = {
            "TTL": self.ttl,
            "Behavior": self.behavior.value,
        }
        if self.name:
            payload["Name"] = self.name
        if self.lock_delay_seconds is not None:
            payload["LockDelay"] = f"{self.lock_delay_seconds}s"
        return payload


# =============================================================================
# STORE PROTOCOL
# =============================================================================
@runtime_checkable
class CoordinationStore(Protocol):
    """Session-bearing KV store capability."""

    async def session_create(self, spec: SessionSpec) -> str:
        """Create a session. Returns the raw response body."""
        ...

    async def session_renew(self, session_id: str) -> str:
        """Reset the session TTL countdown."""
        ...

    async def session_destroy(self, session_id: str) -> str:
        """Invalidate the session, applying its behavior to held keys."""
        ...

    async def kv_put(
        self,
        key: str,
        value: str = "",
        *,
        acquire: Optional[str] = None,
        release: Optional[str] = None,
    ) -> str:
        """Write a key, optionally guarded by an acquire/release directive."""
        ...

    async def kv_get(self, key: str) -> str:
        """Read a key. Returns the raw body, or "" if the key is absent."""
        ...

    async def close(self) -> None:
        """Release transport resources."""
        ...
