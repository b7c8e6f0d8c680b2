"""
Test doubles: simulated clock and a scripted, call-recording store.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Awaitable, Optional, TypeVar

from kvlock.storage.protocols import SessionSpec

T = TypeVar("T")


def run(coro: Awaitable[T]) -> T:
    """Drive a coroutine to completion on a fresh event loop."""
    return asyncio.run(coro)


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.current = start

    def now(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds


class RecordingStore:
    """
    CoordinationStore double returning scripted bodies.

    Every call is appended to `calls` as (operation, args, kwargs).
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple[Any, ...], dict[str, Any]]] = []
        self.create_bodies: list[str] = []
        self.put_body = "true"
        self.get_body = ""
        self.renew_error: Optional[BaseException] = None
        self.get_error: Optional[BaseException] = None
        self.destroy_error: Optional[BaseException] = None
        self._created = 0

    def count(self, operation: str) -> int:
        return sum(1 for op, _, _ in self.calls if op == operation)

    def last(self, operation: str) -> tuple[tuple[Any, ...], dict[str, Any]]:
        for op, args, kwargs in reversed(self.calls):
            if op == operation:
                return args, kwargs
        raise AssertionError(f"{operation} was never called")

    async def session_create(self, spec: SessionSpec) -> str:
        self.calls.append(("session_create", (spec,), {}))
        self._created += 1
        if self.create_bodies:
            return self.create_bodies.pop(0)
        return json.dumps({"ID": f"session-{self._created}"})

    async def session_renew(self, session_id: str) -> str:
        self.calls.append(("session_renew", (session_id,), {}))
        if self.renew_error is not None:
            raise self.renew_error
        return "[]"

    async def session_destroy(self, session_id: str) -> str:
        self.calls.append(("session_destroy", (session_id,), {}))
        if self.destroy_error is not None:
            raise self.destroy_error
        return "true"

    async def kv_put(
        self,
        key: str,
        value: str = "",
        *,
        acquire: Optional[str] = None,
        release: Optional[str] = None,
    ) -> str:
        self.calls.append(("kv_put", (key, value), {"acquire": acquire, "release": release}))
        return self.put_body

    async def kv_get(self, key: str) -> str:
        self.calls.append(("kv_get", (key,), {}))
        if self.get_error is not None:
            raise self.get_error
        return self.get_body

    async def close(self) -> None:
        return None
