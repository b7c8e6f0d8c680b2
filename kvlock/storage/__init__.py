"""
Storage module: Coordination store protocol and adapters.

Provides:
- CoordinationStore: KV + Session capability consumed by the lock core
- ConsulCoordinationStore: Consul HTTP API adapter (httpx)
- InMemoryCoordinationStore: Simulated store with Consul semantics
"""

from kvlock.storage.protocols import (
    CoordinationStore,
    SessionBehavior,
    SessionSpec,
)
from kvlock.storage.consul_store import ConsulCoordinationStore
from kvlock.storage.memory_store import InMemoryCoordinationStore

__all__ = [
    "CoordinationStore",
    "SessionBehavior",
    "SessionSpec",
    "ConsulCoordinationStore",
    "InMemoryCoordinationStore",
]
