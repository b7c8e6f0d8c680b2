"""
kvlock: Distributed Try-Locks over a Session-Bearing KV Store

Named mutual-exclusion locks built on a Consul-style coordination store:
- SessionManager: one lazily created, TTL-bound session per process,
  renewed by a throttled heartbeat
- LockCoordinator: single-attempt acquire, release and validation through
  the store's session-guarded conditional writes
- Stores: Consul HTTP adapter and an in-memory simulation

A crashed holder's locks are released by the store once its session TTL
lapses.

License: MIT
"""

__version__ = "1.0.0"

# =============================================================================
# PUBLIC API EXPORTS
# =============================================================================
from kvlock.core.types import Result, Ok, Err, Clock, MonotonicClock
from kvlock.core.errors import (
    KVLockError,
    ConfigurationError,
    MalformedResponseError,
    TransportError,
)
from kvlock.core.config import KVLockConfig

from kvlock.storage import (
    CoordinationStore,
    SessionBehavior,
    SessionSpec,
    ConsulCoordinationStore,
    InMemoryCoordinationStore,
)
from kvlock.session import SessionManager, HeartbeatRunner
from kvlock.lock import LockCoordinator, LockHandle

__all__ = [
    # Version
    "__version__",
    # Result monad
    "Result",
    "Ok",
    "Err",
    # Time
    "Clock",
    "MonotonicClock",
    # Errors
    "KVLockError",
    "ConfigurationError",
    "MalformedResponseError",
    "TransportError",
    # Config
    "KVLockConfig",
    # Storage
    "CoordinationStore",
    "SessionBehavior",
    "SessionSpec",
    "ConsulCoordinationStore",
    "InMemoryCoordinationStore",
    # Sessions
    "SessionManager",
    "HeartbeatRunner",
    # Locks
    "LockCoordinator",
    "LockHandle",
]
