"""
Lock module: Named try-locks over a coordination store.
"""

from kvlock.lock.coordinator import LockCoordinator, LockHandle

__all__ = [
    "LockCoordinator",
    "LockHandle",
]
