"""
Session module: Lock session lifecycle.

Provides:
- SessionManager: Lazy session creation, throttled renewal, destruction
- HeartbeatRunner: Background task polling SessionManager.heartbeat()
"""

from kvlock.session.manager import SessionManager
from kvlock.session.heartbeat import HeartbeatRunner

__all__ = [
    "SessionManager",
    "HeartbeatRunner",
]
