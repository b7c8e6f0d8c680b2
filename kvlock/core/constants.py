"""
System-Wide Constants for kvlock

All defaults and protocol literals centralized here.
"""

from typing import Final

# =============================================================================
# SESSIONS
# =============================================================================
DEFAULT_SESSION_TTL_S: Final[int] = 30
HEARTBEAT_INTERVAL_S: Final[int] = 5
DEFAULT_HEARTBEAT_POLL_S: Final[float] = 1.0

# =============================================================================
# CONSUL AGENT
# =============================================================================
CONSUL_DEFAULT_HOST: Final[str] = "127.0.0.1"
CONSUL_DEFAULT_PORT: Final[int] = 8500
CONSUL_DEFAULT_SCHEME: Final[str] = "http"
CONSUL_API_VERSION: Final[str] = "v1"
CONSUL_TOKEN_HEADER: Final[str] = "X-Consul-Token"
HTTP_TIMEOUT_S: Final[float] = 10.0

# =============================================================================
# WIRE LITERALS
# =============================================================================
ACQUIRE_FAILED_BODY: Final[str] = "false"
SESSION_ID_FIELD: Final[str] = "ID"
SESSION_FIELD: Final[str] = "Session"

# =============================================================================
# ENVIRONMENT
# =============================================================================
ENV_PREFIX: Final[str] = "KVLOCK_"
