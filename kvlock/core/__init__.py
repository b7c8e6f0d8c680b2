"""
Core module: Type definitions, error hierarchy, and configuration.

This module provides the foundational abstractions:
- Result monad for configuration loading
- Clock protocol for injectable time
- Error hierarchy with error codes and context
"""

from kvlock.core.types import (
    Result,
    Ok,
    Err,
    Clock,
    MonotonicClock,
)
from kvlock.core.errors import (
    ErrorCode,
    KVLockError,
    ConfigurationError,
    MalformedResponseError,
    TransportError,
)
from kvlock.core.config import (
    KVLockConfig,
    ConsulConfig,
    SessionConfig,
    ObservabilityConfig,
)

__all__ = [
    "Result",
    "Ok",
    "Err",
    "Clock",
    "MonotonicClock",
    "ErrorCode",
    "KVLockError",
    "ConfigurationError",
    "MalformedResponseError",
    "TransportError",
    "KVLockConfig",
    "ConsulConfig",
    "SessionConfig",
    "ObservabilityConfig",
]
