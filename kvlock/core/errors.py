"""
Error Hierarchy for kvlock

Design Principles:
- Contention outcomes (lock taken, handle stale) are values, never errors
- Configuration errors fail fast at construction
- Response-shape errors carry the raw response for diagnosis
- Transport errors propagate unchanged; nothing is retried internally

Each error type includes:
- Unique error code for programmatic handling
- Human-readable message for logging
- Optional cause for root cause analysis
- Context dict with operation details

Usage:
    try:
        handle = await coordinator.lock("jobs/nightly")
    except TransportError as e:
        logger.error("store unreachable", extra=e.to_dict())
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional
from uuid import uuid4


# =============================================================================
# ERROR CODE ENUMERATION
# =============================================================================
class ErrorCode(Enum):
    """
    Unique error codes for programmatic error handling.

    Codes are grouped by subsystem:
    - 1xxx: Configuration errors
    - 2xxx: Store response errors
    - 3xxx: Transport errors
    """

    # Configuration errors (1xxx)
    CONFIG_INVALID_TTL = 1001
    CONFIG_INVALID_VALUE = 1002

    # Response errors (2xxx)
    RESPONSE_MISSING_FIELD = 2001
    RESPONSE_UNDECODABLE = 2002

    # Transport errors (3xxx)
    TRANSPORT_REQUEST_FAILED = 3001
    TRANSPORT_UNEXPECTED_STATUS = 3002


# =============================================================================
# BASE ERROR CLASS
# =============================================================================
@dataclass(eq=False)
class KVLockError(Exception):
    """
    Base class for all kvlock errors.

    Provides a unique error ID, an error code, a creation timestamp,
    and a context dict describing the failed operation.
    """

    code: ErrorCode
    message: str
    error_id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: float = field(default_factory=time.time)
    cause: Optional[BaseException] = None
    context: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize error to dictionary for structured logging."""
        return {
            "error_id": self.error_id,
            "code": self.code.name,
            "code_value": self.code.value,
            "message": self.message,
            "timestamp": self.timestamp,
            "context": self.context,
        }

    def __str__(self) -> str:
        return f"[{self.code.name}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"code={self.code.name}, "
            f"message={self.message!r}, "
            f"error_id={self.error_id!r})"
        )


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================
@dataclass(eq=False)
class ConfigurationError(KVLockError):
    """Invalid construction parameters. Never retried."""

    @classmethod
    def invalid_ttl(cls, ttl: Any) -> ConfigurationError:
        """Session TTL is not a positive integer."""
        return cls(
            code=ErrorCode.CONFIG_INVALID_TTL,
            message="The session TTL must be a positive integer",
            context={"ttl": ttl},
        )

    @classmethod
    def invalid_value(cls, name: str, value: Any, reason: str) -> ConfigurationError:
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for {name}: {reason}",
            context={"name": name, "value": value},
        )


# =============================================================================
# RESPONSE ERRORS
# =============================================================================
@dataclass(eq=False)
class MalformedResponseError(KVLockError):
    """
    Store response lacks an expected field.

    The raw response body is kept in context["response"].
    """

    @classmethod
    def missing_field(
        cls,
        operation: str,
        field_name: str,
        response: str,
    ) -> MalformedResponseError:
        return cls(
            code=ErrorCode.RESPONSE_MISSING_FIELD,
            message=f"Malformed {operation} response: missing {field_name!r}",
            context={
                "operation": operation,
                "field": field_name,
                "response": response,
            },
        )

    @classmethod
    def undecodable(
        cls,
        operation: str,
        response: str,
        cause: Optional[BaseException] = None,
    ) -> MalformedResponseError:
        return cls(
            code=ErrorCode.RESPONSE_UNDECODABLE,
            message=f"Malformed {operation} response: body is not valid JSON",
            cause=cause,
            context={"operation": operation, "response": response},
        )


# =============================================================================
# TRANSPORT ERRORS
# =============================================================================
@dataclass(eq=False)
class TransportError(KVLockError):
    """
    Network or store-level failure of a request.

    Distinct from negative lock outcomes: a TransportError means the
    question could not be asked, not that the answer was "no".
    """

    @property
    def status(self) -> Optional[int]:
        return self.context.get("status")

    @classmethod
    def request_failed(
        cls,
        operation: str,
        cause: Optional[BaseException] = None,
    ) -> TransportError:
        """The request never produced a response."""
        return cls(
            code=ErrorCode.TRANSPORT_REQUEST_FAILED,
            message=f"{operation} request failed: {cause}",
            cause=cause,
            context={"operation": operation},
        )

    @classmethod
    def unexpected_status(
        cls,
        operation: str,
        status: int,
        body: str = "",
    ) -> TransportError:
        """The store answered with a non-success status."""
        return cls(
            code=ErrorCode.TRANSPORT_UNEXPECTED_STATUS,
            message=f"{operation} returned HTTP {status}: {body.strip()}",
            context={"operation": operation, "status": status, "body": body},
        )
