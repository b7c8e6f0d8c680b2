"""
Configuration Management for kvlock

Provides validated configuration with sensible defaults.
Supports environment variable overrides.

Design:
- Immutable after construction
- Fail-fast on invalid configuration
- Type-safe with dataclasses
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Optional

from kvlock.core.types import Result, Ok, Err
from kvlock.core import constants as C


_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})
_SESSION_BEHAVIORS = frozenset({"release", "delete"})


@dataclass(frozen=True)
class ConsulConfig:
    """Consul agent connection configuration."""

    host: str = C.CONSUL_DEFAULT_HOST
    port: int = C.CONSUL_DEFAULT_PORT
    scheme: str = C.CONSUL_DEFAULT_SCHEME
    token: Optional[str] = None
    datacenter: Optional[str] = None
    timeout_s: float = C.HTTP_TIMEOUT_S
    verify_tls: bool = True

    @property
    def base_url(self) -> str:
        """Root URL of the versioned HTTP API."""
        return f"{self.scheme}://{self.host}:{self.port}/{C.CONSUL_API_VERSION}"


@dataclass(frozen=True)
class SessionConfig:
    """Lock session configuration."""

    ttl_seconds: int = C.DEFAULT_SESSION_TTL_S
    name: Optional[str] = None
    behavior: str = "release"
    lock_delay_seconds: Optional[int] = None
    heartbeat_poll_s: float = C.DEFAULT_HEARTBEAT_POLL_S


@dataclass(frozen=True)
class ObservabilityConfig:
    """Logging configuration."""

    log_level: str = "INFO"
    log_json: bool = True


@dataclass(frozen=True)
class KVLockConfig:
    """Root configuration."""

    consul: ConsulConfig = field(default_factory=ConsulConfig)
    session: SessionConfig = field(default_factory=SessionConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    @classmethod
    def from_env(cls) -> Result[KVLockConfig, str]:
        """
        Load configuration from environment variables.

        Environment variables are prefixed with KVLOCK_.
        Example: KVLOCK_CONSUL_HOST, KVLOCK_SESSION_TTL
        """
        env = _EnvReader(C.ENV_PREFIX)
        try:
            consul = ConsulConfig(
                host=env.get("CONSUL_HOST", C.CONSUL_DEFAULT_HOST),
                port=int(env.get("CONSUL_PORT", str(C.CONSUL_DEFAULT_PORT))),
                scheme=env.get("CONSUL_SCHEME", C.CONSUL_DEFAULT_SCHEME),
                token=env.optional("CONSUL_TOKEN"),
                datacenter=env.optional("CONSUL_DATACENTER"),
                timeout_s=float(env.get("CONSUL_TIMEOUT", str(C.HTTP_TIMEOUT_S))),
                verify_tls=env.flag("CONSUL_VERIFY_TLS", True),
            )

            lock_delay = env.optional("SESSION_LOCK_DELAY")
            session = SessionConfig(
                ttl_seconds=int(env.get("SESSION_TTL", str(C.DEFAULT_SESSION_TTL_S))),
                name=env.optional("SESSION_NAME"),
                behavior=env.get("SESSION_BEHAVIOR", "release").lower(),
                lock_delay_seconds=int(lock_delay) if lock_delay is not None else None,
                heartbeat_poll_s=float(
                    env.get("HEARTBEAT_POLL", str(C.DEFAULT_HEARTBEAT_POLL_S))
                ),
            )

            observability = ObservabilityConfig(
                log_level=env.get("LOG_LEVEL", "INFO").upper(),
                log_json=env.flag("LOG_JSON", True),
            )

            return Ok(cls(consul=consul, session=session, observability=observability))
        except (ValueError, TypeError) as e:
            return Err(f"Configuration error: {e}")

    def validate(self) -> Result[None, str]:
        """Validate configuration invariants."""
        if not 0 < self.consul.port < 65536:
            return Err(f"Consul port out of range: {self.consul.port}")
        if self.consul.scheme not in ("http", "https"):
            return Err(f"Unsupported Consul scheme: {self.consul.scheme}")
        if self.consul.timeout_s <= 0:
            return Err("Consul timeout must be > 0")
        if self.session.ttl_seconds <= 0:
            return Err("Session TTL must be > 0")
        if self.session.behavior not in _SESSION_BEHAVIORS:
            return Err(f"Unknown session behavior: {self.session.behavior}")
        if self.session.lock_delay_seconds is not None and self.session.lock_delay_seconds < 0:
            return Err("Session lock delay must be >= 0")
        if self.session.heartbeat_poll_s <= 0:
            return Err("Heartbeat poll interval must be > 0")
        if self.observability.log_level not in _LOG_LEVELS:
            return Err(f"Unknown log level: {self.observability.log_level}")
        return Ok(None)


class _EnvReader:
    """Prefixed environment lookups."""

    __slots__ = ("_prefix",)

    def __init__(self, prefix: str) -> None:
        self._prefix = prefix

    def get(self, name: str, default: str) -> str:
        return os.getenv(self._prefix + name, default)

    def optional(self, name: str) -> Optional[str]:
        value = os.getenv(self._prefix + name)
        return value if value else None

    def flag(self, name: str, default: bool) -> bool:
        value = os.getenv(self._prefix + name)
        if value is None:
            return default
        return value.strip().lower() in ("1", "true", "yes", "on")
