"""
Unit Tests: Configuration, Result types and errors
"""

import dataclasses
import os

import pytest

from kvlock.core.config import ConsulConfig, KVLockConfig, SessionConfig
from kvlock.core.errors import (
    ConfigurationError,
    ErrorCode,
    KVLockError,
    MalformedResponseError,
    TransportError,
)
from kvlock.core.types import Err, Ok


class TestResult:

    def test_ok(self):
        result = Ok(3)
        assert result.is_ok() and not result.is_err()
        assert result.unwrap() == 3

    def test_err(self):
        result = Err("nope")
        assert result.is_err() and not result.is_ok()
        with pytest.raises(RuntimeError):
            result.unwrap()


class TestKVLockConfig:

    def test_defaults(self, monkeypatch):
        for key in list(os.environ):
            if key.startswith("KVLOCK_"):
                monkeypatch.delenv(key)

        config = KVLockConfig.from_env().unwrap()

        assert config.consul.base_url == "http://127.0.0.1:8500/v1"
        assert config.consul.token is None
        assert config.session.ttl_seconds == 30
        assert config.session.behavior == "release"
        assert config.observability.log_level == "INFO"
        assert config.validate().is_ok()

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("KVLOCK_CONSUL_HOST", "consul.internal")
        monkeypatch.setenv("KVLOCK_CONSUL_PORT", "8501")
        monkeypatch.setenv("KVLOCK_CONSUL_SCHEME", "https")
        monkeypatch.setenv("KVLOCK_CONSUL_TOKEN", "s3cret")
        monkeypatch.setenv("KVLOCK_CONSUL_DATACENTER", "eu-west")
        monkeypatch.setenv("KVLOCK_CONSUL_VERIFY_TLS", "false")
        monkeypatch.setenv("KVLOCK_SESSION_TTL", "15")
        monkeypatch.setenv("KVLOCK_SESSION_NAME", "worker")
        monkeypatch.setenv("KVLOCK_SESSION_BEHAVIOR", "DELETE")
        monkeypatch.setenv("KVLOCK_SESSION_LOCK_DELAY", "0")
        monkeypatch.setenv("KVLOCK_LOG_LEVEL", "debug")
        monkeypatch.setenv("KVLOCK_LOG_JSON", "no")

        config = KVLockConfig.from_env().unwrap()

        assert config.consul.base_url == "https://consul.internal:8501/v1"
        assert config.consul.token == "s3cret"
        assert config.consul.datacenter == "eu-west"
        assert config.consul.verify_tls is False
        assert config.session == SessionConfig(
            ttl_seconds=15, name="worker", behavior="delete", lock_delay_seconds=0
        )
        assert config.observability.log_level == "DEBUG"
        assert config.observability.log_json is False
        assert config.validate().is_ok()

    def test_unparseable_value_is_err(self, monkeypatch):
        monkeypatch.setenv("KVLOCK_SESSION_TTL", "thirty")
        result = KVLockConfig.from_env()
        assert result.is_err()
        assert "Configuration error" in result.error

    @pytest.mark.parametrize("change", [
        {"consul": ConsulConfig(port=0)},
        {"consul": ConsulConfig(scheme="ftp")},
        {"consul": ConsulConfig(timeout_s=0)},
        {"session": SessionConfig(ttl_seconds=0)},
        {"session": SessionConfig(behavior="keep")},
        {"session": SessionConfig(lock_delay_seconds=-1)},
        {"session": SessionConfig(heartbeat_poll_s=0)},
    ])
    def test_validate_rejects(self, change):
        config = dataclasses.replace(KVLockConfig(), **change)
        assert config.validate().is_err()

    def test_frozen(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            KVLockConfig().consul.host = "elsewhere"


class TestErrors:

    def test_hierarchy(self):
        for cls in (ConfigurationError, MalformedResponseError, TransportError):
            assert issubclass(cls, KVLockError)
        assert not issubclass(TransportError, MalformedResponseError)

    def test_malformed_response_keeps_raw_body(self):
        error = MalformedResponseError.missing_field("session_create", "ID", '{"bar": 1}')
        assert error.context["response"] == '{"bar": 1}'
        assert "ID" in str(error)

    def test_to_dict(self):
        error = TransportError.unexpected_status("kv_put", 500, "boom")
        data = error.to_dict()
        assert data["code"] == "TRANSPORT_UNEXPECTED_STATUS"
        assert data["code_value"] == ErrorCode.TRANSPORT_UNEXPECTED_STATUS.value
        assert data["context"]["status"] == 500
        assert error.status == 500

    def test_unique_ids(self):
        a = ConfigurationError.invalid_ttl(0)
        b = ConfigurationError.invalid_ttl(0)
        assert a.error_id != b.error_id


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
