"""
Unit Tests: LockCoordinator

Tests:
    - lock(): acquire write, "false" body, session propagation
    - release(): release directive, no return value
    - is_valid(): name short-circuit and tolerant record parsing
    - hold(): release on exit
"""

import json

import pytest

from kvlock.core.errors import MalformedResponseError, TransportError
from kvlock.lock.coordinator import LockCoordinator, LockHandle
from kvlock.session.manager import SessionManager
from kvlock.tests.helpers import run


@pytest.fixture
def coordinator(store):
    return LockCoordinator(SessionManager(store), store)


class TestLock:
    """Tests for lock acquisition."""

    def test_returns_handle_with_name_and_session(self, coordinator, store):
        handle = run(coordinator.lock("foo"))
        assert handle == LockHandle(name="foo", session_id="session-1")

    def test_issues_acquire_write(self, coordinator, store):
        run(coordinator.lock("foo", value="worker-7"))

        args, kwargs = store.last("kv_put")
        assert args == ("foo", "worker-7")
        assert kwargs == {"acquire": "session-1", "release": None}

    def test_false_body_means_not_acquired(self, coordinator, store):
        store.put_body = "false"
        assert run(coordinator.lock("foo")) is None

    @pytest.mark.parametrize("body", ["true", "", "False", "null", "{}"])
    def test_any_other_body_means_acquired(self, coordinator, store, body):
        store.put_body = body
        assert run(coordinator.lock("foo")) is not None

    def test_reuses_session_across_locks(self, coordinator, store):
        async def scenario():
            return await coordinator.lock("a"), await coordinator.lock("b")

        first, second = run(scenario())
        assert first.session_id == second.session_id
        assert store.count("session_create") == 1

    def test_single_attempt(self, coordinator, store):
        store.put_body = "false"
        run(coordinator.lock("foo"))
        assert store.count("kv_put") == 1

    def test_session_errors_propagate(self, coordinator, store):
        store.create_bodies.append(json.dumps({"bar": "baz"}))
        with pytest.raises(MalformedResponseError):
            run(coordinator.lock("foo"))
        assert store.count("kv_put") == 0


class TestRelease:
    """Tests for lock release."""

    def test_issues_release_write(self, coordinator, store):
        result = run(coordinator.release(LockHandle(name="foo", session_id="bar")))

        assert result is None
        args, kwargs = store.last("kv_put")
        assert args == ("foo", "")
        assert kwargs == {"acquire": None, "release": "bar"}

    def test_does_not_create_session(self, coordinator, store):
        run(coordinator.release(LockHandle(name="foo", session_id="bar")))
        assert store.count("session_create") == 0

    def test_ignores_false_body(self, coordinator, store):
        store.put_body = "false"
        assert run(coordinator.release(LockHandle(name="foo", session_id="bar"))) is None


class TestIsValid:
    """Tests for handle validation."""

    def test_name_mismatch_skips_store(self, coordinator, store):
        handle = LockHandle(name="bar", session_id="s")
        assert run(coordinator.is_valid("foo", handle)) is False
        assert store.calls == []

    def test_reads_handle_key(self, coordinator, store):
        run(coordinator.is_valid("foo", LockHandle(name="foo", session_id="bar")))
        args, _ = store.last("kv_get")
        assert args == ("foo",)

    @pytest.mark.parametrize("body", [
        "",
        json.dumps("foo"),
        json.dumps([]),
        json.dumps({"Key": "foo", "Session": "bar"}),
        json.dumps(["foo"]),
        json.dumps([None]),
        "not json",
        "[{",
    ])
    def test_missing_or_malformed_record_is_invalid(self, coordinator, store, body):
        store.get_body = body
        handle = LockHandle(name="foo", session_id="bar")
        assert run(coordinator.is_valid("foo", handle)) is False

    def test_unowned_record_is_invalid(self, coordinator, store):
        store.get_body = json.dumps([{"Key": "foo"}])
        handle = LockHandle(name="foo", session_id="bar")
        assert run(coordinator.is_valid("foo", handle)) is False

    def test_foreign_session_is_invalid(self, coordinator, store):
        store.get_body = json.dumps([{"Key": "foo", "Session": "baz"}])
        handle = LockHandle(name="foo", session_id="bar")
        assert run(coordinator.is_valid("foo", handle)) is False

    def test_null_session_is_invalid(self, coordinator, store):
        store.get_body = json.dumps([{"Key": "foo", "Session": None}])
        handle = LockHandle(name="foo", session_id="bar")
        assert run(coordinator.is_valid("foo", handle)) is False

    def test_matching_session_is_valid(self, coordinator, store):
        store.get_body = json.dumps([{"Key": "foo", "Session": "bar"}])
        handle = LockHandle(name="foo", session_id="bar")
        assert run(coordinator.is_valid("foo", handle)) is True

    def test_only_first_record_counts(self, coordinator, store):
        store.get_body = json.dumps([
            {"Key": "foo", "Session": "baz"},
            {"Key": "foo", "Session": "bar"},
        ])
        handle = LockHandle(name="foo", session_id="bar")
        assert run(coordinator.is_valid("foo", handle)) is False

    def test_fetch_failure_propagates(self, coordinator, store):
        store.get_error = TransportError.request_failed("kv_get", OSError("refused"))
        handle = LockHandle(name="foo", session_id="bar")
        with pytest.raises(TransportError):
            run(coordinator.is_valid("foo", handle))


class TestHold:
    """Tests for the acquire/release context manager."""

    def test_releases_on_exit(self, coordinator, store):
        async def scenario():
            async with coordinator.hold("foo") as handle:
                assert handle is not None
                assert store.count("kv_put") == 1
            return handle

        handle = run(scenario())
        _, kwargs = store.last("kv_put")
        assert kwargs["release"] == handle.session_id

    def test_releases_when_block_raises(self, coordinator, store):
        async def scenario():
            async with coordinator.hold("foo"):
                raise RuntimeError("job failed")

        with pytest.raises(RuntimeError):
            run(scenario())
        _, kwargs = store.last("kv_put")
        assert kwargs["release"] == "session-1"

    def test_yields_none_without_release_when_contended(self, coordinator, store):
        store.put_body = "false"

        async def scenario():
            async with coordinator.hold("foo") as handle:
                return handle

        assert run(scenario()) is None
        assert store.count("kv_put") == 1


class TestLockHandle:
    """Tests for the handle value type."""

    def test_immutable(self):
        handle = LockHandle(name="foo", session_id="bar")
        with pytest.raises(AttributeError):
            handle.name = "baz"

    def test_value_equality(self):
        assert LockHandle("foo", "bar") == LockHandle("foo", "bar")
        assert hash(LockHandle("foo", "bar")) == hash(LockHandle("foo", "bar"))


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
