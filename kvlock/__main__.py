#!/usr/bin/env python3
"""
kvlock command line

Usage:
    python -m kvlock demo
    python -m kvlock acquire jobs/nightly --hold 30
    python -m kvlock check jobs/nightly <session-id>
    python -m kvlock release jobs/nightly <session-id>

    # Point at a remote agent
    KVLOCK_CONSUL_HOST=consul.internal python -m kvlock acquire jobs/nightly
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import Optional, Sequence

from kvlock.core.config import KVLockConfig
from kvlock.core.errors import KVLockError
from kvlock.lock.coordinator import LockCoordinator, LockHandle
from kvlock.observability.logging import LogLevel, StructuredLogger, setup_logging
from kvlock.session.heartbeat import HeartbeatRunner
from kvlock.session.manager import SessionManager
from kvlock.storage.consul_store import ConsulCoordinationStore
from kvlock.storage.memory_store import InMemoryCoordinationStore

logger = StructuredLogger("kvlock.cli")


async def demo_local_mode() -> int:
    """Two coordinators contending for one lock on an in-memory store."""
    print("\n" + "=" * 60)
    print("kvlock - Local Contention Demo")
    print("=" * 60 + "\n")

    store = InMemoryCoordinationStore()
    alice = LockCoordinator(SessionManager(store, ttl_seconds=10, name="alice"), store)
    bob = LockCoordinator(SessionManager(store, ttl_seconds=10, name="bob"), store)

    first, second = await asyncio.gather(alice.lock("demo/job"), bob.lock("demo/job"))
    if first is not None:
        winner, loser, handle, lost = alice, bob, first, second
    else:
        winner, loser, handle, lost = bob, alice, second, first
    if handle is None:
        print("No coordinator acquired the lock")
        return 1

    print(f"1. Winner session:   {handle.session_id}")
    print(f"   Loser got:        {lost}")

    loser_id = await loser.sessions.get_session_id()
    forged = LockHandle(name="demo/job", session_id=loser_id)
    print(f"2. Winner valid:     {await winner.is_valid('demo/job', handle)}")
    print(f"   Loser valid:      {await loser.is_valid('demo/job', forged)}")

    await winner.release(handle)
    print(f"3. After release:    {await winner.is_valid('demo/job', handle)}")

    retry = await loser.lock("demo/job")
    print(f"4. Loser retry:      {retry}")

    await alice.sessions.destroy_session()
    await bob.sessions.destroy_session()

    print("\n✓ Demo complete")
    print("=" * 60 + "\n")
    return 0


async def acquire(config: KVLockConfig, name: str, hold_s: float) -> int:
    async with ConsulCoordinationStore.from_config(config.consul) as store:
        sessions = SessionManager.from_config(store, config.session)
        coordinator = LockCoordinator(sessions, store)

        async with sessions, HeartbeatRunner(sessions, config.session.heartbeat_poll_s):
            with logger.context(lock=name):
                async with coordinator.hold(name) as handle:
                    if handle is None:
                        logger.warning("Lock is held by another session")
                        return 1

                    logger.info("Lock acquired", session_id=handle.session_id)
                    print(handle.session_id)
                    await asyncio.sleep(hold_s)
    return 0


async def check(config: KVLockConfig, name: str, session_id: str) -> int:
    async with ConsulCoordinationStore.from_config(config.consul) as store:
        coordinator = LockCoordinator(SessionManager.from_config(store, config.session), store)
        valid = await coordinator.is_valid(name, LockHandle(name=name, session_id=session_id))
    print("valid" if valid else "invalid")
    return 0 if valid else 1


async def release(config: KVLockConfig, name: str, session_id: str) -> int:
    async with ConsulCoordinationStore.from_config(config.consul) as store:
        coordinator = LockCoordinator(SessionManager.from_config(store, config.session), store)
        await coordinator.release(LockHandle(name=name, session_id=session_id))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kvlock",
        description="Distributed try-locks over a Consul session-bearing KV store",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("demo", help="Run a local contention demo (no Consul needed)")

    p_acquire = sub.add_parser("acquire", help="Acquire a lock and hold it")
    p_acquire.add_argument("name")
    p_acquire.add_argument("--hold", type=float, default=10.0, help="Seconds to hold")

    for command, help_text in (
        ("check", "Check whether a session holds a lock"),
        ("release", "Release a lock held by a session"),
    ):
        p = sub.add_parser(command, help=help_text)
        p.add_argument("name")
        p.add_argument("session_id")

    return parser


async def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    config_result = KVLockConfig.from_env()
    if config_result.is_err():
        print(config_result.error, file=sys.stderr)
        return 2

    config = config_result.unwrap()
    validation = config.validate()
    if validation.is_err():
        print(f"Validation error: {validation.error}", file=sys.stderr)
        return 2

    setup_logging(
        LogLevel.from_name(config.observability.log_level),
        json_output=config.observability.log_json,
    )

    try:
        if args.command == "demo":
            return await demo_local_mode()
        if args.command == "acquire":
            return await acquire(config, args.name, args.hold)
        if args.command == "check":
            return await check(config, args.name, args.session_id)
        return await release(config, args.name, args.session_id)
    except KVLockError as e:
        logger.error(str(e), error=e.to_dict())
        return 1


def run() -> None:
    """Synchronous entry point."""
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        print("\nInterrupted")
        sys.exit(130)


if __name__ == "__main__":
    run()
