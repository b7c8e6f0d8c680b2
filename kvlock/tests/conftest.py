"""
Shared fixtures.
"""

from __future__ import annotations

import pytest

from kvlock.storage.memory_store import InMemoryCoordinationStore
from kvlock.tests.helpers import FakeClock, RecordingStore


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> RecordingStore:
    return RecordingStore()


@pytest.fixture
def memory_store(clock: FakeClock) -> InMemoryCoordinationStore:
    return InMemoryCoordinationStore(clock=clock)
