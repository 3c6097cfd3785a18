"""
Shared fixtures: an in-memory bucket, a `:memory:` index and a waiter that
never actually sleeps.
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from bucketfs.core.config import ConfigRegistry, FileSystemConfig
from bucketfs.filesystem.directory import DirectoryEngine
from bucketfs.reliability.waiter import ConsistencyWaiter, WaitPolicy
from bucketfs.storage.cache.engine import MetadataCacheStore
from bucketfs.storage.memory import InMemoryObjectStore

FIXED_NOW = datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)
BUCKET = "test-bucket"


def make_config(**settings) -> FileSystemConfig:
    return FileSystemConfig.from_settings({"bucket": BUCKET, **settings})


class SleepRecorder:
    """Stand-in for time.sleep that records requested delays."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture(autouse=True)
def _reset_registry():
    yield
    ConfigRegistry.reset()


@pytest.fixture
def config() -> FileSystemConfig:
    return make_config()


@pytest.fixture
def store() -> InMemoryObjectStore:
    return InMemoryObjectStore(bucket=BUCKET, clock=lambda: FIXED_NOW)


@pytest.fixture
def cache():
    cache = MetadataCacheStore()
    cache.initialize()
    yield cache
    cache.close()


@pytest.fixture
def sleeper() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def waiter(store, sleeper) -> ConsistencyWaiter:
    return ConsistencyWaiter(store, WaitPolicy(max_attempts=3, delay_seconds=0.5), sleeper)


@pytest.fixture
def directory(config, store, cache) -> DirectoryEngine:
    return DirectoryEngine(config, store, cache)
