"""Pytest configuration and fixtures."""

import os
import tempfile
from pathlib import Path

import pytest

from kvchain.backends import MemoryBackend


class FakeClock:
    """Manually advanced clock for expiry tests."""

    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch):
    """Isolate environment variables for each test.

    This prevents test pollution where one test's environment
    changes affect other tests.
    """
    original_env = os.environ.copy()
    for name in ("KVCHAIN_BACKEND", "KVCHAIN_DATA_DIR"):
        monkeypatch.delenv(name, raising=False)

    yield

    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture
def temp_dir():
    """Temporary directory for test data."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def fake_clock():
    """Clock that only moves when told to."""
    return FakeClock()


@pytest.fixture
def memory():
    """Empty in-memory backend."""
    return MemoryBackend()


class RecordingStore(MemoryBackend):
    """Memory backend that records the operations it receives."""

    def __init__(self):
        super().__init__()
        self.calls: list[tuple] = []

    def get(self, key, default=None):
        self.calls.append(("get", key))
        return super().get(key, default)

    def set(self, key, value, ttl=None):
        self.calls.append(("set", key, value))
        super().set(key, value, ttl)

    def delete(self, key):
        self.calls.append(("delete", key))
        super().delete(key)

    def clear(self):
        self.calls.append(("clear",))
        super().clear()

    def exists(self, key):
        self.calls.append(("exists", key))
        return super().exists(key)


@pytest.fixture
def recording():
    """Memory backend recording every call."""
    return RecordingStore()
