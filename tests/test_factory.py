"""Tests for the default store chains."""

import threading

import pytest

from kvchain.exceptions import ConfigurationError
from kvchain.factory import DEFAULT_PIPELINES, new_store


class TestNewStore:
    """Test chain selection per backend."""

    def test_memory_with_everything(self):
        store = new_store("memory", expires=True, threadsafe=True)

        assert store.describe() == ["Expires", "Transformer", "Lock", "MemoryBackend"]

    def test_plain_memory(self):
        store = new_store("memory")

        assert store.describe() == ["Transformer", "MemoryBackend"]
        transformer = store.layers[0]
        assert transformer.key_pipeline.names == ["msgpack"]
        assert transformer.value_pipeline.names == ["msgpack"]

    def test_native_expiry_skips_expires_layer(self, temp_dir):
        store = new_store("sqlite", expires=True, db_path=temp_dir / "s.db")

        assert store.describe() == ["Transformer", "SQLiteBackend"]
        store.close()

    def test_hashfile_uses_file_backend_with_spread_keys(self, temp_dir):
        store = new_store("hashfile", dir=temp_dir)

        assert store.describe() == ["Transformer", "FileBackend"]
        assert store.layers[0].key_pipeline.names == ["msgpack", "spread"]

        store.set("alpha", [1, 2, 3])
        (key,) = store.backend.keys()
        assert len(key.split("/")) == 2

    def test_file_escapes_keys(self, temp_dir):
        store = new_store("file", dir=temp_dir)

        store.set("../../etc/passwd", "nope")

        assert store.get("../../etc/passwd") == "nope"
        assert [p.parent for p in temp_dir.iterdir()] == [temp_dir]

    def test_long_keys_need_hashfile(self, temp_dir):
        key = "k" * 300

        with pytest.raises(ValueError, match="spread"):
            new_store("file", dir=temp_dir / "f").set(key, 1)

        store = new_store("hashfile", dir=temp_dir / "h")
        store.set(key, 1)
        assert store.get(key) == 1

    def test_name_is_case_insensitive(self):
        assert new_store("Memory").describe() == ["Transformer", "MemoryBackend"]

    def test_unknown_name(self):
        with pytest.raises(ConfigurationError):
            new_store("cassandra")

    def test_name_must_be_string(self):
        with pytest.raises(ConfigurationError):
            new_store(None)

    def test_flags_must_be_booleans(self):
        with pytest.raises(ConfigurationError):
            new_store("memory", expires="yes")

    def test_every_policy_builds(self, temp_dir):
        options = {
            "file": {"dir": temp_dir / "f"},
            "hashfile": {"dir": temp_dir / "h"},
            "yaml": {"file": temp_dir / "y.yaml"},
            "sqlite": {"db_path": temp_dir / "s.db"},
        }
        for name in DEFAULT_PIPELINES:
            store = new_store(name, **options.get(name, {}))
            store.set("k", "v")
            store.close()

    def test_null_store_keeps_nothing(self):
        store = new_store("null", expires=True)

        store.set("a", 1)

        assert store.get("a") is None


class TestExpiringThreadsafeScenario:
    """Expiry emulation and locking combined over a plain memory backend."""

    @pytest.fixture
    def store(self):
        return new_store("memory", expires=True, threadsafe=True)

    def test_zero_ttl_reads_absent(self, store):
        store.set("a", 1, ttl=0)

        assert store.get("a") is None
        assert store.exists("a") is False

    def test_concurrent_increments_are_serializable(self, store):
        """50 read-modify-write increments from many threads lose nothing."""
        barrier = threading.Barrier(10)
        errors = []

        def worker():
            try:
                barrier.wait()
                for _ in range(5):
                    store.increment("counter")
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=worker) for _ in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert store.get("counter") == 50

    def test_increment_respects_expiry(self, store):
        store.set("counter", 10, ttl=0)

        assert store.increment("counter") == 1
