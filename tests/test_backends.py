"""Tests for storage backend implementations.

Every backend must conform to the same store contract. Raw backends are
exercised with bytes values and string keys, the form the default
transformer pipelines hand them.
"""

import threading

import pytest

from kvchain.base import MISSING
from kvchain.exceptions import DeserializationError, ExpiryNotSupportedError


class StoreContract:
    """Contract tests that all stores must pass."""

    def value(self, n):
        return f"value-{n}".encode()

    def test_get_missing_returns_default(self, store):
        """get() returns None, or the given default, for unknown keys."""
        assert store.get("missing") is None
        assert store.get("missing", "fallback") == "fallback"
        assert store.get("missing", MISSING) is MISSING

    def test_set_get_cycle(self, store):
        """A stored value reads back unchanged."""
        assert store.exists("alpha") is False

        store.set("alpha", self.value(1))

        assert store.exists("alpha") is True
        assert store.get("alpha") == self.value(1)

    def test_overwrite_existing_key(self, store):
        """Writing to an existing key replaces the value."""
        store.set("alpha", self.value(1))
        store.set("alpha", self.value(2))

        assert store.get("alpha") == self.value(2)

    def test_delete_existing_key(self, store):
        """delete() removes the entry."""
        store.set("alpha", self.value(1))

        store.delete("alpha")

        assert store.exists("alpha") is False
        assert store.get("alpha") is None

    def test_delete_nonexistent_key(self, store):
        """delete() of an absent key is a no-op."""
        store.delete("nonexistent")

        assert store.exists("nonexistent") is False

    def test_clear_removes_all_data(self, store):
        """clear() removes every entry."""
        store.set("alpha", self.value(1))
        store.set("beta", self.value(2))

        store.clear()

        assert store.get("alpha") is None
        assert store.get("beta") is None

    def test_keys_are_independent(self, store):
        """Entries under different keys do not interfere."""
        store.set("alpha", self.value(1))
        store.set("beta", self.value(2))
        store.delete("alpha")

        assert store.get("beta") == self.value(2)

    def test_fetch_and_mapping_access(self, store):
        """fetch() and [] raise KeyError on absence."""
        with pytest.raises(KeyError):
            store.fetch("missing")
        with pytest.raises(KeyError):
            store["missing"]
        assert store.fetch("missing", "fallback") == "fallback"

        store["alpha"] = self.value(1)
        assert "alpha" in store
        assert store["alpha"] == self.value(1)

        del store["alpha"]
        assert "alpha" not in store


class NoExpiryContract(StoreContract):
    """Stores without native expiry reject ttls."""

    def test_ttl_rejected(self, store):
        """A ttl reaching the store raises ExpiryNotSupportedError."""
        with pytest.raises(ExpiryNotSupportedError):
            store.set("alpha", self.value(1), ttl=10)

        assert store.exists("alpha") is False


class TestMemoryBackend(NoExpiryContract):
    """Test memory backend."""

    @pytest.fixture
    def store(self):
        from kvchain.backends import MemoryBackend

        return MemoryBackend()

    def test_values_are_copied(self, store):
        """Mutating a value after set() does not change the stored copy."""
        data = {"list": [1, 2]}
        store.set("alpha", data)
        data["list"].append(3)

        assert store.get("alpha") == {"list": [1, 2]}
        assert store.get_size() == 1

    def test_update_is_read_modify_write(self, store):
        """update() passes MISSING for absent keys and stores the result."""
        seen = []

        def bump(current):
            seen.append(current)
            return 1 if current is MISSING else current + 1

        assert store.update("n", bump) == 1
        assert store.update("n", bump) == 2
        assert seen == [MISSING, 1]
        assert store.increment("n", 5) == 7


class TestLRUHashBackend(NoExpiryContract):
    """Test LRU backend."""

    @pytest.fixture
    def store(self):
        from kvchain.backends import LRUHashBackend

        return LRUHashBackend(max_size=10)

    def test_evicts_least_recently_used(self):
        """The least recently read or written key is evicted first."""
        from kvchain.backends import LRUHashBackend

        store = LRUHashBackend(max_size=2)
        store.set("a", 1)
        store.set("b", 2)
        store.get("a")
        store.set("c", 3)

        assert store.keys() == ["a", "c"]
        assert store.get("b") is None

    def test_stats(self, store):
        """Hits and misses are counted."""
        store.set("a", 1)
        store.get("a")
        store.get("missing")

        stats = store.stats()
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["hit_rate"] == 0.5
        assert stats["size"] == 1

    def test_invalid_size(self):
        from kvchain.backends import LRUHashBackend

        with pytest.raises(ValueError):
            LRUHashBackend(max_size=0)


class TestFileBackend(NoExpiryContract):
    """Test filesystem backend."""

    @pytest.fixture
    def store(self, temp_dir):
        from kvchain.backends import FileBackend

        return FileBackend(temp_dir / "data")

    def test_one_file_per_key(self, store):
        """Each key is a file holding the raw bytes."""
        store.set("alpha", b"\x00\x01")

        assert (store.data_dir / "alpha").read_bytes() == b"\x00\x01"
        assert store.keys() == ["alpha"]

    def test_nested_keys_and_pruning(self, store):
        """Keys with slashes create directories that delete() prunes."""
        store.set("ab/cdef", b"x")
        assert (store.data_dir / "ab" / "cdef").is_file()

        store.delete("ab/cdef")

        assert not (store.data_dir / "ab").exists()
        assert store.data_dir.exists()

    def test_clear_removes_directories(self, store):
        store.set("ab/cd", b"1")
        store.set("ef/gh", b"2")

        store.clear()

        assert list(store.data_dir.iterdir()) == []

    def test_str_values_are_stored_as_utf8(self, store):
        store.set("alpha", "héllo")

        assert store.get("alpha") == "héllo".encode()

    @pytest.mark.parametrize("key", ["../escape", "/etc/passwd", "a/../b", "x.tmp"])
    def test_unsafe_keys_rejected(self, store, key):
        """Keys cannot leave the data directory."""
        with pytest.raises(ValueError):
            store.set(key, b"x")

    def test_overlong_name_rejected(self, store):
        store.set("a" * 255, b"x")

        with pytest.raises(ValueError, match="255 bytes"):
            store.set("a" * 256, b"x")
        with pytest.raises(ValueError):
            store.set("ab/" + "é" * 128, b"x")

    def test_non_bytes_value_rejected(self, store):
        with pytest.raises(TypeError):
            store.set("alpha", {"not": "bytes"})

    def test_persists_across_instances(self, store):
        from kvchain.backends import FileBackend

        store.set("alpha", b"1")

        assert FileBackend(store.data_dir).get("alpha") == b"1"


class TestSQLiteBackend(StoreContract):
    """Test SQLite backend."""

    @pytest.fixture
    def store(self, temp_dir, fake_clock):
        from kvchain.backends import SQLiteBackend

        backend = SQLiteBackend(temp_dir / "test.db", clock=fake_clock)
        yield backend
        backend.close()

    def test_native_expiry(self, store, fake_clock):
        """Entries with a ttl disappear once the clock passes it."""
        assert store.supports_expiry is True

        store.set("short", b"1", ttl=10)
        store.set("forever", b"2")

        fake_clock.advance(9)
        assert store.get("short") == b"1"

        fake_clock.advance(1)
        assert store.exists("short") is False
        assert store.get("short") is None
        assert store.get("forever") == b"2"
        assert store.keys() == ["forever"]

    def test_purge_expired(self, store, fake_clock):
        store.set("a", b"1", ttl=1)
        store.set("b", b"2", ttl=1)
        store.set("c", b"3")

        fake_clock.advance(5)

        assert store.purge_expired() == 2
        assert store.keys() == ["c"]

    def test_overwrite_resets_ttl(self, store, fake_clock):
        store.set("a", b"1", ttl=1)
        store.set("a", b"2")

        fake_clock.advance(5)

        assert store.get("a") == b"2"

    def test_negative_ttl_rejected(self, store):
        with pytest.raises(ValueError):
            store.set("a", b"1", ttl=-1)

    def test_invalid_table_name(self, temp_dir):
        from kvchain.backends import SQLiteBackend

        with pytest.raises(ValueError):
            SQLiteBackend(temp_dir / "x.db", table="entries; DROP TABLE x")

    def test_close_then_use(self, store):
        store.close()

        with pytest.raises(RuntimeError):
            store.get("a")

    def test_in_memory_database(self):
        from kvchain.backends import SQLiteBackend

        with SQLiteBackend() as store:
            store.set("a", "text")
            assert store.get("a") == "text"


class TestYAMLBackend(NoExpiryContract):
    """Test YAML backend."""

    @pytest.fixture
    def store(self, temp_dir):
        from kvchain.backends import YAMLBackend

        return YAMLBackend(temp_dir / "store.yaml")

    def test_document_is_readable_yaml(self, store):
        import yaml

        store.set("alpha", {"nested": [1, 2]})

        data = yaml.safe_load(store.path.read_text())
        assert data == {"alpha": {"nested": [1, 2]}}

    def test_corrupt_document(self, store):
        store.path.write_text("- just\n- a list\n")

        with pytest.raises(DeserializationError):
            store.get("alpha")

    def test_concurrent_writes(self, store):
        """Writers in several threads never lose each other's keys."""
        errors = []

        def writer(prefix):
            try:
                for i in range(5):
                    store.set(f"{prefix}_{i}", i)
            except Exception as e:
                errors.append(e)

        threads = [
            threading.Thread(target=writer, args=(f"thread{n}",)) for n in range(3)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert len(store.keys()) == 15


class TestNullBackend:
    """Test null backend."""

    def test_forgets_everything(self):
        from kvchain.backends import NullBackend

        store = NullBackend()
        store.set("alpha", b"1")

        assert store.get("alpha") is None
        assert store.exists("alpha") is False
        store.delete("alpha")
        store.clear()


class TestDefaultStacks(StoreContract):
    """Default chains accept arbitrary keys and structured values."""

    def value(self, n):
        return {"n": n, "tags": ["a", "b"], "nested": {"none": None, "float": 1.5}}

    @pytest.fixture(
        params=["memory", "lruhash", "yaml", "sqlite", "file", "hashfile"]
    )
    def store(self, request, temp_dir):
        from kvchain.factory import new_store

        options = {
            "yaml": {"file": temp_dir / "store.yaml"},
            "sqlite": {"db_path": temp_dir / "store.db"},
            "file": {"dir": temp_dir / "files"},
            "hashfile": {"dir": temp_dir / "files"},
        }.get(request.param, {})
        stack = new_store(request.param, expires=True, threadsafe=True, **options)
        yield stack
        stack.close()

    def test_structured_keys(self, store):
        store.set(("doc", 1), "first")
        store.set("doc/../1", "second")

        assert store.get(["doc", 1]) == "first"
        assert store.get("doc/../1") == "second"

    def test_increment(self, store):
        assert store.increment("counter") == 1
        assert store.increment("counter", 2) == 3
        assert store.get("counter") == 3

    def test_ttl(self, store):
        store.set("short", "gone", ttl=0)

        assert store.get("short") is None
