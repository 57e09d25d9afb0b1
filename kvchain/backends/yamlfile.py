"""YAML document storage backend."""

import tempfile
import threading
from pathlib import Path
from typing import Any

import yaml

from kvchain.base import Store
from kvchain.exceptions import DeserializationError


class YAMLBackend(Store):
    """Whole store kept as one YAML mapping.

    Every write rewrites the document atomically. Keys and values must be
    representable by ``yaml.safe_dump`` (bytes are written as ``!!binary``).
    """

    def __init__(self, file: str | Path):
        self.path = Path(file)
        self._lock = threading.RLock()

    def _load(self) -> dict[Any, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise DeserializationError(
                "yaml", f"Invalid YAML in {self.path}: {e}"
            ) from e
        if not isinstance(data, dict):
            raise DeserializationError("yaml", f"{self.path} is not a mapping")
        return data

    def _save(self, data: dict[Any, Any]) -> None:
        """Save the document atomically."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        temp_fd, temp_path = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
        try:
            with open(temp_fd, "w") as f:
                yaml.safe_dump(data, f, sort_keys=True)

            Path(temp_path).replace(self.path)
        except Exception:
            Path(temp_path).unlink(missing_ok=True)
            raise

    def get(self, key: Any, default: Any = None) -> Any:
        with self._lock:
            return self._load().get(key, default)

    def set(self, key: Any, value: Any, ttl: float | None = None) -> None:
        self._check_ttl(ttl)
        with self._lock:
            data = self._load()
            data[key] = value
            self._save(data)

    def delete(self, key: Any) -> None:
        with self._lock:
            data = self._load()
            if key in data:
                del data[key]
                self._save(data)

    def exists(self, key: Any) -> bool:
        with self._lock:
            return key in self._load()

    def keys(self) -> list[Any]:
        with self._lock:
            return list(self._load().keys())

    def clear(self) -> None:
        with self._lock:
            self._save({})
