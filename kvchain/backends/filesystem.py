"""File system storage backend."""

import logging
import tempfile
from pathlib import Path, PurePosixPath
from typing import Any

from kvchain.base import Store

logger = logging.getLogger(__name__)

# Longest file name most file systems accept, in bytes
NAME_MAX = 255


class FileBackend(Store):
    """One file per key under a directory.

    Keys are relative paths (``/`` separated, as produced by the ``escape`` or
    ``spread`` codecs) and values are bytes. Writes go through a temporary
    file and an atomic rename.

    Each path component must fit in a file name (:data:`NAME_MAX` bytes).
    Escaped keys grow up to three times their encoded size, so long keys
    need the ``spread`` codec, which yields fixed-length names.
    """

    def __init__(self, dir: str | Path):
        self.data_dir = Path(dir)
        self.initialize()

    def initialize(self) -> None:
        """Create the directory structure."""
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def _get_path(self, key: Any) -> Path:
        """Get file path for key."""
        if not isinstance(key, str) or not key:
            raise TypeError(f"FileBackend keys must be non-empty str: {key!r}")
        parts = PurePosixPath(key).parts
        if parts[0] == "/" or any(part in (".", "..") for part in parts):
            raise ValueError(f"Unsafe key for FileBackend: {key!r}")
        if any(part.endswith(".tmp") for part in parts):
            raise ValueError(f"Reserved key for FileBackend: {key!r}")
        if any(len(part.encode("utf-8")) > NAME_MAX for part in parts):
            raise ValueError(
                f"Key component longer than {NAME_MAX} bytes, use spread keys: "
                f"{key[:40]!r}..."
            )
        return self.data_dir.joinpath(*parts)

    def get(self, key: Any, default: Any = None) -> Any:
        """Read data from file."""
        path = self._get_path(key)
        try:
            return path.read_bytes()
        except (FileNotFoundError, NotADirectoryError, IsADirectoryError):
            return default

    def set(self, key: Any, value: Any, ttl: float | None = None) -> None:
        """Write data to file atomically."""
        self._check_ttl(ttl)
        if isinstance(value, str):
            value = value.encode("utf-8")
        if not isinstance(value, bytes | bytearray):
            raise TypeError(
                f"FileBackend values must be bytes, got {type(value).__name__}"
            )

        path = self._get_path(key)
        path.parent.mkdir(parents=True, exist_ok=True)

        temp_fd, temp_path = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
        try:
            with open(temp_fd, "wb") as f:
                f.write(value)

            Path(temp_path).replace(path)
        except Exception:
            Path(temp_path).unlink(missing_ok=True)
            raise

    def delete(self, key: Any) -> None:
        """Delete file and prune emptied directories."""
        path = self._get_path(key)
        try:
            path.unlink()
        except (FileNotFoundError, IsADirectoryError):
            return

        parent = path.parent
        while parent != self.data_dir:
            try:
                parent.rmdir()
            except OSError:
                break
            parent = parent.parent

    def exists(self, key: Any) -> bool:
        """Check if key exists."""
        return self._get_path(key).is_file()

    def keys(self) -> list[str]:
        """Get all keys."""
        return sorted(
            path.relative_to(self.data_dir).as_posix()
            for path in self.data_dir.rglob("*")
            if path.is_file() and path.suffix != ".tmp"
        )

    def clear(self) -> None:
        """Remove all entries."""
        paths = sorted(self.data_dir.rglob("*"), reverse=True)
        for path in paths:
            if not path.is_dir():
                path.unlink(missing_ok=True)
        for path in paths:
            if path.is_dir():
                try:
                    path.rmdir()
                except OSError as e:
                    logger.debug(f"Leaving directory {path}: {e}")
