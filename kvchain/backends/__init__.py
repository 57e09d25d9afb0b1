"""Terminal storage backends.

Each backend implements the store contract directly against its medium:

- **MemoryBackend**: dictionary, for tests and single-process use
- **LRUHashBackend**: bounded dictionary with LRU eviction
- **NullBackend**: discards everything
- **FileBackend**: one file per key with atomic writes
- **SQLiteBackend**: embedded database with native expiration
- **YAMLBackend**: one YAML document

Only SQLiteBackend expires entries natively; wrap the others with the
expires middleware when ttls are needed.
"""

from .filesystem import FileBackend
from .lruhash import LRUHashBackend
from .memory import MemoryBackend
from .null import NullBackend
from .sqlite import SQLiteBackend
from .yamlfile import YAMLBackend

__all__ = [
    "FileBackend",
    "LRUHashBackend",
    "MemoryBackend",
    "NullBackend",
    "SQLiteBackend",
    "YAMLBackend",
]
