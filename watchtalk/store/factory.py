"""Store factory for creating storage backends."""

from enum import Enum

from watchtalk.store.base import Store
from watchtalk.store.file import FileStore
from watchtalk.store.memory import MemoryStore


class StoreType(Enum):
    """Available storage backend types."""
    MEMORY = "memory"
    FILE = "file"


def create_store(store_type: StoreType | str, path: str | None = None) -> Store:
    """Open a backend by type.

    ``path`` is the data directory of the file store; the memory store
    ignores it.
    """
    match StoreType(store_type):
        case StoreType.MEMORY:
            return MemoryStore()
        case StoreType.FILE:
            if not path:
                raise ValueError("File store requires a data directory")
            return FileStore(path)
