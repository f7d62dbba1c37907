"""JSON file-based storage backend."""

import json
import logging
from pathlib import Path

from watchtalk.errors import StoreError
from watchtalk.store.memory import MemoryStore


logger = logging.getLogger(__name__)


class FileStore(MemoryStore):
    """JSON file-backed store. Simple, inspectable, good for testing.

    The whole tree lives in one file that is rewritten after every
    mutation.
    """

    def __init__(self, data_dir: str):
        super().__init__()
        self.data_dir = Path(data_dir).expanduser()
        self.data_file = self.data_dir / "store.json"
        self._load()

    def _load(self) -> None:
        """Load the tree from disk."""
        if not self.data_file.exists():
            return
        try:
            data = json.loads(self.data_file.read_text())
        except (OSError, json.JSONDecodeError) as e:
            raise StoreError(f"Failed to load {self.data_file}: {e}") from e
        if isinstance(data, dict):
            self._root = data
        logger.debug(f"Loaded store from {self.data_file}")

    def _after_write(self) -> None:
        """Persist the tree to disk."""
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            self.data_file.write_text(json.dumps(self._root, indent=2))
        except (OSError, TypeError, ValueError) as e:
            raise StoreError(f"Failed to save {self.data_file}: {e}") from e

    def close(self) -> None:
        """Release subscriptions (data is saved on each mutation)."""
        super().close()
