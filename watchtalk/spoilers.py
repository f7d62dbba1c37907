"""Client-side spoiler gate for episode threads.

A thread for an unwatched episode stays locked until the user reveals
it. The reveal is persisted per episode and cannot be undone. This is
independent of the ``isSpoiler`` flag on individual posts, which only
hides content inside an already unlocked thread.
"""

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path

from watchtalk.models import ItemRef, ItemType


logger = logging.getLogger(__name__)

REVEALED = "true"


def spoiler_key(item_id: int, season_number: int | None, episode_number: int | None) -> str | None:
    """Preference key for one episode, or None when the episode is not fully specified."""
    if season_number is None or episode_number is None:
        return None
    return f"spoiler_revealed_{item_id}_s{season_number}_e{episode_number}"


def is_gated(item_type: ItemType | str, watched: bool | None, revealed: bool | None) -> bool:
    """The thread is hidden for unwatched, unrevealed episodes only.

    ``watched`` must be explicitly False; an unknown watch state does not
    gate.
    """
    return ItemType(item_type) is ItemType.EPISODE and watched is False and revealed is not True


class Preferences(ABC):
    """Persisted local string key-value store."""

    @abstractmethod
    def get(self, key: str) -> str | None:
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        pass


class MemoryPreferences(Preferences):
    def __init__(self, values: dict[str, str] | None = None):
        self._values = dict(values or {})

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value


class FilePreferences(Preferences):
    """Preferences kept in a JSON file, written on every set."""

    def __init__(self, path: str):
        self.path = Path(path).expanduser()
        self._values: dict[str, str] = {}
        if self.path.exists():
            try:
                data = json.loads(self.path.read_text())
                if isinstance(data, dict):
                    self._values = {str(k): str(v) for k, v in data.items()}
            except (OSError, json.JSONDecodeError) as e:
                logger.warning(f"Ignoring unreadable preferences {self.path}: {e}")

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(self._values, indent=2))


class SpoilerGate:
    """Combines the watched state with the persisted reveal flag."""

    def __init__(self, preferences: Preferences):
        self.preferences = preferences

    def is_revealed(self, ref: ItemRef) -> bool:
        key = spoiler_key(ref.item_id, ref.season_number, ref.episode_number)
        if key is None:
            return True
        return self.preferences.get(key) == REVEALED

    def is_gated(self, ref: ItemRef, watched: bool | None) -> bool:
        return is_gated(ref.item_type, watched, self.is_revealed(ref))

    def reveal(self, ref: ItemRef | str) -> None:
        """Persist the reveal for an episode (or a precomputed spoiler key)."""
        key = ref if isinstance(ref, str) else spoiler_key(ref.item_id, ref.season_number, ref.episode_number)
        if key is not None:
            self.preferences.set(key, REVEALED)
            logger.info(f"Revealed spoilers for {key}")
