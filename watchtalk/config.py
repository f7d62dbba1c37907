"""Configuration management for WatchTalk."""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from watchtalk.catalog import TMDBCatalog
from watchtalk.messages import DEFAULT_LOCALE
from watchtalk.spoilers import FilePreferences, Preferences
from watchtalk.store import Store, StoreType, create_store


logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "~/.watchtalk/config.json"
DEFAULT_DATA_PATH = "~/.watchtalk/data"
DEFAULT_PREFERENCES_PATH = "~/.watchtalk/preferences.json"


@dataclass
class Config:
    """Application configuration."""

    store_type: StoreType = StoreType.FILE
    store_path: str = DEFAULT_DATA_PATH
    preferences_path: str = DEFAULT_PREFERENCES_PATH
    locale: str = DEFAULT_LOCALE
    feed_limit: int = 50
    tmdb_api_key: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def load(cls, path: str = DEFAULT_CONFIG_PATH) -> "Config":
        """Load config from a JSON file, or return defaults if not found."""
        config_path = Path(path).expanduser()

        if not config_path.exists():
            return cls()

        try:
            data = json.loads(config_path.read_text())
            return cls(
                store_type=StoreType(data.get("store_type", "file")),
                store_path=data.get("store_path", DEFAULT_DATA_PATH),
                preferences_path=data.get("preferences_path", DEFAULT_PREFERENCES_PATH),
                locale=data.get("locale", DEFAULT_LOCALE),
                feed_limit=int(data.get("feed_limit", 50)),
                tmdb_api_key=data.get("tmdb_api_key"),
                extra=data.get("extra", {}),
            )
        except (json.JSONDecodeError, KeyError, ValueError, TypeError) as e:
            logger.warning(f"Ignoring malformed config {config_path}: {e}")
            return cls()

    def save(self, path: str = DEFAULT_CONFIG_PATH) -> None:
        """Save config to a JSON file."""
        config_path = Path(path).expanduser()
        config_path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "store_type": self.store_type.value,
            "store_path": self.store_path,
            "preferences_path": self.preferences_path,
            "locale": self.locale,
            "feed_limit": self.feed_limit,
            "tmdb_api_key": self.tmdb_api_key,
            "extra": self.extra,
        }
        config_path.write_text(json.dumps(data, indent=2))

    def create_store(self) -> Store:
        """Create a store instance from this config."""
        return create_store(self.store_type, self.store_path)

    def create_preferences(self) -> Preferences:
        return FilePreferences(self.preferences_path)

    def create_catalog(self) -> TMDBCatalog | None:
        """TMDB catalog when an API key is configured (TMDB_API_KEY wins)."""
        api_key = os.environ.get("TMDB_API_KEY") or self.tmdb_api_key
        if not api_key:
            return None
        return TMDBCatalog(api_key, self.locale)
