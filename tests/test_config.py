"""Tests for configuration loading."""

import tempfile
from pathlib import Path

from watchtalk.config import Config
from watchtalk.spoilers import FilePreferences
from watchtalk.store import FileStore, MemoryStore, StoreType


class TestConfig:
    def test_defaults_when_missing(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            config = Config.load(f"{tmpdir}/missing.json")

        assert config.store_type is StoreType.FILE
        assert config.locale == "de"
        assert config.feed_limit == 50

    def test_save_and_load(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = f"{tmpdir}/config.json"
            Config(
                store_type=StoreType.MEMORY,
                locale="en",
                feed_limit=20,
                tmdb_api_key="key",
                extra={"theme": "dark"},
            ).save(path)

            config = Config.load(path)

        assert config.store_type is StoreType.MEMORY
        assert config.locale == "en"
        assert config.feed_limit == 20
        assert config.tmdb_api_key == "key"
        assert config.extra == {"theme": "dark"}

    def test_malformed_file_gives_defaults(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "config.json"
            path.write_text('{"store_type": "cloud"}')

            assert Config.load(str(path)) == Config()

    def test_create_store_and_preferences(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            config = Config(store_path=f"{tmpdir}/data", preferences_path=f"{tmpdir}/prefs.json")

            with config.create_store() as store:
                assert isinstance(store, FileStore)
            assert isinstance(config.create_preferences(), FilePreferences)

        assert isinstance(Config(store_type=StoreType.MEMORY).create_store(), MemoryStore)

    def test_catalog_needs_a_key(self, monkeypatch):
        monkeypatch.delenv("TMDB_API_KEY", raising=False)

        assert Config().create_catalog() is None
        assert Config(tmdb_api_key="key").create_catalog().api_key == "key"

        monkeypatch.setenv("TMDB_API_KEY", "env")
        assert Config().create_catalog().api_key == "env"
