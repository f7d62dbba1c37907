"""Tests for the spoiler gate."""

import json
import tempfile
from pathlib import Path

import pytest

from watchtalk.models import ItemRef, ItemType
from watchtalk.spoilers import FilePreferences, MemoryPreferences, SpoilerGate, is_gated, spoiler_key


EPISODE = ItemRef.episode(42, 1, 3)


class TestIsGated:
    """Tests for the gating rule."""

    @pytest.mark.parametrize("item_type,watched,revealed,expected", [
        (ItemType.EPISODE, False, None, True),
        (ItemType.EPISODE, False, False, True),
        (ItemType.EPISODE, False, True, False),
        (ItemType.EPISODE, True, None, False),
        (ItemType.EPISODE, None, None, False),
        (ItemType.SERIES, False, None, False),
        ("movie", False, None, False),
    ])
    def test_rule(self, item_type, watched, revealed, expected):
        assert is_gated(item_type, watched, revealed) is expected

    def test_spoiler_key(self):
        assert spoiler_key(42, 1, 3) == "spoiler_revealed_42_s1_e3"
        assert spoiler_key(42, None, 3) is None


class TestSpoilerGate:
    """Tests for the persisted reveal flag."""

    def test_reveal_unlocks(self):
        gate = SpoilerGate(MemoryPreferences())

        assert gate.is_gated(EPISODE, watched=False)
        gate.reveal(EPISODE)
        assert not gate.is_gated(EPISODE, watched=False)

    def test_reveal_by_key(self):
        gate = SpoilerGate(MemoryPreferences())

        gate.reveal("spoiler_revealed_42_s1_e3")

        assert gate.is_revealed(EPISODE)

    def test_reveal_survives_restart(self):
        """The reveal is read back by a fresh gate over the same file."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "prefs" / "preferences.json"
            SpoilerGate(FilePreferences(str(path))).reveal(EPISODE)

            fresh = SpoilerGate(FilePreferences(str(path)))

            assert not fresh.is_gated(EPISODE, watched=False)
            assert json.loads(path.read_text()) == {"spoiler_revealed_42_s1_e3": "true"}

    def test_unreadable_preferences_start_empty(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "preferences.json"
            path.write_text("garbage")

            assert FilePreferences(str(path)).get("anything") is None

    def test_other_episodes_stay_locked(self):
        gate = SpoilerGate(MemoryPreferences())
        gate.reveal(EPISODE)

        assert gate.is_gated(ItemRef.episode(42, 1, 4), watched=False)
