"""Tests for storage backends."""

import json
import random
import tempfile
from pathlib import Path

import pytest

from watchtalk.errors import StoreError
from watchtalk.store import (
    FileStore, Increment, MemoryStore, PushIdGenerator, StoreType, create_store, generate_push_id,
)
from watchtalk.store.push_id import PUSH_CHARS


class TestStore:
    """Tests that run against both store implementations."""

    def test_set_and_get(self, store):
        """Test writing and reading nested values."""
        store.set("a/b", {"x": 1, "y": "two"})

        assert store.get("a/b") == {"x": 1, "y": "two"}
        assert store.get("a/b/x") == 1
        assert store.get("a") == {"b": {"x": 1, "y": "two"}}
        assert store.get("missing/path") is None

    def test_get_returns_copy(self, store):
        """Mutating a read value does not change the store."""
        store.set("a", {"list": [1, 2]})
        value = store.get("a")
        value["list"].append(3)
        value["extra"] = True

        assert store.get("a") == {"list": [1, 2]}

    def test_none_values_are_not_stored(self, store):
        """Test that None and empty maps never exist."""
        store.set("a", {"keep": 1, "drop": None, "empty": {}})

        assert store.get("a") == {"keep": 1}

    def test_remove_prunes_empty_parents(self, store):
        """Removing the last child removes the parent too."""
        store.set("a/b/c", 1)
        store.remove("a/b/c")

        assert store.get("a/b") is None
        assert store.get("a") is None

    def test_update_multi_path(self, store):
        """Test multi-path update with deletes and increments."""
        store.set("d", {"count": 2, "gone": "x", "child": {"k": 1}})
        store.update("d", {
            "count": Increment(3),
            "gone": None,
            "child/k": 5,
            "new/deep": "v",
        })

        assert store.get("d") == {"count": 5, "child": {"k": 5}, "new": {"deep": "v"}}

    def test_increment_missing_value(self, store):
        """A missing counter counts as zero."""
        store.increment("d/count", 1)
        store.increment("d/count", -3)

        assert store.get("d/count") == -2

    def test_push_keys_sort_in_insertion_order(self, store):
        """Test that pushed keys are ordered like their writes."""
        keys = [store.push("list", {"n": n}) for n in range(25)]

        assert keys == sorted(keys)
        assert [key for key, _ in store.query("list")] == keys

    def test_query_order_by_field(self, store):
        """Test ordering children by a field, ties broken by key."""
        store.set("q", {
            "a": {"t": 3},
            "b": {"t": 1},
            "c": {"t": 2},
            "d": {},
        })
        store.set("q/d", {"other": True})

        keys = [key for key, _ in store.query("q", order_by="t")]
        # Children without the field sort first
        assert keys == ["d", "b", "c", "a"]

    def test_query_equal_to_and_limit(self, store):
        """Test equality filter combined with limit_to_last."""
        for n in range(5):
            store.set(f"q/k{n}", {"kind": "even" if n % 2 == 0 else "odd", "n": n})

        even = store.query("q", order_by="kind", equal_to="even")
        assert [value["n"] for _, value in even] == [0, 2, 4]

        last_two = store.query("q", order_by="n", limit_to_last=2)
        assert [value["n"] for _, value in last_two] == [3, 4]

        assert store.query("q", order_by="n", limit_to_last=0) == []
        assert store.query("nothing") == []

    def test_equal_to_does_not_match_across_types(self, store):
        store.set("q/a", {"id": "1"})
        store.set("q/b", {"id": 1})

        assert [key for key, _ in store.query("q", order_by="id", equal_to=1)] == ["b"]


class TestSubscriptions:
    """Tests for continuous subscriptions."""

    def test_initial_snapshot_and_updates(self, store):
        """Test that every delivery is the full child list."""
        snapshots = []
        sub = store.subscribe("items", snapshots.append, order_by="n")

        store.set("items/b", {"n": 2})
        store.set("items/a", {"n": 1})

        assert snapshots[0] == []
        assert snapshots[-1] == [("a", {"n": 1}), ("b", {"n": 2})]
        sub.close()

    def test_multi_path_update_delivers_once(self, store):
        """A multi-path update reaches a subscriber as one snapshot."""
        store.set("items", {"a": {"n": 1}, "b": {"n": 2}, "c": {"n": 3}})
        snapshots = []
        store.subscribe("items", snapshots.append)

        store.update("items", {"a": None, "b": None})

        assert len(snapshots) == 2
        assert snapshots[-1] == [("c", {"n": 3})]

    def test_unrelated_writes_do_not_deliver(self, store):
        snapshots = []
        store.subscribe("items", snapshots.append)

        store.set("other/x", 1)

        assert len(snapshots) == 1

    def test_ancestor_write_delivers(self, store):
        snapshots = []
        store.subscribe("root/items", snapshots.append)

        store.set("root", {"items": {"a": 1}})

        assert snapshots[-1] == [("a", 1)]

    def test_close_is_idempotent(self, store):
        """Test that closing stops deliveries and can be repeated."""
        snapshots = []
        sub = store.subscribe("items", snapshots.append)

        sub.close()
        sub.close()
        store.set("items/a", 1)

        assert len(snapshots) == 1
        assert store.subscription_count == 0

    def test_subscription_as_context_manager(self, store):
        with store.subscribe("items", lambda children: None) as sub:
            assert sub.active
        assert not sub.active

    def test_failing_callback_does_not_reach_the_writer(self, store):
        """A raising subscriber is logged; the write and other subscribers proceed."""
        def broken(children):
            if children:
                raise RuntimeError("subscriber broke")

        snapshots = []
        store.subscribe("items", broken)
        store.subscribe("items", snapshots.append)

        store.set("items/a", 1)

        assert store.get("items/a") == 1
        assert snapshots[-1] == [("a", 1)]

    def test_store_close_ends_subscriptions(self, store):
        sub = store.subscribe("items", lambda children: None)
        store.close()

        assert not sub.active


class TestPushIds:
    """Tests for push id generation."""

    def test_length_and_alphabet(self):
        key = PushIdGenerator(random.Random(1)).generate(now=1_700_000_000_000)

        assert len(key) == 20
        assert set(key) <= set(PUSH_CHARS)

    def test_same_millisecond_stays_ordered(self):
        """Ids generated within one millisecond still sort in order."""
        generator = PushIdGenerator(random.Random(7))
        keys = [generator.generate(now=1_700_000_000_000) for _ in range(200)]

        assert keys == sorted(keys)
        assert len(set(keys)) == 200

    def test_later_time_sorts_after(self):
        generator = PushIdGenerator(random.Random(3))
        first = generator.generate(now=1_000)
        second = generator.generate(now=2_000)

        assert first < second

    def test_clock_going_backwards(self):
        """A clock stepping backwards does not break ordering."""
        generator = PushIdGenerator(random.Random(5))
        first = generator.generate(now=5_000)
        second = generator.generate(now=4_000)

        assert first < second

    def test_module_generator(self):
        keys = [generate_push_id() for _ in range(10)]

        assert keys == sorted(keys)


class TestFileStore:
    """Tests specific to the file store."""

    def test_persists_across_instances(self):
        """Test that data is saved on each mutation."""
        with tempfile.TemporaryDirectory() as tmpdir:
            store = FileStore(tmpdir)
            key = store.push("discussions/series/42", {"title": "Finale?"})
            store.close()

            reopened = FileStore(tmpdir)
            assert reopened.get(f"discussions/series/42/{key}/title") == "Finale?"

            data = json.loads((Path(tmpdir) / "store.json").read_text())
            assert key in data["discussions"]["series"]["42"]

    def test_corrupt_file_raises(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            (Path(tmpdir) / "store.json").write_text("{not json")

            with pytest.raises(StoreError):
                FileStore(tmpdir)

    def test_failed_save_rolls_back(self):
        """A write that cannot be saved leaves no trace in memory."""
        with tempfile.TemporaryDirectory() as tmpdir:
            store = FileStore(tmpdir)
            store.set("a", 1)
            store.data_file.unlink()
            store.data_file.mkdir()

            with pytest.raises(StoreError):
                store.set("b", 2)
            with pytest.raises(StoreError):
                store.update("", {"a": Increment(1), "c/d": 3})

            assert store.get("") == {"a": 1}


class TestFactory:
    """Tests for the store factory."""

    def test_create_memory_store(self):
        assert isinstance(create_store(StoreType.MEMORY), MemoryStore)

    def test_create_file_store(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            store = create_store(StoreType.FILE, tmpdir)
            assert isinstance(store, FileStore)

    def test_file_store_requires_path(self):
        with pytest.raises(ValueError):
            create_store(StoreType.FILE)
