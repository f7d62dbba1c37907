"""Tests for the activity feed."""

from watchtalk.errors import OwnershipError
from watchtalk.feed import FeedAggregator, entry_route, item_label
from watchtalk.models import FeedEntry, FeedEntryType, FeedFilter, FeedMetadata, ItemRef, ItemType
from watchtalk.paths import FEED_PATH


def make_entry(discussion_id: str, item_type: ItemType, created_at: int, **kwargs) -> FeedEntry:
    return FeedEntry(
        type=FeedEntryType.DISCUSSION_CREATED,
        discussion_id=discussion_id,
        discussion_title=f"About {discussion_id}",
        user_id="alice",
        username="Alice",
        item_type=item_type,
        item_id=42,
        item_title="Dark",
        created_at=created_at,
        **kwargs,
    )


class TestFeedQuery:
    """Tests for reading the feed."""

    def test_newest_first_with_limit(self, store):
        feed = FeedAggregator(store)
        for n in range(5):
            feed.append(make_entry(f"d{n}", ItemType.SERIES, created_at=1000 + n))

        entries = feed.query(limit=3)

        assert [e.discussion_id for e in entries] == ["d4", "d3", "d2"]
        assert all(e.id for e in entries)

    def test_filter_by_item_type(self, store):
        feed = FeedAggregator(store)
        feed.append(make_entry("movie", ItemType.MOVIE, 1))
        feed.append(make_entry("series", ItemType.SERIES, 2))
        feed.append(make_entry("episode", ItemType.EPISODE, 3, season_number=1, episode_number=2))

        assert [e.discussion_id for e in feed.query(FeedFilter.MOVIE)] == ["movie"]
        assert [e.discussion_id for e in feed.query(FeedFilter.EPISODE)] == ["episode"]
        assert len(feed.query(FeedFilter.ALL)) == 3

    def test_malformed_entries_are_skipped(self, store):
        feed = FeedAggregator(store)
        feed.append(make_entry("ok", ItemType.SERIES, 5))
        store.push(FEED_PATH, {"type": "bogus", "createdAt": 6})

        assert [e.discussion_id for e in feed.query()] == ["ok"]

    def test_live_feed(self, store):
        feed = FeedAggregator(store)

        with feed.subscribe(FeedFilter.SERIES, limit=2) as live:
            for n in range(3):
                feed.append(make_entry(f"d{n}", ItemType.SERIES, created_at=n))
            feed.append(make_entry("m", ItemType.MOVIE, created_at=10))

            assert [e.discussion_id for e in live] == ["d2", "d1"]
            assert live.emissions == 5


class TestFeedPurge:
    """Tests for removing feed entries of deleted discussions."""

    def test_purge_only_matching(self, store):
        feed = FeedAggregator(store)
        feed.append(make_entry("keep", ItemType.SERIES, 1))
        feed.append(make_entry("drop", ItemType.SERIES, 2))
        feed.append(make_entry("drop", ItemType.SERIES, 3))

        assert feed.purge("drop") == 2
        assert [e.discussion_id for e in feed.query()] == ["keep"]
        assert feed.purge("drop") == 0

    def test_board_delete_purges_feed(self, board, alice, bob):
        ref = ItemRef.series(42)
        metadata = FeedMetadata("Dark")
        discussion_id = board.discussions(ref, metadata).create(alice, "Finale?", "wow")
        other_id = board.discussions(ref, metadata).create(alice, "Other", "x")
        board.replies(ref, discussion_id, metadata).create(bob, "totally")
        assert len(board.feed.query()) == 3

        assert board.delete_discussion(alice, ref, discussion_id).error is None

        assert [e.discussion_id for e in board.feed.query()] == [other_id]

    def test_failed_delete_keeps_feed(self, board, alice, bob):
        ref = ItemRef.series(42)
        discussion_id = board.discussions(ref, FeedMetadata("Dark")).create(alice, "t", "c")

        repo = board.delete_discussion(bob, ref, discussion_id)

        assert repo.error_kind is OwnershipError
        assert repo.error == "You can only delete your own discussions"
        assert len(board.feed.query()) == 1

    def test_delete_outcomes_are_independent(self, board, alice, bob):
        """Each delete reports through its own repository, not shared board state."""
        ref = ItemRef.series(42)
        first = board.discussions(ref).create(alice, "First", "a")
        second = board.discussions(ref).create(alice, "Second", "b")

        refused = board.delete_discussion(bob, ref, first)
        deleted = board.delete_discussion(alice, ref, second)

        assert refused.error_kind is OwnershipError
        assert deleted.error is None
        assert not hasattr(board, "error")


class TestFeedPresentation:
    """Tests for feed card labels and routes."""

    def test_episode_label_and_route(self):
        entry = make_entry("d", ItemType.EPISODE, 1, season_number=1, episode_number=2)

        assert item_label(entry) == "Dark S1E2"
        assert entry_route(entry) == "/episode/42/s/1/e/2"

    def test_movie_and_series(self):
        assert item_label(make_entry("d", ItemType.MOVIE, 1)) == "Dark"
        assert entry_route(make_entry("d", ItemType.MOVIE, 1)) == "/movie/42"
        assert entry_route(make_entry("d", ItemType.SERIES, 1)) == "/series/42"
