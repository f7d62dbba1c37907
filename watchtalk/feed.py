"""Cross-item activity feed of discussion and reply creation.

Entries are denormalized snapshots appended to one flat collection and
are independent of the per-item threads. They are never edited; they are
only bulk-removed when their discussion is deleted.
"""

import logging

from watchtalk.errors import StoreError
from watchtalk.live import LiveList
from watchtalk.messages import DEFAULT_LOCALE
from watchtalk.models import (
    Discussion, FeedEntry, FeedEntryType, FeedFilter, FeedMetadata, ItemType,
)
from watchtalk.paths import FEED_PATH
from watchtalk.store import Store
from watchtalk.store.base import Child
from watchtalk.text import preview


logger = logging.getLogger(__name__)

DEFAULT_FEED_LIMIT = 50


def _to_entries(children: list[Child]) -> list[FeedEntry]:
    entries = []
    for key, value in children:
        if not isinstance(value, dict):
            continue
        try:
            entries.append(FeedEntry.from_record(key, value))
        except (KeyError, ValueError) as e:
            logger.warning(f"Skipping malformed feed entry {key}: {e}")
    # The store orders by a different field when filtering; re-sort here
    entries.sort(key=lambda e: (e.created_at, e.id or ""), reverse=True)
    return entries


def _query_args(feed_filter: FeedFilter, limit: int) -> dict:
    if feed_filter is FeedFilter.ALL:
        return {"order_by": "createdAt", "limit_to_last": limit}
    return {"order_by": "itemType", "equal_to": feed_filter.value, "limit_to_last": limit}


class FeedAggregator:
    """Append, query and purge the shared discussion feed."""

    def __init__(self, store: Store, locale: str = DEFAULT_LOCALE):
        self.store = store
        self.locale = locale

    def append(self, entry: FeedEntry) -> str | None:
        """Write an entry. Best effort: returns None and logs on failure."""
        try:
            key = self.store.push(FEED_PATH, entry.to_record())
        except Exception as e:
            logger.warning(f"Error writing feed entry for {entry.discussion_id}: {e}")
            return None
        entry.id = key
        return key

    def query(self, feed_filter: FeedFilter = FeedFilter.ALL, limit: int = DEFAULT_FEED_LIMIT) -> list[FeedEntry]:
        """One-shot read of the newest entries matching the filter."""
        children = self.store.query(FEED_PATH, **_query_args(feed_filter, limit))
        return _to_entries(children)

    def subscribe(self, feed_filter: FeedFilter = FeedFilter.ALL, limit: int = DEFAULT_FEED_LIMIT) -> LiveList[FeedEntry]:
        """Live view of the newest entries matching the filter, newest first."""
        live: LiveList[FeedEntry] = LiveList(_to_entries, "load_feed", self.locale)
        try:
            sub = self.store.subscribe(
                FEED_PATH,
                live.on_snapshot,
                on_error=live.on_error,
                **_query_args(feed_filter, limit),
            )
        except StoreError as e:
            live.on_error(e)
            return live
        return live.attach(sub)

    def purge(self, discussion_id: str) -> int:
        """Remove every entry of a discussion in one multi-path update.

        Returns the number of entries removed (0 on failure).
        """
        try:
            matches = self.store.query(FEED_PATH, order_by="discussionId", equal_to=discussion_id)
            if not matches:
                return 0
            self.store.update(FEED_PATH, {key: None for key, _ in matches})
        except Exception as e:
            logger.warning(f"Error deleting feed entries for {discussion_id}: {e}")
            return 0

        logger.info(f"Removed {len(matches)} feed entries for discussion {discussion_id}")
        return len(matches)


def discussion_created_entry(
    discussion: Discussion,
    metadata: FeedMetadata,
) -> FeedEntry:
    return FeedEntry(
        type=FeedEntryType.DISCUSSION_CREATED,
        discussion_id=discussion.id,
        discussion_title=discussion.title,
        user_id=discussion.user_id,
        username=discussion.username,
        user_photo_url=discussion.user_photo_url,
        item_type=discussion.item_type,
        item_id=discussion.item_id,
        item_title=metadata.item_title,
        poster_path=metadata.poster_path,
        season_number=discussion.season_number,
        episode_number=discussion.episode_number,
        episode_title=metadata.episode_title,
        created_at=discussion.created_at,
    )


def reply_created_entry(
    discussion: Discussion,
    metadata: FeedMetadata,
    user_id: str,
    username: str,
    user_photo_url: str | None,
    content: str,
    created_at: int,
) -> FeedEntry:
    return FeedEntry(
        type=FeedEntryType.REPLY_CREATED,
        discussion_id=discussion.id,
        discussion_title=discussion.title,
        user_id=user_id,
        username=username,
        user_photo_url=user_photo_url,
        item_type=discussion.item_type,
        item_id=discussion.item_id,
        item_title=metadata.item_title,
        poster_path=metadata.poster_path,
        season_number=discussion.season_number,
        episode_number=discussion.episode_number,
        episode_title=metadata.episode_title,
        content_preview=preview(content),
        created_at=created_at,
    )


def item_label(entry: FeedEntry) -> str:
    """Title as shown on a feed card, e.g. "Dark S1E2" for episodes."""
    if entry.item_type is ItemType.EPISODE and entry.season_number and entry.episode_number:
        return f"{entry.item_title} S{entry.season_number}E{entry.episode_number}"
    return entry.item_title


def entry_route(entry: FeedEntry) -> str:
    """App route a feed card links to."""
    if entry.item_type is ItemType.EPISODE and entry.season_number and entry.episode_number:
        return f"/episode/{entry.item_id}/s/{entry.season_number}/e/{entry.episode_number}"
    if entry.item_type is ItemType.MOVIE:
        return f"/movie/{entry.item_id}"
    return f"/series/{entry.item_id}"
