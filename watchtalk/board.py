"""Wires the repositories to shared collaborators.

The board is the call-site unit for multi-step operations that span
components, such as deleting a discussion together with its feed
entries.
"""

import logging

from watchtalk.catalog import TMDBCatalog
from watchtalk.discussions import DiscussionRepository
from watchtalk.errors import CatalogError
from watchtalk.feed import DEFAULT_FEED_LIMIT, FeedAggregator
from watchtalk.messages import DEFAULT_LOCALE
from watchtalk.models import Actor, FeedMetadata, ItemRef
from watchtalk.notifications import NotificationFanout, NotificationInbox
from watchtalk.paths import discussion_path_for
from watchtalk.replies import ReplyRepository
from watchtalk.spoilers import MemoryPreferences, Preferences, SpoilerGate
from watchtalk.store import Store


logger = logging.getLogger(__name__)


class DiscussionBoard:
    """Entry point for discussions, replies, the feed and inboxes."""

    def __init__(
        self,
        store: Store,
        catalog: TMDBCatalog | None = None,
        preferences: Preferences | None = None,
        locale: str = DEFAULT_LOCALE,
        feed_limit: int = DEFAULT_FEED_LIMIT,
    ):
        self.store = store
        self.catalog = catalog
        self.locale = locale
        self.feed_limit = feed_limit
        self.fanout = NotificationFanout(store)
        self.feed = FeedAggregator(store, locale)
        self.spoilers = SpoilerGate(preferences or MemoryPreferences())

    def _resolve_metadata(self, ref: ItemRef, feed_metadata: FeedMetadata | None) -> FeedMetadata | None:
        if feed_metadata is not None or self.catalog is None:
            return feed_metadata
        try:
            return self.catalog.feed_metadata(ref)
        except CatalogError as e:
            logger.warning(f"No feed metadata for {ref}: {e}")
            return None

    def discussions(self, ref: ItemRef, feed_metadata: FeedMetadata | None = None) -> DiscussionRepository:
        return DiscussionRepository(
            self.store,
            ref,
            fanout=self.fanout,
            feed=self.feed,
            feed_metadata=self._resolve_metadata(ref, feed_metadata),
            locale=self.locale,
        )

    def replies(
        self,
        ref: ItemRef,
        discussion_id: str | None,
        feed_metadata: FeedMetadata | None = None,
    ) -> ReplyRepository:
        return ReplyRepository(
            self.store,
            discussion_id,
            discussion_path_for(ref),
            fanout=self.fanout,
            feed=self.feed,
            feed_metadata=self._resolve_metadata(ref, feed_metadata),
            locale=self.locale,
        )

    def inbox(self, user_id: str) -> NotificationInbox:
        return NotificationInbox(self.store, user_id, self.locale)

    def delete_discussion(self, actor: Actor | None, ref: ItemRef, discussion_id: str) -> DiscussionRepository:
        """Delete a discussion with its replies, then purge its feed entries.

        The returned repository carries the outcome; its ``error`` is None
        on success. The purge is eventually consistent cleanup: it runs only
        after the delete succeeded and its failure does not undo the delete.
        """
        repo = DiscussionRepository(self.store, ref, self.fanout, self.feed, locale=self.locale)
        if repo.delete(actor, discussion_id):
            self.feed.purge(discussion_id)
        return repo
