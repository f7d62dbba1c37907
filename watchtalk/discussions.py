"""Discussion threads attached to one catalog item or episode."""

import logging

from watchtalk.authors import display_name, require_actor, resolve_author
from watchtalk.errors import ErrorState, NotFoundError, OwnershipError, StoreError, WatchTalkError
from watchtalk.feed import FeedAggregator, discussion_created_entry
from watchtalk.likes import toggle_like
from watchtalk.live import LiveList
from watchtalk.messages import DEFAULT_LOCALE, get_message
from watchtalk.models import (
    Actor, Discussion, FeedMetadata, ItemRef, NotificationType, now_ms,
)
from watchtalk.notifications import NotificationFanout
from watchtalk.paths import discussion_path_for, replies_path
from watchtalk.store import Store
from watchtalk.store.base import Child


logger = logging.getLogger(__name__)


def sort_discussions(discussions: list[Discussion]) -> list[Discussion]:
    """Pinned first, then newest first."""
    ordered = sorted(discussions, key=lambda d: (d.created_at, d.id), reverse=True)
    return sorted(ordered, key=lambda d: not d.is_pinned)


def _to_discussions(children: list[Child]) -> list[Discussion]:
    return sort_discussions(
        [Discussion.from_record(key, value) for key, value in children if isinstance(value, dict)]
    )


class DiscussionRepository(ErrorState):
    """CRUD, likes and ordering for the discussions of one item.

    Operations never raise; failures are recorded in ``error`` (a
    localized message) and ``error_kind``, and reported through the
    return value.
    """

    def __init__(
        self,
        store: Store,
        ref: ItemRef,
        fanout: NotificationFanout | None = None,
        feed: FeedAggregator | None = None,
        feed_metadata: FeedMetadata | None = None,
        locale: str = DEFAULT_LOCALE,
    ):
        super().__init__()
        self.store = store
        self.ref = ref
        self.fanout = fanout or NotificationFanout(store)
        self.feed = feed or FeedAggregator(store, locale)
        self.feed_metadata = feed_metadata
        self.locale = locale
        self.path = discussion_path_for(ref)

    def _node(self, discussion_id: str) -> str:
        return f"{self.path}/{discussion_id}"

    def _load(self, discussion_id: str) -> Discussion:
        data = self.store.get(self._node(discussion_id))
        if not isinstance(data, dict):
            raise NotFoundError("discussion_not_found", discussion_id)
        return Discussion.from_record(discussion_id, data)

    def _notification_data(self, discussion_id: str) -> dict:
        return {
            "discussionId": discussion_id,
            "itemId": self.ref.item_id,
            "itemType": self.ref.item_type.value,
            "seasonNumber": self.ref.season_number,
            "episodeNumber": self.ref.episode_number,
        }

    # Reads

    def get(self, discussion_id: str) -> Discussion | None:
        try:
            return self._load(discussion_id)
        except WatchTalkError:
            return None

    def list_discussions(self) -> list[Discussion]:
        return _to_discussions(self.store.query(self.path, order_by="createdAt"))

    def subscribe(self) -> LiveList[Discussion]:
        """Live, sorted view of this item's discussions."""
        live: LiveList[Discussion] = LiveList(_to_discussions, "load_discussions", self.locale)
        try:
            sub = self.store.subscribe(
                self.path,
                live.on_snapshot,
                order_by="createdAt",
                on_error=live.on_error,
            )
        except StoreError as e:
            live.on_error(e)
            return live
        return live.attach(sub)

    # Writes

    def create(
        self,
        actor: Actor | None,
        title: str,
        content: str,
        is_spoiler: bool = False,
    ) -> str | None:
        """Start a discussion. Returns its id, or None on failure."""
        self.clear_error()
        try:
            actor = require_actor(actor)
            author = resolve_author(self.store, actor)
            discussion = Discussion(
                id="",
                item_id=self.ref.item_id,
                item_type=self.ref.item_type,
                season_number=self.ref.season_number,
                episode_number=self.ref.episode_number,
                user_id=author.user_id,
                username=author.username,
                user_photo_url=author.photo_url,
                title=title,
                content=content,
                created_at=now_ms(),
                likes=[],
                reply_count=0,
                is_spoiler=is_spoiler,
            )
            discussion.id = self.store.push(self.path, discussion.to_record())
        except StoreError as e:
            logger.error(f"Error creating discussion: {e}")
            self.record_error(e, "create_discussion")
            return None
        except WatchTalkError as e:
            self.record_error(e, "create_discussion")
            return None

        logger.info(f"Created discussion {discussion.id} at {self.path}")

        if self.feed_metadata and self.feed_metadata.item_title:
            self.feed.append(discussion_created_entry(discussion, self.feed_metadata))
        return discussion.id

    def edit(
        self,
        actor: Actor | None,
        discussion_id: str,
        title: str | None = None,
        content: str | None = None,
        is_spoiler: bool | None = None,
    ) -> bool:
        """Patch a discussion.

        The author may change anything. Anyone else may only flag the
        discussion as a spoiler, which notifies the author.
        """
        self.clear_error()
        try:
            actor = require_actor(actor)
            discussion = self._load(discussion_id)
            is_owner = discussion.user_id == actor.uid

            if not is_owner:
                if title is not None or content is not None:
                    raise OwnershipError("only_own_discussions_edit", discussion_id)
                if is_spoiler is False:
                    raise OwnershipError("only_author_unflag", discussion_id)

            updates: dict = {}
            if is_owner and (title is not None or content is not None):
                updates["updatedAt"] = now_ms()
            if title is not None:
                updates["title"] = title
            if content is not None:
                updates["content"] = content
            if is_spoiler is not None:
                updates["isSpoiler"] = is_spoiler

            if updates:
                self.store.update(self._node(discussion_id), updates)
        except StoreError as e:
            logger.error(f"Error editing discussion: {e}")
            self.record_error(e, "edit_discussion")
            return False
        except WatchTalkError as e:
            self.record_error(e, "edit_discussion")
            return False

        if not is_owner and is_spoiler is True:
            username = display_name(self.store, actor, self.locale)
            self.fanout.notify(
                discussion.user_id,
                NotificationType.SPOILER_FLAG,
                get_message("spoiler_title", self.locale),
                get_message("spoiler_discussion", self.locale, username=username, title=discussion.title),
                self._notification_data(discussion_id),
            )
        return True

    def delete(self, actor: Actor | None, discussion_id: str) -> bool:
        """Delete an own discussion and all of its replies.

        Feed entries are not touched here; see FeedAggregator.purge.
        """
        self.clear_error()
        try:
            actor = require_actor(actor)
            discussion = self._load(discussion_id)
            if discussion.user_id != actor.uid:
                raise OwnershipError("only_own_discussions_delete", discussion_id)

            self.store.update("", {
                self._node(discussion_id): None,
                replies_path(discussion_id): None,
            })
        except StoreError as e:
            logger.error(f"Error deleting discussion: {e}")
            self.record_error(e, "delete_discussion")
            return False
        except WatchTalkError as e:
            self.record_error(e, "delete_discussion")
            return False

        logger.info(f"Deleted discussion {discussion_id} and its replies")
        return True

    def toggle_like(self, actor: Actor | None, discussion_id: str) -> bool | None:
        """Like or unlike. Returns the new liked state, or None on failure."""
        self.clear_error()
        try:
            actor = require_actor(actor)
            discussion = self._load(discussion_id)
            liked = toggle_like(self.store, self._node(discussion_id), actor.uid)
        except StoreError as e:
            logger.error(f"Error toggling like: {e}")
            self.record_error(e, "toggle_like")
            return None
        except WatchTalkError as e:
            self.record_error(e, "toggle_like")
            return None

        if liked and discussion.user_id != actor.uid:
            username = display_name(self.store, actor, self.locale)
            self.fanout.notify(
                discussion.user_id,
                NotificationType.DISCUSSION_LIKE,
                get_message("like_title", self.locale),
                get_message("like_discussion", self.locale, username=username, title=discussion.title),
                self._notification_data(discussion_id),
            )
        return liked

    def set_pinned(self, discussion_id: str, pinned: bool = True) -> bool:
        """Pin or unpin a discussion (moderation)."""
        self.clear_error()
        try:
            self._load(discussion_id)
            self.store.set(f"{self._node(discussion_id)}/isPinned", True if pinned else None)
        except StoreError as e:
            logger.error(f"Error pinning discussion: {e}")
            self.record_error(e, "edit_discussion")
            return False
        except WatchTalkError as e:
            self.record_error(e, "edit_discussion")
            return False
        return True
