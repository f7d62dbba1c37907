"""Flat replies to one discussion."""

import logging

from watchtalk.authors import AuthorSnapshot, display_name, require_actor, resolve_author
from watchtalk.errors import ErrorState, NotFoundError, OwnershipError, StoreError, WatchTalkError
from watchtalk.feed import FeedAggregator, reply_created_entry
from watchtalk.likes import toggle_like
from watchtalk.live import LiveList
from watchtalk.messages import DEFAULT_LOCALE, get_message
from watchtalk.models import (
    Actor, Discussion, FeedMetadata, ItemType, NotificationType, Reply, now_ms,
)
from watchtalk.notifications import NotificationFanout
from watchtalk.paths import item_type_from_path, replies_path
from watchtalk.store import Increment, Store
from watchtalk.store.base import Child
from watchtalk.text import truncate_with_ellipsis


logger = logging.getLogger(__name__)


def _to_replies(children: list[Child]) -> list[Reply]:
    replies = [Reply.from_record(key, value) for key, value in children if isinstance(value, dict)]
    # Oldest first: threads read top to bottom
    replies.sort(key=lambda r: (r.created_at, r.id))
    return replies


class ReplyRepository(ErrorState):
    """CRUD and likes for the replies of one discussion.

    ``discussion_path`` is the collection the discussion lives in (see
    watchtalk.paths.discussion_path); the parent's ``replyCount`` and
    ``lastReplyAt`` are maintained there.
    """

    def __init__(
        self,
        store: Store,
        discussion_id: str | None,
        discussion_path: str,
        fanout: NotificationFanout | None = None,
        feed: FeedAggregator | None = None,
        feed_metadata: FeedMetadata | None = None,
        locale: str = DEFAULT_LOCALE,
    ):
        super().__init__()
        self.store = store
        self.discussion_id = discussion_id
        self.discussion_path = discussion_path
        self.fanout = fanout or NotificationFanout(store)
        self.feed = feed or FeedAggregator(store, locale)
        self.feed_metadata = feed_metadata
        self.locale = locale
        self.path = replies_path(discussion_id) if discussion_id else None

    @property
    def _discussion_node(self) -> str:
        return f"{self.discussion_path}/{self.discussion_id}"

    def _require_discussion_id(self) -> str:
        if not self.discussion_id:
            raise NotFoundError("discussion_not_found", "no discussion selected")
        return self.discussion_id

    def _load_discussion(self) -> Discussion:
        data = self.store.get(self._discussion_node)
        if not isinstance(data, dict):
            raise NotFoundError("discussion_not_found", self.discussion_id or "")
        if "itemType" not in data:
            item_type = item_type_from_path(self.discussion_path) or ItemType.SERIES
            data["itemType"] = item_type.value
        return Discussion.from_record(self.discussion_id, data)

    def _load_reply(self, reply_id: str) -> Reply:
        data = self.store.get(f"{self.path}/{reply_id}")
        if not isinstance(data, dict):
            raise NotFoundError("reply_not_found", reply_id)
        return Reply.from_record(reply_id, data)

    def _notification_data(self, reply_id: str | None = None) -> dict:
        return {
            "discussionId": self.discussion_id,
            "discussionPath": self.discussion_path,
            "replyId": reply_id,
        }

    # Reads

    def get(self, reply_id: str) -> Reply | None:
        if not self.path:
            return None
        data = self.store.get(f"{self.path}/{reply_id}")
        return Reply.from_record(reply_id, data) if isinstance(data, dict) else None

    def list_replies(self) -> list[Reply]:
        if not self.path:
            return []
        return _to_replies(self.store.query(self.path, order_by="createdAt"))

    def subscribe(self, enabled: bool = True) -> LiveList[Reply]:
        """Live view of the replies, oldest first.

        With ``enabled=False`` (or no discussion) nothing is opened and an
        empty, settled list is returned.
        """
        if not enabled or not self.path:
            return LiveList.empty()

        live: LiveList[Reply] = LiveList(_to_replies, "load_replies", self.locale)
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

    def create(self, actor: Actor | None, content: str, is_spoiler: bool = False) -> str | None:
        """Post a reply and bump the parent's reply count. Returns the reply id, or None on failure.

        The reply and the counter are written in one multi-path update so
        that a rejected write leaves neither behind.
        """
        self.clear_error()
        try:
            actor = require_actor(actor)
            self._require_discussion_id()
            discussion = self._load_discussion()
            author = resolve_author(self.store, actor)
            now = now_ms()
            reply = Reply(
                id="",
                user_id=author.user_id,
                username=author.username,
                user_photo_url=author.photo_url,
                content=content,
                created_at=now,
                is_spoiler=is_spoiler,
            )
            reply.id = self.store.new_key()
            self.store.update("", {
                f"{self.path}/{reply.id}": reply.to_record(),
                f"{self._discussion_node}/replyCount": Increment(1),
                f"{self._discussion_node}/lastReplyAt": now,
            })
        except StoreError as e:
            logger.error(f"Error creating reply: {e}")
            self.record_error(e, "create_reply")
            return None
        except WatchTalkError as e:
            self.record_error(e, "create_reply")
            return None

        logger.info(f"Created reply {reply.id} on discussion {self.discussion_id}")

        self._notify_participants(actor, author, discussion, reply.id)
        if self.feed_metadata and self.feed_metadata.item_title:
            self.feed.append(reply_created_entry(
                discussion,
                self.feed_metadata,
                user_id=author.user_id,
                username=author.username,
                user_photo_url=author.photo_url,
                content=content,
                created_at=now,
            ))
        return reply.id

    def _notify_participants(
        self,
        actor: Actor,
        author: AuthorSnapshot,
        discussion: Discussion,
        reply_id: str,
    ) -> None:
        """Notify the discussion author and every earlier replier, except the actor."""
        participants = [discussion.user_id] if discussion.user_id else []
        try:
            for _, value in self.store.query(self.path, order_by="createdAt"):
                if isinstance(value, dict) and value.get("userId"):
                    participants.append(value["userId"])
        except StoreError as e:
            logger.warning(f"Could not read reply authors of {self.discussion_id}: {e}")

        # dict.fromkeys keeps first-seen order
        recipients = [uid for uid in dict.fromkeys(participants) if uid != actor.uid]
        for uid in recipients:
            key = "reply_to_yours" if uid == discussion.user_id else "reply_also"
            self.fanout.notify(
                uid,
                NotificationType.DISCUSSION_REPLY,
                get_message("reply_title", self.locale),
                get_message(key, self.locale, username=author.username, title=discussion.title),
                self._notification_data(reply_id),
            )

    def edit(
        self,
        actor: Actor | None,
        reply_id: str,
        content: str | None = None,
        is_spoiler: bool | None = None,
    ) -> bool:
        """Patch a reply: the author may change anything, others may only flag it as a spoiler."""
        self.clear_error()
        try:
            actor = require_actor(actor)
            self._require_discussion_id()
            reply = self._load_reply(reply_id)
            is_owner = reply.user_id == actor.uid

            if not is_owner:
                if content is not None:
                    raise OwnershipError("only_own_replies_edit", reply_id)
                if is_spoiler is False:
                    raise OwnershipError("only_author_unflag", reply_id)

            updates: dict = {}
            if is_owner and content is not None:
                updates["updatedAt"] = now_ms()
                updates["content"] = content
            if is_spoiler is not None:
                updates["isSpoiler"] = is_spoiler

            if updates:
                self.store.update(f"{self.path}/{reply_id}", updates)
        except StoreError as e:
            logger.error(f"Error editing reply: {e}")
            self.record_error(e, "edit_reply")
            return False
        except WatchTalkError as e:
            self.record_error(e, "edit_reply")
            return False

        if not is_owner and is_spoiler is True:
            username = display_name(self.store, actor, self.locale)
            self.fanout.notify(
                reply.user_id,
                NotificationType.SPOILER_FLAG,
                get_message("spoiler_title", self.locale),
                get_message(
                    "spoiler_reply", self.locale,
                    username=username, preview=truncate_with_ellipsis(reply.content),
                ),
                self._notification_data(reply_id),
            )
        return True

    def delete(self, actor: Actor | None, reply_id: str) -> bool:
        """Delete an own reply and decrement the parent's reply count.

        The decrement has no floor; see watchtalk.counts.reconcile_reply_count.
        """
        self.clear_error()
        try:
            actor = require_actor(actor)
            self._require_discussion_id()
            reply = self._load_reply(reply_id)
            if reply.user_id != actor.uid:
                raise OwnershipError("only_own_replies_delete", reply_id)

            self.store.update("", {
                f"{self.path}/{reply_id}": None,
                f"{self._discussion_node}/replyCount": Increment(-1),
            })
        except StoreError as e:
            logger.error(f"Error deleting reply: {e}")
            self.record_error(e, "delete_reply")
            return False
        except WatchTalkError as e:
            self.record_error(e, "delete_reply")
            return False

        logger.info(f"Deleted reply {reply_id} from discussion {self.discussion_id}")
        return True

    def toggle_like(self, actor: Actor | None, reply_id: str) -> bool | None:
        """Like or unlike a reply. Returns the new liked state, or None on failure."""
        self.clear_error()
        try:
            actor = require_actor(actor)
            self._require_discussion_id()
            reply = self._load_reply(reply_id)
            liked = toggle_like(self.store, f"{self.path}/{reply_id}", actor.uid)
        except StoreError as e:
            logger.error(f"Error toggling reply like: {e}")
            self.record_error(e, "toggle_like")
            return None
        except WatchTalkError as e:
            self.record_error(e, "toggle_like")
            return None

        if liked and reply.user_id != actor.uid:
            username = display_name(self.store, actor, self.locale)
            self.fanout.notify(
                reply.user_id,
                NotificationType.DISCUSSION_LIKE,
                get_message("like_title", self.locale),
                get_message(
                    "like_reply", self.locale,
                    username=username, preview=truncate_with_ellipsis(reply.content),
                ),
                self._notification_data(reply_id),
            )
        return liked
