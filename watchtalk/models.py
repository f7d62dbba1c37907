"""Core data models for WatchTalk.

Store records use camelCase field names; each model converts with
``to_record()`` and ``from_record(key, data)``. Optional fields that are
unset are omitted from records rather than written as null.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


def now_ms() -> int:
    """Current time as epoch milliseconds."""
    return int(time.time() * 1000)


class ItemType(Enum):
    """Kind of catalog item a discussion is attached to."""
    MOVIE = "movie"
    SERIES = "series"
    EPISODE = "episode"


class NotificationType(Enum):
    """Kind of inbox entry."""
    DISCUSSION_REPLY = "discussion_reply"
    DISCUSSION_LIKE = "discussion_like"
    SPOILER_FLAG = "spoiler_flag"


class FeedEntryType(Enum):
    """Kind of activity recorded in the feed."""
    DISCUSSION_CREATED = "discussion_created"
    REPLY_CREATED = "reply_created"


class FeedFilter(Enum):
    """Feed filter tabs."""
    ALL = "all"
    MOVIE = "movie"
    SERIES = "series"
    EPISODE = "episode"


@dataclass(frozen=True)
class ItemRef:
    """Identifies the content item a thread belongs to."""
    item_type: ItemType
    item_id: int
    season_number: int | None = None
    episode_number: int | None = None

    @classmethod
    def series(cls, item_id: int) -> "ItemRef":
        return cls(ItemType.SERIES, item_id)

    @classmethod
    def movie(cls, item_id: int) -> "ItemRef":
        return cls(ItemType.MOVIE, item_id)

    @classmethod
    def episode(cls, item_id: int, season_number: int, episode_number: int) -> "ItemRef":
        return cls(ItemType.EPISODE, item_id, season_number, episode_number)


@dataclass
class Actor:
    """The authenticated user performing an operation."""
    uid: str | None
    display_name: str | None = None
    email: str | None = None
    photo_url: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.uid)


@dataclass
class FeedMetadata:
    """Catalog snapshot copied into feed entries."""
    item_title: str
    poster_path: str | None = None
    episode_title: str | None = None


def _likes_from_record(raw: Any) -> list[str]:
    """Likes are stored as {uid: true}; tolerate the legacy list form."""
    if isinstance(raw, dict):
        return [uid for uid, liked in raw.items() if liked]
    if isinstance(raw, list):
        return [str(uid) for uid in raw if uid]
    return []


def _put_optional(record: dict[str, Any], **fields: Any) -> dict[str, Any]:
    for name, value in fields.items():
        if value is not None:
            record[name] = value
    return record


@dataclass
class Discussion:
    """A top-level thread attached to one catalog item or episode."""
    id: str
    item_id: int
    item_type: ItemType
    user_id: str
    username: str
    title: str
    content: str
    created_at: int

    season_number: int | None = None  # Only for episode discussions
    episode_number: int | None = None

    # Author snapshot taken at creation time, not a live reference
    user_photo_url: str | None = None

    updated_at: int | None = None
    likes: list[str] = field(default_factory=list)
    reply_count: int = 0
    last_reply_at: int | None = None
    is_pinned: bool = False
    is_spoiler: bool = False

    def to_record(self) -> dict[str, Any]:
        record = {
            "itemId": self.item_id,
            "itemType": self.item_type.value,
            "userId": self.user_id,
            "username": self.username,
            "title": self.title,
            "content": self.content,
            "createdAt": self.created_at,
            "likes": {uid: True for uid in self.likes},
            "replyCount": self.reply_count,
            "isSpoiler": self.is_spoiler,
        }
        if self.is_pinned:
            record["isPinned"] = True
        return _put_optional(
            record,
            seasonNumber=self.season_number,
            episodeNumber=self.episode_number,
            userPhotoURL=self.user_photo_url,
            updatedAt=self.updated_at,
            lastReplyAt=self.last_reply_at,
        )

    @classmethod
    def from_record(cls, key: str, data: dict[str, Any]) -> "Discussion":
        return cls(
            id=key,
            item_id=data.get("itemId", 0),
            item_type=ItemType(data.get("itemType", "series")),
            user_id=data.get("userId", ""),
            username=data.get("username", ""),
            title=data.get("title", ""),
            content=data.get("content", ""),
            created_at=data.get("createdAt", 0),
            season_number=data.get("seasonNumber"),
            episode_number=data.get("episodeNumber"),
            user_photo_url=data.get("userPhotoURL"),
            updated_at=data.get("updatedAt"),
            likes=_likes_from_record(data.get("likes")),
            reply_count=data.get("replyCount", 0),
            last_reply_at=data.get("lastReplyAt"),
            is_pinned=bool(data.get("isPinned", False)),
            is_spoiler=bool(data.get("isSpoiler", False)),
        )


@dataclass
class Reply:
    """A flat, single-level response to a discussion."""
    id: str
    user_id: str
    username: str
    content: str
    created_at: int
    user_photo_url: str | None = None
    updated_at: int | None = None
    likes: list[str] = field(default_factory=list)
    is_spoiler: bool = False

    def to_record(self) -> dict[str, Any]:
        record: dict[str, Any] = {
            "userId": self.user_id,
            "username": self.username,
            "content": self.content,
            "createdAt": self.created_at,
            "likes": {uid: True for uid in self.likes},
        }
        if self.is_spoiler:
            record["isSpoiler"] = True
        return _put_optional(record, userPhotoURL=self.user_photo_url, updatedAt=self.updated_at)

    @classmethod
    def from_record(cls, key: str, data: dict[str, Any]) -> "Reply":
        return cls(
            id=key,
            user_id=data.get("userId", ""),
            username=data.get("username", ""),
            content=data.get("content", ""),
            created_at=data.get("createdAt", 0),
            user_photo_url=data.get("userPhotoURL"),
            updated_at=data.get("updatedAt"),
            likes=_likes_from_record(data.get("likes")),
            is_spoiler=bool(data.get("isSpoiler", False)),
        )


@dataclass
class Notification:
    """An inbox entry for a recipient user."""
    id: str
    type: NotificationType
    title: str
    message: str
    timestamp: int
    read: bool = False
    data: dict[str, Any] | None = None  # Back-reference to the discussion/reply

    def to_record(self) -> dict[str, Any]:
        record = {
            "type": self.type.value,
            "title": self.title,
            "message": self.message,
            "timestamp": self.timestamp,
            "read": self.read,
        }
        return _put_optional(record, data=self.data)

    @classmethod
    def from_record(cls, key: str, data: dict[str, Any]) -> "Notification":
        return cls(
            id=key,
            type=NotificationType(data["type"]),
            title=data.get("title", ""),
            message=data.get("message", ""),
            timestamp=data.get("timestamp", 0),
            read=bool(data.get("read", False)),
            data=data.get("data"),
        )


@dataclass
class FeedEntry:
    """Denormalized activity record spanning all discussions.

    Actor and subject fields are snapshots; they are never updated after
    the entry is written.
    """
    type: FeedEntryType
    discussion_id: str
    discussion_title: str

    # Actor snapshot
    user_id: str
    username: str

    # Subject snapshot
    item_type: ItemType
    item_id: int
    item_title: str

    created_at: int
    content_preview: str | None = None  # Reply entries only
    user_photo_url: str | None = None
    poster_path: str | None = None
    season_number: int | None = None
    episode_number: int | None = None
    episode_title: str | None = None
    id: str | None = None  # Store key, set once written

    def to_record(self) -> dict[str, Any]:
        record = {
            "type": self.type.value,
            "discussionId": self.discussion_id,
            "discussionTitle": self.discussion_title,
            "userId": self.user_id,
            "username": self.username,
            "itemType": self.item_type.value,
            "itemId": self.item_id,
            "itemTitle": self.item_title,
            "createdAt": self.created_at,
        }
        return _put_optional(
            record,
            userPhotoURL=self.user_photo_url,
            posterPath=self.poster_path,
            seasonNumber=self.season_number,
            episodeNumber=self.episode_number,
            episodeTitle=self.episode_title,
            contentPreview=self.content_preview,
        )

    @classmethod
    def from_record(cls, key: str, data: dict[str, Any]) -> "FeedEntry":
        return cls(
            id=key,
            type=FeedEntryType(data["type"]),
            discussion_id=data.get("discussionId", ""),
            discussion_title=data.get("discussionTitle", ""),
            user_id=data.get("userId", ""),
            username=data.get("username", ""),
            item_type=ItemType(data.get("itemType", "series")),
            item_id=data.get("itemId", 0),
            item_title=data.get("itemTitle", ""),
            created_at=data.get("createdAt", 0),
            content_preview=data.get("contentPreview"),
            user_photo_url=data.get("userPhotoURL"),
            poster_path=data.get("posterPath"),
            season_number=data.get("seasonNumber"),
            episode_number=data.get("episodeNumber"),
            episode_title=data.get("episodeTitle"),
        )
