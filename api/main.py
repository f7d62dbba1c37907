"""FastAPI server exposing WatchTalk functionality."""

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI, Header, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from watchtalk.board import DiscussionBoard
from watchtalk.config import Config
from watchtalk.counts import count_discussions, episode_discussion_counts, total_series_discussion_count
from watchtalk.errors import AuthenticationRequired, ErrorState, NotFoundError, OwnershipError
from watchtalk.feed import entry_route, item_label
from watchtalk.models import (
    Actor, Discussion, FeedEntry, FeedFilter, FeedMetadata, ItemRef, ItemType, Notification, Reply,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Pydantic models for API
# =============================================================================


class DiscussionResponse(BaseModel):
    id: str
    item_id: int
    item_type: str
    season_number: int | None = None
    episode_number: int | None = None
    user_id: str
    username: str
    user_photo_url: str | None = None
    title: str
    content: str
    created_at: int
    updated_at: int | None = None
    likes: list[str]
    reply_count: int
    last_reply_at: int | None = None
    is_pinned: bool
    is_spoiler: bool


class ReplyResponse(BaseModel):
    id: str
    user_id: str
    username: str
    user_photo_url: str | None = None
    content: str
    created_at: int
    updated_at: int | None = None
    likes: list[str]
    is_spoiler: bool


class FeedEntryResponse(BaseModel):
    id: str | None
    type: str
    discussion_id: str
    discussion_title: str
    user_id: str
    username: str
    user_photo_url: str | None = None
    item_type: str
    item_id: int
    item_title: str
    item_label: str
    route: str
    poster_path: str | None = None
    season_number: int | None = None
    episode_number: int | None = None
    episode_title: str | None = None
    content_preview: str | None = None
    created_at: int


class NotificationResponse(BaseModel):
    id: str
    type: str
    title: str
    message: str
    data: dict[str, Any] | None = None
    timestamp: int
    read: bool


class InboxResponse(BaseModel):
    notifications: list[NotificationResponse]
    unread_count: int


class FeedMetadataRequest(BaseModel):
    item_title: str
    poster_path: str | None = None
    episode_title: str | None = None


class CreateDiscussionRequest(BaseModel):
    title: str
    content: str
    is_spoiler: bool = False
    feed_metadata: FeedMetadataRequest | None = None


class EditDiscussionRequest(BaseModel):
    title: str | None = None
    content: str | None = None
    is_spoiler: bool | None = None


class CreateReplyRequest(BaseModel):
    content: str
    is_spoiler: bool = False
    feed_metadata: FeedMetadataRequest | None = None


class EditReplyRequest(BaseModel):
    content: str | None = None
    is_spoiler: bool | None = None


class LikeResponse(BaseModel):
    liked: bool


class SpoilerStatusResponse(BaseModel):
    gated: bool
    revealed: bool


def discussion_response(d: Discussion) -> DiscussionResponse:
    return DiscussionResponse(
        id=d.id,
        item_id=d.item_id,
        item_type=d.item_type.value,
        season_number=d.season_number,
        episode_number=d.episode_number,
        user_id=d.user_id,
        username=d.username,
        user_photo_url=d.user_photo_url,
        title=d.title,
        content=d.content,
        created_at=d.created_at,
        updated_at=d.updated_at,
        likes=d.likes,
        reply_count=d.reply_count,
        last_reply_at=d.last_reply_at,
        is_pinned=d.is_pinned,
        is_spoiler=d.is_spoiler,
    )


def reply_response(r: Reply) -> ReplyResponse:
    return ReplyResponse(
        id=r.id,
        user_id=r.user_id,
        username=r.username,
        user_photo_url=r.user_photo_url,
        content=r.content,
        created_at=r.created_at,
        updated_at=r.updated_at,
        likes=r.likes,
        is_spoiler=r.is_spoiler,
    )


def feed_entry_response(e: FeedEntry) -> FeedEntryResponse:
    return FeedEntryResponse(
        id=e.id,
        type=e.type.value,
        discussion_id=e.discussion_id,
        discussion_title=e.discussion_title,
        user_id=e.user_id,
        username=e.username,
        user_photo_url=e.user_photo_url,
        item_type=e.item_type.value,
        item_id=e.item_id,
        item_title=e.item_title,
        item_label=item_label(e),
        route=entry_route(e),
        poster_path=e.poster_path,
        season_number=e.season_number,
        episode_number=e.episode_number,
        episode_title=e.episode_title,
        content_preview=e.content_preview,
        created_at=e.created_at,
    )


def notification_response(n: Notification) -> NotificationResponse:
    return NotificationResponse(
        id=n.id,
        type=n.type.value,
        title=n.title,
        message=n.message,
        data=n.data,
        timestamp=n.timestamp,
        read=n.read,
    )


def to_metadata(request: FeedMetadataRequest | None) -> FeedMetadata | None:
    if request is None:
        return None
    return FeedMetadata(request.item_title, request.poster_path, request.episode_title)


# =============================================================================
# App state
# =============================================================================


class AppState:
    board: DiscussionBoard


state = AppState()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize and cleanup application state."""
    config = Config.load()
    store = config.create_store()
    logger.info(f"Opened {config.store_type.value} store at {config.store_path}")
    catalog = config.create_catalog()
    state.board = DiscussionBoard(
        store,
        catalog=catalog,
        preferences=config.create_preferences(),
        locale=config.locale,
        feed_limit=config.feed_limit,
    )

    yield
    store.close()


# =============================================================================
# FastAPI app
# =============================================================================


app = FastAPI(
    title="WatchTalk API",
    description="Discussions, replies, likes and activity feed for watched titles",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS for local development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_actor(
    x_user_id: str | None = Header(None),
    x_user_name: str | None = Header(None),
    x_user_email: str | None = Header(None),
) -> Actor | None:
    """The acting user, as asserted by the upstream auth proxy."""
    if not x_user_id:
        return None
    return Actor(uid=x_user_id, display_name=x_user_name, email=x_user_email)


def require_user(actor: Actor | None = Depends(get_actor)) -> Actor:
    if actor is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    return actor


def item_ref(
    item_type: ItemType,
    item_id: int,
    season: int | None = Query(None, description="Season number (episodes)"),
    episode: int | None = Query(None, description="Episode number (episodes)"),
) -> ItemRef:
    return ItemRef(item_type, item_id, season, episode)


def raise_for_error(holder: ErrorState) -> None:
    """Map a repository's recorded failure to an HTTP error."""
    status = {
        AuthenticationRequired: 401,
        OwnershipError: 403,
        NotFoundError: 404,
    }.get(holder.error_kind, 500)
    raise HTTPException(status_code=status, detail=holder.error or "Operation failed")


# =============================================================================
# Routes: Discussions
# =============================================================================


@app.get("/api/items/{item_type}/{item_id}/discussions", response_model=list[DiscussionResponse])
def list_discussions(ref: ItemRef = Depends(item_ref)):
    """List discussions of an item, pinned first, newest first."""
    return [discussion_response(d) for d in state.board.discussions(ref).list_discussions()]


@app.post("/api/items/{item_type}/{item_id}/discussions", response_model=DiscussionResponse)
def create_discussion(
    request: CreateDiscussionRequest,
    ref: ItemRef = Depends(item_ref),
    actor: Actor | None = Depends(get_actor),
):
    """Start a discussion."""
    repo = state.board.discussions(ref, to_metadata(request.feed_metadata))
    discussion_id = repo.create(actor, request.title, request.content, is_spoiler=request.is_spoiler)
    if discussion_id is None:
        raise_for_error(repo)
    return discussion_response(repo.get(discussion_id))


@app.get("/api/items/{item_type}/{item_id}/discussions/{discussion_id}", response_model=DiscussionResponse)
def get_discussion(discussion_id: str, ref: ItemRef = Depends(item_ref)):
    discussion = state.board.discussions(ref).get(discussion_id)
    if discussion is None:
        raise HTTPException(status_code=404, detail="Discussion not found")
    return discussion_response(discussion)


@app.patch("/api/items/{item_type}/{item_id}/discussions/{discussion_id}", response_model=DiscussionResponse)
def edit_discussion(
    discussion_id: str,
    request: EditDiscussionRequest,
    ref: ItemRef = Depends(item_ref),
    actor: Actor | None = Depends(get_actor),
):
    """Edit a discussion. Non-authors may only flag it as a spoiler."""
    repo = state.board.discussions(ref)
    if not repo.edit(actor, discussion_id, request.title, request.content, request.is_spoiler):
        raise_for_error(repo)
    return discussion_response(repo.get(discussion_id))


@app.delete("/api/items/{item_type}/{item_id}/discussions/{discussion_id}")
def delete_discussion(
    discussion_id: str,
    ref: ItemRef = Depends(item_ref),
    actor: Actor | None = Depends(get_actor),
):
    """Delete an own discussion with its replies and feed entries."""
    repo = state.board.delete_discussion(actor, ref, discussion_id)
    if repo.error:
        raise_for_error(repo)
    return {"status": "deleted"}


@app.post("/api/items/{item_type}/{item_id}/discussions/{discussion_id}/like", response_model=LikeResponse)
def like_discussion(
    discussion_id: str,
    ref: ItemRef = Depends(item_ref),
    actor: Actor | None = Depends(get_actor),
):
    """Toggle the caller's like."""
    repo = state.board.discussions(ref)
    liked = repo.toggle_like(actor, discussion_id)
    if liked is None:
        raise_for_error(repo)
    return LikeResponse(liked=liked)


@app.post("/api/items/{item_type}/{item_id}/discussions/{discussion_id}/pin")
def pin_discussion(
    discussion_id: str,
    pinned: bool = Query(True),
    ref: ItemRef = Depends(item_ref),
    actor: Actor = Depends(require_user),
):
    repo = state.board.discussions(ref)
    if not repo.set_pinned(discussion_id, pinned):
        raise_for_error(repo)
    return {"status": "pinned" if pinned else "unpinned"}


# =============================================================================
# Routes: Replies
# =============================================================================


@app.get(
    "/api/items/{item_type}/{item_id}/discussions/{discussion_id}/replies",
    response_model=list[ReplyResponse],
)
def list_replies(discussion_id: str, ref: ItemRef = Depends(item_ref)):
    """Replies of a discussion, oldest first."""
    return [reply_response(r) for r in state.board.replies(ref, discussion_id).list_replies()]


@app.post("/api/items/{item_type}/{item_id}/discussions/{discussion_id}/replies", response_model=ReplyResponse)
def create_reply(
    discussion_id: str,
    request: CreateReplyRequest,
    ref: ItemRef = Depends(item_ref),
    actor: Actor | None = Depends(get_actor),
):
    """Post a reply and return it."""
    repo = state.board.replies(ref, discussion_id, to_metadata(request.feed_metadata))
    reply_id = repo.create(actor, request.content, is_spoiler=request.is_spoiler)
    if reply_id is None:
        raise_for_error(repo)
    return reply_response(repo.get(reply_id))


@app.patch("/api/items/{item_type}/{item_id}/discussions/{discussion_id}/replies/{reply_id}")
def edit_reply(
    discussion_id: str,
    reply_id: str,
    request: EditReplyRequest,
    ref: ItemRef = Depends(item_ref),
    actor: Actor | None = Depends(get_actor),
):
    repo = state.board.replies(ref, discussion_id)
    if not repo.edit(actor, reply_id, request.content, request.is_spoiler):
        raise_for_error(repo)
    return {"status": "updated"}


@app.delete("/api/items/{item_type}/{item_id}/discussions/{discussion_id}/replies/{reply_id}")
def delete_reply(
    discussion_id: str,
    reply_id: str,
    ref: ItemRef = Depends(item_ref),
    actor: Actor | None = Depends(get_actor),
):
    repo = state.board.replies(ref, discussion_id)
    if not repo.delete(actor, reply_id):
        raise_for_error(repo)
    return {"status": "deleted"}


@app.post(
    "/api/items/{item_type}/{item_id}/discussions/{discussion_id}/replies/{reply_id}/like",
    response_model=LikeResponse,
)
def like_reply(
    discussion_id: str,
    reply_id: str,
    ref: ItemRef = Depends(item_ref),
    actor: Actor | None = Depends(get_actor),
):
    repo = state.board.replies(ref, discussion_id)
    liked = repo.toggle_like(actor, reply_id)
    if liked is None:
        raise_for_error(repo)
    return LikeResponse(liked=liked)


# =============================================================================
# Routes: Feed, notifications, counts, spoilers
# =============================================================================


@app.get("/api/feed", response_model=list[FeedEntryResponse])
def get_feed(
    feed_filter: FeedFilter = Query(FeedFilter.ALL, alias="filter"),
    limit: int | None = Query(None, ge=1, le=500),
):
    """Activity across all titles, newest first."""
    entries = state.board.feed.query(feed_filter, limit or state.board.feed_limit)
    return [feed_entry_response(e) for e in entries]


@app.get("/api/notifications", response_model=InboxResponse)
def list_notifications(unread: bool = Query(False), actor: Actor = Depends(require_user)):
    inbox = state.board.inbox(actor.uid)
    return InboxResponse(
        notifications=[notification_response(n) for n in inbox.list_notifications(unread_only=unread)],
        unread_count=inbox.unread_count(),
    )


@app.post("/api/notifications/{notification_id}/read")
def mark_notification_read(notification_id: str, actor: Actor = Depends(require_user)):
    if not state.board.inbox(actor.uid).mark_read(notification_id):
        raise HTTPException(status_code=404, detail="Notification not found")
    return {"status": "read"}


@app.post("/api/notifications/read-all")
def mark_all_notifications_read(actor: Actor = Depends(require_user)):
    count = state.board.inbox(actor.uid).mark_all_read()
    return {"status": "read", "count": count}


@app.get("/api/items/{item_type}/{item_id}/discussion-count")
def get_discussion_count(ref: ItemRef = Depends(item_ref)):
    return {"count": count_discussions(state.board.store, ref)}


@app.get("/api/series/{series_id}/discussion-count")
def get_series_discussion_count(series_id: int):
    """Series discussions including all episode discussions."""
    return {"count": total_series_discussion_count(state.board.store, series_id)}


@app.get("/api/series/{series_id}/seasons/{season_number}/discussion-counts")
def get_episode_discussion_counts(series_id: int, season_number: int, episodes: int = Query(..., ge=1)):
    """Discussion count per episode of one season."""
    return episode_discussion_counts(state.board.store, series_id, season_number, episodes)


@app.get("/api/spoilers/{item_id}/s/{season}/e/{episode}", response_model=SpoilerStatusResponse)
def get_spoiler_status(item_id: int, season: int, episode: int, watched: bool | None = Query(None)):
    ref = ItemRef.episode(item_id, season, episode)
    gate = state.board.spoilers
    return SpoilerStatusResponse(gated=gate.is_gated(ref, watched), revealed=gate.is_revealed(ref))


@app.post("/api/spoilers/{item_id}/s/{season}/e/{episode}/reveal", response_model=SpoilerStatusResponse)
def reveal_spoilers(item_id: int, season: int, episode: int):
    ref = ItemRef.episode(item_id, season, episode)
    state.board.spoilers.reveal(ref)
    return SpoilerStatusResponse(gated=False, revealed=True)
