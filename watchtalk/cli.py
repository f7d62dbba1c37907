"""Command-line interface for WatchTalk."""

import functools
import logging
import sys
from contextlib import contextmanager
from typing import Iterator

import click
from rich.console import Console
from rich.table import Table

from watchtalk.board import DiscussionBoard
from watchtalk.config import DEFAULT_CONFIG_PATH, Config
from watchtalk.counts import (
    count_discussions, episode_discussion_counts, reconcile_reply_count, total_series_discussion_count,
)
from watchtalk.feed import item_label
from watchtalk.models import Actor, FeedFilter, FeedMetadata, ItemRef, ItemType
from watchtalk.paths import discussion_path_for
from watchtalk.text import extract_image_urls, format_relative_time


console = Console()

ITEM_TYPES = click.Choice([t.value for t in ItemType])


@contextmanager
def open_board(config: Config) -> Iterator[DiscussionBoard]:
    """Open the configured store and wrap it in a board."""
    catalog = config.create_catalog()
    with config.create_store() as store:
        yield DiscussionBoard(
            store,
            catalog=catalog,
            preferences=config.create_preferences(),
            locale=config.locale,
            feed_limit=config.feed_limit,
        )


def item_arguments(func):
    """ITEM_TYPE ITEM_ID plus --season/--episode, collapsed into an ItemRef."""
    @click.argument("item_type", type=ITEM_TYPES)
    @click.argument("item_id", type=int)
    @click.option("--season", "season_number", type=int, default=None, help="Season number (episodes)")
    @click.option("--episode", "episode_number", type=int, default=None, help="Episode number (episodes)")
    @functools.wraps(func)
    def wrapper(item_type, item_id, season_number, episode_number, **kwargs):
        ref = ItemRef(ItemType(item_type), item_id, season_number, episode_number)
        return func(ref=ref, **kwargs)
    return wrapper


def actor_options(func):
    """--user/--name/--email, collapsed into an Actor."""
    @click.option("--user", "uid", required=True, help="Acting user id")
    @click.option("--name", "display_name", default=None, help="Display name of the acting user")
    @click.option("--email", default=None, help="Email of the acting user")
    @functools.wraps(func)
    def wrapper(uid, display_name, email, **kwargs):
        return func(actor=Actor(uid=uid, display_name=display_name, email=email), **kwargs)
    return wrapper


def fail(message: str | None) -> None:
    console.print(f"[red]{message or 'Operation failed'}[/red]")
    sys.exit(1)


@click.group()
@click.option("--config", "config_path", default=DEFAULT_CONFIG_PATH, help="Path to the config file")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.version_option(package_name="watchtalk")
@click.pass_context
def main(ctx: click.Context, config_path: str, verbose: bool) -> None:
    """WatchTalk - discussions for the series and movies you watch."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING)
    ctx.obj = Config.load(config_path)


# =============================================================================
# Discussions commands
# =============================================================================


@main.group()
def discussions() -> None:
    """Manage discussion threads."""
    pass


@discussions.command("list")
@item_arguments
@click.pass_obj
def discussions_list(config: Config, ref: ItemRef) -> None:
    """List discussions of an item (pinned first, newest first)."""
    with open_board(config) as board:
        items = board.discussions(ref).list_discussions()

        if not items:
            console.print("[dim]No discussions yet.[/dim]")
            return

        table = Table(show_header=True)
        table.add_column("ID", style="dim")
        table.add_column("Title")
        table.add_column("Author")
        table.add_column("Age")
        table.add_column("Likes", justify="right")
        table.add_column("Replies", justify="right")

        for d in items:
            title = d.title
            if d.is_pinned:
                title = f"[bold]📌 {title}[/bold]"
            if d.is_spoiler:
                title = f"{title} [yellow](spoiler)[/yellow]"
            age = format_relative_time(d.created_at, locale=config.locale)
            if d.updated_at:
                age += " *"
            table.add_row(d.id, title, d.username, age, str(len(d.likes)), str(d.reply_count))

        console.print(table)


@discussions.command("show")
@item_arguments
@click.argument("discussion_id")
@click.option("--show-spoilers", is_flag=True, help="Print spoiler-flagged content")
@click.pass_obj
def discussions_show(config: Config, ref: ItemRef, discussion_id: str, show_spoilers: bool) -> None:
    """Show a discussion with its replies."""
    with open_board(config) as board:
        discussion = board.discussions(ref).get(discussion_id)
        if discussion is None:
            fail(f"Discussion not found: {discussion_id}")

        def render(content: str, spoiler: bool) -> str:
            if spoiler and not show_spoilers:
                return "[yellow]<spoiler hidden>[/yellow]"
            text, images = extract_image_urls(content)
            lines = [text] + [f"[blue]🖼 {url}[/blue]" for url in images]
            return "\n".join(line for line in lines if line)

        console.print(f"[bold]{discussion.title}[/bold] [dim]by {discussion.username}[/dim]")
        console.print(render(discussion.content, discussion.is_spoiler))
        console.print()

        for reply in board.replies(ref, discussion_id).list_replies():
            age = format_relative_time(reply.created_at, locale=config.locale)
            console.print(f"[cyan]{reply.username}[/cyan] [dim]{age} · {len(reply.likes)} likes · {reply.id}[/dim]")
            console.print(render(reply.content, reply.is_spoiler))


@discussions.command("create")
@item_arguments
@actor_options
@click.option("--title", required=True)
@click.option("--content", required=True)
@click.option("--spoiler", is_flag=True, help="Mark the discussion as a spoiler")
@click.option("--item-title", default=None, help="Catalog title for the activity feed")
@click.option("--poster-path", default=None)
@click.option("--episode-title", default=None)
@click.pass_obj
def discussions_create(
    config: Config,
    ref: ItemRef,
    actor: Actor,
    title: str,
    content: str,
    spoiler: bool,
    item_title: str | None,
    poster_path: str | None,
    episode_title: str | None,
) -> None:
    """Start a new discussion."""
    metadata = FeedMetadata(item_title, poster_path, episode_title) if item_title else None
    with open_board(config) as board:
        repo = board.discussions(ref, metadata)
        discussion_id = repo.create(actor, title, content, is_spoiler=spoiler)
        if discussion_id is None:
            fail(repo.error)
        console.print(f"[green]Created discussion {discussion_id}[/green]")


@discussions.command("edit")
@item_arguments
@click.argument("discussion_id")
@actor_options
@click.option("--title", default=None)
@click.option("--content", default=None)
@click.option("--spoiler/--no-spoiler", default=None, help="Set or clear the spoiler flag")
@click.pass_obj
def discussions_edit(
    config: Config,
    ref: ItemRef,
    discussion_id: str,
    actor: Actor,
    title: str | None,
    content: str | None,
    spoiler: bool | None,
) -> None:
    """Edit a discussion (others may only flag it as a spoiler)."""
    with open_board(config) as board:
        repo = board.discussions(ref)
        if not repo.edit(actor, discussion_id, title=title, content=content, is_spoiler=spoiler):
            fail(repo.error)
        console.print("[green]Discussion updated[/green]")


@discussions.command("delete")
@item_arguments
@click.argument("discussion_id")
@actor_options
@click.pass_obj
def discussions_delete(config: Config, ref: ItemRef, discussion_id: str, actor: Actor) -> None:
    """Delete an own discussion, its replies and its feed entries."""
    with open_board(config) as board:
        repo = board.delete_discussion(actor, ref, discussion_id)
        if repo.error:
            fail(repo.error)
        console.print(f"[green]Deleted discussion {discussion_id}[/green]")


@discussions.command("like")
@item_arguments
@click.argument("discussion_id")
@actor_options
@click.pass_obj
def discussions_like(config: Config, ref: ItemRef, discussion_id: str, actor: Actor) -> None:
    """Toggle a like on a discussion."""
    with open_board(config) as board:
        repo = board.discussions(ref)
        liked = repo.toggle_like(actor, discussion_id)
        if liked is None:
            fail(repo.error)
        console.print("[green]Liked[/green]" if liked else "[yellow]Like removed[/yellow]")


@discussions.command("pin")
@item_arguments
@click.argument("discussion_id")
@click.option("--unpin", is_flag=True)
@click.pass_obj
def discussions_pin(config: Config, ref: ItemRef, discussion_id: str, unpin: bool) -> None:
    """Pin (or unpin) a discussion to the top of its thread."""
    with open_board(config) as board:
        repo = board.discussions(ref)
        if not repo.set_pinned(discussion_id, not unpin):
            fail(repo.error)
        console.print("[green]Unpinned[/green]" if unpin else "[green]Pinned[/green]")


# =============================================================================
# Replies commands
# =============================================================================


@main.group()
def replies() -> None:
    """Manage replies to a discussion."""
    pass


@replies.command("list")
@item_arguments
@click.argument("discussion_id")
@click.pass_obj
def replies_list(config: Config, ref: ItemRef, discussion_id: str) -> None:
    """List replies of a discussion, oldest first."""
    with open_board(config) as board:
        items = board.replies(ref, discussion_id).list_replies()

        if not items:
            console.print("[dim]No replies yet.[/dim]")
            return

        table = Table(show_header=True)
        table.add_column("ID", style="dim")
        table.add_column("Author")
        table.add_column("Reply")
        table.add_column("Age")
        table.add_column("Likes", justify="right")

        for r in items:
            content = "[yellow]<spoiler>[/yellow]" if r.is_spoiler else r.content
            age = format_relative_time(r.created_at, locale=config.locale)
            table.add_row(r.id, r.username, content, age, str(len(r.likes)))

        console.print(table)


@replies.command("create")
@item_arguments
@click.argument("discussion_id")
@click.argument("content")
@actor_options
@click.option("--spoiler", is_flag=True)
@click.option("--item-title", default=None, help="Catalog title for the activity feed")
@click.pass_obj
def replies_create(
    config: Config,
    ref: ItemRef,
    discussion_id: str,
    content: str,
    actor: Actor,
    spoiler: bool,
    item_title: str | None,
) -> None:
    """Reply to a discussion."""
    metadata = FeedMetadata(item_title) if item_title else None
    with open_board(config) as board:
        repo = board.replies(ref, discussion_id, metadata)
        reply_id = repo.create(actor, content, is_spoiler=spoiler)
        if reply_id is None:
            fail(repo.error)
        console.print(f"[green]Posted reply {reply_id}[/green]")


@replies.command("edit")
@item_arguments
@click.argument("discussion_id")
@click.argument("reply_id")
@actor_options
@click.option("--content", default=None)
@click.option("--spoiler/--no-spoiler", default=None, help="Set or clear the spoiler flag")
@click.pass_obj
def replies_edit(
    config: Config,
    ref: ItemRef,
    discussion_id: str,
    reply_id: str,
    actor: Actor,
    content: str | None,
    spoiler: bool | None,
) -> None:
    """Edit a reply (others may only flag it as a spoiler)."""
    with open_board(config) as board:
        repo = board.replies(ref, discussion_id)
        if not repo.edit(actor, reply_id, content=content, is_spoiler=spoiler):
            fail(repo.error)
        console.print("[green]Reply updated[/green]")


@replies.command("delete")
@item_arguments
@click.argument("discussion_id")
@click.argument("reply_id")
@actor_options
@click.pass_obj
def replies_delete(config: Config, ref: ItemRef, discussion_id: str, reply_id: str, actor: Actor) -> None:
    """Delete an own reply."""
    with open_board(config) as board:
        repo = board.replies(ref, discussion_id)
        if not repo.delete(actor, reply_id):
            fail(repo.error)
        console.print(f"[green]Deleted reply {reply_id}[/green]")


@replies.command("like")
@item_arguments
@click.argument("discussion_id")
@click.argument("reply_id")
@actor_options
@click.pass_obj
def replies_like(config: Config, ref: ItemRef, discussion_id: str, reply_id: str, actor: Actor) -> None:
    """Toggle a like on a reply."""
    with open_board(config) as board:
        repo = board.replies(ref, discussion_id)
        liked = repo.toggle_like(actor, reply_id)
        if liked is None:
            fail(repo.error)
        console.print("[green]Liked[/green]" if liked else "[yellow]Like removed[/yellow]")


# =============================================================================
# Feed and notifications
# =============================================================================


@main.command("feed")
@click.option("--filter", "feed_filter", type=click.Choice([f.value for f in FeedFilter]), default="all")
@click.option("--limit", type=int, default=None)
@click.pass_obj
def feed(config: Config, feed_filter: str, limit: int | None) -> None:
    """Show the activity feed across all titles."""
    with open_board(config) as board:
        entries = board.feed.query(FeedFilter(feed_filter), limit or board.feed_limit)

        if not entries:
            console.print("[dim]No discussions yet.[/dim]")
            return

        for entry in entries:
            age = format_relative_time(entry.created_at, locale=config.locale)
            if entry.content_preview is not None:
                console.print(f"[cyan]{entry.username}[/cyan] replied in [bold]{entry.discussion_title}[/bold] "
                              f"· {item_label(entry)} [dim]{age}[/dim]")
                console.print(f"  [dim]{entry.content_preview}[/dim]")
            else:
                console.print(f"[cyan]{entry.username}[/cyan] started [bold]{entry.discussion_title}[/bold] "
                              f"· {item_label(entry)} [dim]{age}[/dim]")


@main.group()
def notifications() -> None:
    """Read a user's notifications."""
    pass


@notifications.command("list")
@click.option("--user", "uid", required=True)
@click.option("--unread", is_flag=True, help="Only unread notifications")
@click.pass_obj
def notifications_list(config: Config, uid: str, unread: bool) -> None:
    """List notifications, newest first."""
    with open_board(config) as board:
        inbox = board.inbox(uid)
        items = inbox.list_notifications(unread_only=unread)

        if not items:
            console.print("[dim]No notifications.[/dim]")
            return

        table = Table(show_header=True)
        table.add_column("ID", style="dim")
        table.add_column("Type")
        table.add_column("Message")
        table.add_column("Age")

        for n in items:
            message = n.message if n.read else f"[bold]{n.message}[/bold]"
            table.add_row(n.id, n.type.value, message, format_relative_time(n.timestamp, locale=config.locale))

        console.print(table)
        console.print(f"[dim]{inbox.unread_count()} unread[/dim]")


@notifications.command("read")
@click.argument("notification_id")
@click.option("--user", "uid", required=True)
@click.pass_obj
def notifications_read(config: Config, notification_id: str, uid: str) -> None:
    """Mark one notification read."""
    with open_board(config) as board:
        if not board.inbox(uid).mark_read(notification_id):
            fail(f"Notification not found: {notification_id}")
        console.print("[green]Marked as read[/green]")


@notifications.command("read-all")
@click.option("--user", "uid", required=True)
@click.pass_obj
def notifications_read_all(config: Config, uid: str) -> None:
    """Mark all notifications read."""
    with open_board(config) as board:
        count = board.inbox(uid).mark_all_read()
        console.print(f"[green]Marked {count} notifications as read[/green]")


# =============================================================================
# Spoilers and counts
# =============================================================================


@main.group()
def spoiler() -> None:
    """Spoiler protection for episode threads."""
    pass


@spoiler.command("status")
@item_arguments
@click.option("--watched/--unwatched", default=None, help="Whether the episode has been watched")
@click.pass_obj
def spoiler_status(config: Config, ref: ItemRef, watched: bool | None) -> None:
    """Show whether the thread of an episode is locked."""
    with open_board(config) as board:
        if board.spoilers.is_gated(ref, watched):
            console.print("[yellow]Locked: watch the episode or reveal the thread first[/yellow]")
        else:
            console.print("[green]Unlocked[/green]")


@spoiler.command("reveal")
@item_arguments
@click.pass_obj
def spoiler_reveal(config: Config, ref: ItemRef) -> None:
    """Unlock the thread of an episode (cannot be undone)."""
    if ref.season_number is None or ref.episode_number is None:
        fail("Revealing requires --season and --episode")
    with open_board(config) as board:
        board.spoilers.reveal(ref)
        console.print("[green]Thread revealed[/green]")


@main.group()
def counts() -> None:
    """Discussion counts."""
    pass


@counts.command("item")
@item_arguments
@click.pass_obj
def counts_item(config: Config, ref: ItemRef) -> None:
    """Number of discussions of one item."""
    with config.create_store() as store:
        console.print(str(count_discussions(store, ref)))


@counts.command("series")
@click.argument("series_id", type=int)
@click.pass_obj
def counts_series(config: Config, series_id: int) -> None:
    """Discussions of a series including all of its episodes."""
    with config.create_store() as store:
        console.print(str(total_series_discussion_count(store, series_id)))


@counts.command("season")
@click.argument("series_id", type=int)
@click.argument("season_number", type=int)
@click.argument("episode_count", type=int)
@click.pass_obj
def counts_season(config: Config, series_id: int, season_number: int, episode_count: int) -> None:
    """Discussions per episode of one season."""
    with config.create_store() as store:
        table = Table(show_header=True)
        table.add_column("Episode", justify="right")
        table.add_column("Discussions", justify="right")

        for episode, count in episode_discussion_counts(store, series_id, season_number, episode_count).items():
            table.add_row(str(episode), str(count))

        console.print(table)


@counts.command("reconcile")
@item_arguments
@click.argument("discussion_id")
@click.pass_obj
def counts_reconcile(config: Config, ref: ItemRef, discussion_id: str) -> None:
    """Recount the replies of a discussion and repair its reply count."""
    with config.create_store() as store:
        actual = reconcile_reply_count(store, discussion_path_for(ref), discussion_id)
        console.print(f"{actual} replies")


if __name__ == "__main__":
    main()
