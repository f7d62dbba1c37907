"""Discussion counts per item, per episode and per series."""

import logging

from watchtalk.models import ItemRef
from watchtalk.paths import DISCUSSIONS_ROOT, discussion_path, discussion_path_for, replies_path
from watchtalk.store import Store


logger = logging.getLogger(__name__)


def _child_count(value) -> int:
    return len(value) if isinstance(value, dict) else 0


def count_discussions(store: Store, ref: ItemRef) -> int:
    """Number of discussions attached to one item."""
    return _child_count(store.get(discussion_path_for(ref)))


def episode_discussion_counts(
    store: Store,
    series_id: int,
    season_number: int,
    episode_count: int,
) -> dict[int, int]:
    """Discussion count for episodes 1..episode_count of one season."""
    return {
        episode: _child_count(store.get(discussion_path("episode", series_id, season_number, episode)))
        for episode in range(1, episode_count + 1)
    }


def total_series_discussion_count(store: Store, series_id: int) -> int:
    """Series-level discussions plus the discussions of every episode of the series."""
    total = _child_count(store.get(discussion_path("series", series_id)))

    episodes = store.get(f"{DISCUSSIONS_ROOT}/episode")
    if isinstance(episodes, dict):
        prefix = f"{series_id}_s"
        total += sum(
            _child_count(discussions)
            for key, discussions in episodes.items()
            if key.startswith(prefix)
        )
    return total


def reconcile_reply_count(store: Store, discussion_path: str, discussion_id: str) -> int:
    """Recount live replies and repair the cached ``replyCount`` if it drifted.

    Returns the true count.
    """
    actual = _child_count(store.get(replies_path(discussion_id)))
    node = f"{discussion_path}/{discussion_id}"
    cached = store.get(f"{node}/replyCount")
    if store.get(f"{node}/userId") is not None and cached != actual:
        logger.info(f"Reconciling replyCount of {discussion_id}: {cached} -> {actual}")
        store.set(f"{node}/replyCount", actual)
    return actual
