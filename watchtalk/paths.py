"""Store path layout.

A discussion's location is a pure function of the item it belongs to and
is never stored separately.
"""

from watchtalk.models import ItemRef, ItemType


DISCUSSIONS_ROOT = "discussions"
REPLIES_ROOT = "discussionReplies"
FEED_PATH = "discussionFeed"
USERS_ROOT = "users"


def discussion_path(
    item_type: ItemType | str,
    item_id: int | str,
    season_number: int | None = None,
    episode_number: int | None = None,
) -> str:
    """Resolve the collection path holding the discussions of one item.

    Episodes get their own collection only when both season and episode
    number are given; otherwise the plain ``discussions/{type}/{id}`` form
    is used.
    """
    item_type = ItemType(item_type)
    if item_type is ItemType.EPISODE and season_number is not None and episode_number is not None:
        return f"{DISCUSSIONS_ROOT}/episode/{item_id}_s{season_number}_e{episode_number}"
    return f"{DISCUSSIONS_ROOT}/{item_type.value}/{item_id}"


def discussion_path_for(ref: ItemRef) -> str:
    return discussion_path(ref.item_type, ref.item_id, ref.season_number, ref.episode_number)


def item_type_from_path(path: str) -> ItemType | None:
    """Recover the item type from a discussion collection path."""
    parts = path.strip("/").split("/")
    if len(parts) >= 2 and parts[0] == DISCUSSIONS_ROOT:
        try:
            return ItemType(parts[1])
        except ValueError:
            return None
    return None


def replies_path(discussion_id: str) -> str:
    return f"{REPLIES_ROOT}/{discussion_id}"


def notifications_path(user_id: str) -> str:
    return f"{USERS_ROOT}/{user_id}/notifications"


def user_profile_path(user_id: str) -> str:
    return f"{USERS_ROOT}/{user_id}"
