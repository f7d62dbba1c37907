"""Author snapshots taken from the stored profile and the actor."""

import logging
from dataclasses import dataclass

from watchtalk.errors import AuthenticationRequired, StoreError
from watchtalk.messages import ANONYMOUS, DEFAULT_LOCALE, get_message
from watchtalk.models import Actor
from watchtalk.paths import user_profile_path
from watchtalk.store import Store


logger = logging.getLogger(__name__)


@dataclass
class AuthorSnapshot:
    user_id: str
    username: str
    photo_url: str | None = None


def require_actor(actor: Actor | None) -> Actor:
    """Return the actor, or raise AuthenticationRequired."""
    if actor is None or not actor.is_authenticated:
        raise AuthenticationRequired("authentication required")
    return actor


def _profile_field(store: Store, user_id: str, name: str) -> str | None:
    value = store.get(f"{user_profile_path(user_id)}/{name}")
    return value if isinstance(value, str) and value else None


def resolve_author(store: Store, actor: Actor) -> AuthorSnapshot:
    """Build the author snapshot stored on new discussions and replies.

    The profile's display name wins, then the actor's display name, then
    the local part of the email, then "Anonym".
    """
    username = (
        _profile_field(store, actor.uid, "displayName")
        or actor.display_name
        or (actor.email.split("@")[0] if actor.email else None)
        or ANONYMOUS
    )
    photo_url = _profile_field(store, actor.uid, "photoURL") or actor.photo_url or None
    return AuthorSnapshot(user_id=actor.uid, username=username, photo_url=photo_url)


def display_name(store: Store, actor: Actor, locale: str = DEFAULT_LOCALE) -> str:
    """Name used in notification messages ("Jemand" when unknown)."""
    try:
        profile_name = _profile_field(store, actor.uid, "displayName")
    except StoreError as e:
        logger.warning(f"Could not read profile of {actor.uid}: {e}")
        profile_name = None
    return profile_name or actor.display_name or get_message("someone", locale)
