"""Idempotent like/unlike state shared by discussions and replies.

A subject is liked by an actor iff ``{subject}/likes/{actor}`` exists.
Toggling is a plain read-then-write with no cross-client locking.
"""

import logging

from watchtalk.store import Store


logger = logging.getLogger(__name__)


def like_path(subject_path: str, actor_id: str) -> str:
    return f"{subject_path}/likes/{actor_id}"


def is_liked(store: Store, subject_path: str, actor_id: str) -> bool:
    return store.get(like_path(subject_path, actor_id)) is not None


def like_count(store: Store, subject_path: str) -> int:
    likes = store.get(f"{subject_path}/likes")
    return len(likes) if isinstance(likes, dict) else 0


def toggle_like(store: Store, subject_path: str, actor_id: str) -> bool:
    """Flip the actor's like on a subject.

    Returns True if the subject is now liked (the caller fans out a
    notification on this transition), False if the like was removed.
    """
    path = like_path(subject_path, actor_id)
    if store.get(path) is not None:
        store.remove(path)
        logger.info(f"{actor_id} unliked {subject_path}")
        return False
    store.set(path, True)
    logger.info(f"{actor_id} liked {subject_path}")
    return True
