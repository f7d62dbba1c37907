"""Notification fan-out and per-user inboxes."""

import logging
from typing import Any

from watchtalk.errors import StoreError
from watchtalk.live import LiveList
from watchtalk.messages import DEFAULT_LOCALE
from watchtalk.models import Notification, NotificationType, now_ms
from watchtalk.paths import notifications_path
from watchtalk.store import Store


logger = logging.getLogger(__name__)


class NotificationFanout:
    """Writes inbox entries for other users.

    Delivery is best effort: failures are logged and never reach the
    acting user. Callers decide who to notify, including skipping
    self-notifications.
    """

    def __init__(self, store: Store):
        self.store = store

    def notify(
        self,
        recipient_id: str,
        notification_type: NotificationType,
        title: str,
        message: str,
        data: dict[str, Any] | None = None,
    ) -> str | None:
        """Append a notification to the recipient's inbox. Returns its key, or None on failure."""
        record: dict[str, Any] = {
            "type": notification_type.value,
            "title": title,
            "message": message,
            "timestamp": now_ms(),
            "read": False,
        }
        if data:
            record["data"] = {k: v for k, v in data.items() if v is not None}

        try:
            key = self.store.push(notifications_path(recipient_id), record)
        except Exception as e:
            logger.warning(f"Error sending notification to {recipient_id}: {e}")
            return None

        logger.info(f"Sent {notification_type.value} notification to {recipient_id}")
        return key


def _to_notifications(children) -> list[Notification]:
    notifications = []
    for key, value in children:
        if not isinstance(value, dict):
            continue
        # Other app features (new seasons, achievements) share the inbox
        try:
            notifications.append(Notification.from_record(key, value))
        except (KeyError, ValueError) as e:
            logger.debug(f"Skipping notification {key}: {e}")
    notifications.sort(key=lambda n: (n.timestamp, n.id), reverse=True)
    return notifications


class NotificationInbox:
    """One user's notifications, newest first."""

    def __init__(self, store: Store, user_id: str, locale: str = DEFAULT_LOCALE):
        self.store = store
        self.user_id = user_id
        self.locale = locale
        self.path = notifications_path(user_id)

    def list_notifications(self, unread_only: bool = False) -> list[Notification]:
        notifications = _to_notifications(self.store.query(self.path, order_by="timestamp"))
        if unread_only:
            notifications = [n for n in notifications if not n.read]
        return notifications

    def unread_count(self) -> int:
        return len(self.list_notifications(unread_only=True))

    def mark_read(self, notification_id: str) -> bool:
        """Mark one notification read. Returns False if it does not exist."""
        if self.store.get(f"{self.path}/{notification_id}") is None:
            return False
        self.store.set(f"{self.path}/{notification_id}/read", True)
        return True

    def mark_all_read(self) -> int:
        """Mark every unread notification read in one update. Returns how many changed."""
        unread = self.list_notifications(unread_only=True)
        if unread:
            self.store.update(self.path, {f"{n.id}/read": True for n in unread})
        return len(unread)

    def clear(self) -> None:
        self.store.remove(self.path)

    def subscribe(self) -> LiveList[Notification]:
        live: LiveList[Notification] = LiveList(_to_notifications, "load_notifications", self.locale)
        try:
            sub = self.store.subscribe(
                self.path,
                live.on_snapshot,
                order_by="timestamp",
                on_error=live.on_error,
            )
        except StoreError as e:
            live.on_error(e)
            return live
        return live.attach(sub)
