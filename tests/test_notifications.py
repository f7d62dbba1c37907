"""Tests for notification fan-out and inboxes."""

from watchtalk.models import NotificationType
from watchtalk.notifications import NotificationFanout, NotificationInbox


class FailingStore:
    """Store stand-in whose writes are rejected."""

    def push(self, path, value):
        raise RuntimeError("permission denied")


class TestFanout:
    """Tests for writing notifications."""

    def test_notify_writes_unread_entry(self, store):
        fanout = NotificationFanout(store)

        key = fanout.notify(
            "alice", NotificationType.DISCUSSION_REPLY, "New reply", "Bob replied",
            {"discussionId": "d1", "seasonNumber": None},
        )

        raw = store.get(f"users/alice/notifications/{key}")
        assert raw["read"] is False
        assert raw["type"] == "discussion_reply"
        assert raw["data"] == {"discussionId": "d1"}

    def test_failures_are_swallowed(self):
        fanout = NotificationFanout(FailingStore())

        assert fanout.notify("alice", NotificationType.DISCUSSION_LIKE, "t", "m") is None


class TestInbox:
    """Tests for reading and marking notifications."""

    def fill(self, store, count=3):
        fanout = NotificationFanout(store)
        return [
            fanout.notify("alice", NotificationType.DISCUSSION_LIKE, "New reaction", f"like {n}")
            for n in range(count)
        ]

    def test_newest_first(self, store):
        keys = self.fill(store)
        inbox = NotificationInbox(store, "alice")

        assert [n.id for n in inbox.list_notifications()] == list(reversed(keys))
        assert inbox.unread_count() == 3

    def test_mark_read(self, store):
        keys = self.fill(store)
        inbox = NotificationInbox(store, "alice")

        assert inbox.mark_read(keys[0])
        assert not inbox.mark_read("missing")
        assert inbox.unread_count() == 2
        assert [n.id for n in inbox.list_notifications(unread_only=True)] == [keys[2], keys[1]]

    def test_mark_all_read(self, store):
        self.fill(store)
        inbox = NotificationInbox(store, "alice")
        snapshots = []
        store.subscribe(inbox.path, snapshots.append)

        assert inbox.mark_all_read() == 3
        assert inbox.unread_count() == 0
        assert inbox.mark_all_read() == 0
        # One multi-path update, one delivery
        assert len(snapshots) == 2

    def test_other_notification_types_are_skipped(self, store):
        """Entries written by other app features do not break the inbox."""
        keys = self.fill(store, 2)
        store.push("users/alice/notifications", {
            "type": "new_season", "title": "Dark", "message": "Season 3 is out",
            "timestamp": 1, "read": False,
        })
        store.push("users/alice/notifications", {"title": "no type", "timestamp": 2})
        inbox = NotificationInbox(store, "alice")

        assert [n.id for n in inbox.list_notifications()] == list(reversed(keys))
        assert inbox.unread_count() == 2
        assert inbox.mark_all_read() == 2

    def test_inboxes_are_per_user(self, store):
        self.fill(store)

        assert NotificationInbox(store, "bob").list_notifications() == []

    def test_clear(self, store):
        self.fill(store)
        inbox = NotificationInbox(store, "alice")

        inbox.clear()

        assert inbox.list_notifications() == []

    def test_live_inbox(self, store):
        inbox = NotificationInbox(store, "alice")

        with inbox.subscribe() as live:
            self.fill(store, 2)
            assert len(live) == 2
            assert live.items[0].message == "like 1"
