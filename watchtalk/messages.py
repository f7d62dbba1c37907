"""Localized user-facing strings."""

DEFAULT_LOCALE = "de"

# Author fallback when neither profile, display name nor email is known
ANONYMOUS = "Anonym"


MESSAGES: dict[str, dict[str, str]] = {
    "de": {
        # Errors
        "auth_required": "Du musst eingeloggt sein um zu diskutieren",
        "load_discussions": "Fehler beim Laden der Diskussionen",
        "create_discussion": "Fehler beim Erstellen der Diskussion",
        "edit_discussion": "Fehler beim Bearbeiten der Diskussion",
        "delete_discussion": "Fehler beim Löschen der Diskussion",
        "only_own_discussions_edit": "Du kannst nur eigene Diskussionen bearbeiten",
        "only_own_discussions_delete": "Du kannst nur eigene Diskussionen löschen",
        "discussion_not_found": "Diskussion nicht gefunden",
        "load_replies": "Fehler beim Laden der Antworten",
        "create_reply": "Fehler beim Erstellen der Antwort",
        "edit_reply": "Fehler beim Bearbeiten der Antwort",
        "delete_reply": "Fehler beim Löschen der Antwort",
        "only_own_replies_edit": "Du kannst nur eigene Antworten bearbeiten",
        "only_own_replies_delete": "Du kannst nur eigene Antworten löschen",
        "reply_not_found": "Antwort nicht gefunden",
        "only_author_unflag": "Nur der Autor kann die Spoiler-Markierung entfernen",
        "toggle_like": "Fehler beim Liken",
        "load_feed": "Fehler beim Laden des Feeds",
        "load_notifications": "Fehler beim Laden der Benachrichtigungen",
        # Notifications
        "someone": "Jemand",
        "reply_title": "Neue Antwort",
        "reply_to_yours": '{username} hat auf deine Diskussion "{title}" geantwortet',
        "reply_also": '{username} hat auch auf "{title}" geantwortet',
        "like_title": "Neue Reaktion",
        "like_discussion": '{username} gefällt deine Diskussion "{title}"',
        "like_reply": '{username} gefällt deine Antwort: "{preview}"',
        "spoiler_title": "Spoiler-Markierung",
        "spoiler_discussion": '{username} hat deine Diskussion "{title}" als Spoiler markiert',
        "spoiler_reply": '{username} hat deinen Kommentar als Spoiler markiert: "{preview}"',
        # Relative time
        "just_now": "gerade eben",
        "minutes_ago": "vor {n} Min.",
        "hours_ago": "vor {n} Std.",
        "days_ago": "vor {n} Tagen",
        "date_format": "%d.%m.%Y",
    },
    "en": {
        "auth_required": "You must be logged in to discuss",
        "load_discussions": "Failed to load discussions",
        "create_discussion": "Failed to create discussion",
        "edit_discussion": "Failed to edit discussion",
        "delete_discussion": "Failed to delete discussion",
        "only_own_discussions_edit": "You can only edit your own discussions",
        "only_own_discussions_delete": "You can only delete your own discussions",
        "discussion_not_found": "Discussion not found",
        "load_replies": "Failed to load replies",
        "create_reply": "Failed to create reply",
        "edit_reply": "Failed to edit reply",
        "delete_reply": "Failed to delete reply",
        "only_own_replies_edit": "You can only edit your own replies",
        "only_own_replies_delete": "You can only delete your own replies",
        "reply_not_found": "Reply not found",
        "only_author_unflag": "Only the author can remove the spoiler flag",
        "toggle_like": "Failed to toggle like",
        "load_feed": "Failed to load the feed",
        "load_notifications": "Failed to load notifications",
        "someone": "Someone",
        "reply_title": "New reply",
        "reply_to_yours": '{username} replied to your discussion "{title}"',
        "reply_also": '{username} also replied to "{title}"',
        "like_title": "New reaction",
        "like_discussion": '{username} likes your discussion "{title}"',
        "like_reply": '{username} likes your reply: "{preview}"',
        "spoiler_title": "Spoiler flag",
        "spoiler_discussion": '{username} flagged your discussion "{title}" as a spoiler',
        "spoiler_reply": '{username} flagged your comment as a spoiler: "{preview}"',
        "just_now": "just now",
        "minutes_ago": "{n} min ago",
        "hours_ago": "{n} h ago",
        "days_ago": "{n} days ago",
        "date_format": "%m/%d/%Y",
    },
}


def get_message(key: str, locale: str = DEFAULT_LOCALE, **kwargs: object) -> str:
    """Look up a message, falling back to the default locale, then to the key itself."""
    table = MESSAGES.get(locale, MESSAGES[DEFAULT_LOCALE])
    template = table.get(key) or MESSAGES[DEFAULT_LOCALE].get(key, key)
    return template.format(**kwargs) if kwargs else template
