"""Helpers for rendering discussion content."""

import re
from datetime import datetime

from watchtalk.messages import DEFAULT_LOCALE, get_message
from watchtalk.models import now_ms


IMAGE_URL_RE = re.compile(r"(https?://[^\s]+\.(?:jpg|jpeg|png|gif|webp)(?:\?[^\s]*)?)", re.IGNORECASE)

FEED_PREVIEW_LENGTH = 100
NOTIFICATION_PREVIEW_LENGTH = 50


def extract_image_urls(content: str) -> tuple[str, list[str]]:
    """Split inline image links out of a post.

    Returns the remaining text (stripped) and the image URLs in order.
    """
    images = IMAGE_URL_RE.findall(content)
    text = IMAGE_URL_RE.sub("", content).strip()
    return text, images


def preview(text: str, limit: int = FEED_PREVIEW_LENGTH) -> str:
    """First ``limit`` characters, no ellipsis."""
    return text[:limit]


def truncate_with_ellipsis(text: str, limit: int = NOTIFICATION_PREVIEW_LENGTH) -> str:
    if len(text) > limit:
        return text[:limit] + "..."
    return text


def format_relative_time(timestamp: int, now: int | None = None, locale: str = DEFAULT_LOCALE) -> str:
    """Human-readable age of an epoch-ms timestamp, falling back to a date after a week."""
    now = now_ms() if now is None else now
    diff = now - timestamp
    minutes = diff // 60_000
    hours = diff // 3_600_000
    days = diff // 86_400_000

    if minutes < 1:
        return get_message("just_now", locale)
    if minutes < 60:
        return get_message("minutes_ago", locale, n=minutes)
    if hours < 24:
        return get_message("hours_ago", locale, n=hours)
    if days < 7:
        return get_message("days_ago", locale, n=days)
    return datetime.fromtimestamp(timestamp / 1000).strftime(get_message("date_format", locale))
