"""Tests for content rendering helpers."""

from datetime import datetime

from watchtalk.messages import get_message
from watchtalk.text import extract_image_urls, format_relative_time, preview, truncate_with_ellipsis


NOW = 1_700_000_000_000
MINUTE = 60_000


class TestImages:
    """Tests for inline image extraction."""

    def test_extracts_image_urls(self):
        text, images = extract_image_urls(
            "Look https://i.imgur.com/a.PNG and https://x.org/b.webp?size=2 wow"
        )

        assert images == ["https://i.imgur.com/a.PNG", "https://x.org/b.webp?size=2"]
        assert text.startswith("Look")
        assert text.endswith("wow")

    def test_plain_links_are_kept(self):
        text, images = extract_image_urls("see https://example.com/page")

        assert images == []
        assert text == "see https://example.com/page"


class TestTruncation:
    def test_preview_has_no_ellipsis(self):
        assert preview("a" * 120) == "a" * 100
        assert preview("short") == "short"

    def test_truncate_with_ellipsis(self):
        assert truncate_with_ellipsis("b" * 51) == "b" * 50 + "..."
        assert truncate_with_ellipsis("b" * 50) == "b" * 50


class TestRelativeTime:
    """Tests for relative timestamps."""

    def test_german_defaults(self):
        assert format_relative_time(NOW - 10_000, now=NOW) == "gerade eben"
        assert format_relative_time(NOW - 5 * MINUTE, now=NOW) == "vor 5 Min."
        assert format_relative_time(NOW - 3 * 60 * MINUTE, now=NOW) == "vor 3 Std."
        assert format_relative_time(NOW - 2 * 24 * 60 * MINUTE, now=NOW) == "vor 2 Tagen"

    def test_english(self):
        assert format_relative_time(NOW - 5 * MINUTE, now=NOW, locale="en") == "5 min ago"

    def test_falls_back_to_date(self):
        timestamp = NOW - 30 * 24 * 60 * MINUTE

        expected = datetime.fromtimestamp(timestamp / 1000).strftime("%d.%m.%Y")
        assert format_relative_time(timestamp, now=NOW) == expected


class TestMessages:
    def test_unknown_locale_falls_back(self):
        assert get_message("someone", "fr") == "Jemand"

    def test_formatting(self):
        message = get_message("reply_to_yours", "de", username="Bob", title="Finale?")

        assert message == 'Bob hat auf deine Diskussion "Finale?" geantwortet'
