"""TMDB catalog lookups for feed metadata (titles, posters, episode names)."""

import logging
import os

import httpx

from watchtalk.errors import CatalogError
from watchtalk.models import FeedMetadata, ItemRef, ItemType


logger = logging.getLogger(__name__)

TMDB_API_BASE = "https://api.themoviedb.org/3"
TMDB_IMAGE_BASE = "https://image.tmdb.org/t/p"

LANGUAGES = {"de": "de-DE", "en": "en-US"}


class TMDBCatalog:
    """Resolves the catalog snapshot copied into feed entries."""

    def __init__(
        self,
        api_key: str | None = None,
        locale: str = "de",
        client: httpx.Client | None = None,
    ):
        self.api_key = os.environ.get("TMDB_API_KEY") or api_key
        self.language = LANGUAGES.get(locale, "en-US")
        self._client = client

    def _api_request(self, endpoint: str, params: dict | None = None) -> dict:
        """Make API request to TMDB."""
        if not self.api_key:
            raise CatalogError("TMDB API key required. Set TMDB_API_KEY or tmdb_api_key in the config.")

        request_params = {"api_key": self.api_key, "language": self.language, **(params or {})}
        url = f"{TMDB_API_BASE}{endpoint}"
        try:
            if self._client is not None:
                response = self._client.get(url, params=request_params, timeout=30.0)
            else:
                response = httpx.get(url, params=request_params, timeout=30.0)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPError as e:
            raise CatalogError(f"TMDB request {endpoint} failed: {e}") from e

    def feed_metadata(self, ref: ItemRef) -> FeedMetadata:
        """Look up title and poster (and episode name) for an item."""
        if ref.item_type is ItemType.MOVIE:
            data = self._api_request(f"/movie/{ref.item_id}")
            return FeedMetadata(
                item_title=data.get("title") or f"Movie {ref.item_id}",
                poster_path=data.get("poster_path"),
            )

        data = self._api_request(f"/tv/{ref.item_id}")
        metadata = FeedMetadata(
            item_title=data.get("name") or f"Series {ref.item_id}",
            poster_path=data.get("poster_path"),
        )
        if ref.item_type is ItemType.EPISODE and ref.season_number is not None and ref.episode_number is not None:
            episode = self._api_request(
                f"/tv/{ref.item_id}/season/{ref.season_number}/episode/{ref.episode_number}"
            )
            metadata.episode_title = episode.get("name")
        return metadata


def poster_url(poster_path: str | None, size: str = "w92") -> str | None:
    return f"{TMDB_IMAGE_BASE}/{size}{poster_path}" if poster_path else None
