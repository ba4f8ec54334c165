from __future__ import annotations

import logging
from typing import Any, Callable

import requests
import spotipy
from requests.exceptions import HTTPError
from spotipy.exceptions import SpotifyException

from corriente_sound.analysis import build_candidate, build_track_metadata
from corriente_sound.auth import SpotifyTokenProvider
from corriente_sound.config import Settings, load_settings
from corriente_sound.errors import (
    CatalogError,
    NotFound,
    UpstreamRejected,
    UpstreamTimeout,
    UpstreamUnavailable,
)
from corriente_sound.models import Candidate, TrackMetadata

logger = logging.getLogger(__name__)

_MALFORMED = (KeyError, TypeError, AttributeError, ValueError)


def _status_of(exc: HTTPError | SpotifyException) -> int:
    if isinstance(exc, HTTPError):
        return exc.response.status_code if exc.response is not None else 0
    return exc.http_status or 0


def _search_error(status: int, detail: str) -> CatalogError:
    if status == 429 or status >= 500 or status == 0:
        return UpstreamUnavailable(f"Spotify search unavailable (HTTP {status}): {detail}")
    return UpstreamRejected(f"Spotify rejected search (HTTP {status}): {detail}")


def _fetch_error(status: int, detail: str) -> CatalogError:
    # Spotify answers 400 "invalid id" for ids that cannot exist.
    if status in (400, 404):
        return NotFound(f"Track not found: {detail}")
    return UpstreamUnavailable(f"Spotify track lookup failed (HTTP {status}): {detail}")


class SpotifyService:
    """Catalog client backed by the Spotify Web API via spotipy."""

    # Spotify's search endpoint enforces a maximum of 20 results per page for
    # restricted app credentials.  Using a higher value returns HTTP 400
    # "Invalid limit", so we cap every page request at this safe maximum.
    SEARCH_PAGE_LIMIT = 20

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or load_settings()
        self.settings.validate_credentials()
        self.token_provider = SpotifyTokenProvider(
            self.settings.client_id,
            self.settings.client_secret,
            timeout=self.settings.request_timeout,
        )
        self.client = spotipy.Spotify(
            auth_manager=self.token_provider,
            requests_timeout=self.settings.request_timeout,
        )

    def _call(
        self,
        method: Callable[..., Any],
        translate: Callable[[int, str], CatalogError],
        detail: str,
        **kwargs: Any,
    ) -> Any:
        try:
            return method(**kwargs)
        except (HTTPError, SpotifyException) as exc:
            raise translate(_status_of(exc), detail) from exc
        except requests.exceptions.Timeout as exc:
            raise UpstreamTimeout(f"Spotify call timed out: {detail}") from exc
        except requests.exceptions.RequestException as exc:
            raise UpstreamUnavailable(f"Spotify call failed: {detail}: {exc}") from exc

    def _search_items(self, query: str, limit: int) -> list[dict]:
        if not query or not query.strip():
            raise UpstreamRejected("Empty search query")
        page_size = max(1, min(self.SEARCH_PAGE_LIMIT, limit))
        page = self._call(
            self.client.search,
            _search_error,
            query,
            q=query,
            type="track",
            limit=page_size,
            market=self.settings.market,
        )
        try:
            return [item for item in page["tracks"]["items"] if item and item.get("id")]
        except _MALFORMED as exc:
            raise UpstreamUnavailable(f"Malformed search payload for {query!r}") from exc

    def search(self, query: str, exclude_id: str | None = None, limit: int = 10) -> list[Candidate]:
        if limit < 1:
            return []
        # One extra hit so dropping the excluded track still fills the page.
        items = self._search_items(query, limit + 1 if exclude_id else limit)
        try:
            candidates = [build_candidate(item) for item in items]
        except _MALFORMED as exc:
            raise UpstreamUnavailable(f"Malformed track in search payload for {query!r}") from exc
        kept = [c for c in candidates if c.track_id != exclude_id]
        logger.debug("Search %r returned %d tracks", query, len(kept))
        return kept[:limit]

    def search_tracks(self, query: str, limit: int = 5) -> list[TrackMetadata]:
        items = self._search_items(query, limit)
        try:
            return [build_track_metadata(item) for item in items[:limit]]
        except _MALFORMED as exc:
            raise UpstreamUnavailable(f"Malformed track in search payload for {query!r}") from exc

    def find_starting_track(self, query_text: str) -> TrackMetadata | None:
        tracks = self.search_tracks(query_text, limit=1)
        return tracks[0] if tracks else None

    def fetch_track(self, track_id: str) -> TrackMetadata:
        track = self._call(
            self.client.track,
            _fetch_error,
            track_id,
            track_id=track_id,
            market=self.settings.market,
        )
        if not track:
            raise NotFound(f"Track not found: {track_id}")
        try:
            return build_track_metadata(track)
        except _MALFORMED as exc:
            raise UpstreamUnavailable(f"Malformed track payload for {track_id}") from exc
