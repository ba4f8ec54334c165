from __future__ import annotations

from corriente_sound.models import (
    DEFAULT_DURATION_MS,
    DEFAULT_POPULARITY,
    Candidate,
    TrackMetadata,
)


def _primary_artist(track: dict) -> str:
    artists = track.get("artists") or []
    if not artists:
        return ""
    return artists[0].get("name") or ""


def _release_year(track: dict) -> int | None:
    release_date = (track.get("album") or {}).get("release_date") or ""
    try:
        return int(release_date[:4])
    except ValueError:
        return None


def _int_or(value: object, fallback: int) -> int:
    if value is None:
        return fallback
    return int(value)


def build_track_metadata(track: dict) -> TrackMetadata:
    """Translate a catalog track payload into seed metadata.

    Missing popularity and duration fall back to the neutral defaults used by
    the feature estimator; an unparseable release date yields no year.
    """
    album = track.get("album") or {}
    explicit = track.get("explicit")

    return TrackMetadata(
        track_id=track["id"],
        title=track.get("name") or "",
        artist=_primary_artist(track),
        album=album.get("name") or "",
        duration_ms=_int_or(track.get("duration_ms"), DEFAULT_DURATION_MS),
        popularity=_int_or(track.get("popularity"), DEFAULT_POPULARITY),
        release_year=_release_year(track),
        explicit=None if explicit is None else bool(explicit),
        preview_available=bool(track.get("preview_url")),
    )


def build_candidate(track: dict) -> Candidate:
    album = track.get("album") or {}
    return Candidate(
        track_id=track["id"],
        title=track.get("name") or "",
        artist=_primary_artist(track),
        album=album.get("name") or "",
        duration_ms=_int_or(track.get("duration_ms"), 0),
        popularity=_int_or(track.get("popularity"), 0),
        explicit=bool(track.get("explicit", False)),
        preview_available=bool(track.get("preview_url")),
    )
