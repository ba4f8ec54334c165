from __future__ import annotations

from corriente_sound.models import FeatureVector, SearchStrategy, TrackMetadata

SAME_GENRE = "same genre, different artist"
SAME_ARTIST = "same artist, different title"
SIMILAR_MOOD = "similar mood, different artist"
SAME_DECADE = "same decade, different artist"
SAME_ALBUM = "same album, different title"

FALLBACK_KEYWORDS = ("similar", "like")


def infer_genre(features: FeatureVector) -> str:
    if features.energy > 0.8 and features.danceability > 0.7:
        return "electronic dance"
    if features.energy > 0.7 and features.tempo > 140:
        return "rock"
    if features.acousticness > 0.6:
        return "folk"
    if features.danceability > 0.7:
        return "pop"
    if features.valence < 0.3:
        return "indie"
    if features.energy < 0.4:
        return "ambient"
    return "pop"


def mood_keywords(features: FeatureVector) -> list[str]:
    keywords: list[str] = []
    if features.energy > 0.7:
        keywords.append("energetic")
    if features.danceability > 0.7:
        keywords.append("dance")
    if features.valence > 0.7:
        keywords.append("happy")
    if features.valence < 0.3:
        keywords.append("sad")
    if features.acousticness > 0.5:
        keywords.append("acoustic")
    if features.tempo > 140:
        keywords.append("upbeat")
    if features.tempo < 90:
        keywords.append("slow")
    return keywords or list(FALLBACK_KEYWORDS)


def decade_range(year: int) -> tuple[int, int]:
    start = (year // 10) * 10
    return start, start + 9


def _clean(value: str | None) -> str:
    return (value or "").replace('"', "").strip()


def _quoted(value: str) -> str:
    return f'"{value}"'


def _exclude(field: str, value: str) -> str:
    if not value:
        return ""
    return f" NOT {field}:{_quoted(value)}"


def generate_strategies(seed: TrackMetadata, features: FeatureVector) -> list[SearchStrategy]:
    """Derive the catalog queries for ``seed``, highest priority first.

    Strategies whose precondition cannot be met (no artist, no album, no
    release year) are left out rather than emitted as empty queries.
    """
    artist = _clean(seed.artist)
    title = _clean(seed.title)
    album = _clean(seed.album)
    not_artist = _exclude("artist", artist)
    not_title = _exclude("track", title)

    strategies = [
        SearchStrategy(SAME_GENRE, f"genre:{_quoted(infer_genre(features))}{not_artist}", 0),
    ]
    if artist:
        strategies.append(SearchStrategy(SAME_ARTIST, f"artist:{_quoted(artist)}{not_title}", 1))

    strategies.append(
        SearchStrategy(SIMILAR_MOOD, " OR ".join(mood_keywords(features)) + not_artist, 2)
    )

    if seed.release_year is not None:
        start, end = decade_range(seed.release_year)
        strategies.append(SearchStrategy(SAME_DECADE, f"year:{start}-{end}{not_artist}", 3))

    if album:
        strategies.append(SearchStrategy(SAME_ALBUM, f"album:{_quoted(album)}{not_title}", 4))

    return strategies
