"""Rule-based audio feature estimation from track metadata.

No audio is analysed here: the vector is a heuristic guess built from the
title, artist, duration and popularity, good enough to steer catalog queries
when no real analysis is reachable.
"""
from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Callable, Protocol

from corriente_sound.models import (
    DEFAULT_DURATION_MS,
    DEFAULT_POPULARITY,
    FeatureSource,
    FeatureVector,
    TrackMetadata,
)

UNIT_FIELDS = (
    "acousticness",
    "danceability",
    "energy",
    "instrumentalness",
    "liveness",
    "speechiness",
    "valence",
)

TEMPO_RANGE = (60.0, 200.0)
LOUDNESS_RANGE = (-60.0, 0.0)

_UNIT_JITTER = 0.1
_TEMPO_JITTER = 10.0
_LONG_TRACK_MS = 300_000
_POPULAR_THRESHOLD = 70

BASELINE: dict[str, float] = {
    "acousticness": 0.3,
    "danceability": 0.5,
    "energy": 0.5,
    "instrumentalness": 0.1,
    "liveness": 0.1,
    "loudness": -8.0,
    "speechiness": 0.05,
    "tempo": 120.0,
    "valence": 0.5,
}


class RandomSource(Protocol):
    def random(self) -> float:
        ...


@dataclass(frozen=True, slots=True)
class Adjustment:
    """Shift ``field`` by ``delta`` without crossing ``limit``.

    A positive delta is capped at ``limit``, a negative one floored at it.
    With ``floor=True`` the field is instead raised to at least
    ``limit + rng * spread``.
    """

    field: str
    delta: float
    limit: float
    floor: bool = False
    spread: float = 0.0

    def apply(self, values: dict[str, float], rng: RandomSource) -> None:
        current = values[self.field]
        if self.floor:
            target = self.limit + (rng.random() * self.spread if self.spread else 0.0)
            values[self.field] = max(current, target)
        elif self.delta >= 0:
            values[self.field] = min(self.limit, current + self.delta)
        else:
            values[self.field] = max(self.limit, current + self.delta)


def _floor(field: str, limit: float, spread: float = 0.0) -> Adjustment:
    return Adjustment(field, 0.0, limit, floor=True, spread=spread)


# category -> (title keywords, adjustments); matched by substring, in order.
TITLE_KEYWORD_RULES: dict[str, tuple[frozenset[str], tuple[Adjustment, ...]]] = {
    "energetic": (
        frozenset({"dance", "party", "pump", "wild", "fire", "electric", "power", "energy"}),
        (
            Adjustment("energy", 0.3, 0.9),
            Adjustment("danceability", 0.2, 0.9),
            _floor("tempo", 130.0, spread=40.0),
        ),
    ),
    "chill": (
        frozenset({"chill", "relax", "calm", "slow", "soft", "gentle", "peace", "quiet"}),
        (
            Adjustment("energy", -0.3, 0.1),
            Adjustment("acousticness", 0.3, 0.8),
            Adjustment("tempo", -30.0, 70.0),
        ),
    ),
    "sad": (
        frozenset({"sad", "cry", "tears", "lonely", "hurt", "pain", "goodbye", "miss"}),
        (
            Adjustment("valence", -0.4, 0.1),
            Adjustment("energy", -0.2, 0.2),
        ),
    ),
    "happy": (
        frozenset({"happy", "joy", "love", "smile", "sunshine", "bright", "celebration"}),
        (
            Adjustment("valence", 0.3, 0.9),
            Adjustment("energy", 0.1, 0.8),
        ),
    ),
    "romantic": (
        frozenset({"love", "heart", "romance", "kiss", "together", "forever", "beautiful"}),
        (
            Adjustment("valence", 0.2, 0.8),
            Adjustment("acousticness", 0.2, 0.7),
        ),
    ),
}

DANCE_ARTIST_MARKERS = ("dj", "edm")


def _is_dance_artist(track: TrackMetadata) -> bool:
    artist = (track.artist or "").lower()
    return any(marker in artist for marker in DANCE_ARTIST_MARKERS)


def _is_long(track: TrackMetadata) -> bool:
    duration = track.duration_ms if track.duration_ms is not None else DEFAULT_DURATION_MS
    return duration > _LONG_TRACK_MS


def _is_popular(track: TrackMetadata) -> bool:
    popularity = track.popularity if track.popularity is not None else DEFAULT_POPULARITY
    return popularity > _POPULAR_THRESHOLD


METADATA_RULES: tuple[tuple[Callable[[TrackMetadata], bool], tuple[Adjustment, ...]], ...] = (
    (
        _is_dance_artist,
        (
            Adjustment("danceability", 0.3, 0.9),
            Adjustment("energy", 0.2, 0.9),
            _floor("tempo", 128.0),
        ),
    ),
    (
        _is_long,
        (
            Adjustment("acousticness", 0.2, 0.7),
            Adjustment("instrumentalness", 0.1, 0.4),
        ),
    ),
    (
        _is_popular,
        (
            Adjustment("danceability", 0.1, 0.8),
            Adjustment("energy", 0.1, 0.8),
        ),
    ),
)


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def matched_categories(title: str) -> list[str]:
    lowered = (title or "").lower()
    return [
        category
        for category, (keywords, _) in TITLE_KEYWORD_RULES.items()
        if any(keyword in lowered for keyword in keywords)
    ]


def _apply_jitter(values: dict[str, float], rng: RandomSource) -> None:
    for name in BASELINE:
        if name == "tempo":
            values[name] = _clamp(values[name] + (rng.random() - 0.5) * _TEMPO_JITTER, *TEMPO_RANGE)
        elif name == "loudness":
            values[name] = _clamp(values[name] + (rng.random() - 0.5) * _UNIT_JITTER, *LOUDNESS_RANGE)
        else:
            values[name] = _clamp(values[name] + (rng.random() - 0.5) * _UNIT_JITTER, 0.0, 1.0)


def estimate_features(track: TrackMetadata, rng: RandomSource | None = None) -> FeatureVector:
    """Estimate a feature vector for ``track``.

    Deterministic for a given ``rng``; the default is an unseeded
    ``random.Random``. Every unit field stays in [0, 1], tempo in [60, 200]
    and loudness in [-60, 0] whatever the input.
    """
    rng = rng if rng is not None else random.Random()
    values = dict(BASELINE)

    for category in matched_categories(track.title):
        _, adjustments = TITLE_KEYWORD_RULES[category]
        for adjustment in adjustments:
            adjustment.apply(values, rng)

    for predicate, adjustments in METADATA_RULES:
        if predicate(track):
            for adjustment in adjustments:
                adjustment.apply(values, rng)

    _apply_jitter(values, rng)

    rounded = {name: round(value, 3) for name, value in values.items()}
    rounded["tempo"] = _clamp(rounded["tempo"], *TEMPO_RANGE)
    for name in UNIT_FIELDS:
        rounded[name] = _clamp(rounded[name], 0.0, 1.0)

    return FeatureVector(source=FeatureSource.ESTIMATED, **rounded)
