from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Protocol

DEFAULT_POPULARITY = 50
DEFAULT_DURATION_MS = 180_000


class FeatureSource(str, Enum):
    ESTIMATED = "estimated"
    # Reserved for a real audio-analysis path.
    MEASURED = "measured"


@dataclass(frozen=True, slots=True)
class TrackMetadata:
    track_id: str
    title: str
    artist: str
    album: str = ""
    duration_ms: int = DEFAULT_DURATION_MS
    popularity: int = DEFAULT_POPULARITY
    release_year: int | None = None
    explicit: bool | None = None
    preview_available: bool | None = None


@dataclass(frozen=True, slots=True)
class FeatureVector:
    acousticness: float
    danceability: float
    energy: float
    instrumentalness: float
    liveness: float
    loudness: float
    speechiness: float
    tempo: float
    valence: float
    source: FeatureSource = FeatureSource.ESTIMATED

    def as_dict(self) -> dict[str, float]:
        values = asdict(self)
        values.pop("source")
        return values


@dataclass(frozen=True, slots=True)
class SearchStrategy:
    label: str
    query: str
    priority: int


@dataclass(frozen=True, slots=True)
class Candidate:
    track_id: str
    title: str
    artist: str
    album: str = ""
    duration_ms: int = 0
    popularity: int = 0
    explicit: bool = False
    preview_available: bool = False
    strategy_label: str = ""
    strategy_priority: int = 0


@dataclass(frozen=True, slots=True)
class ScoredCandidate:
    candidate: Candidate
    score: float
    dedup_key: str


@dataclass(slots=True)
class SimilarityResult:
    seed: TrackMetadata
    features: FeatureVector
    strategies: list[SearchStrategy] = field(default_factory=list)
    candidates: list[ScoredCandidate] = field(default_factory=list)


class CatalogSearchClient(Protocol):
    """What the engine needs from a music catalog."""

    def search(self, query: str, exclude_id: str | None = None, limit: int = 10) -> list[Candidate]:
        ...

    def fetch_track(self, track_id: str) -> TrackMetadata:
        ...
