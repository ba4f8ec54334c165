"""FastAPI web server for Corriente Sound."""
import logging
import pathlib
from functools import lru_cache

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse
from pydantic import BaseModel

from corriente_sound.config import load_settings
from corriente_sound.engine import SimilarityEngine
from corriente_sound.errors import (
    CorrienteError,
    InvalidInput,
    NotFound,
    UpstreamRejected,
    UpstreamTimeout,
    UpstreamUnavailable,
)
from corriente_sound.models import FeatureVector, ScoredCandidate, TrackMetadata
from corriente_sound.spotify_service import SpotifyService

logger = logging.getLogger(__name__)

_INDEX_HTML_PATH = pathlib.Path(__file__).parent.parent.parent / "index.html"

app = FastAPI(title="Corriente Sound")

# Enable CORS for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Request/Response models
class TrackInfo(BaseModel):
    """Track information response."""
    id: str
    name: str
    artist: str
    album: str = ""
    year: int | None = None
    popularity: int = 0
    duration_ms: int = 0
    explicit: bool | None = None
    preview_available: bool = False

class FeaturesResponse(BaseModel):
    """Estimated audio features for one track."""
    track_id: str
    acousticness: float
    danceability: float
    energy: float
    instrumentalness: float
    liveness: float
    loudness: float
    speechiness: float
    tempo: float
    valence: float
    source: str

class StrategyInfo(BaseModel):
    label: str
    query: str
    priority: int

class SimilarTrack(BaseModel):
    id: str
    name: str
    artist: str
    album: str = ""
    popularity: int = 0
    duration_ms: int = 0
    preview_available: bool = False
    score: float
    strategy: str

class SimilarResponse(BaseModel):
    """Seed track, its estimated features and the ranked similar tracks."""
    seed_track: TrackInfo
    features: FeaturesResponse
    strategies: list[StrategyInfo]
    similar_tracks: list[SimilarTrack]


@lru_cache(maxsize=1)
def get_service() -> SpotifyService:
    """Build the shared catalog client (one token cache per process)."""
    return SpotifyService(load_settings())


def get_engine() -> SimilarityEngine:
    settings = load_settings()
    return SimilarityEngine(
        get_service(),
        per_strategy_limit=settings.per_strategy_limit,
        deadline=settings.deadline,
    )


def _track_info(track: TrackMetadata) -> TrackInfo:
    return TrackInfo(
        id=track.track_id,
        name=track.title,
        artist=track.artist,
        album=track.album,
        year=track.release_year,
        popularity=track.popularity,
        duration_ms=track.duration_ms,
        explicit=track.explicit,
        preview_available=bool(track.preview_available),
    )


def _features_response(track_id: str, features: FeatureVector) -> FeaturesResponse:
    return FeaturesResponse(track_id=track_id, source=features.source.value, **features.as_dict())


def _similar_track(item: ScoredCandidate) -> SimilarTrack:
    candidate = item.candidate
    return SimilarTrack(
        id=candidate.track_id,
        name=candidate.title,
        artist=candidate.artist,
        album=candidate.album,
        popularity=candidate.popularity,
        duration_ms=candidate.duration_ms,
        preview_available=candidate.preview_available,
        score=round(item.score, 4),
        strategy=candidate.strategy_label,
    )


def _http_error(exc: CorrienteError) -> HTTPException:
    if isinstance(exc, InvalidInput):
        return HTTPException(status_code=422, detail=str(exc))
    if isinstance(exc, NotFound):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, UpstreamTimeout):
        return HTTPException(status_code=504, detail=str(exc))
    if isinstance(exc, (UpstreamUnavailable, UpstreamRejected)):
        return HTTPException(status_code=502, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))


@app.get("/")
def serve_index():
    """Serve the frontend HTML."""
    if _INDEX_HTML_PATH.exists():
        return FileResponse(str(_INDEX_HTML_PATH), media_type="text/html")
    return {"message": "Corriente Sound API is running. Use /api/similar/{track_id} to find similar tracks."}

@app.get("/api/health")
def health_check():
    """Health check endpoint."""
    return {
        "status": "ok",
        "integrations": {
            "spotify": "Track search and metadata",
            "features": "Metadata-based feature estimation",
        },
    }


@app.get("/api/search", response_model=list[TrackInfo])
def search_tracks(q: str = Query(..., min_length=1), limit: int = Query(5, ge=1, le=SpotifyService.SEARCH_PAGE_LIMIT)):
    """Search the catalog for tracks to use as a seed."""
    try:
        tracks = get_service().search_tracks(q, limit=limit)
        return [_track_info(track) for track in tracks]
    except CorrienteError as e:
        raise _http_error(e)
    except ValueError as e:
        raise HTTPException(status_code=500, detail=str(e))


@app.get("/api/audio-features/{track_id}", response_model=FeaturesResponse)
def audio_features(track_id: str):
    """Estimate audio features for a track from its metadata."""
    try:
        seed, features = get_engine().estimate(track_id)
        return _features_response(seed.track_id, features)
    except CorrienteError as e:
        raise _http_error(e)
    except ValueError as e:
        raise HTTPException(status_code=500, detail=str(e))


@app.get("/api/similar/{track_id}", response_model=SimilarResponse)
def similar_tracks(
    track_id: str,
    count: int = Query(5, ge=1, le=50),
    deadline: float | None = Query(None, gt=0, le=60),
):
    """Rank catalog tracks similar to the seed track."""
    try:
        result = get_engine().resolve(track_id, count, deadline=deadline)
    except CorrienteError as e:
        logger.warning("Similar-track resolution for %s failed: %s", track_id, e)
        raise _http_error(e)
    except ValueError as e:
        raise HTTPException(status_code=500, detail=str(e))

    return SimilarResponse(
        seed_track=_track_info(result.seed),
        features=_features_response(result.seed.track_id, result.features),
        strategies=[
            StrategyInfo(label=s.label, query=s.query, priority=s.priority)
            for s in result.strategies
        ],
        similar_tracks=[_similar_track(item) for item in result.candidates],
    )
