from __future__ import annotations

from corriente_sound.errors import InvalidInput
from corriente_sound.models import DEFAULT_DURATION_MS, Candidate, ScoredCandidate, TrackMetadata

_SAME_ARTIST_PENALTY = 0.3
_POPULARITY_WEIGHT = 0.1
_DURATION_WEIGHT = 0.1
# Duration difference counts at most half the seed's length.
_MAX_DURATION_RATIO = 0.5
_PREVIEW_BONUS = 0.1
_EXPLICIT_MATCH_BONUS = 0.05


def dedup_key(candidate: Candidate) -> str:
    return f"{candidate.title.lower()}|{candidate.artist.lower()}"


def score_candidate(seed: TrackMetadata, candidate: Candidate) -> float:
    score = 1.0

    if candidate.artist.lower() == (seed.artist or "").lower():
        score -= _SAME_ARTIST_PENALTY

    pop_diff = abs(seed.popularity - candidate.popularity)
    score -= min(pop_diff / 100.0, 1.0) * _POPULARITY_WEIGHT

    seed_duration = seed.duration_ms if seed.duration_ms and seed.duration_ms > 0 else DEFAULT_DURATION_MS
    dur_diff = abs(seed_duration - candidate.duration_ms)
    score -= min(dur_diff / seed_duration, _MAX_DURATION_RATIO) * _DURATION_WEIGHT

    if candidate.preview_available:
        score += _PREVIEW_BONUS
    if candidate.explicit == bool(seed.explicit):
        score += _EXPLICIT_MATCH_BONUS

    return min(1.0, max(0.0, score))


def _rank_key(item: ScoredCandidate) -> tuple[float, int, str]:
    return (-item.score, item.candidate.strategy_priority, item.candidate.track_id)


def rank_candidates(candidates: list[ScoredCandidate], limit: int) -> list[ScoredCandidate]:
    """Order by score, then originating strategy priority, then track id.

    The key is total, so the output does not depend on input order.
    """
    if not isinstance(limit, int) or isinstance(limit, bool) or limit < 1:
        raise InvalidInput(f"limit must be a positive integer, got {limit!r}")
    return sorted(candidates, key=_rank_key)[:limit]
