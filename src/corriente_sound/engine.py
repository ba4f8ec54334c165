from __future__ import annotations

import logging
import random
import time

from corriente_sound.aggregator import aggregate
from corriente_sound.errors import InvalidInput
from corriente_sound.features import RandomSource, estimate_features
from corriente_sound.matcher import rank_candidates
from corriente_sound.models import (
    CatalogSearchClient,
    FeatureVector,
    ScoredCandidate,
    SimilarityResult,
    TrackMetadata,
)
from corriente_sound.strategies import generate_strategies

logger = logging.getLogger(__name__)


def _is_count(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class SimilarityEngine:
    """Turns a seed track id into a ranked list of similar catalog tracks.

    Only failing to fetch the seed is fatal; every other upstream failure
    just means fewer candidates.
    """

    def __init__(
        self,
        client: CatalogSearchClient,
        rng: RandomSource | None = None,
        per_strategy_limit: int = 10,
        deadline: float | None = 8.0,
    ) -> None:
        if not _is_count(per_strategy_limit) or per_strategy_limit < 1:
            raise InvalidInput(f"per_strategy_limit must be >= 1, got {per_strategy_limit!r}")
        self.client = client
        self.rng = rng if rng is not None else random.Random()
        self.per_strategy_limit = per_strategy_limit
        self.deadline = deadline

    @staticmethod
    def _validate(seed_track_id: str, desired_count: int, deadline: float | None) -> None:
        if not isinstance(seed_track_id, str) or not seed_track_id.strip():
            raise InvalidInput("seed_track_id is required")
        if not _is_count(desired_count) or desired_count < 1:
            raise InvalidInput(f"desired_count must be a positive integer, got {desired_count!r}")
        if deadline is not None and deadline <= 0:
            raise InvalidInput(f"deadline must be positive, got {deadline!r}")

    def estimate(self, seed_track_id: str) -> tuple[TrackMetadata, FeatureVector]:
        if not isinstance(seed_track_id, str) or not seed_track_id.strip():
            raise InvalidInput("seed_track_id is required")
        seed = self.client.fetch_track(seed_track_id)
        return seed, estimate_features(seed, self.rng)

    def resolve(
        self,
        seed_track_id: str,
        desired_count: int,
        deadline: float | None = None,
    ) -> SimilarityResult:
        deadline = self.deadline if deadline is None else deadline
        self._validate(seed_track_id, desired_count, deadline)
        started = time.monotonic()

        seed, features = self.estimate(seed_track_id)
        strategies = generate_strategies(seed, features)
        logger.info(
            "Resolving %d similar tracks for %r by %r using %d strategies",
            desired_count,
            seed.title,
            seed.artist,
            len(strategies),
        )

        remaining = None
        if deadline is not None:
            remaining = max(0.0, deadline - (time.monotonic() - started))

        scored = aggregate(
            strategies,
            seed,
            features,
            self.client,
            self.per_strategy_limit,
            timeout=remaining,
        )
        ranked = rank_candidates(scored, desired_count)
        logger.info("Ranked %d of %d unique candidates for %s", len(ranked), len(scored), seed.track_id)
        return SimilarityResult(seed=seed, features=features, strategies=strategies, candidates=ranked)

    def resolve_similar(
        self,
        seed_track_id: str,
        desired_count: int,
        deadline: float | None = None,
    ) -> list[ScoredCandidate]:
        return self.resolve(seed_track_id, desired_count, deadline).candidates
