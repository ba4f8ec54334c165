import random
import unittest

from corriente_sound.engine import SimilarityEngine
from corriente_sound.errors import InvalidInput, NotFound, UpstreamUnavailable
from corriente_sound.models import Candidate, TrackMetadata
from corriente_sound.strategies import SAME_DECADE, SAME_GENRE

SEED = TrackMetadata(
    track_id="seed",
    title="Happy Dance Party",
    artist="DJ Test",
    album="Party Album",
    duration_ms=200_000,
    popularity=80,
    release_year=2012,
    explicit=False,
)


class _FixedRandom:
    def __init__(self, value: float) -> None:
        self.value = value

    def random(self) -> float:
        return self.value


class _StubCatalog:
    """Returns the same hits for every query; failing queries match a prefix."""

    def __init__(self, hits: list[Candidate], fail_prefixes: tuple[str, ...] = (),
                 seed: TrackMetadata | Exception = SEED) -> None:
        self.hits = hits
        self.fail_prefixes = fail_prefixes
        self.seed = seed
        self.queries: list[str] = []
        self.fetched: list[str] = []

    def search(self, query: str, exclude_id: str | None = None, limit: int = 10) -> list[Candidate]:
        self.queries.append(query)
        if query.startswith(self.fail_prefixes):
            raise UpstreamUnavailable(f"simulated outage for {query}")
        return [hit for hit in self.hits if hit.track_id != exclude_id][:limit]

    def fetch_track(self, track_id: str) -> TrackMetadata:
        self.fetched.append(track_id)
        if isinstance(self.seed, Exception):
            raise self.seed
        return self.seed


def _hits() -> list[Candidate]:
    return [
        Candidate("c1", "Track One", "Artist A", duration_ms=210_000, popularity=75, preview_available=True),
        Candidate("c2", "Track Two", "Artist B", duration_ms=150_000, popularity=40),
        Candidate("c3", "Track Three", "Artist C", duration_ms=200_000, popularity=80, explicit=True),
    ]


class ResolveSimilarTests(unittest.TestCase):
    def _engine(self, catalog: _StubCatalog) -> SimilarityEngine:
        return SimilarityEngine(catalog, rng=_FixedRandom(0.75), per_strategy_limit=3, deadline=5.0)

    def test_happy_dance_party_end_to_end(self) -> None:
        catalog = _StubCatalog(_hits())
        result = self._engine(catalog).resolve("seed", 5)

        self.assertGreaterEqual(result.features.energy, 0.8)
        self.assertGreaterEqual(result.features.danceability, 0.8)
        self.assertGreaterEqual(result.features.tempo, 128)
        self.assertEqual(len(catalog.queries), 5)
        # 5 strategies x 3 identical hits collapse to 3 unique tracks.
        self.assertEqual(len(result.candidates), 3)
        scores = [c.score for c in result.candidates]
        self.assertEqual(scores, sorted(scores, reverse=True))
        self.assertEqual(result.candidates[0].candidate.track_id, "c1")
        self.assertTrue(all(c.candidate.strategy_label == SAME_GENRE for c in result.candidates))

    def test_returns_at_most_desired_count(self) -> None:
        hits = [Candidate(f"c{i}", f"Track {i}", f"Artist {i}", duration_ms=200_000, popularity=80)
                for i in range(12)]
        catalog = _StubCatalog(hits)
        engine = SimilarityEngine(catalog, rng=_FixedRandom(0.75), per_strategy_limit=12, deadline=5.0)
        ranked = engine.resolve_similar("seed", 5)
        self.assertEqual(len(ranked), 5)
        self.assertEqual(len({c.candidate.track_id for c in ranked}), 5)

    def test_partial_failure_still_returns_candidates(self) -> None:
        catalog = _StubCatalog(_hits(), fail_prefixes=("genre:", "year:"))
        with self.assertLogs("corriente_sound.aggregator", level="WARNING") as logs:
            ranked = self._engine(catalog).resolve_similar("seed", 5)
        self.assertEqual(len(ranked), 3)
        self.assertNotIn(SAME_GENRE, {c.candidate.strategy_label for c in ranked})
        self.assertNotIn(SAME_DECADE, {c.candidate.strategy_label for c in ranked})
        self.assertEqual(len(logs.records), 2)

    def test_all_strategies_failing_is_an_empty_success(self) -> None:
        catalog = _StubCatalog(_hits(), fail_prefixes=("",))
        with self.assertLogs("corriente_sound.aggregator", level="WARNING"):
            ranked = self._engine(catalog).resolve_similar("seed", 5)
        self.assertEqual(ranked, [])

    def test_seed_never_in_results(self) -> None:
        hits = _hits() + [Candidate("seed", "Happy Dance Party", "DJ Test")]
        ranked = self._engine(_StubCatalog(hits)).resolve_similar("seed", 10)
        self.assertNotIn("seed", [c.candidate.track_id for c in ranked])

    def test_zero_count_is_invalid_input(self) -> None:
        catalog = _StubCatalog(_hits())
        with self.assertRaises(InvalidInput):
            self._engine(catalog).resolve_similar("seed", 0)
        self.assertEqual(catalog.fetched, [])

    def test_blank_seed_id_is_invalid_input(self) -> None:
        with self.assertRaises(InvalidInput):
            self._engine(_StubCatalog(_hits())).resolve_similar("  ", 5)

    def test_non_positive_deadline_is_invalid_input(self) -> None:
        with self.assertRaises(InvalidInput):
            self._engine(_StubCatalog(_hits())).resolve_similar("seed", 5, deadline=0)

    def test_missing_seed_propagates_not_found(self) -> None:
        catalog = _StubCatalog(_hits(), seed=NotFound("no such track"))
        with self.assertRaises(NotFound):
            self._engine(catalog).resolve_similar("missing", 5)
        self.assertEqual(catalog.queries, [])

    def test_seed_upstream_failure_propagates(self) -> None:
        catalog = _StubCatalog(_hits(), seed=UpstreamUnavailable("down"))
        with self.assertRaises(UpstreamUnavailable):
            self._engine(catalog).resolve_similar("seed", 5)

    def test_repeatable_with_fixed_inputs(self) -> None:
        first = SimilarityEngine(_StubCatalog(_hits()), rng=random.Random(9)).resolve("seed", 5)
        second = SimilarityEngine(_StubCatalog(_hits()), rng=random.Random(9)).resolve("seed", 5)
        self.assertEqual(first.features, second.features)
        self.assertEqual(first.candidates, second.candidates)

    def test_estimate_returns_seed_and_features(self) -> None:
        seed, features = self._engine(_StubCatalog(_hits())).estimate("seed")
        self.assertEqual(seed, SEED)
        self.assertEqual(features.source.value, "estimated")

    def test_rejects_bad_per_strategy_limit(self) -> None:
        with self.assertRaises(InvalidInput):
            SimilarityEngine(_StubCatalog(_hits()), per_strategy_limit=0)


if __name__ == "__main__":
    unittest.main()
