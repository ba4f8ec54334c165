import threading
import time
import unittest

from corriente_sound.aggregator import aggregate, merge_candidates
from corriente_sound.errors import UpstreamRejected, UpstreamTimeout, UpstreamUnavailable
from corriente_sound.models import Candidate, FeatureVector, SearchStrategy, TrackMetadata

SEED = TrackMetadata(
    track_id="seed",
    title="Seed Song",
    artist="Seed Artist",
    duration_ms=200_000,
    popularity=60,
    explicit=False,
)

FEATURES = FeatureVector(
    acousticness=0.3,
    danceability=0.5,
    energy=0.5,
    instrumentalness=0.1,
    liveness=0.1,
    loudness=-8.0,
    speechiness=0.05,
    tempo=120.0,
    valence=0.5,
)


def _hit(track_id: str, title: str | None = None, artist: str = "Other") -> Candidate:
    return Candidate(
        track_id=track_id,
        title=title or f"Title {track_id}",
        artist=artist,
        duration_ms=200_000,
        popularity=60,
    )


class _FakeCatalog:
    """Catalog stub answering per query; values may be lists, exceptions or callables."""

    def __init__(self, responses: dict) -> None:
        self.responses = responses
        self.calls: list[tuple[str, str | None, int]] = []
        self._lock = threading.Lock()

    def search(self, query: str, exclude_id: str | None = None, limit: int = 10) -> list[Candidate]:
        with self._lock:
            self.calls.append((query, exclude_id, limit))
        response = self.responses.get(query, [])
        if callable(response):
            response = response()
        if isinstance(response, Exception):
            raise response
        return list(response)

    def fetch_track(self, track_id: str) -> TrackMetadata:
        return SEED


def _strategies(count: int) -> list[SearchStrategy]:
    return [SearchStrategy(f"strategy {i}", f"q{i}", i) for i in range(count)]


class AggregateTests(unittest.TestCase):
    def test_results_tagged_with_originating_strategy(self) -> None:
        catalog = _FakeCatalog({"q0": [_hit("a")], "q1": [_hit("b")]})
        results = aggregate(_strategies(2), SEED, FEATURES, catalog, per_strategy_limit=5)
        by_id = {r.candidate.track_id: r.candidate for r in results}
        self.assertEqual(by_id["a"].strategy_label, "strategy 0")
        self.assertEqual(by_id["b"].strategy_priority, 1)

    def test_passes_seed_id_and_limit_to_client(self) -> None:
        catalog = _FakeCatalog({})
        aggregate(_strategies(3), SEED, FEATURES, catalog, per_strategy_limit=7)
        self.assertEqual(sorted(catalog.calls), [("q0", "seed", 7), ("q1", "seed", 7), ("q2", "seed", 7)])

    def test_seed_excluded_even_if_returned(self) -> None:
        catalog = _FakeCatalog({"q0": [_hit("seed"), _hit("a")]})
        results = aggregate(_strategies(1), SEED, FEATURES, catalog, per_strategy_limit=5)
        self.assertEqual([r.candidate.track_id for r in results], ["a"])

    def test_duplicates_keep_highest_priority_occurrence(self) -> None:
        catalog = _FakeCatalog({
            "q0": [_hit("x1", title="Same", artist="Band")],
            "q1": [_hit("x2", title="SAME", artist="band"), _hit("b")],
        })
        results = aggregate(_strategies(2), SEED, FEATURES, catalog, per_strategy_limit=5)
        ids = [r.candidate.track_id for r in results]
        self.assertIn("x1", ids)
        self.assertNotIn("x2", ids)
        self.assertEqual(len(ids), 2)

    def test_failures_contribute_nothing(self) -> None:
        catalog = _FakeCatalog({
            "q0": UpstreamUnavailable("down"),
            "q1": [_hit("a")],
            "q2": UpstreamRejected("bad query"),
            "q3": UpstreamTimeout("slow"),
            "q4": [_hit("b")],
        })
        with self.assertLogs("corriente_sound.aggregator", level="WARNING"):
            results = aggregate(_strategies(5), SEED, FEATURES, catalog, per_strategy_limit=5)
        self.assertEqual(sorted(r.candidate.track_id for r in results), ["a", "b"])

    def test_unexpected_exception_is_isolated(self) -> None:
        catalog = _FakeCatalog({"q0": KeyError("tracks"), "q1": [_hit("a")]})
        with self.assertLogs("corriente_sound.aggregator", level="ERROR"):
            results = aggregate(_strategies(2), SEED, FEATURES, catalog, per_strategy_limit=5)
        self.assertEqual([r.candidate.track_id for r in results], ["a"])

    def test_timeout_returns_partial_results(self) -> None:
        release = threading.Event()
        self.addCleanup(release.set)

        def slow():
            release.wait(5)
            return [_hit("late")]

        catalog = _FakeCatalog({"q0": slow, "q1": [_hit("fast")]})
        started = time.monotonic()
        with self.assertLogs("corriente_sound.aggregator", level="WARNING"):
            results = aggregate(_strategies(2), SEED, FEATURES, catalog, per_strategy_limit=5, timeout=0.3)
        elapsed = time.monotonic() - started

        self.assertLess(elapsed, 2.0)
        self.assertEqual([r.candidate.track_id for r in results], ["fast"])

    def test_no_strategies(self) -> None:
        self.assertEqual(aggregate([], SEED, FEATURES, _FakeCatalog({}), per_strategy_limit=5), [])

    def test_output_independent_of_completion_order(self) -> None:
        def delayed(seconds, hits):
            def run():
                time.sleep(seconds)
                return hits
            return run

        first = _FakeCatalog({
            "q0": delayed(0.1, [_hit("a", title="Dup", artist="X")]),
            "q1": delayed(0.0, [_hit("b", title="Dup", artist="X"), _hit("c")]),
        })
        second = _FakeCatalog({
            "q0": [_hit("a", title="Dup", artist="X")],
            "q1": delayed(0.1, [_hit("b", title="Dup", artist="X"), _hit("c")]),
        })
        one = aggregate(_strategies(2), SEED, FEATURES, first, per_strategy_limit=5)
        two = aggregate(_strategies(2), SEED, FEATURES, second, per_strategy_limit=5)
        self.assertEqual(one, two)
        self.assertEqual([r.candidate.track_id for r in one], ["a", "c"])


class MergeCandidatesTests(unittest.TestCase):
    def test_merges_in_priority_order_regardless_of_input_order(self) -> None:
        low, high = SearchStrategy("low", "q1", 1), SearchStrategy("high", "q0", 0)
        dup_low = Candidate("d2", "Dup", "Band", strategy_priority=1)
        dup_high = Candidate("d1", "Dup", "Band", strategy_priority=0)
        merged = merge_candidates(SEED, [(low, [dup_low]), (high, [dup_high])])
        self.assertEqual([m.candidate.track_id for m in merged], ["d1"])
        self.assertEqual(merged[0].dedup_key, "dup|band")

    def test_scores_stay_within_unit_range(self) -> None:
        strategy = SearchStrategy("genre", "q0", 0)
        best = Candidate("p1", "Polished", "Other", duration_ms=200_000, popularity=60,
                         explicit=False, preview_available=True)
        merged = merge_candidates(SEED, [(strategy, [best])])
        self.assertEqual(merged[0].score, 1.0)


if __name__ == "__main__":
    unittest.main()
