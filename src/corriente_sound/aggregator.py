"""Concurrent execution of search strategies and merging of their results.

Each strategy runs in its own worker thread and returns its own list, so
nothing is shared between workers. The merge happens on the calling thread
once the fan-in barrier (or the caller's timeout) is reached.
"""
from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import replace

from corriente_sound.errors import CatalogError
from corriente_sound.matcher import dedup_key, score_candidate
from corriente_sound.models import (
    Candidate,
    CatalogSearchClient,
    FeatureVector,
    ScoredCandidate,
    SearchStrategy,
    TrackMetadata,
)

logger = logging.getLogger(__name__)


def _run_strategy(
    client: CatalogSearchClient,
    strategy: SearchStrategy,
    seed: TrackMetadata,
    limit: int,
) -> list[Candidate]:
    hits = client.search(strategy.query, exclude_id=seed.track_id, limit=limit)
    return [
        replace(hit, strategy_label=strategy.label, strategy_priority=strategy.priority)
        for hit in hits
    ]


def _collect(strategy: SearchStrategy, future: Future) -> list[Candidate]:
    try:
        return future.result()
    except CatalogError as exc:
        logger.warning("Strategy %r failed (%s): %s", strategy.label, type(exc).__name__, exc)
    except Exception:
        logger.exception("Strategy %r raised unexpectedly", strategy.label)
    return []


def merge_candidates(
    seed: TrackMetadata,
    results: list[tuple[SearchStrategy, list[Candidate]]],
) -> list[ScoredCandidate]:
    """Score and deduplicate per-strategy results.

    Results are walked in strategy priority order so the first occurrence of a
    ``title|artist`` key is the one from the highest-priority strategy. Hits
    carrying the seed's own id are dropped.
    """
    merged: list[ScoredCandidate] = []
    seen: set[str] = set()
    ordered = sorted(results, key=lambda item: item[0].priority)
    for _, candidates in ordered:
        for candidate in candidates:
            if candidate.track_id == seed.track_id:
                continue
            key = dedup_key(candidate)
            if key in seen:
                continue
            seen.add(key)
            merged.append(ScoredCandidate(candidate, score_candidate(seed, candidate), key))
    return merged


def aggregate(
    strategies: list[SearchStrategy],
    seed: TrackMetadata,
    features: FeatureVector,
    client: CatalogSearchClient,
    per_strategy_limit: int,
    timeout: float | None = None,
) -> list[ScoredCandidate]:
    """Run every strategy concurrently and merge what comes back.

    Failed strategies contribute nothing. If ``timeout`` seconds pass before
    all strategies finish, the unfinished ones are abandoned and the merge
    proceeds with the results already in.

    Abandoning a strategy does not stop its worker thread: the search call
    runs until the client's own request timeout, and the interpreter joins
    pool threads at exit. A short-lived process can therefore outlive
    ``timeout`` by up to the catalog client's request timeout (times its
    retries). Bound that with ``CORRIENTE_REQUEST_TIMEOUT``.
    """
    if not strategies:
        return []

    logger.debug(
        "Fanning out %d strategies for %s (%s features, energy=%.3f)",
        len(strategies),
        seed.track_id,
        features.source.value,
        features.energy,
    )

    executor = ThreadPoolExecutor(max_workers=len(strategies), thread_name_prefix="strategy")
    try:
        futures = {
            executor.submit(_run_strategy, client, strategy, seed, per_strategy_limit): strategy
            for strategy in strategies
        }
        done, pending = wait(futures, timeout=timeout)
    finally:
        executor.shutdown(wait=False, cancel_futures=True)

    for future in pending:
        logger.warning("Strategy %r abandoned after deadline", futures[future].label)

    results = []
    for future, strategy in futures.items():
        if future in done:
            candidates = _collect(strategy, future)
            logger.debug("Strategy %r returned %d candidates", strategy.label, len(candidates))
            results.append((strategy, candidates))

    return merge_candidates(seed, results)
