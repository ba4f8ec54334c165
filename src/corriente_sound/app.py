from __future__ import annotations

import argparse
import logging
import random

from corriente_sound.config import configure_logging, env_float, env_int, load_local_env_file, load_settings
from corriente_sound.engine import SimilarityEngine
from corriente_sound.errors import CorrienteError, InvalidInput
from corriente_sound.models import SimilarityResult

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Corriente Sound similar-track finder")
    seed_group = parser.add_mutually_exclusive_group(required=True)
    seed_group.add_argument("--seed-track-id", help="Spotify id of the seed track")
    seed_group.add_argument(
        "--seed-query",
        help="Track search text used to find a seed track automatically",
    )
    parser.add_argument(
        "--count",
        type=int,
        default=env_int("CORRIENTE_RESULT_COUNT", 5),
        help="Number of similar tracks (defaults to CORRIENTE_RESULT_COUNT env or 5)",
    )
    parser.add_argument(
        "--deadline",
        type=float,
        default=env_float("CORRIENTE_DEADLINE", 8.0),
        help="Seconds allowed for the whole lookup (defaults to CORRIENTE_DEADLINE env or 8)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for reproducible feature estimates",
    )
    return parser.parse_args(argv)


def resolve_seed_track_id(args: argparse.Namespace, service: object) -> str:
    if args.seed_track_id:
        return args.seed_track_id

    seed_track = service.find_starting_track(args.seed_query)
    if seed_track is None:
        raise InvalidInput(
            "Unable to find a seed track from --seed-query. "
            "Try a more specific query or pass --seed-track-id directly."
        )

    print(f"Resolved seed track: {seed_track.title} - {seed_track.artist} ({seed_track.track_id})")
    return seed_track.track_id


def format_result(result: SimilarityResult) -> str:
    lines = [f"Seed:     {result.seed.title} - {result.seed.artist} ({result.seed.track_id})"]
    features = result.features.as_dict()
    lines.append(
        f"Features ({result.features.source.value}): "
        + ", ".join(f"{name}={value}" for name, value in features.items())
    )
    if not result.candidates:
        lines.append("No similar tracks found.")
        return "\n".join(lines)

    lines.append("Similar tracks")
    for position, item in enumerate(result.candidates, start=1):
        candidate = item.candidate
        lines.append(
            f"{position:>2}. {candidate.title} - {candidate.artist} "
            f"[{item.score:.4f}] via {candidate.strategy_label}"
        )
    return "\n".join(lines)


def main(argv: list[str] | None = None) -> int:
    load_local_env_file()
    settings = load_settings()
    configure_logging(settings.log_level)
    args = parse_args(argv)
    from corriente_sound.spotify_service import SpotifyService

    try:
        service = SpotifyService(settings)
        rng = random.Random(args.seed) if args.seed is not None else None
        engine = SimilarityEngine(
            service,
            rng=rng,
            per_strategy_limit=settings.per_strategy_limit,
            deadline=settings.deadline,
        )
        seed_track_id = resolve_seed_track_id(args, service)
        result = engine.resolve(seed_track_id, args.count, deadline=args.deadline)
    except (CorrienteError, ValueError) as exc:
        logger.error("%s: %s", type(exc).__name__, exc)
        return 1

    print(format_result(result))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
