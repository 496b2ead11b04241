from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from exosystem.errors import ExosystemError
from exosystem.pipeline import PipelineConfig, SystemPipeline
from exosystem.sources import load_rows_csv


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="exosystem",
        description="Build a hierarchical planetary system from NASA Exoplanet Archive rows.",
    )
    parser.add_argument(
        "--system",
        help="System name to fetch from the archive (matches sy_name), e.g. 'Kepler-47'.",
    )
    parser.add_argument(
        "--stars-csv",
        help="Offline mode: CSV export of stellarhosts rows for one system.",
    )
    parser.add_argument(
        "--planets-csv",
        help="Offline mode: CSV export of pscomppars rows for the same system.",
    )
    parser.add_argument(
        "--cache-path",
        default=None,
        help="JSON cache for archive responses (default: no cache).",
    )
    parser.add_argument(
        "--timeout-s",
        type=float,
        default=30.0,
        help="HTTP timeout seconds per archive request.",
    )
    parser.add_argument(
        "--requests-per-second",
        type=float,
        default=2.0,
        help="Rate limit for archive requests.",
    )
    parser.add_argument(
        "--retries",
        type=int,
        default=2,
        help="Retries per archive request before giving up.",
    )
    parser.add_argument(
        "--fetch-workers",
        type=int,
        default=1,
        help="Parallel planet queries, one per host star (default: 1, sequential).",
    )
    parser.add_argument(
        "--no-random-fallback",
        action="store_true",
        help="Leave values missing instead of drawing them at random when a body reports neither of a pair.",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Seed for the random draws used by imputation.",
    )
    parser.add_argument(
        "--collapse-single",
        action="store_true",
        help="Return the lone sub-system itself when the top-level node would only wrap it.",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (default: WARNING).",
    )
    return parser


def _configure_logging(level: str) -> None:
    logger = logging.getLogger("exosystem")
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))
        logger.addHandler(handler)
    logger.setLevel(level)


def main() -> int:
    parser = build_parser()
    args = parser.parse_args()

    offline = bool(args.stars_csv or args.planets_csv)
    if offline and not (args.stars_csv and args.planets_csv):
        parser.error("--stars-csv and --planets-csv must be given together")
    if offline == bool(args.system):
        parser.error("Give either --system or the pair --stars-csv/--planets-csv")

    _configure_logging(args.log_level)

    config = PipelineConfig(
        timeout_s=args.timeout_s,
        requests_per_second=args.requests_per_second,
        retries=args.retries,
        fetch_workers=args.fetch_workers,
        cache_path=Path(args.cache_path) if args.cache_path else None,
        disable_remote=offline,
        allow_random_fallback=not args.no_random_fallback,
        seed=args.seed,
        collapse_single=args.collapse_single,
    )
    pipeline = SystemPipeline(config)

    try:
        if offline:
            result = pipeline.build_from_rows(
                load_rows_csv(Path(args.stars_csv)),
                load_rows_csv(Path(args.planets_csv)),
            )
        else:
            result = pipeline.run(args.system)
    except (ExosystemError, FileNotFoundError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    print(json.dumps(result.summary(), ensure_ascii=True, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
