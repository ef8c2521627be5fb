"""One-shot discovery run from the command line.

Reads a profile (and optionally a grant pool) from JSON files, runs the
discovery pipeline and prints the result as JSON. Without --grants the pool
is read from Supabase.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, List, Optional

from .config import load_config
from .database import StaticGrantSource, SupabaseGrantSource
from .errors import InvalidProfileError
from .models import MatchMode, Profile
from .pipeline import DiscoveryPipeline, PipelineOptions
from .ranking import SortBy

logger = logging.getLogger(__name__)


def _read_json(path: str) -> Any:
    with open(Path(path), "r") as f:
        return json.load(f)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="grant-discovery",
        description="Match a profile against a grant pool and print ranked results.",
    )
    parser.add_argument("--profile", required=True, help="Path to profile JSON")
    parser.add_argument("--grants", help="Path to grant pool JSON (array of records)")
    parser.add_argument("--limit", type=int, help="Page size")
    parser.add_argument("--min-score", type=int, help="Score floor (0-100)")
    parser.add_argument(
        "--sort-by",
        choices=[s.value for s in SortBy],
        default=SortBy.BEST_MATCH.value,
    )
    parser.add_argument("--mode", choices=[m.value for m in MatchMode], default=MatchMode.SOFT.value)
    parser.add_argument("--no-ai", action="store_true", help="Skip AI enrichment")
    parser.add_argument("--debug", action="store_true", help="Include timings and debug stats")
    return parser


async def discover(args: argparse.Namespace) -> dict:
    """Run the pipeline for parsed CLI args and return the JSON-ready result."""
    config = load_config(require_pool=not args.grants)

    profile = Profile.model_validate(_read_json(args.profile))

    if args.grants:
        records = _read_json(args.grants)
        if isinstance(records, dict):
            records = records.get("grants", [])
        source = StaticGrantSource(records)
    else:
        source = SupabaseGrantSource.from_config(config)

    pool = source.load_open_grants(state=profile.state, limit=config.pool_limit)
    logger.info("Loaded %d grant records", len(pool))

    options = PipelineOptions(
        limit=args.limit if args.limit is not None else config.default_limit,
        min_score=args.min_score if args.min_score is not None else config.default_min_score,
        sort_by=SortBy(args.sort_by),
        mode=MatchMode(args.mode),
        use_ai=not args.no_ai,
        include_debug=args.debug,
    )

    pipeline = DiscoveryPipeline.from_config(config)
    result = await pipeline.run(pool, profile, options)
    return result.model_dump(mode="json")


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        level = load_config(require_pool=False).log_level
    except ValueError:
        level = "INFO"

    # Logs go to stderr so stdout stays valid JSON
    logging.basicConfig(
        level=logging.DEBUG if args.debug else level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )

    try:
        output = asyncio.run(discover(args))
    except InvalidProfileError as exc:
        logger.error("Invalid profile: %s", exc)
        return 2
    except (ValueError, OSError) as exc:
        logger.error("Discovery failed: %s", exc)
        return 1

    json.dump(output, sys.stdout, indent=2)
    sys.stdout.write("\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
