"""Run one harvest from the command line, outside the trigger service."""

import argparse
import asyncio
from typing import List, Optional

from ..config import settings
from ..db.repository import JobRepository
from ..logging_config import setup_logging
from ..models import Source
from ..scrapers import build_extractors
from ..services.harvest import HarvestOrchestrator
from ..services.indexing import IndexingPipeline
from ..services.scheduler import HarvestScheduler

logger = setup_logging(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Scrape job boards into the job store and semantic index")
    parser.add_argument(
        "--locations",
        nargs="+",
        default=None,
        help="Target locations (default: SCRAPE_LOCATIONS)",
    )
    parser.add_argument("--pages", type=int, default=settings.run_now_pages, help="Result pages per source")
    parser.add_argument(
        "--sources",
        nargs="+",
        choices=[s.value for s in (Source.LINKEDIN, Source.INDEED)],
        default=None,
        help="Restrict the run to these sources",
    )
    parser.add_argument("--no-index", action="store_true", help="Skip the semantic index update")
    return parser.parse_args(argv)


async def run(args: argparse.Namespace) -> int:
    repository = await JobRepository(settings.database_path).ainit()
    try:
        indexing = None if args.no_index else IndexingPipeline.from_settings(settings)
        orchestrator = HarvestOrchestrator(build_extractors(settings), repository)
        scheduler = HarvestScheduler.from_settings(settings, orchestrator, indexing)

        summary = await scheduler.run_once(
            args.locations or settings.locations,
            args.pages,
            sources=[Source(s) for s in args.sources] if args.sources else None,
        )
    finally:
        await repository.close()

    print(f"Run {summary.run_id} {summary.status}")
    for source, count in summary.counts.items():
        print(f"  {source}: {count} new jobs")
    print(f"  indexed: {summary.indexed}")
    for error in summary.errors:
        print(f"  error: {error}")
    return 1 if summary.status == "failed" else 0


def main(argv: Optional[List[str]] = None) -> int:
    return asyncio.run(run(parse_args(argv)))


if __name__ == "__main__":
    raise SystemExit(main())
