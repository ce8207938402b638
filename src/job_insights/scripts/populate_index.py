"""Rebuild the semantic index from every job in the store."""

import argparse
import asyncio
from typing import List, Optional

from ..config import settings
from ..db.repository import JobRepository
from ..logging_config import setup_logging
from ..services.indexing import IndexingPipeline

logger = setup_logging(__name__)


async def populate_index(repository: JobRepository, indexing: IndexingPipeline, batch_size: int) -> int:
    """Upsert every stored job; returns how many were submitted."""
    total = 0
    async for jobs in repository.iter_all_jobs(batch_size):
        total += await indexing.index(jobs)
        logger.info(f"Indexed {total} jobs so far")
    return total


async def run(args: argparse.Namespace) -> int:
    indexing = await IndexingPipeline.create(settings)
    repository = await JobRepository(settings.database_path, readonly=True).ainit()
    try:
        stored = await repository.count_jobs()
        print(f"Found {stored} jobs in the store")
        total = await populate_index(repository, indexing, args.batch_size)
    finally:
        await repository.close()

    print(f"Indexed {total} jobs; collection now holds {await indexing.count()} entries")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Populate the semantic index from the job store")
    parser.add_argument("--batch-size", type=int, default=settings.index_batch_size)
    return asyncio.run(run(parser.parse_args(argv)))


if __name__ == "__main__":
    raise SystemExit(main())
