"""Source harvest orchestration: extractor pages through the gate."""

from typing import Dict, List, Mapping

from ..db.repository import JobRepository
from ..logging_config import setup_logging
from ..models import JobPosting, Source
from ..scrapers.base import PageExtractor
from .ingest import DedupGate

# Create module-specific logger
logger = setup_logging(__name__)


class HarvestOrchestrator:
    """Runs one (source, location) harvest and returns the newly saved jobs."""

    def __init__(self, extractors: Mapping[Source, PageExtractor], repository: JobRepository):
        self.extractors = dict(extractors)
        self.gates: Dict[Source, DedupGate] = {
            source: DedupGate(repository, extractor) for source, extractor in self.extractors.items()
        }

    @property
    def sources(self) -> List[Source]:
        return list(self.extractors)

    async def harvest(self, source: Source, location: str, page_count: int) -> List[JobPosting]:
        source = Source(source)
        if source not in self.extractors:
            raise ValueError(f"No extractor configured for source {source.value}")

        extractor = self.extractors[source]
        gate = self.gates[source]

        logger.info(f"Starting {source.value} harvest", extra={"location": location, "pages": page_count})
        pages = await extractor.search_pages(location, page_count)

        saved: List[JobPosting] = []
        skipped = 0
        for listings in pages:
            for listing in listings:
                result = await gate.ingest(listing)
                if result.is_saved:
                    saved.append(result.job)
                else:
                    skipped += 1

        logger.info(
            f"{source.value} harvest completed. Saved {len(saved)} new jobs.",
            extra={
                "location": location,
                "pages_scraped": len(pages),
                "found": sum(len(p) for p in pages),
                "saved": len(saved),
                "skipped": skipped,
            },
        )
        return saved
