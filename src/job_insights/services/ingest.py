"""
Deduplication and persistence gate.

Every raw listing passes through ``DedupGate.ingest``: listings whose
identity is already stored are skipped before any detail page is opened;
new ones are enriched from their detail page and written exactly once.
"""

from ..db.repository import DuplicateJobError, JobRepository
from ..logging_config import setup_logging
from ..models import IngestResult, JobPosting, RawListing
from ..scrapers.base import PageExtractor

# Create module-specific logger
logger = setup_logging(__name__)


class DedupGate:
    """Identity check, detail enrichment and insert for one source."""

    def __init__(self, repository: JobRepository, extractor: PageExtractor):
        self.repository = repository
        self.extractor = extractor

    async def ingest(self, listing: RawListing) -> IngestResult:
        context = {"title": listing.title, "company": listing.company, "url": listing.url}
        try:
            key = listing.identity_key()
            if await self.repository.exists(key):
                logger.debug("Job already stored, skipping", extra=context)
                return IngestResult.skipped("exists")

            if listing.url:
                logger.info(f"Fetching details for job: {listing.title} at {listing.company}", extra=context)
                details = await self.extractor.fetch_detail(listing.url)
                job = JobPosting.from_listing(listing, details)
            else:
                job = JobPosting.from_listing(listing)

            saved = await self.repository.insert_job(job)
        except DuplicateJobError:
            logger.info("Job stored concurrently by another harvest, skipping", extra=context)
            return IngestResult.skipped("duplicate")
        except Exception as e:
            logger.error("Error saving job", extra={**context, "error": str(e), "error_type": type(e).__name__})
            return IngestResult.skipped(f"error: {e}")

        logger.info(f"Saved job: {saved.title}", extra={**context, "job_id": saved.id})
        return IngestResult.saved(saved)
