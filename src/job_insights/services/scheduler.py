"""
Multi-source harvest scheduler.

Fans a run out over (location, source) pairs, collects the newly saved jobs
and hands them to the indexing pipeline in one batch. The same fan-out backs
the recurring cron job and on-demand runs.
"""

import asyncio
from collections import OrderedDict
from datetime import datetime, timezone
from typing import List, Optional, Sequence
from uuid import uuid4

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from ..config import Settings
from ..logging_config import setup_logging
from ..models import JobPosting, RunSummary, Source
from .harvest import HarvestOrchestrator
from .indexing import IndexingPipeline

# Create module-specific logger
logger = setup_logging(__name__)

RECURRING_JOB_ID = "scheduled_scrape"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def count_key(source: Source) -> str:
    return Source(source).name.lower()


class HarvestScheduler:
    """Runs harvests across sources and locations, on a cron schedule or on demand."""

    def __init__(
        self,
        orchestrator: HarvestOrchestrator,
        indexing: Optional[IndexingPipeline],
        *,
        source_delay_seconds: float = 5.0,
        max_concurrent_harvests: int = 1,
        history_size: int = 20,
        scheduler: Optional[AsyncIOScheduler] = None,
    ):
        self.orchestrator = orchestrator
        self.indexing = indexing
        self.source_delay_seconds = source_delay_seconds
        self.max_concurrent_harvests = max(1, max_concurrent_harvests)
        self.history_size = max(1, history_size)
        self.scheduler = scheduler or AsyncIOScheduler()
        self._history: "OrderedDict[str, RunSummary]" = OrderedDict()
        self._history_lock = asyncio.Lock()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        orchestrator: HarvestOrchestrator,
        indexing: Optional[IndexingPipeline],
        **kwargs,
    ) -> "HarvestScheduler":
        kwargs.setdefault("source_delay_seconds", settings.source_delay_seconds)
        kwargs.setdefault("max_concurrent_harvests", settings.max_concurrent_harvests)
        kwargs.setdefault("history_size", settings.run_history_size)
        return cls(orchestrator, indexing, **kwargs)

    # --- scheduler lifecycle ---

    def start(self) -> None:
        if not self.scheduler.running:
            self.scheduler.start()
            logger.info("Scheduler started")

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")

    def schedule_recurring(
        self,
        cron_expression: str,
        locations: Sequence[str],
        sources: Optional[Sequence[Source]] = None,
        page_count: int = 5,
    ):
        """Register the recurring harvest. Raises ``ValueError`` for a malformed cron expression."""
        trigger = CronTrigger.from_crontab(cron_expression)
        job = self.scheduler.add_job(
            self.run_once,
            trigger=trigger,
            kwargs={
                "locations": list(locations),
                "page_count": page_count,
                "sources": list(sources) if sources else None,
            },
            id=RECURRING_JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        logger.info(
            f"Scheduled scrapers with cron expression: {cron_expression}",
            extra={"locations": list(locations), "pages": page_count},
        )
        return job

    @property
    def next_run_time(self) -> Optional[datetime]:
        job = self.scheduler.get_job(RECURRING_JOB_ID)
        if job is None:
            return None
        # Jobs added before start() have no computed fire time yet
        return getattr(job, "next_run_time", None)

    # --- run history ---

    @staticmethod
    def new_run_id() -> str:
        return f"run-{uuid4().hex[:8]}"

    async def _remember(self, summary: RunSummary) -> None:
        async with self._history_lock:
            self._history[summary.run_id] = summary
            self._history.move_to_end(summary.run_id)
            while len(self._history) > self.history_size:
                self._history.popitem(last=False)

    @property
    def last_summary(self) -> Optional[RunSummary]:
        if not self._history:
            return None
        return next(reversed(self._history.values()))

    def get_summary(self, run_id: str) -> Optional[RunSummary]:
        return self._history.get(run_id)

    def history(self) -> List[RunSummary]:
        return list(self._history.values())

    # --- fan-out ---

    async def run_once(
        self,
        locations: Sequence[str],
        page_count: int,
        sources: Optional[Sequence[Source]] = None,
        run_id: Optional[str] = None,
    ) -> RunSummary:
        """Harvest every (location, source) pair, then index what was saved.

        Per-pair failures are recorded in the summary and never stop the
        remaining pairs. Indexing failures are recorded without touching the
        harvest counts.
        """
        selected = [Source(s) for s in sources] if sources else self.orchestrator.sources
        summary = RunSummary(
            run_id=run_id or self.new_run_id(),
            locations=list(locations),
            counts={count_key(source): 0 for source in selected},
            started_at=_now(),
        )
        await self._remember(summary)

        logger.info(
            "Starting scraper run",
            extra={
                "run_id": summary.run_id,
                "locations": summary.locations,
                "sources": [s.value for s in selected],
                "pages": page_count,
            },
        )

        collected: List[JobPosting] = []
        failed_pairs = 0
        semaphore = asyncio.Semaphore(self.max_concurrent_harvests)

        async def harvest_location(location: str) -> None:
            nonlocal failed_pairs
            async with semaphore:
                for position, source in enumerate(selected):
                    if position and self.source_delay_seconds > 0:
                        await asyncio.sleep(self.source_delay_seconds)
                    try:
                        saved = await self.orchestrator.harvest(source, location, page_count)
                    except Exception as e:
                        failed_pairs += 1
                        logger.error(
                            f"Error running {source.value} scraper for {location}",
                            extra={"run_id": summary.run_id, "error": str(e), "error_type": type(e).__name__},
                        )
                        summary.errors.append(f"{source.value} - {location}: {e}")
                        continue
                    summary.counts[count_key(source)] += len(saved)
                    collected.extend(saved)

        await asyncio.gather(*(harvest_location(location) for location in summary.locations))

        if not collected:
            logger.info("No new jobs to index", extra={"run_id": summary.run_id})
        elif self.indexing is None:
            logger.info("No indexing pipeline configured, skipping index update", extra={"run_id": summary.run_id})
        else:
            try:
                summary.indexed = await self.indexing.index(collected)
            except Exception as e:
                logger.error("Error adding jobs to the index", extra={"run_id": summary.run_id, "error": str(e)})
                summary.errors.append(f"Indexing: {e}")

        total_pairs = len(summary.locations) * len(selected)
        summary.status = "failed" if total_pairs and failed_pairs == total_pairs else "completed"
        summary.finished_at = _now()

        logger.info(
            "Scraper run finished",
            extra={
                "run_id": summary.run_id,
                "status": summary.status,
                "counts": summary.counts,
                "indexed": summary.indexed,
                "errors": len(summary.errors),
            },
        )
        return summary
