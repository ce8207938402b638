import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from job_insights.models import JobPosting, Source
from job_insights.services.scheduler import RECURRING_JOB_ID, HarvestScheduler


def _job(title, source=Source.LINKEDIN):
    return JobPosting(
        title=title,
        company="Acme",
        url=f"https://www.linkedin.com/jobs/view/{title.replace(' ', '-')}",
        source=source,
    )


def _orchestrator(harvest):
    orchestrator = MagicMock()
    orchestrator.sources = [Source.LINKEDIN, Source.INDEED]
    orchestrator.harvest = AsyncMock(side_effect=harvest)
    return orchestrator


def _indexing(indexed=0, error=None):
    indexing = MagicMock()
    indexing.index = AsyncMock(return_value=indexed, side_effect=error)
    return indexing


@pytest.mark.asyncio
async def test_failing_source_is_recorded_and_others_still_indexed():
    linkedin_jobs = [_job("Dev One"), _job("Dev Two")]

    async def harvest(source, location, page_count):
        if source == Source.INDEED:
            raise RuntimeError("Timeout 60000ms exceeded")
        return linkedin_jobs

    indexing = _indexing(indexed=2)
    scheduler = HarvestScheduler(_orchestrator(harvest), indexing, source_delay_seconds=0)

    summary = await scheduler.run_once(["Remote"], 1)

    assert summary.counts == {"linkedin": 2, "indeed": 0}
    assert summary.errors == ["Indeed - Remote: Timeout 60000ms exceeded"]
    assert summary.indexed == 2
    assert summary.status == "completed"
    assert summary.finished_at is not None
    indexing.index.assert_awaited_once_with(linkedin_jobs)


@pytest.mark.asyncio
async def test_every_pair_is_harvested_in_source_order():
    calls = []

    async def harvest(source, location, page_count):
        calls.append((source, location, page_count))
        return []

    scheduler = HarvestScheduler(_orchestrator(harvest), _indexing(), source_delay_seconds=0)

    await scheduler.run_once(["United States", "Remote"], 5)

    assert calls == [
        (Source.LINKEDIN, "United States", 5),
        (Source.INDEED, "United States", 5),
        (Source.LINKEDIN, "Remote", 5),
        (Source.INDEED, "Remote", 5),
    ]


@pytest.mark.asyncio
async def test_nothing_collected_skips_indexing():
    indexing = _indexing()
    scheduler = HarvestScheduler(_orchestrator(lambda *a: []), indexing, source_delay_seconds=0)

    summary = await scheduler.run_once(["Remote"], 1)

    assert summary.total_saved == 0
    indexing.index.assert_not_awaited()


@pytest.mark.asyncio
async def test_indexing_failure_keeps_counts():
    async def harvest(source, location, page_count):
        return [_job(f"{source.value} job", source)]

    scheduler = HarvestScheduler(
        _orchestrator(harvest), _indexing(error=RuntimeError("chroma unavailable")), source_delay_seconds=0
    )

    summary = await scheduler.run_once(["Remote"], 1)

    assert summary.counts == {"linkedin": 1, "indeed": 1}
    assert summary.errors == ["Indexing: chroma unavailable"]
    assert summary.indexed == 0
    assert summary.status == "completed"


@pytest.mark.asyncio
async def test_all_pairs_failing_marks_run_failed():
    async def harvest(source, location, page_count):
        raise RuntimeError("blocked")

    indexing = _indexing()
    scheduler = HarvestScheduler(_orchestrator(harvest), indexing, source_delay_seconds=0)

    summary = await scheduler.run_once(["Remote"], 1, sources=[Source.INDEED])

    assert summary.status == "failed"
    assert summary.counts == {"indeed": 0}
    assert summary.errors == ["Indeed - Remote: blocked"]
    indexing.index.assert_not_awaited()


@pytest.mark.asyncio
async def test_delay_between_sources():
    async def harvest(source, location, page_count):
        return []

    scheduler = HarvestScheduler(_orchestrator(harvest), _indexing(), source_delay_seconds=2.5)
    with patch("job_insights.services.scheduler.asyncio.sleep", new=AsyncMock()) as sleep:
        await scheduler.run_once(["Remote"], 1)

    sleep.assert_awaited_once_with(2.5)


@pytest.mark.asyncio
async def test_concurrent_runs_keep_separate_accumulators():
    async def harvest(source, location, page_count):
        await asyncio.sleep(0)
        if location == "Boston":
            raise RuntimeError("captcha")
        return [_job(f"{location} {source.value}", source)]

    scheduler = HarvestScheduler(_orchestrator(harvest), _indexing(), source_delay_seconds=0)

    remote, boston = await asyncio.gather(
        scheduler.run_once(["Remote"], 1),
        scheduler.run_once(["Boston"], 1),
    )

    assert remote.counts == {"linkedin": 1, "indeed": 1}
    assert remote.errors == []
    assert boston.counts == {"linkedin": 0, "indeed": 0}
    assert len(boston.errors) == 2


@pytest.mark.asyncio
async def test_run_history_is_bounded():
    scheduler = HarvestScheduler(_orchestrator(lambda *a: []), _indexing(), source_delay_seconds=0, history_size=2)

    first = await scheduler.run_once(["Remote"], 1, run_id="run-1")
    await scheduler.run_once(["Remote"], 1, run_id="run-2")
    third = await scheduler.run_once(["Remote"], 1, run_id="run-3")

    assert scheduler.get_summary(first.run_id) is None
    assert scheduler.last_summary is third
    assert [s.run_id for s in scheduler.history()] == ["run-2", "run-3"]


def test_schedule_recurring_registers_single_instance_cron_job():
    scheduler = HarvestScheduler(MagicMock(), None, scheduler=AsyncIOScheduler())

    job = scheduler.schedule_recurring("0 3 * * *", ["United States", "Remote"], page_count=5)

    assert job.id == RECURRING_JOB_ID
    assert isinstance(job.trigger, CronTrigger)
    assert job.max_instances == 1
    assert job.coalesce is True
    assert job.kwargs == {"locations": ["United States", "Remote"], "page_count": 5, "sources": None}


def test_invalid_cron_expression_is_rejected():
    scheduler = HarvestScheduler(MagicMock(), None, scheduler=AsyncIOScheduler())
    with pytest.raises(ValueError):
        scheduler.schedule_recurring("every day", ["Remote"])


@pytest.mark.asyncio
async def test_start_exposes_next_run_time():
    scheduler = HarvestScheduler(MagicMock(), None)
    assert scheduler.next_run_time is None

    scheduler.start()
    try:
        scheduler.schedule_recurring("0 3 * * *", ["Remote"])
        assert scheduler.next_run_time is not None
    finally:
        scheduler.shutdown()
