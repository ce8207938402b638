#!/usr/bin/env python3
"""
Harvest Trigger Service

This FastAPI service owns the harvest scheduler: it registers the recurring
scrape on startup, starts on-demand runs in the background and reports run
status.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import psutil
from fastapi import BackgroundTasks, FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from ..config import Settings, settings
from ..db.repository import JobRepository
from ..logging_config import setup_logging
from ..models import RunSummary
from ..scrapers import build_extractors
from .harvest import HarvestOrchestrator
from .indexing import IndexingPipeline
from .scheduler import HarvestScheduler

# Create module-specific logger
logger = setup_logging(__name__)


class TriggerRequest(BaseModel):
    locations: Optional[List[str]] = None
    pages: Optional[int] = Field(default=None, ge=1, le=50)


class TriggerResponse(BaseModel):
    success: bool
    message: str
    locations: List[str]
    run_id: str


class SchedulerStatus(BaseModel):
    scheduled: bool
    next_run_time: Optional[datetime] = None
    last_run: Optional[RunSummary] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the store and index, wire the harvest pipeline and start the scheduler."""
    cfg: Settings = app.state.settings
    logger.info("Starting service")

    repository = await JobRepository(cfg.database_path).ainit()

    # A missing embedding credential is fatal; an unreachable index is retried on first use
    indexing = IndexingPipeline.from_settings(cfg)
    try:
        await indexing.ensure_collection()
    except Exception as e:
        logger.warning("Semantic index not reachable at startup", extra={"error": str(e)})

    orchestrator = HarvestOrchestrator(build_extractors(cfg), repository)
    scheduler = HarvestScheduler.from_settings(cfg, orchestrator, indexing)
    scheduler.start()

    if cfg.enable_scheduled_scrape:
        scheduler.schedule_recurring(cfg.scrape_cron, cfg.locations, page_count=cfg.scheduled_pages)
    else:
        logger.info("Scheduled scraping disabled")

    app.state.repository = repository
    app.state.indexing = indexing
    app.state.scheduler = scheduler

    try:
        yield
    finally:
        logger.info("Starting graceful shutdown")
        scheduler.shutdown()
        await repository.close()
        logger.info("Service shutdown complete")


def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    app = FastAPI(
        title="Job Insights Harvest Service",
        description="Schedules and triggers job board harvests feeding the job store and semantic index",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = app_settings or settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.post("/scrapers/run", response_model=TriggerResponse, status_code=status.HTTP_202_ACCEPTED)
    async def run_scrapers(request: Request, background_tasks: BackgroundTasks, body: Optional[TriggerRequest] = None):
        """Start a harvest in the background and acknowledge immediately."""
        cfg: Settings = request.app.state.settings
        scheduler: HarvestScheduler = request.app.state.scheduler
        body = body or TriggerRequest()

        locations = [loc.strip() for loc in (body.locations or []) if loc.strip()] or cfg.locations
        pages = body.pages or cfg.run_now_pages
        run_id = scheduler.new_run_id()

        background_tasks.add_task(scheduler.run_once, locations, pages, run_id=run_id)
        logger.info("Scrapers triggered on demand", extra={"run_id": run_id, "locations": locations, "pages": pages})

        return TriggerResponse(
            success=True,
            message="Scrapers started in background",
            locations=locations,
            run_id=run_id,
        )

    @app.get("/scrapers/status", response_model=SchedulerStatus)
    async def scrapers_status(request: Request):
        scheduler: HarvestScheduler = request.app.state.scheduler
        next_run = scheduler.next_run_time
        return SchedulerStatus(
            scheduled=next_run is not None,
            next_run_time=next_run,
            last_run=scheduler.last_summary,
        )

    @app.get("/scrapers/status/{run_id}", response_model=RunSummary)
    async def run_status(run_id: str, request: Request):
        summary = request.app.state.scheduler.get_summary(run_id)
        if summary is None:
            raise HTTPException(status_code=404, detail=f"Run ID {run_id} not found")
        return summary

    @app.get("/health")
    async def health_check(request: Request) -> Dict[str, Any]:
        """Health check endpoint."""
        try:
            repository: JobRepository = request.app.state.repository
            if not await repository.check_connection():
                raise HTTPException(status_code=503, detail="Database connection failed")

            metrics = {
                "cpu_percent": psutil.cpu_percent(),
                "memory_percent": psutil.virtual_memory().percent,
                "disk_usage_percent": psutil.disk_usage("/").percent,
            }

            return {
                "status": "healthy",
                "database": "connected",
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "metrics": metrics,
            }
        except HTTPException:
            raise
        except Exception as e:
            logger.error("Health check failed", extra={"error": str(e)})
            raise HTTPException(status_code=503, detail=str(e))

    return app


app = create_app()


def main() -> None:
    import uvicorn

    uvicorn.run(app, host=settings.api_host, port=settings.api_port)


if __name__ == "__main__":
    main()
