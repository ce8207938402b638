"""Result and query models shared by the services."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from .job import ExperienceLevel, JobPosting, JobType, Source


class IngestStatus(str, Enum):
    SAVED = "saved"
    SKIPPED = "skipped"


class IngestResult(BaseModel):
    """Outcome of pushing one raw listing through the dedup gate."""

    status: IngestStatus
    job: Optional[JobPosting] = None
    reason: Optional[str] = None

    @classmethod
    def saved(cls, job: JobPosting) -> "IngestResult":
        return cls(status=IngestStatus.SAVED, job=job)

    @classmethod
    def skipped(cls, reason: str) -> "IngestResult":
        return cls(status=IngestStatus.SKIPPED, reason=reason)

    @property
    def is_saved(self) -> bool:
        return self.status == IngestStatus.SAVED


class RunSummary(BaseModel):
    """Summary of one scheduler fan-out."""

    run_id: str
    locations: List[str] = Field(default_factory=list)
    counts: Dict[str, int] = Field(default_factory=dict)
    errors: List[str] = Field(default_factory=list)
    indexed: int = 0
    status: Literal["running", "completed", "failed"] = "running"
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @property
    def total_saved(self) -> int:
        return sum(self.counts.values())


class SearchHit(BaseModel):
    """One ranked match from the semantic index."""

    id: str
    score: float
    metadata: Dict[str, Any] = Field(default_factory=dict)


SORTABLE_FIELDS = (
    "created_at",
    "updated_at",
    "posted_date",
    "title",
    "company",
    "location",
    "source",
    "job_type",
    "experience_level",
)


class JobQuery(BaseModel):
    """Filters, pagination and sort order for listing stored jobs."""

    source: Optional[Source] = None
    experience_level: Optional[ExperienceLevel] = None
    job_type: Optional[JobType] = None
    location: Optional[str] = None
    search: Optional[str] = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=200)
    sort_by: str = "created_at"
    sort_order: Literal["asc", "desc"] = "desc"


class JobPage(BaseModel):
    jobs: List[JobPosting]
    total: int
    pages: int
    current_page: int
