"""
Data models and schemas for the job insights pipeline.
"""

from .job import (
    DEFAULT_LOCATION,
    DetailFields,
    ExperienceLevel,
    JobPosting,
    JobType,
    RawListing,
    Source,
    identity_key,
)
from .results import (
    IngestResult,
    IngestStatus,
    JobPage,
    JobQuery,
    RunSummary,
    SearchHit,
)

__all__ = [
    "DEFAULT_LOCATION",
    "DetailFields",
    "ExperienceLevel",
    "JobPosting",
    "JobType",
    "RawListing",
    "Source",
    "identity_key",
    "IngestResult",
    "IngestStatus",
    "JobPage",
    "JobQuery",
    "RunSummary",
    "SearchHit",
]
