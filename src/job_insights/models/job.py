"""
Job data models: the persisted JobPosting and the records that feed it.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from ..utils.urls import canonicalize_url


class JobType(str, Enum):
    FULL_TIME = "Full-time"
    PART_TIME = "Part-time"
    CONTRACT = "Contract"
    INTERNSHIP = "Internship"
    REMOTE = "Remote"
    OTHER = "Other"


class ExperienceLevel(str, Enum):
    ENTRY = "Entry Level"
    MID = "Mid Level"
    SENIOR = "Senior Level"
    NOT_SPECIFIED = "Not Specified"


class Source(str, Enum):
    LINKEDIN = "LinkedIn"
    INDEED = "Indeed"
    OTHER = "Other"


DEFAULT_LOCATION = "Remote/Unspecified"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def identity_key(url: str, title: str, company: str, source: Source) -> str:
    """Build the deduplication key for a posting.

    The canonical URL is the identity whenever a URL is known; otherwise the
    title/company/source triple is used.
    """
    canonical = canonicalize_url(url) if url else ""
    if canonical:
        return f"url:{canonical}"
    return f"key:{title.lower().strip()}|{company.lower().strip()}|{Source(source).value}"


class RawListing(BaseModel):
    """Minimally parsed record from a search results page."""

    title: str
    company: str
    location: str = DEFAULT_LOCATION
    url: str = ""
    salary: Optional[str] = None
    source: Source
    experience_level: ExperienceLevel = ExperienceLevel.ENTRY
    posted_date: datetime = Field(default_factory=_utcnow)

    def identity_key(self) -> str:
        return identity_key(self.url, self.title, self.company, self.source)


class DetailFields(BaseModel):
    """Long-form fields scraped from a listing's own page.

    ``None`` means "not found"; only non-null values are merged over a listing.
    """

    description: Optional[str] = None
    job_type: Optional[JobType] = None
    skills: Optional[List[str]] = None
    salary: Optional[str] = None

    @classmethod
    def empty(cls) -> "DetailFields":
        return cls(description="", job_type=JobType.OTHER, skills=[])


class JobPosting(BaseModel):
    """Model representing a stored job posting."""

    id: Optional[int] = None
    title: str
    company: str
    location: Optional[str] = None
    description: Optional[str] = None
    url: str
    salary: Optional[str] = None
    job_type: JobType = JobType.OTHER
    experience_level: ExperienceLevel = ExperienceLevel.NOT_SPECIFIED
    skills: List[str] = Field(default_factory=list)
    posted_date: Optional[datetime] = None
    source: Source
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def identity_key(self) -> str:
        return identity_key(self.url, self.title, self.company, self.source)

    @classmethod
    def from_listing(cls, listing: RawListing, details: Optional[DetailFields] = None) -> "JobPosting":
        """Merge detail fields over a raw listing; detail values win when present."""
        data = listing.model_dump()
        data["url"] = canonicalize_url(listing.url) if listing.url else ""
        if details is not None:
            data.update(details.model_dump(exclude_none=True))
        return cls(**data)

    def index_document(self) -> str:
        """Text blob embedded into the semantic index."""
        return (
            f"Title: {self.title or ''}. Company: {self.company or ''}. "
            f"Description: {self.description or ''}. Location: {self.location or ''}"
        )

    def index_metadata(self) -> dict:
        return {
            "title": self.title or "",
            "company": self.company or "",
            "location": self.location or "",
            "url": self.url,
        }
