"""Keyword vocabularies used to classify scraped job pages."""

from typing import List, Optional

from ..models import JobType

# First match wins, so order is precedence.
JOB_TYPE_PATTERNS = (
    (JobType.FULL_TIME, ("Full-time", "Full time")),
    (JobType.PART_TIME, ("Part-time", "Part time")),
    (JobType.CONTRACT, ("Contract",)),
    (JobType.INTERNSHIP, ("Internship",)),
    (JobType.REMOTE, ("Remote",)),
)

SKILL_KEYWORDS = (
    "JavaScript",
    "Python",
    "Java",
    "C++",
    "C#",
    "React",
    "Angular",
    "Vue",
    "Node.js",
    "Express",
    "MongoDB",
    "SQL",
    "MySQL",
    "PostgreSQL",
    "AWS",
    "Azure",
    "GCP",
    "Cloud",
    "DevOps",
    "Docker",
    "Kubernetes",
    "Git",
    "HTML",
    "CSS",
    "Sass",
    "LESS",
    "UI/UX",
    "Design",
    "Figma",
    "Adobe",
    "Communication",
    "Leadership",
    "Teamwork",
    "Problem-solving",
    "Critical thinking",
)


def match_job_type(text: str) -> Optional[JobType]:
    """Return the first employment type mentioned in ``text``, or None."""
    for job_type, needles in JOB_TYPE_PATTERNS:
        if any(needle in text for needle in needles):
            return job_type
    return None


def detect_job_type(text: str) -> JobType:
    return match_job_type(text or "") or JobType.OTHER


def extract_skills(*texts: str) -> List[str]:
    """Vocabulary terms found as case-sensitive substrings of any text."""
    haystacks = [t for t in texts if t]
    return [skill for skill in SKILL_KEYWORDS if any(skill in text for text in haystacks)]
