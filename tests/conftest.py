"""Test configuration and fixtures."""

from html import escape
from typing import Dict, Iterable, List, Optional

import pytest
import pytest_asyncio
from bs4 import BeautifulSoup

from job_insights.config import Settings
from job_insights.db.repository import JobRepository
from job_insights.models import RawListing, Source


class FakeSession:
    """In-memory BrowserSession serving canned HTML.

    Search URLs serve ``pages`` in order; the next-page click only succeeds
    when the current page contains the requested selector. Detail URLs are
    looked up in ``details``; URLs in ``failing`` raise on navigation.
    """

    def __init__(self, pages: List[str], details: Dict[str, str], failing: Iterable[str] = ()):
        self.pages = pages
        self.details = details
        self.failing = set(failing)
        self.current = "<html></html>"
        self.page_index = 0
        self.navigated: List[str] = []
        self.extract_calls = 0
        self.clicks = 0
        self.closed = False

    async def navigate(self, url: str, timeout_ms: int) -> None:
        self.navigated.append(url)
        if url in self.failing:
            raise RuntimeError(f"Timeout 60000ms exceeded navigating to {url}")
        if url in self.details:
            self.current = self.details[url]
        else:
            self.page_index = 0
            self.current = self.pages[0] if self.pages else "<html></html>"

    async def wait_for_selector(self, selector: str, timeout_ms: int) -> bool:
        return BeautifulSoup(self.current, "html.parser").select_one(selector) is not None

    async def extract(self, parser):
        self.extract_calls += 1
        return parser(self.current)

    async def click(self, selector: str, settle_ms: int = 0) -> bool:
        self.clicks += 1
        if BeautifulSoup(self.current, "html.parser").select_one(selector) is None:
            return False
        if self.page_index + 1 >= len(self.pages):
            return False
        self.page_index += 1
        self.current = self.pages[self.page_index]
        return True

    async def close(self) -> None:
        self.closed = True


class FakeBrowser:
    """Session factory handing out a fresh FakeSession per call."""

    def __init__(self, pages: Optional[List[str]] = None, details: Optional[Dict[str, str]] = None, failing=()):
        self.pages = list(pages or [])
        self.details = dict(details or {})
        self.failing = set(failing)
        self.sessions: List[FakeSession] = []

    async def __call__(self) -> FakeSession:
        session = FakeSession(self.pages, self.details, self.failing)
        self.sessions.append(session)
        return session

    @property
    def detail_visits(self) -> List[str]:
        return [url for s in self.sessions for url in s.navigated if url in self.details or url in self.failing]


def _linkedin_card(job: dict) -> str:
    link = f'<a class="base-card__full-link" href="{job["url"]}"></a>' if job.get("url") else ""
    company = (
        f'<h4 class="base-search-card__subtitle">{job["company"]}</h4>' if job.get("company") else ""
    )
    salary = (
        f'<span class="job-search-card__salary-info">{job["salary"]}</span>' if job.get("salary") else ""
    )
    return (
        '<li><div class="base-card">'
        f"{link}"
        f'<h3 class="base-search-card__title">{job["title"]}</h3>'
        f"{company}"
        f'<span class="job-search-card__location">{job.get("location", "")}</span>'
        f"{salary}"
        "</div></li>"
    )


def _indeed_card(job: dict) -> str:
    if "href" in job:
        anchor = f'<a class="jcs-JobTitle" href="{escape(job["href"])}">'
    else:
        anchor = f'<a class="jcs-JobTitle" data-jk="{job["jk"]}" href="/rc/clk?jk={job["jk"]}">'
    return (
        '<div class="job_seen_beacon">'
        f'<h2 class="jobTitle">{anchor}'
        f'<span title="{job["title"]}">{job["title"]}</span></a></h2>'
        f'<span data-testid="company-name">{job["company"]}</span>'
        f'<div data-testid="text-location">{job.get("location", "")}</div>'
        "</div>"
    )


@pytest.fixture
def fake_browser():
    """Build a FakeBrowser: ``fake_browser(pages=[...], details={...}, failing=[...])``."""
    return FakeBrowser


@pytest.fixture
def linkedin_page():
    def build(jobs: List[dict], has_next: bool = False) -> str:
        cards = "".join(_linkedin_card(job) for job in jobs)
        next_button = (
            '<button class="artdeco-pagination__button--next">Next</button>'
            if has_next
            else '<button class="artdeco-pagination__button--next artdeco-button--disabled">Next</button>'
        )
        return f'<html><body><ul class="jobs-search__results-list">{cards}</ul>{next_button}</body></html>'

    return build


@pytest.fixture
def indeed_page():
    def build(jobs: List[dict], has_next: bool = False) -> str:
        cards = "".join(_indeed_card(job) for job in jobs)
        next_link = '<a data-testid="pagination-page-next" href="/jobs?start=10">Next</a>' if has_next else ""
        return f'<html><body><div id="mosaic-jobResults">{cards}</div>{next_link}</body></html>'

    return build


@pytest.fixture
def linkedin_detail_html():
    return (
        "<html><body>"
        '<div class="description__text">We need Python and SQL skills. Full-time role.</div>'
        "<ul>"
        '<li class="description__job-criteria-item">'
        '<h3 class="description__job-criteria-subheader">Employment type</h3>'
        '<span class="description__job-criteria-text">Internship</span>'
        "</li>"
        "</ul>"
        "</body></html>"
    )


@pytest.fixture
def indeed_detail_html():
    return (
        "<html><body>"
        '<div id="jobDescriptionText">Part-time remote position using React and Docker.</div>'
        "</body></html>"
    )


@pytest.fixture
def sample_listing():
    return RawListing(
        title="Junior Data Analyst",
        company="Acme Corp",
        location="Remote",
        url="https://www.linkedin.com/jobs/view/123/?refId=abc&trackingId=xyz",
        source=Source.LINKEDIN,
    )


@pytest.fixture
def test_settings(tmp_path):
    """Settings isolated from the developer's environment and .env file."""
    return Settings(
        _env_file=None,
        database_url=str(tmp_path / "jobs.db"),
        openai_api_key=None,
        scrape_locations="United States,Remote",
        source_delay_seconds=0,
        page_settle_ms=0,
    )


@pytest_asyncio.fixture
async def repository():
    """A fresh in-memory job store."""
    repo = await JobRepository(":memory:").ainit()
    yield repo
    await repo.close()
