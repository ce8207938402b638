"""
Page extractor contract shared by the job board scrapers.

An extractor knows how to build a board's search URL, which selectors mark
the result list, a single listing, the next-page control and the detail
description, and how to turn one listing element into a ``RawListing``.
Everything else (session handling, pagination, failure isolation, detail
classification) lives here.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from bs4 import BeautifulSoup
from bs4.element import Tag

from ..config import Settings
from ..logging_config import setup_logging
from ..models import DEFAULT_LOCATION, DetailFields, RawListing, Source
from .browser import BrowserSession, SessionFactory, playwright_session_factory
from .keywords import detect_job_type, extract_skills

# Create module-specific logger
logger = setup_logging(__name__)

SEARCH_TERM = "entry level"


def element_text(parent: Tag, selector: str) -> str:
    """Stripped text of the first match of ``selector``, or ``""``."""
    element = parent.select_one(selector)
    return element.get_text(" ", strip=True) if element else ""


class PageExtractor(ABC):
    """Extracts raw listings and detail fields from one job board."""

    source: Source
    results_selector: str
    listing_selector: str
    next_page_selector: str
    description_selector: str

    def __init__(
        self,
        session_factory: SessionFactory,
        *,
        navigation_timeout_ms: int = 60000,
        selector_timeout_ms: int = 10000,
        page_settle_ms: int = 3000,
    ):
        self._session_factory = session_factory
        self.navigation_timeout_ms = navigation_timeout_ms
        self.selector_timeout_ms = selector_timeout_ms
        self.page_settle_ms = page_settle_ms

    @classmethod
    def from_settings(cls, settings: Settings, session_factory: Optional[SessionFactory] = None, **kwargs):
        return cls(
            session_factory or playwright_session_factory(settings.browser_headless),
            navigation_timeout_ms=settings.navigation_timeout_ms,
            selector_timeout_ms=settings.selector_timeout_ms,
            page_settle_ms=settings.page_settle_ms,
            **kwargs,
        )

    @abstractmethod
    def build_search_url(self, location: str) -> str:
        """Search URL for entry level jobs in ``location`` (may be empty)."""

    @abstractmethod
    def parse_listing(self, element: Tag) -> Optional[RawListing]:
        """Parse one result element; return None when required fields are missing."""

    # --- Parsing ---

    def parse_search_page(self, html: str) -> List[RawListing]:
        """Parse every listing on a results page, skipping the ones that fail."""
        soup = BeautifulSoup(html, "html.parser")
        listings = []
        for position, element in enumerate(soup.select(self.listing_selector)):
            try:
                listing = self.parse_listing(element)
            except Exception as e:
                logger.warning(
                    "Error parsing job listing",
                    extra={"source": self.source.value, "position": position, "error": str(e)},
                )
                continue
            if listing is not None:
                listings.append(listing)
        return listings

    def parse_detail(self, html: str) -> DetailFields:
        soup = BeautifulSoup(html, "html.parser")
        description = element_text(soup, self.description_selector)
        root = soup.body or soup
        page_text = root.get_text(" ", strip=True)
        return DetailFields(
            description=description,
            job_type=self.classify_job_type(soup, page_text),
            skills=extract_skills(description, page_text),
            salary=self.parse_detail_salary(soup),
        )

    def classify_job_type(self, soup: BeautifulSoup, page_text: str):
        return detect_job_type(page_text)

    def parse_detail_salary(self, soup: BeautifulSoup) -> Optional[str]:
        return None

    def default_location(self, text: str) -> str:
        return text or DEFAULT_LOCATION

    # --- Browser driving ---

    async def _wait_for(self, session: BrowserSession, selector: str, url: str) -> bool:
        """Wait for ``selector``; a timeout is logged and extraction carries on."""
        found = await session.wait_for_selector(selector, self.selector_timeout_ms)
        if not found:
            logger.warning(
                f"Timed out waiting for {selector}, extracting what is present",
                extra={"source": self.source.value, "url": url, "timeout_ms": self.selector_timeout_ms},
            )
        return found

    async def _open_search(self, session: BrowserSession, location: str) -> None:
        url = self.build_search_url(location)
        logger.info(f"Navigating to {url}", extra={"source": self.source.value, "location": location})
        await session.navigate(url, self.navigation_timeout_ms)
        await self._wait_for(session, self.results_selector, url)

    async def _next_page(self, session: BrowserSession) -> bool:
        return await session.click(self.next_page_selector, self.page_settle_ms)

    async def _close(self, session: BrowserSession) -> None:
        try:
            await session.close()
        except Exception as e:
            logger.warning("Failed to close browser session", extra={"error": str(e)})

    async def search_pages(self, location: str, page_count: int) -> List[List[RawListing]]:
        """Walk up to ``page_count`` result pages in one browser session.

        Pagination stops early when the next-page control is missing. A
        navigation or extraction error ends the walk and keeps the pages
        already collected. Browser launch errors propagate.
        """
        pages: List[List[RawListing]] = []
        session = await self._session_factory()
        try:
            await self._open_search(session, location)
            for page_index in range(page_count):
                listings = await session.extract(self.parse_search_page)
                logger.info(
                    f"Found {len(listings)} jobs on page {page_index + 1} of {page_count}",
                    extra={"source": self.source.value, "location": location},
                )
                pages.append(listings)
                if page_index < page_count - 1 and not await self._next_page(session):
                    logger.info("No more pages to scrape", extra={"source": self.source.value})
                    break
        except Exception as e:
            logger.error(
                "Search page extraction failed",
                extra={"source": self.source.value, "location": location, "error": str(e)},
            )
        finally:
            await self._close(session)
        return pages

    async def list_search_page(self, location: str, page_index: int) -> List[RawListing]:
        """Listings on the ``page_index``-th (0-based) results page, or ``[]``."""
        session = await self._session_factory()
        try:
            await self._open_search(session, location)
            for _ in range(page_index):
                if not await self._next_page(session):
                    return []
            return await session.extract(self.parse_search_page)
        except Exception as e:
            logger.error(
                "Search page extraction failed",
                extra={"source": self.source.value, "location": location, "page": page_index, "error": str(e)},
            )
            return []
        finally:
            await self._close(session)

    async def fetch_detail(self, url: str) -> DetailFields:
        """Scrape description, job type, skills and salary from a listing page."""
        session = await self._session_factory()
        try:
            await session.navigate(url, self.navigation_timeout_ms)
            await self._wait_for(session, self.description_selector, url)
            return await session.extract(self.parse_detail)
        except Exception as e:
            logger.error(
                "Error scraping job details",
                extra={"source": self.source.value, "url": url, "error": str(e)},
            )
            return DetailFields.empty()
        finally:
            await self._close(session)
