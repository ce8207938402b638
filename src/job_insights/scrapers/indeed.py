"""Indeed job search extractor."""

from typing import Optional
from urllib.parse import quote_plus, urljoin

from bs4.element import Tag

from ..models import RawListing, Source
from .base import SEARCH_TERM, PageExtractor, element_text

DEFAULT_BASE_URL = "https://www.indeed.com"


class IndeedExtractor(PageExtractor):
    source = Source.INDEED
    results_selector = "#mosaic-jobResults"
    listing_selector = ".job_seen_beacon"
    next_page_selector = '[data-testid="pagination-page-next"]'
    description_selector = "#jobDescriptionText"

    def __init__(self, session_factory, *, base_url: str = DEFAULT_BASE_URL, **kwargs):
        super().__init__(session_factory, **kwargs)
        self.base_url = base_url.rstrip("/")

    @classmethod
    def from_settings(cls, settings, session_factory=None, **kwargs):
        kwargs.setdefault("base_url", settings.indeed_base_url)
        return super().from_settings(settings, session_factory, **kwargs)

    def build_search_url(self, location: str) -> str:
        return f"{self.base_url}/jobs?q={quote_plus(SEARCH_TERM)}&l={quote_plus(location or '')}"

    def _listing_url(self, element: Tag) -> str:
        link = element.select_one(".jcs-JobTitle")
        if link is None:
            return ""
        job_key = link.get("data-jk")
        if job_key:
            return f"{self.base_url}/viewjob?jk={job_key}"
        href = link.get("href")
        return urljoin(self.base_url + "/", href) if href else ""

    def parse_listing(self, element: Tag) -> Optional[RawListing]:
        title = element_text(element, ".jobTitle span")
        company = element_text(element, "[data-testid='company-name']")
        if not (title and company):
            return None

        return RawListing(
            title=title,
            company=company,
            location=self.default_location(element_text(element, "[data-testid='text-location']")),
            url=self._listing_url(element),
            salary=element_text(element, ".salary-snippet-container") or None,
            source=self.source,
        )
