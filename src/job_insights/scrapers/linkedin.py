"""LinkedIn public job search extractor."""

from typing import Optional
from urllib.parse import quote

from bs4 import BeautifulSoup
from bs4.element import Tag

from ..models import JobType, RawListing, Source
from .base import SEARCH_TERM, PageExtractor, element_text
from .keywords import detect_job_type, match_job_type

SEARCH_URL = "https://www.linkedin.com/jobs/search/"


class LinkedInExtractor(PageExtractor):
    source = Source.LINKEDIN
    results_selector = ".jobs-search__results-list"
    listing_selector = ".jobs-search__results-list > li"
    next_page_selector = ".artdeco-pagination__button--next:not(.artdeco-button--disabled)"
    description_selector = ".description__text"

    def build_search_url(self, location: str) -> str:
        # f_E=1,2 internship + entry level, f_JT=F full-time
        return (
            f"{SEARCH_URL}?keywords={quote(SEARCH_TERM)}"
            f"&location={quote(location or '', safe='')}&f_E=1%2C2&f_JT=F"
        )

    def parse_listing(self, element: Tag) -> Optional[RawListing]:
        title = element_text(element, ".base-search-card__title")
        company = element_text(element, ".base-search-card__subtitle")
        link = element.select_one("a[href]")
        if not (title and company and link):
            return None

        return RawListing(
            title=title,
            company=company,
            location=self.default_location(element_text(element, ".job-search-card__location")),
            url=link["href"].strip(),
            salary=element_text(element, ".job-search-card__salary-info") or None,
            source=self.source,
        )

    def _criteria(self, soup: BeautifulSoup) -> dict:
        criteria = {}
        for item in soup.select(".description__job-criteria-item"):
            label = element_text(item, ".description__job-criteria-subheader")
            value = element_text(item, ".description__job-criteria-text")
            if label:
                criteria[label] = value
        return criteria

    def classify_job_type(self, soup: BeautifulSoup, page_text: str) -> JobType:
        for label, value in self._criteria(soup).items():
            if "Employment type" in label:
                job_type = match_job_type(value)
                if job_type:
                    return job_type
        return detect_job_type(page_text)

    def parse_detail_salary(self, soup: BeautifulSoup) -> Optional[str]:
        for label, value in self._criteria(soup).items():
            if ("Salary" in label or "Compensation" in label) and value:
                return value
        return element_text(soup, ".compensation__salary") or None
