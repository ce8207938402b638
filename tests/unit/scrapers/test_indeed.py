import pytest

from job_insights.models import JobType, Source
from job_insights.scrapers.indeed import IndeedExtractor


@pytest.fixture
def extractor(fake_browser):
    return IndeedExtractor(fake_browser(), page_settle_ms=0)


def test_search_url(extractor):
    assert extractor.build_search_url("New York, NY") == (
        "https://www.indeed.com/jobs?q=entry+level&l=New+York%2C+NY"
    )


def test_custom_base_url(fake_browser):
    extractor = IndeedExtractor(fake_browser(), base_url="https://uk.indeed.com/")
    assert extractor.build_search_url("Remote").startswith("https://uk.indeed.com/jobs?")


def test_parse_search_page_builds_viewjob_urls(extractor, indeed_page):
    html = indeed_page([
        {"jk": "abc123", "title": "Support Analyst", "company": "Initech", "location": "Remote"},
        {"jk": "def456", "title": "QA Tester", "company": "Hooli"},
    ])

    listings = extractor.parse_search_page(html)

    assert [l.url for l in listings] == [
        "https://www.indeed.com/viewjob?jk=abc123",
        "https://www.indeed.com/viewjob?jk=def456",
    ]
    assert listings[0].title == "Support Analyst"
    assert listings[0].location == "Remote"
    assert listings[1].location == "Remote/Unspecified"
    assert all(l.source == Source.INDEED for l in listings)


def test_href_used_when_job_key_missing(extractor):
    html = (
        '<div class="job_seen_beacon"><h2 class="jobTitle">'
        '<a class="jcs-JobTitle" href="/rc/clk?jk=zzz"><span>Clerk</span></a></h2>'
        '<span data-testid="company-name">Vandelay</span></div>'
    )
    (listing,) = extractor.parse_search_page(html)
    assert listing.url == "https://www.indeed.com/rc/clk?jk=zzz"


def test_parse_detail(extractor, indeed_detail_html):
    details = extractor.parse_detail(indeed_detail_html)
    assert details.description == "Part-time remote position using React and Docker."
    assert details.job_type == JobType.PART_TIME
    assert details.skills == ["React", "Docker"]
