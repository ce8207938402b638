import pytest

from job_insights.models import DEFAULT_LOCATION, JobType, Source
from job_insights.scrapers.linkedin import LinkedInExtractor


@pytest.fixture
def extractor(fake_browser):
    return LinkedInExtractor(fake_browser(), page_settle_ms=0)


def test_search_url_targets_entry_level_full_time(extractor):
    url = extractor.build_search_url("United States")
    assert url.startswith("https://www.linkedin.com/jobs/search/?keywords=entry%20level")
    assert "location=United%20States" in url
    assert url.endswith("&f_E=1%2C2&f_JT=F")


def test_parse_search_page(extractor, linkedin_page):
    html = linkedin_page([
        {
            "title": "Junior Developer",
            "company": "Acme",
            "location": "Austin, TX",
            "url": "https://www.linkedin.com/jobs/view/1/?trk=x",
            "salary": "$60,000 - $70,000",
        },
        {"title": "Data Intern", "company": "Globex", "url": "https://www.linkedin.com/jobs/view/2/"},
    ])

    listings = extractor.parse_search_page(html)

    assert [l.title for l in listings] == ["Junior Developer", "Data Intern"]
    first, second = listings
    assert first.company == "Acme"
    assert first.location == "Austin, TX"
    assert first.salary == "$60,000 - $70,000"
    assert first.source == Source.LINKEDIN
    assert second.location == DEFAULT_LOCATION
    assert second.salary is None


def test_listing_without_company_or_link_is_skipped(extractor, linkedin_page):
    html = linkedin_page([
        {"title": "No Company", "url": "https://www.linkedin.com/jobs/view/3/"},
        {"title": "No Link", "company": "Initech"},
        {"title": "Complete", "company": "Initech", "url": "https://www.linkedin.com/jobs/view/4/"},
    ])
    assert [l.title for l in extractor.parse_search_page(html)] == ["Complete"]


def test_parse_detail_prefers_employment_type_criteria(extractor, linkedin_detail_html):
    details = extractor.parse_detail(linkedin_detail_html)
    assert details.description == "We need Python and SQL skills. Full-time role."
    assert details.job_type == JobType.INTERNSHIP
    assert details.skills == ["Python", "SQL"]
    assert details.salary is None


def test_parse_detail_reads_compensation(extractor):
    html = (
        "<html><body><div class='description__text'>Contract role</div>"
        "<div class='compensation__salary'>$25/hr</div></body></html>"
    )
    details = extractor.parse_detail(html)
    assert details.job_type == JobType.CONTRACT
    assert details.salary == "$25/hr"
