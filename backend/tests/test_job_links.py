# backend/tests/test_job_links.py
import pytest

from hospital_jobs.core.job_links import (
    is_fetchable_href,
    is_listing_path,
    listing_text_rank,
    looks_like_job_posting_url,
)


@pytest.mark.parametrize(
    "url",
    [
        "https://karriere.charite.de/stellenangebote/detail/6756",
        "https://www.xing.com/jobs/kaiserslautern-assistenzarzt-neurologie-151144358",
        "https://www.klinikum.de/jobs/assistenzarzt-innere-medizin",
        "https://www.klinikum.de/stelle-1234",
        "https://klinikum.softgarden.io/job/4711/assistenzarzt",
        "https://acme.jobs.personio.de/job/987",
        "https://www.klinikum.de/karriere/index.php?jobid=8812",
    ],
)
def test_job_posting_urls(url):
    assert looks_like_job_posting_url(url) is True


@pytest.mark.parametrize(
    "url",
    [
        "https://example.org/karriere/",
        "https://example.org/jobs/",
        "https://example.org/stellenangebote",
        "https://example.org/karriere/benefits",
        "https://example.org/kontakt",
        "https://example.org/news/neue-stelle-123",
        "https://example.org/online-bewerbung/12345",
        "https://www.xing.com/jobs/search",
        "https://klinikum.example/karriere/offene-stellen",
        "https://klinikum.example/karriere/aktuelle-stellenangebote/",
        "https://klinikum.example/jobs/alle-stellenangebote",
        "https://klinikum.example/karriere/stellenboerse.html",
        "https://acme.jobs.personio.de/job/",
        "https://jobs.rexx-systems.com/klinikum-nord/jobs/",
        "https://klinikum.softgarden.io/jobs",
        "https://example.org/impressum",
        "mailto:jobs@example.org",
        "",
    ],
)
def test_non_posting_urls(url):
    assert looks_like_job_posting_url(url) is False


def test_listing_text_rank_is_case_insensitive_and_trimmed():
    assert listing_text_rank("  Offene Stellen ") == listing_text_rank("offene stellen")
    assert listing_text_rank("STELLENANGEBOTE") == 0
    assert listing_text_rank("Impressum") is None
    assert listing_text_rank("") is None


@pytest.mark.parametrize(
    "url,expected",
    [
        ("https://h.de/stellenangebote", True),
        ("https://h.de/de/karriere/", True),
        ("https://h.de/karriere/stellenangebote.html", True),
        ("https://h.de/offene-stellen?fach=innere", True),
        ("https://h.de/karriere/aktuelle-stellenangebote/", True),
        ("https://h.de/impressum", False),
        ("https://h.de/jobsharing-modell", False),
    ],
)
def test_is_listing_path(url, expected):
    assert is_listing_path(url) is expected


def test_is_fetchable_href():
    assert is_fetchable_href("/jobs") is True
    assert is_fetchable_href("https://h.de/karriere") is True
    for href in ("", "#top", "mailto:a@b.de", "tel:+49301234", "javascript:void(0)", "data:text/plain,x"):
        assert is_fetchable_href(href) is False
