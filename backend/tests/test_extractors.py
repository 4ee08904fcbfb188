# backend/tests/test_extractors.py
import json

import pytest

from hospital_jobs.core.errors import FetchError
from hospital_jobs.core.extractors import STRATEGIES, api_endpoint, extract, jsonld_postings
from hospital_jobs.core.platforms import PlatformTag
from hospital_jobs.core.role_filter import RoleFilter

CARDS_HTML = """
<html><body>
<ul class="stellen">
  <li class="job-item">
    <a href="/stellenangebote/detail/101"><h3>Assistenzarzt Innere Medizin (m/w/d)</h3></a>
    <span class="location">Berlin</span>
  </li>
  <li class="job-item">
    <a href="/stellenangebote/detail/102">Mehr</a>
    <h3>Pflegefachkraft &amp; Praxisanleitung</h3>
  </li>
  <li class="job-item">
    <a href="/stellenangebote/detail/101">Duplikat</a>
    <h3>Assistenzarzt Innere Medizin (m/w/d)</h3>
  </li>
  <li class="job-item"><a href="/karriere/"><h3>Karriere bei uns</h3></a></li>
</ul>
</body></html>
"""

ANCHORS_HTML = """
<html><body>
  <p>Wir suchen:</p>
  <a href="/jobs/assistenzarzt-chirurgie-4711">Assistenzarzt <b>Chirurgie</b></a>
  <a href="/kontakt">Kontakt</a>
  <a href="/jobs/">Alle Jobs</a>
  <a href="mailto:bewerbung@klinikum.example">E-Mail</a>
</body></html>
"""

JSONLD_HTML = """
<html><head>
<script type="application/ld+json">
{"@context": "https://schema.org", "@type": "JobPosting", "title": "Oberarzt Kardiologie",
 "url": "https://klinikum.example/jobs/oberarzt-kardiologie-77",
 "hiringOrganization": {"@type": "Organization", "name": "Klinikum Nord"},
 "jobLocation": {"@type": "Place", "address": {"addressLocality": "Hamburg", "addressRegion": "HH"}}}
</script>
<script type="application/ld+json">[{"@type": "JobPosting", "title": "Ohne Link"}]</script>
</head><body></body></html>
"""


# ---------------------------------------------------------------------
# generic_html
# ---------------------------------------------------------------------
def test_generic_html_cards(fetcher):
    url = "https://klinikum.example/stellenangebote"
    fetcher.html(url, CARDS_HTML)

    jobs = extract(url, PlatformTag.GENERIC_HTML, fetcher, company="Klinikum Test")

    assert [j.link for j in jobs] == [
        "https://klinikum.example/stellenangebote/detail/101",
        "https://klinikum.example/stellenangebote/detail/102",
    ]
    first, second = jobs
    assert first.title == "Assistenzarzt Innere Medizin (m/w/d)"
    assert first.location == "Berlin"
    assert first.company == "Klinikum Test"
    assert second.title == "Pflegefachkraft & Praxisanleitung"
    assert second.location is None
    assert all(j.guid == j.link for j in jobs)


def test_generic_html_anchor_fallback(fetcher):
    url = "https://klinikum.example/karriere"
    fetcher.html(url, ANCHORS_HTML)

    jobs = extract(url, PlatformTag.GENERIC_HTML, fetcher, company="Klinikum")

    assert len(jobs) == 1
    assert jobs[0].title == "Assistenzarzt Chirurgie"
    assert jobs[0].guid == "https://klinikum.example/jobs/assistenzarzt-chirurgie-4711"


def test_guid_is_stable_across_extractions(fetcher):
    url = "https://klinikum.example/stellenangebote"
    fetcher.html(url, CARDS_HTML)

    first = [j.guid for j in extract(url, PlatformTag.GENERIC_HTML, fetcher)]
    second = [j.guid for j in extract(url, PlatformTag.GENERIC_HTML, fetcher)]
    assert first == second


def test_career_page_failure_raises(fetcher):
    url = "https://klinikum.example/stellenangebote"
    fetcher.html(url, "<h1>Fehler</h1>", status=503)

    with pytest.raises(FetchError):
        extract(url, PlatformTag.GENERIC_HTML, fetcher)


# ---------------------------------------------------------------------
# jsonld / xing
# ---------------------------------------------------------------------
def test_jsonld_postings(fetcher):
    url = "https://klinikum.example/karriere"
    fetcher.html(url, JSONLD_HTML)

    jobs = extract(url, PlatformTag.JSONLD, fetcher, company="Fallback GmbH")

    assert len(jobs) == 1
    job = jobs[0]
    assert job.title == "Oberarzt Kardiologie"
    assert job.link == "https://klinikum.example/jobs/oberarzt-kardiologie-77"
    assert job.company == "Klinikum Nord"
    assert job.location == "Hamburg, HH"


def test_xing_anchor_fallback(fetcher):
    url = "https://www.xing.com/jobs/search?keywords=klinikum"
    fetcher.html(
        url,
        """
        <a href="/jobs/kaiserslautern-assistenzarzt-neurologie-151144358"
           aria-label="Assistenzarzt Neurologie (m/w/d)"><span></span></a>
        <a href="/jobs/search?page=2">Weiter</a>
        """,
    )

    jobs = extract(url, PlatformTag.XING, fetcher, company="Westpfalz-Klinikum")

    assert len(jobs) == 1
    assert jobs[0].title == "Assistenzarzt Neurologie (m/w/d)"
    assert jobs[0].link == "https://www.xing.com/jobs/kaiserslautern-assistenzarzt-neurologie-151144358"


# ---------------------------------------------------------------------
# Structured platforms
# ---------------------------------------------------------------------
def test_softgarden_api(fetcher):
    fetcher.json(
        "https://klinikum.softgarden.io/api/job-offers",
        json.dumps(
            [
                {"id": 11, "title": "Assistenzarzt Neurologie", "location": "Kassel"},
                {"id": 12, "title": "Facharzt Radiologie", "url": "https://klinikum.softgarden.io/job/12/facharzt"},
                {"title": "Ohne Kennung"},
            ]
        ),
    )

    jobs = extract("https://klinikum.softgarden.io/de/vacancies", PlatformTag.SOFTGARDEN, fetcher, company="Klinikum")

    assert [j.link for j in jobs] == [
        "https://klinikum.softgarden.io/job/11",
        "https://klinikum.softgarden.io/job/12/facharzt",
    ]
    assert jobs[0].location == "Kassel"
    assert "https://klinikum.softgarden.io/de/vacancies" not in fetcher.calls


def test_softgarden_404_falls_back_to_generic_html(fetcher):
    career_url = "https://karriere.klinik-sued.example/stellen"
    endpoint = api_endpoint(career_url, PlatformTag.SOFTGARDEN)
    assert endpoint.url == "https://klinik-sued.softgarden.io/api/job-offers"

    fetcher.json(endpoint.url, '{"error": "not found"}', status=404)
    fetcher.html(career_url, '<a href="/stellen/detail/55">Assistenzärztin Gynäkologie</a>')

    jobs = extract(career_url, PlatformTag.SOFTGARDEN, fetcher, company="Klinik Süd")

    assert len(jobs) == 1
    assert jobs[0].link == "https://karriere.klinik-sued.example/stellen/detail/55"
    assert fetcher.calls == [endpoint.url, career_url]


def test_non_json_endpoint_falls_back(fetcher):
    career_url = "https://jobs.rexx-systems.com/klinikum-nord/"
    fetcher.html("https://jobs.rexx-systems.com/api/joboffers", "<html>login</html>")
    fetcher.html(career_url, '<a href="/klinikum-nord/job/assistenzarzt-urologie-991">Assistenzarzt Urologie</a>')

    jobs = extract(career_url, PlatformTag.REXX, fetcher)

    assert [j.title for j in jobs] == ["Assistenzarzt Urologie"]


def test_personio_search_json(fetcher):
    fetcher.json(
        "https://acme-klinik.jobs.personio.de/search.json",
        json.dumps([{"id": 987, "name": "Arzt in Weiterbildung", "office": "München"}]),
    )

    jobs = extract("https://acme-klinik.jobs.personio.de/", PlatformTag.PERSONIO, fetcher, company="ACME Klinik")

    assert len(jobs) == 1
    assert jobs[0].link == "https://acme-klinik.jobs.personio.de/job/987"
    assert jobs[0].title == "Arzt in Weiterbildung"
    assert jobs[0].location == "München"


def test_successfactors_needs_company_parameter():
    assert api_endpoint("https://career5.successfactors.eu/career", PlatformTag.SUCCESSFACTORS) is None
    ep = api_endpoint("https://career5.successfactors.eu/career?company=klinikumP", PlatformTag.SUCCESSFACTORS)
    assert "company=klinikumP" in ep.url and "resultType=JSON" in ep.url


def test_nested_posting_list(fetcher):
    fetcher.json(
        "https://klinikum.softgarden.io/api/job-offers",
        json.dumps({"data": {"jobOffers": [{"id": 5, "jobTitle": "Oberärztin Anästhesie", "location": {"city": "Fulda"}}]}}),
    )

    jobs = extract("https://klinikum.softgarden.io/", PlatformTag.SOFTGARDEN, fetcher)

    assert [(j.title, j.location) for j in jobs] == [("Oberärztin Anästhesie", "Fulda")]


# ---------------------------------------------------------------------
# Dispatch / filtering
# ---------------------------------------------------------------------
def test_every_platform_has_a_strategy():
    assert set(STRATEGIES) == set(PlatformTag)


def test_unknown_platform_yields_nothing(fetcher):
    assert extract("https://klinikum.example/", PlatformTag.UNKNOWN, fetcher) == []
    assert fetcher.calls == []


def test_role_filter_applies_after_extraction(fetcher):
    url = "https://klinikum.example/stellenangebote"
    fetcher.html(url, CARDS_HTML)

    jobs = extract(url, PlatformTag.GENERIC_HTML, fetcher, role_filter=RoleFilter(["assistenzarzt"]))

    assert [j.title for j in jobs] == ["Assistenzarzt Innere Medizin (m/w/d)"]


def test_fragment_links_share_one_guid(fetcher):
    url = "https://klinikum.example/stellenangebote"
    fetcher.html(
        url,
        """
        <a href="/stellenangebote/detail/1">Assistenzarzt Pädiatrie</a>
        <a href="/stellenangebote/detail/1#bewerben">Assistenzarzt Pädiatrie</a>
        """,
    )

    jobs = extract(url, PlatformTag.GENERIC_HTML, fetcher)

    assert [j.guid for j in jobs] == ["https://klinikum.example/stellenangebote/detail/1"]


def test_jsonld_non_string_fields(fetcher):
    url = "https://klinikum.example/karriere"
    fetcher.html(
        url,
        """
        <script type="application/ld+json">
        [{"@type": "JobPosting", "title": "Assistenzarzt Chirurgie", "url": ["https://klinikum.example/jobs/arzt-1"]},
         {"@type": "JobPosting", "title": "Facharzt Urologie", "url": {"@id": "https://klinikum.example/jobs/arzt-2"}},
         {"@type": "JobPosting", "title": "Oberarzt", "url": 42},
         {"@type": "JobPosting", "title": {"de": "Arzt"}, "url": "https://klinikum.example/jobs/arzt-3"}]
        </script>
        """,
    )

    jobs = jsonld_postings(fetcher.get(url).text, url)

    assert [(j.title, j.link) for j in jobs] == [
        ("Assistenzarzt Chirurgie", "https://klinikum.example/jobs/arzt-1"),
        ("Facharzt Urologie", "https://klinikum.example/jobs/arzt-2"),
    ]
