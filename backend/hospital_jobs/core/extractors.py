"""
Job extraction: one strategy per platform tag behind a single dispatch table.

Every strategy returns raw postings; ``extract`` normalizes them the same
way regardless of where they came from:
  - text fields run through ``clean``
  - postings without title or link are dropped
  - ``guid`` is the absolute posting link, fragment removed
  - duplicates (same guid) keep the first occurrence

Structured platforms (softgarden, personio, rexx, successfactors) are tried
through their JSON endpoint first. A non-2xx or non-JSON answer means the
platform guess was wrong: the career URL is then scraped as generic HTML.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional
from urllib.parse import parse_qs, urldefrag, urljoin, urlparse

from bs4 import BeautifulSoup

from hospital_jobs.core.errors import EndpointMiss, FetchError
from hospital_jobs.core.http import ACCEPT_JSON, Page, PageFetcher
from hospital_jobs.core.job_links import is_fetchable_href, looks_like_job_posting_url
from hospital_jobs.core.models import JobRecord
from hospital_jobs.core.platforms import PlatformTag, iter_ld_json_nodes
from hospital_jobs.core.text import clean

logger = logging.getLogger("extractor")


@dataclass
class RawPosting:
    title: Any
    link: str
    location: Any = None
    company: Any = None


# -------------------------
# Structured endpoints
# -------------------------


@dataclass(frozen=True)
class ApiEndpoint:
    url: str
    # Posting link for entries without their own URL; "{id}" is substituted.
    link_template: Optional[str] = None


# Hostname labels that never name a tenant.
GENERIC_HOST_LABELS = {"www", "karriere", "jobs", "job", "career", "careers", "stellen"}

POSTING_LIST_KEYS = ("jobOffers", "results", "jobs", "items", "data", "positions", "d")
TITLE_KEYS = ("title", "name", "jobTitle")
LINK_KEYS = ("url", "applyUrl", "link", "jobUrl", "externalUrl")
ID_KEYS = ("id", "jobId", "jobReqId", "jobDbPKID")
LOCATION_KEYS = ("location", "office", "city")
LOCATION_NAME_KEYS = ("city", "name", "addressLocality")


def _tenant(host: str, platform_domain: str) -> Optional[str]:
    host = (host or "").lower()
    if host.endswith("." + platform_domain):
        return host.split(".")[0]
    for label in host.split("."):
        if label and label not in GENERIC_HOST_LABELS:
            return label
    return None


def _softgarden_endpoint(p) -> Optional[ApiEndpoint]:
    tenant = _tenant(p.hostname or "", "softgarden.io")
    if not tenant:
        return None
    return ApiEndpoint(
        url=f"https://{tenant}.softgarden.io/api/job-offers",
        link_template=f"https://{tenant}.softgarden.io/job/{{id}}",
    )


def _personio_endpoint(p) -> Optional[ApiEndpoint]:
    host = (p.hostname or "").lower()
    if host.endswith((".personio.de", ".personio.com")):
        tenant = host.split(".")[0]
    else:
        tenant = _tenant(host, "personio.de")
    if not tenant:
        return None
    return ApiEndpoint(
        url=f"https://{tenant}.jobs.personio.de/search.json",
        link_template=f"https://{tenant}.jobs.personio.de/job/{{id}}",
    )


def _rexx_endpoint(p) -> Optional[ApiEndpoint]:
    origin = f"{p.scheme}://{p.netloc}"
    return ApiEndpoint(url=f"{origin}/api/joboffers", link_template=f"{origin}/jobs/{{id}}")


def _successfactors_endpoint(p) -> Optional[ApiEndpoint]:
    company = (parse_qs(p.query).get("company") or [""])[0].strip()
    if not company:
        return None
    origin = f"{p.scheme}://{p.netloc}"
    return ApiEndpoint(
        url=f"{origin}/career?company={company}&career_ns=job_listing_summary&resultType=JSON",
        link_template=f"{origin}/career?company={company}&career_job_req_id={{id}}",
    )


ENDPOINT_BUILDERS: Dict[PlatformTag, Callable[[Any], Optional[ApiEndpoint]]] = {
    PlatformTag.SOFTGARDEN: _softgarden_endpoint,
    PlatformTag.PERSONIO: _personio_endpoint,
    PlatformTag.REXX: _rexx_endpoint,
    PlatformTag.SUCCESSFACTORS: _successfactors_endpoint,
}


def api_endpoint(career_url: str, platform: PlatformTag) -> Optional[ApiEndpoint]:
    builder = ENDPOINT_BUILDERS.get(platform)
    if builder is None:
        return None
    p = urlparse((career_url or "").strip())
    if p.scheme not in ("http", "https") or not p.netloc:
        return None
    return builder(p)


def _posting_list(data: Any, depth: int = 0) -> Optional[List[Any]]:
    if isinstance(data, list):
        return data
    if not isinstance(data, dict) or depth > 2:
        return None
    for key in POSTING_LIST_KEYS:
        found = _posting_list(data.get(key), depth + 1) if key in data else None
        if found is not None:
            return found
    return None


def _first(node: Dict[str, Any], keys: Iterable[str]) -> Any:
    for k in keys:
        v = node.get(k)
        if v not in (None, "", [], {}):
            return v
    return None


def _location_text(value: Any) -> Optional[str]:
    if isinstance(value, list):
        value = value[0] if value else None
    if isinstance(value, dict):
        address = value.get("address")
        if isinstance(address, dict):
            value = address
        value = _first(value, LOCATION_NAME_KEYS)
    if value is None or isinstance(value, (dict, list)):
        return None
    return str(value)


def map_structured_postings(data: Any, endpoint: ApiEndpoint) -> List[RawPosting]:
    """Map a platform JSON payload to raw postings, tolerating shape drift."""
    items = _posting_list(data)
    if items is None:
        raise EndpointMiss(f"no posting list in response from {endpoint.url}")

    out: List[RawPosting] = []
    for node in items:
        if not isinstance(node, dict):
            continue
        link = _first(node, LINK_KEYS)
        if not link and endpoint.link_template:
            job_id = _first(node, ID_KEYS)
            if job_id is not None:
                link = endpoint.link_template.format(id=job_id)
        if not isinstance(link, str) or not link.strip():
            continue
        out.append(
            RawPosting(
                title=_first(node, TITLE_KEYS),
                link=urljoin(endpoint.url, link.strip()),
                location=_location_text(_first(node, LOCATION_KEYS)),
            )
        )
    return out


def _fetch_structured(career_url: str, platform: PlatformTag, fetcher: PageFetcher) -> List[RawPosting]:
    endpoint = api_endpoint(career_url, platform)
    if endpoint is None:
        raise EndpointMiss(f"cannot derive {platform.value} endpoint from {career_url}")
    try:
        page = fetcher.get(endpoint.url, accept=ACCEPT_JSON)
    except FetchError as e:
        raise EndpointMiss(str(e)) from e
    return map_structured_postings(page.json(), endpoint)


# -------------------------
# HTML strategies
# -------------------------


def _fetch_html(url: str, fetcher: PageFetcher) -> Page:
    page = fetcher.get(url)
    if not page.ok:
        raise FetchError(url, f"HTTP {page.status}")
    return page


def _ld_location(node: Dict[str, Any]) -> Optional[str]:
    job_loc = node.get("jobLocation")
    if isinstance(job_loc, list):
        job_loc = job_loc[0] if job_loc else None
    if not isinstance(job_loc, dict):
        return None
    addr = job_loc.get("address") or {}
    if isinstance(addr, str):
        return addr
    if not isinstance(addr, dict):
        return None
    parts = [str(addr.get(k) or "").strip() for k in ("addressLocality", "addressRegion")]
    return ", ".join(p for p in parts if p) or None


def _ld_text(value: Any, *keys: str) -> Optional[str]:
    """A JSON-LD string value: a string, the first string of a list, or a named key of an object."""
    if isinstance(value, list):
        value = next((v for v in value if isinstance(v, (str, dict))), None)
    if isinstance(value, dict):
        value = next((value[k] for k in keys if isinstance(value.get(k), str)), None)
    if not isinstance(value, str) or not value.strip():
        return None
    return value.strip()


def jsonld_postings(html: str, base_url: str) -> List[RawPosting]:
    soup = BeautifulSoup(html or "", "html.parser")
    out: List[RawPosting] = []

    for s in soup.find_all("script", attrs={"type": "application/ld+json"}):
        try:
            data = json.loads(s.get_text(strip=True) or "{}")
        except ValueError:
            continue

        for node in iter_ld_json_nodes(data):
            t = node.get("@type")
            is_job = any(x == "JobPosting" for x in t) if isinstance(t, list) else t == "JobPosting"
            if not is_job:
                continue

            url = _ld_text(node.get("url"), "@id", "url")
            title = _ld_text(node.get("title")) or _ld_text(node.get("name"))
            if not url or not title:
                continue

            org = node.get("hiringOrganization")
            company = _ld_text(org, "name")
            out.append(
                RawPosting(
                    title=title,
                    link=urljoin(base_url, url),
                    location=_ld_location(node),
                    company=company,
                )
            )
    return out


# Repeating "job card" containers, most specific first. The first selector
# that yields valid postings wins.
CARD_SELECTORS = (
    ".job-listing",
    ".job-item",
    ".job-offer",
    ".vacancy",
    ".position",
    "article.job",
    "div.job-card",
    "tr.job-row",
    "li[class*='job']",
    "div[class*='stellenangebot']",
)
CARD_TITLE_SELECTORS = ".job-title, h2, h3, h4, .title, .position-title, strong"
CARD_LOCATION_SELECTORS = ".location, .job-location, .ort, .standort, [class*='location']"

# Anchor texts that label a button, not a position.
GENERIC_LINK_TEXTS = {
    "mehr",
    "mehr erfahren",
    "details",
    "weiterlesen",
    "zur stelle",
    "zum job",
    "jetzt bewerben",
    "bewerben",
    "read more",
    "apply",
}
MIN_TITLE_CHARS = 5


def _usable_title(text: str) -> bool:
    t = clean(text)
    return len(t) >= MIN_TITLE_CHARS and t.lower().rstrip(" .:>»") not in GENERIC_LINK_TEXTS


def _anchor_title(a) -> str:
    for candidate in (a.get_text(" "), a.get("aria-label"), a.get("title")):
        if candidate and _usable_title(candidate):
            return clean(candidate)
    return ""


def _job_link(href: str, base_url: str) -> Optional[str]:
    if not is_fetchable_href(href):
        return None
    url = urldefrag(urljoin(base_url, href.strip()))[0]
    return url if looks_like_job_posting_url(url) else None


def _card_postings(soup: BeautifulSoup, base_url: str) -> List[RawPosting]:
    for selector in CARD_SELECTORS:
        found: List[RawPosting] = []
        for card in soup.select(selector)[:500]:
            a = card if card.name == "a" else card.find("a", href=True)
            if a is None:
                continue
            link = _job_link(a.get("href") or "", base_url)
            if link is None:
                continue

            title = ""
            title_el = card.select_one(CARD_TITLE_SELECTORS)
            if title_el is not None and _usable_title(title_el.get_text(" ")):
                title = title_el.get_text(" ")
            if not title:
                title = _anchor_title(a)

            loc_el = card.select_one(CARD_LOCATION_SELECTORS)
            location = loc_el.get_text(" ") if loc_el is not None else None
            found.append(RawPosting(title=title, link=link, location=location))
        if found:
            return found
    return []


def _anchor_postings(soup: BeautifulSoup, base_url: str) -> List[RawPosting]:
    out: List[RawPosting] = []
    for a in soup.find_all("a", href=True):
        link = _job_link(a.get("href") or "", base_url)
        if link is None:
            continue
        out.append(RawPosting(title=_anchor_title(a), link=link))
    return out


def html_postings(html: str, base_url: str) -> List[RawPosting]:
    """Card containers first, then every job-shaped anchor on the page."""
    soup = BeautifulSoup(html or "", "html.parser")
    return _card_postings(soup, base_url) or _anchor_postings(soup, base_url)


_XING_JOB_HREF = re.compile(r"^(?:https?://(?:www\.)?xing\.com)?/jobs/[^/?#]+", re.I)


def xing_postings(html: str, base_url: str) -> List[RawPosting]:
    soup = BeautifulSoup(html or "", "html.parser")
    out: List[RawPosting] = []
    for a in soup.find_all("a", href=True):
        href = (a.get("href") or "").strip()
        if not _XING_JOB_HREF.match(href):
            continue
        link = urljoin(base_url, href)
        if not looks_like_job_posting_url(link):
            continue
        title = a.get("aria-label") or _anchor_title(a)
        out.append(RawPosting(title=title, link=link))
    return out


# -------------------------
# Strategies
# -------------------------


def _generic_html(career_url: str, fetcher: PageFetcher) -> List[RawPosting]:
    page = _fetch_html(career_url, fetcher)
    return html_postings(page.text, page.url or career_url)


def _jsonld(career_url: str, fetcher: PageFetcher) -> List[RawPosting]:
    page = _fetch_html(career_url, fetcher)
    base = page.url or career_url
    return jsonld_postings(page.text, base) or html_postings(page.text, base)


def _xing(career_url: str, fetcher: PageFetcher) -> List[RawPosting]:
    page = _fetch_html(career_url, fetcher)
    base = page.url or career_url
    return jsonld_postings(page.text, base) or xing_postings(page.text, base)


def _structured(platform: PlatformTag) -> Callable[[str, PageFetcher], List[RawPosting]]:
    def strategy(career_url: str, fetcher: PageFetcher) -> List[RawPosting]:
        try:
            return _fetch_structured(career_url, platform, fetcher)
        except EndpointMiss as e:
            logger.info("[extractor] %s endpoint miss for %s (%s); falling back to generic_html", platform.value, career_url, e)
        return _generic_html(career_url, fetcher)

    return strategy


def _nothing(career_url: str, fetcher: PageFetcher) -> List[RawPosting]:
    return []


STRATEGIES: Dict[PlatformTag, Callable[[str, PageFetcher], List[RawPosting]]] = {
    PlatformTag.SOFTGARDEN: _structured(PlatformTag.SOFTGARDEN),
    PlatformTag.PERSONIO: _structured(PlatformTag.PERSONIO),
    PlatformTag.REXX: _structured(PlatformTag.REXX),
    PlatformTag.SUCCESSFACTORS: _structured(PlatformTag.SUCCESSFACTORS),
    PlatformTag.XING: _xing,
    PlatformTag.JSONLD: _jsonld,
    PlatformTag.GENERIC_HTML: _generic_html,
    PlatformTag.UNKNOWN: _nothing,
}


# -------------------------
# Public API
# -------------------------


def normalize_postings(raw: Iterable[RawPosting], company: str = "") -> List[JobRecord]:
    out: List[JobRecord] = []
    seen = set()
    for r in raw:
        title = clean(r.title)
        link = urldefrag((r.link or "").strip())[0]
        if not title or not link.startswith(("http://", "https://")):
            continue
        if link in seen:
            continue
        seen.add(link)
        out.append(
            JobRecord(
                title=title,
                link=link,
                company=clean(r.company) or clean(company),
                location=clean(r.location) or None,
                guid=link,
            )
        )
    return out


def extract(
    career_url: str,
    platform: PlatformTag,
    fetcher: PageFetcher,
    company: str = "",
    role_filter=None,
) -> List[JobRecord]:
    """Extract normalized postings from ``career_url``.

    Raises FetchError when the career page itself cannot be fetched; the
    caller records that against the hospital.
    """
    strategy = STRATEGIES[platform]
    records = normalize_postings(strategy(career_url, fetcher), company=company)
    if role_filter is not None:
        records = role_filter.apply(records)
    logger.debug("[extractor] %s platform=%s postings=%s", career_url, platform.value, len(records))
    return records
