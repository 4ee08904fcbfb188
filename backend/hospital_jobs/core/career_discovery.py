"""
Career page discovery (bounded: landing page + at most one listing page).

Given a hospital's root website, find the page that lists its open
positions and classify the platform behind it.

Cost per hospital is fixed:
  - one fetch of the landing page
  - at most one fetch of the best listing-page candidate

"Nothing there" and "something broke" are different outcomes
(``not_found`` vs ``error``); both leave the hospital eligible for a later
batch, only ``found`` writes a career URL.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple
from urllib.parse import urldefrag, urljoin

from bs4 import BeautifulSoup

from hospital_jobs.core.errors import FetchError
from hospital_jobs.core.http import PageFetcher
from hospital_jobs.core.job_links import (
    is_fetchable_href,
    is_listing_path,
    listing_text_rank,
    looks_like_job_posting_url,
)
from hospital_jobs.core.models import DiscoveryResult, Hospital
from hospital_jobs.core.platforms import PlatformTag, classify, has_job_posting_ld, match_signature
from hospital_jobs.core.text import clean

logger = logging.getLogger("discovery")


# -------------------------
# Link scanning
# -------------------------


@dataclass
class LinkScan:
    job_links: List[str]
    listing_candidates: List[str]


def _anchor_text(a) -> str:
    text = clean(a.get_text(" "))
    if not text:
        text = clean(a.get("aria-label") or a.get("title") or "")
    return text


def _candidate_rank(url: str, text: str) -> Optional[Tuple[int, int]]:
    """Sort key for a listing-page candidate; None when the link is not one.

    Links pointing at a known recruiting platform come first, then links whose
    text and path both look like a listing, then text only, then path only.
    """
    if match_signature(url) is not None:
        return (0, 0)
    text_rank = listing_text_rank(text)
    path_hit = is_listing_path(url)
    if text_rank is not None and path_hit:
        return (1, text_rank)
    if text_rank is not None:
        return (2, text_rank)
    if path_hit:
        return (3, 0)
    return None


def scan_links(html: str, base_url: str) -> LinkScan:
    """Resolve every anchor on a page and sort it into job links / listing candidates."""
    soup = BeautifulSoup(html or "", "html.parser")

    job_links: List[str] = []
    ranked: List[Tuple[Tuple[int, int], int, str]] = []
    seen = set()

    base = urldefrag(base_url)[0]
    for i, a in enumerate(soup.find_all("a", href=True)):
        href = (a.get("href") or "").strip()
        if not is_fetchable_href(href):
            continue
        url = urldefrag(urljoin(base_url, href))[0]
        if not url.startswith(("http://", "https://")) or url in seen:
            continue
        seen.add(url)

        if looks_like_job_posting_url(url):
            job_links.append(url)
            continue

        if url.rstrip("/") == base.rstrip("/"):
            continue
        rank = _candidate_rank(url, _anchor_text(a))
        if rank is not None:
            ranked.append((rank, i, url))

    ranked.sort()
    return LinkScan(job_links=job_links, listing_candidates=[u for _, _, u in ranked])


# -------------------------
# Public API
# -------------------------


def _confirms_listing(html: str, url: str) -> bool:
    if has_job_posting_ld(html):
        return True
    return bool(scan_links(html, url).job_links)


def discover(hospital: Hospital, fetcher: PageFetcher) -> DiscoveryResult:
    """Find ``hospital``'s career page.

    Network failures never raise: they come back as ``outcome="error"``.
    """
    website = (hospital.website or "").strip()
    if not website:
        return DiscoveryResult(outcome="not_found", detail="no_website")

    try:
        landing = fetcher.get(website)
    except FetchError as e:
        logger.warning("[discovery][%s] landing fetch failed: %s", hospital.name, e)
        return DiscoveryResult(outcome="error", detail=str(e))

    if not landing.ok:
        return DiscoveryResult(outcome="error", detail=f"HTTP {landing.status} from {website}")

    landing_url = landing.url or website
    scan = scan_links(landing.text, landing_url)
    found_on_landing = len(scan.job_links)

    listing_error = ""
    if scan.listing_candidates:
        candidate = scan.listing_candidates[0]
        try:
            listing = fetcher.get(candidate)
        except FetchError as e:
            listing = None
            listing_error = str(e)
            logger.warning("[discovery][%s] listing fetch failed: %s", hospital.name, e)

        if listing is not None:
            if listing.ok and _confirms_listing(listing.text, listing.url or candidate):
                return DiscoveryResult(
                    outcome="found",
                    career_url=candidate,
                    platform=classify(candidate, listing.text),
                    job_links_found_on_landing=found_on_landing,
                    detail="listing_link",
                )
            if not listing.ok:
                listing_error = f"HTTP {listing.status} from {candidate}"

    if found_on_landing:
        return DiscoveryResult(
            outcome="found",
            career_url=landing_url,
            platform=classify(landing_url, landing.text),
            job_links_found_on_landing=found_on_landing,
            detail="landing_page",
        )

    if listing_error:
        return DiscoveryResult(outcome="error", detail=listing_error)

    detail = "no_listing_link" if not scan.listing_candidates else "listing_unconfirmed"
    return DiscoveryResult(outcome="not_found", platform=PlatformTag.UNKNOWN, detail=detail)
