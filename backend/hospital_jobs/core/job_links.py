"""
URL heuristics for job postings and job listing pages.

Everything here is a pure function over strings backed by pattern tables.
The tables are the part that needs tuning when a hospital uses a URL scheme
nobody anticipated: extend a table, leave the control flow alone.
"""

from __future__ import annotations

import re
from typing import Optional
from urllib.parse import urlparse

from hospital_jobs.core.text import clean

# -------------------------
# Job posting URLs
# -------------------------

# A single match is enough: these carry an id or a platform detail shape.
JOB_ID_PATTERNS = (
    re.compile(r"/(?:job|stelle|position|vacancy)[/-]?\d+", re.I),
    re.compile(r"/(?:anzeige|detail|view)[/-]?\d+", re.I),
    re.compile(r"/(?:assistenzarzt|assistenzaerztin|arzt|facharzt|oberarzt)[/-][a-z0-9-]+", re.I),
    re.compile(r"softgarden\.(?:io|de)/(?:[^?#]*/)?jobs?/\d+", re.I),
    re.compile(r"personio\.(?:de|com)/job/\d+", re.I),
    re.compile(r"rexx[^?#]*/jobs?/[^/?#]+", re.I),
    re.compile(r"successfactors.*jobreq", re.I),
    re.compile(r"xing\.com/jobs/[^/?#]+-\d+", re.I),
    re.compile(r"[?&](?:jobid|job_id|stellenid|jobadid)=\d+", re.I),
)

# Sections that host postings; a URL inside one counts only when its last
# path segment is specific (see _has_specific_tail).
JOB_SECTION = re.compile(
    r"/(?:stellen?|stellenangebote?|stellenmarkt|jobs?|positions?|vacanc(?:y|ies)|karriere)/[^?#]+",
    re.I,
)

# Index / listing / info pages that are never a single posting.
JOB_URL_BLACKLIST = (
    re.compile(r"/karriere/?$", re.I),
    re.compile(r"/jobs/?$", re.I),
    re.compile(r"/stellenmarkt/?$", re.I),
    re.compile(r"/(?:offene|aktuelle|alle|unsere)-(?:stellen(?:angebote)?|jobs)(?:\.html?|\.php)?/?$", re.I),
    re.compile(r"/(?:stellenb(?:oe|ö)rse|jobb(?:oe|ö)rse|stellenangebote|stellenausschreibungen)(?:\.html?|\.php)?/?$", re.I),
    re.compile(r"/career/?$", re.I),
    re.compile(r"/bewerbung(?:en)?/?$", re.I),
    re.compile(r"/online-bewerbung", re.I),
    re.compile(r"/bewerbungsformular", re.I),
    re.compile(r"/ueber-uns", re.I),
    re.compile(r"/kontakt", re.I),
    re.compile(r"/(?:news|blog|aktuelles|presse)/", re.I),
    re.compile(r"/(?:abteilungen|departments|fachbereiche)/?$", re.I),
    re.compile(r"/(?:benefits|vorteile|warum-wir|why-join)", re.I),
)

_DIGITS = re.compile(r"\d{2,}")
_SLUG = re.compile(r"^[a-z0-9äöüß]+(?:[-_][a-z0-9äöüß]+)+$", re.I)
_EXT = re.compile(r"\.(?:html?|php|aspx?|jsp)$", re.I)


def _has_specific_tail(path: str) -> bool:
    segments = [s for s in (path or "").split("/") if s]
    if not segments:
        return False
    tail = _EXT.sub("", segments[-1])
    if _DIGITS.search(tail):
        return True
    return len(tail) >= 8 and bool(_SLUG.match(tail))


def _parse_http(url: str):
    try:
        p = urlparse((url or "").strip())
    except ValueError:
        return None
    if p.scheme not in ("http", "https") or not p.netloc:
        return None
    return p


def is_blacklisted(url: str) -> bool:
    p = _parse_http(url)
    if p is None:
        return True
    path = p.path or "/"
    return any(rx.search(path) for rx in JOB_URL_BLACKLIST)


def looks_like_job_posting_url(url: str) -> bool:
    """True if ``url`` plausibly points at one job posting rather than an index.

    A pre-filter only: it trades a few misses on unusual URL schemes for far
    fewer wasted fetches.
    """
    p = _parse_http(url)
    if p is None or is_blacklisted(url):
        return False

    full = f"{p.netloc}{p.path}"
    if p.query:
        full += "?" + p.query

    if any(rx.search(full) for rx in JOB_ID_PATTERNS):
        return True

    if JOB_SECTION.search(p.path or "") and _has_specific_tail(p.path):
        return True

    return False


# -------------------------
# Listing (career) page links
# -------------------------

# Anchor text vocabulary, best first. Compared after normalization + lowercasing.
LISTING_LINK_TEXTS = (
    "stellenangebote",
    "offene stellen",
    "aktuelle stellen",
    "stellenmarkt",
    "stellenbörse",
    "jobbörse",
    "jobs",
    "karriere",
)

LISTING_PATH = re.compile(
    r"^/(?:[a-z]{2}/)?(?:karriere/|career/|jobs-karriere/)?"
    r"(?:stellenangebote|(?:offene|aktuelle|alle)-stellen(?:angebote)?|stellenmarkt|jobboerse|jobs|karriere)(?:[/.?#-]|$)",
    re.I,
)

_SKIP_SCHEMES = ("mailto:", "tel:", "javascript:", "data:")


def is_fetchable_href(href: str) -> bool:
    h = (href or "").strip().lower()
    if not h or h.startswith("#"):
        return False
    return not h.startswith(_SKIP_SCHEMES)


def listing_text_rank(anchor_text: str) -> Optional[int]:
    """Rank of the vocabulary entry found in ``anchor_text`` (0 is best)."""
    t = clean(anchor_text).lower()
    if not t or len(t) > 60:
        return None
    for i, word in enumerate(LISTING_LINK_TEXTS):
        if word in t:
            return i
    return None


def is_listing_path(url: str) -> bool:
    p = _parse_http(url)
    if p is None:
        return False
    return bool(LISTING_PATH.search(p.path or "/"))
