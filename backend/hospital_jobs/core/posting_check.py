"""
Content check for a fetched posting page.

A URL that passes the job-link validator and answers 200 can still be a
soft 404, a listing index or a news article. This check looks at the page
text and keeps it only when it reads like one posting:
  - no "page not found" marker
  - no listing-page heading or title
  - at least one role keyword
  - some way to apply
  - enough markup to hold a description
  - at least MIN_STRUCTURE_HITS posting section headings
"""

from __future__ import annotations

import re
from typing import Iterable, Optional, Tuple

SOFT_404_MARKERS = (
    "seite nicht gefunden",
    "page not found",
    "fehler 404",
    "error 404",
    "<title>404",
    "diese stelle ist nicht mehr verfügbar",
    "stellenanzeige ist abgelaufen",
)

LISTING_PAGE_MARKERS = (
    re.compile(r"<title>\s*(?:karriere|stellenangebote|jobs|offene stellen)\s*</title>", re.I),
    re.compile(r"<h1[^>]*>\s*(?:karriere|stellenangebote|offene stellen)\s*</h1>", re.I),
    re.compile(r"unsere stellenangebote", re.I),
    re.compile(r"alle offenen stellen", re.I),
)

APPLY_MARKERS = (
    "bewerben",
    "bewerbung",
    "bewerbungsformular",
    "apply",
    "application",
    "mailto:",
)

STRUCTURE_MARKERS = (
    "aufgaben",
    "anforderungen",
    "qualifikation",
    "ihr profil",
    "wir bieten",
    "benefits",
    "tätigkeiten",
    "verantwortung",
)

# Used when no role vocabulary is configured.
DEFAULT_POSTING_KEYWORDS = ("arzt", "ärztin", "stelle", "m/w/d")

MIN_PAGE_CHARS = 2000
MIN_STRUCTURE_HITS = 2


def check_posting_page(html: str, keywords: Iterable[str] = ()) -> Tuple[bool, Optional[str]]:
    """(True, None) when ``html`` reads like a single posting, else (False, reason)."""
    text = (html or "").lower()

    if any(m in text for m in SOFT_404_MARKERS):
        return False, "not_found_page"
    if any(rx.search(text) for rx in LISTING_PAGE_MARKERS):
        return False, "listing_page"

    vocab = [k.strip().lower() for k in keywords if k and k.strip()] or list(DEFAULT_POSTING_KEYWORDS)
    if not any(k in text for k in vocab):
        return False, "no_role_keyword"
    if not any(m in text for m in APPLY_MARKERS):
        return False, "no_apply_mechanism"
    if len(text) < MIN_PAGE_CHARS:
        return False, "too_short"
    if sum(1 for m in STRUCTURE_MARKERS if m in text) < MIN_STRUCTURE_HITS:
        return False, "no_posting_structure"
    return True, None
