"""
Platform classification.

A hospital's career page is usually built on one of a handful of recruiting
backends. Knowing which one decides how postings are extracted: structured
endpoints are cheaper and more reliable than scraping markup, so
classification always runs before an extraction strategy is picked.

Rules are ordered and first match wins:
  1. hostname / path signatures (``PLATFORM_SIGNATURES``)
  2. an embedded ``application/ld+json`` block of type ``JobPosting``
  3. ``generic_html``
``unknown`` is reserved for URLs that cannot be parsed at all.
"""

from __future__ import annotations

import json
import re
from enum import Enum
from typing import Any, Iterable, List, Optional, Tuple
from urllib.parse import urlparse


class PlatformTag(str, Enum):
    SOFTGARDEN = "softgarden"
    PERSONIO = "personio"
    REXX = "rexx"
    SUCCESSFACTORS = "successfactors"
    XING = "xing"
    JSONLD = "jsonld"
    GENERIC_HTML = "generic_html"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Optional[str]) -> "PlatformTag":
        """Read a stored tag. Legacy values ('custom', 'cms', ...) map to generic_html."""
        v = (value or "").strip().lower()
        for tag in cls:
            if tag.value == v:
                return tag
        return cls.GENERIC_HTML


STRUCTURED_PLATFORMS = frozenset(
    {
        PlatformTag.SOFTGARDEN,
        PlatformTag.PERSONIO,
        PlatformTag.REXX,
        PlatformTag.SUCCESSFACTORS,
    }
)


# (tag, host pattern, path pattern). A signature matches when the host
# pattern matches the hostname and, if given, the path pattern matches the path.
PLATFORM_SIGNATURES: Tuple[Tuple[PlatformTag, re.Pattern, Optional[re.Pattern]], ...] = (
    (PlatformTag.SOFTGARDEN, re.compile(r"(^|\.)softgarden\.(io|de)$", re.I), None),
    (PlatformTag.PERSONIO, re.compile(r"(^|\.)personio\.(de|com)$", re.I), None),
    (PlatformTag.REXX, re.compile(r"(^|\.)rexx-systems\.com$|(^|[.-])rexx[.-]", re.I), None),
    (PlatformTag.SUCCESSFACTORS, re.compile(r"successfactors\.(eu|com)$|(^|\.)sapsf\.(eu|com)$", re.I), None),
    (PlatformTag.XING, re.compile(r"(^|\.)xing\.com$", re.I), re.compile(r"^/jobs(/|$)", re.I)),
)

_LD_JSON_BLOCK = re.compile(
    r"<script[^>]*type=[\"']application/ld\+json[\"'][^>]*>(.*?)</script>",
    re.I | re.S,
)


def _split_url(url: str) -> Optional[Tuple[str, str]]:
    u = (url or "").strip()
    if not u:
        return None
    try:
        p = urlparse(u)
    except ValueError:
        return None
    if p.scheme not in ("http", "https") or not p.hostname:
        return None
    return p.hostname.lower(), p.path or "/"


def match_signature(url: str) -> Optional[PlatformTag]:
    parts = _split_url(url)
    if not parts:
        return None
    host, path = parts
    for tag, host_re, path_re in PLATFORM_SIGNATURES:
        if not host_re.search(host):
            continue
        if path_re is not None and not path_re.search(path):
            continue
        return tag
    return None


def _is_job_posting_type(value: Any) -> bool:
    if isinstance(value, list):
        return any(v == "JobPosting" for v in value)
    return value == "JobPosting"


def iter_ld_json_nodes(data: Any) -> Iterable[dict]:
    """Yield every object of a parsed JSON-LD document, flattening @graph."""
    nodes: List[Any] = list(data) if isinstance(data, list) else [data]
    while nodes:
        node = nodes.pop(0)
        if not isinstance(node, dict):
            continue
        graph = node.get("@graph")
        if isinstance(graph, list):
            nodes.extend(graph)
        yield node


def has_job_posting_ld(html: str) -> bool:
    for m in _LD_JSON_BLOCK.finditer(html or ""):
        try:
            data = json.loads(m.group(1).strip() or "{}")
        except ValueError:
            continue
        if any(_is_job_posting_type(n.get("@type")) for n in iter_ld_json_nodes(data)):
            return True
    return False


def classify(url: str, sample_html: Optional[str] = None) -> PlatformTag:
    if _split_url(url) is None:
        return PlatformTag.UNKNOWN

    tag = match_signature(url)
    if tag is not None:
        return tag

    if sample_html and has_job_posting_ld(sample_html):
        return PlatformTag.JSONLD

    return PlatformTag.GENERIC_HTML
