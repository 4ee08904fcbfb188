from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Mapping, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from hospital_jobs.core.config import DEFAULT_USER_AGENT
from hospital_jobs.core.errors import EndpointMiss, FetchError


ACCEPT_HTML = "text/html,application/xhtml+xml;q=0.9,*/*;q=0.8"
ACCEPT_JSON = "application/json"


@dataclass
class Page:
    status: int
    url: str
    text: str = ""
    content_type: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def json(self) -> Any:
        """Parse the body as JSON or raise EndpointMiss."""
        if not self.ok:
            raise EndpointMiss(f"HTTP {self.status} from {self.url}")
        ctype = (self.content_type or "").lower()
        if ctype and "json" not in ctype and "javascript" not in ctype and "text/plain" not in ctype:
            raise EndpointMiss(f"non-JSON content type {ctype!r} from {self.url}")
        try:
            return json.loads(self.text or "")
        except ValueError as e:
            preview = (self.text or "")[:120].replace("\n", " ")
            raise EndpointMiss(f"JSON decode failed for {self.url!r}; body starts: {preview!r}") from e


class PageFetcher:
    """Shared HTTP client: realistic user agent, explicit timeouts, small retry budget."""

    def __init__(self, timeout: float = 12.0, user_agent: str = DEFAULT_USER_AGENT):
        self.timeout = float(timeout)
        self.session = requests.Session()
        self.session.headers.update({"User-Agent": user_agent, "Accept-Language": "de-DE,de;q=0.9,en;q=0.5"})

        retry = Retry(
            total=2,
            backoff_factor=0.5,
            status_forcelist=(429, 500, 502, 503, 504),
            allowed_methods=frozenset(["GET", "HEAD"]),
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry, pool_connections=10, pool_maxsize=20)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

    def get(
        self,
        url: str,
        *,
        accept: str = ACCEPT_HTML,
        params: Optional[Mapping[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> Page:
        """GET ``url``; any HTTP status is returned, network failures raise FetchError."""
        try:
            r = self.session.get(
                url,
                params=params,
                headers={"Accept": accept},
                timeout=timeout or self.timeout,
                allow_redirects=True,
            )
        except requests.RequestException as e:
            raise FetchError(url, str(e) or e.__class__.__name__) from e

        return Page(
            status=r.status_code,
            url=str(r.url or url),
            text=r.text or "",
            content_type=r.headers.get("Content-Type", ""),
        )

    def head(self, url: str, *, timeout: Optional[float] = None) -> int:
        """Status code of ``url``; servers refusing HEAD get a GET instead."""
        try:
            r = self.session.head(url, timeout=timeout or self.timeout, allow_redirects=True)
            if r.status_code in (405, 501):
                r = self.session.get(url, timeout=timeout or self.timeout, allow_redirects=True, stream=True)
                r.close()
            return r.status_code
        except requests.RequestException as e:
            raise FetchError(url, str(e) or e.__class__.__name__) from e

    def close(self) -> None:
        self.session.close()
