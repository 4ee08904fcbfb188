# backend/tests/conftest.py
import threading
from typing import Callable, Dict, List, Optional, Union

import pytest

from hospital_jobs.core.config import PipelineConfig
from hospital_jobs.core.errors import FetchError
from hospital_jobs.core.http import ACCEPT_HTML, Page
from hospital_jobs.db.gateway import HospitalStore

Route = Union[Page, Exception, Callable[[str], Page]]


# ---------------------------------------------------------------------
# Fake network: URL -> Page | exception | callable
# Unknown URLs fail like an unreachable host.
# ---------------------------------------------------------------------
class FakeFetcher:
    def __init__(self):
        self.routes: Dict[str, Route] = {}
        self.heads: Dict[str, Union[int, Exception]] = {}
        self.calls: List[str] = []
        self._lock = threading.Lock()

    def html(self, url: str, body: str, status: int = 200, final_url: Optional[str] = None) -> None:
        self.routes[url] = Page(status=status, url=final_url or url, text=body, content_type="text/html; charset=utf-8")

    def json(self, url: str, body: str, status: int = 200) -> None:
        self.routes[url] = Page(status=status, url=url, text=body, content_type="application/json")

    def get(self, url, *, accept=ACCEPT_HTML, params=None, timeout=None) -> Page:
        with self._lock:
            self.calls.append(url)
        route = self.routes.get(url)
        if route is None:
            raise FetchError(url, "Name or service not known")
        if isinstance(route, Exception):
            raise route
        if callable(route):
            return route(url)
        return route

    def head(self, url, *, timeout=None) -> int:
        status = self.heads.get(url, 200)
        if isinstance(status, Exception):
            raise status
        return status

    def close(self) -> None:
        pass


class FakeIdentity:
    def __init__(self, users: Optional[Dict[str, str]] = None):
        # token -> user id
        self.users = dict(users or {})

    def get_user(self, token: str):
        user_id = self.users.get(token)
        return {"id": user_id, "email": f"{user_id}@example.org"} if user_id else None


# ---------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------
@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "hospital_jobs.sqlite3")


@pytest.fixture
def store(db_path):
    s = HospitalStore.open(db_path)
    yield s
    s.close()


@pytest.fixture
def fetcher():
    return FakeFetcher()


@pytest.fixture
def config(db_path):
    return PipelineConfig(
        db_path=db_path,
        cron_secret="s3cret",
        max_workers=3,
        fetch_timeout_s=5.0,
        batch_time_budget_s=30.0,
    )


@pytest.fixture
def identity():
    return FakeIdentity({"admin-token": "user-admin", "user-token": "user-plain"})
