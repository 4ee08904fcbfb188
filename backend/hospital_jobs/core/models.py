from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from hospital_jobs.core.platforms import PlatformTag

JOB_SOURCE = "hospital_scrape"


@dataclass
class Hospital:
    id: str
    name: str
    website: Optional[str] = None
    city: Optional[str] = None
    is_active: bool = True
    career_page_url: Optional[str] = None
    career_platform: Optional[str] = None
    last_scraped_at: Optional[str] = None
    last_scrape_success: bool = False
    scrape_success_count: int = 0
    scrape_error_count: int = 0
    last_error_message: Optional[str] = None
    job_postings_count: int = 0

    @classmethod
    def from_row(cls, row) -> "Hospital":
        return cls(
            id=str(row["id"]),
            name=row["name"] or "",
            website=row["website"],
            city=row["city"],
            is_active=bool(row["is_active"]),
            career_page_url=row["career_page_url"],
            career_platform=row["career_platform"],
            last_scraped_at=row["last_scraped_at"],
            last_scrape_success=bool(row["last_scrape_success"]),
            scrape_success_count=int(row["scrape_success_count"] or 0),
            scrape_error_count=int(row["scrape_error_count"] or 0),
            last_error_message=row["last_error_message"],
            job_postings_count=int(row["job_postings_count"] or 0),
        )

    @property
    def platform(self) -> PlatformTag:
        return PlatformTag.parse(self.career_platform)


@dataclass(frozen=True)
class JobRecord:
    title: str
    link: str
    company: str
    location: Optional[str]
    guid: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class DiscoveryResult:
    outcome: str  # 'found' | 'not_found' | 'error'
    career_url: Optional[str] = None
    platform: PlatformTag = PlatformTag.UNKNOWN
    job_links_found_on_landing: int = 0
    detail: str = ""

    @property
    def found(self) -> bool:
        return self.outcome == "found" and bool(self.career_url)


@dataclass
class ScrapeAttempt:
    hospital: Hospital
    platform: PlatformTag = PlatformTag.UNKNOWN
    jobs: List[JobRecord] = field(default_factory=list)
    error: str = ""
    duration_s: float = 0.0

    @property
    def success(self) -> bool:
        return not self.error


@dataclass
class BatchSummary:
    kind: str  # 'discovery' | 'scrape'
    run_id: str = ""
    started_at: str = ""
    finished_at: str = ""
    processed: int = 0
    found: int = 0
    not_found: int = 0
    errors: int = 0
    jobs_found: int = 0
    jobs_added: int = 0
    timed_out: bool = False
    by_platform: Dict[str, int] = field(default_factory=dict)
    results: List[Dict[str, Any]] = field(default_factory=list)

    def count_platform(self, platform: PlatformTag) -> None:
        key = platform.value
        self.by_platform[key] = self.by_platform.get(key, 0) + 1

    def to_response(self) -> Dict[str, Any]:
        base: Dict[str, Any] = {
            "success": True,
            "runId": self.run_id,
            "processed": self.processed,
            "errors": self.errors,
            "byPlatform": dict(self.by_platform),
            "timedOut": self.timed_out,
        }
        if self.kind == "discovery":
            base["found"] = self.found
            base["notFound"] = self.not_found
        else:
            base["totalJobsFound"] = self.jobs_found
            base["totalJobsAdded"] = self.jobs_added
            base["results"] = list(self.results)
        return base

    def to_stats(self) -> Dict[str, Any]:
        d = asdict(self)
        d.pop("results", None)
        return d
