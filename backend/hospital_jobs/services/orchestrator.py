"""
Batch orchestration for discovery and scrape runs.

Shape of one batch:
  1. take an ordered page of candidates from the store
  2. fan the network work out to a small thread pool (one unit per hospital)
  3. commit each unit's outcome from this thread as soon as it completes
  4. stop waiting once the batch time budget is spent

Workers never touch the store; they return a result record and the
committing loop is the only writer, so the summary counters need no lock.
Units still running when the budget expires are abandoned; everything
committed before that point stays committed.
"""

import logging
import time
import uuid
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FuturesTimeout, as_completed
from typing import Callable, List, Optional

from hospital_jobs.core.career_discovery import discover
from hospital_jobs.core.config import PipelineConfig
from hospital_jobs.core.errors import FetchError
from hospital_jobs.core.extractors import extract
from hospital_jobs.core.http import PageFetcher
from hospital_jobs.core.models import BatchSummary, DiscoveryResult, Hospital, JobRecord, ScrapeAttempt
from hospital_jobs.core.posting_check import check_posting_page
from hospital_jobs.core.role_filter import RoleFilter
from hospital_jobs.db.gateway import HospitalStore, now_utc_iso

logger = logging.getLogger("orchestrator")

DEAD_LINK_STATUSES = (404, 410)


class BatchOrchestrator:
    def __init__(
        self,
        store: HospitalStore,
        fetcher: PageFetcher,
        config: PipelineConfig,
        role_filter: Optional[RoleFilter] = None,
    ):
        self.store = store
        self.fetcher = fetcher
        self.config = config
        self.role_filter = role_filter

    # -------------------------
    # Fan-out
    # -------------------------

    def _run_units(self, hospitals: List[Hospital], work: Callable, commit: Callable, summary: BatchSummary) -> None:
        if not hospitals:
            return

        deadline = time.monotonic() + float(self.config.batch_time_budget_s)
        pool = ThreadPoolExecutor(max_workers=max(1, min(self.config.max_workers, len(hospitals))))
        try:
            futures = [pool.submit(work, h) for h in hospitals]
            for fut in as_completed(futures, timeout=max(0.0, deadline - time.monotonic())):
                commit(fut.result(), summary)
                summary.processed += 1
        except FuturesTimeout:
            summary.timed_out = True
            logger.warning(
                "[orchestrator][%s] time budget %.0fs spent; %s of %s units committed",
                summary.kind,
                self.config.batch_time_budget_s,
                summary.processed,
                len(hospitals),
            )
        finally:
            pool.shutdown(wait=not summary.timed_out, cancel_futures=True)

    def _start(self, kind: str) -> BatchSummary:
        return BatchSummary(kind=kind, run_id=str(uuid.uuid4()), started_at=now_utc_iso())

    def _finish(self, summary: BatchSummary) -> BatchSummary:
        summary.finished_at = now_utc_iso()
        self.store.record_run(
            summary.run_id,
            summary.kind,
            summary.started_at,
            summary.finished_at,
            summary.to_stats(),
        )
        logger.info(
            "[orchestrator][%s] run=%s processed=%s found=%s errors=%s jobs_added=%s timed_out=%s",
            summary.kind,
            summary.run_id,
            summary.processed,
            summary.found,
            summary.errors,
            summary.jobs_added,
            summary.timed_out,
        )
        return summary

    # -------------------------
    # Discovery
    # -------------------------

    def _discover_one(self, hospital: Hospital):
        try:
            result = discover(hospital, self.fetcher)
        except Exception as e:
            logger.exception("[discovery][%s] unexpected failure", hospital.name)
            result = DiscoveryResult(outcome="error", detail=f"{e.__class__.__name__}: {e}")
        return hospital, result

    def _commit_discovery(self, unit, summary: BatchSummary) -> None:
        hospital, result = unit
        if result.found:
            self.store.update_hospital_discovery(hospital.id, result.career_url, result.platform)
            summary.found += 1
            summary.count_platform(result.platform)
        elif result.outcome == "error":
            summary.errors += 1
        else:
            summary.not_found += 1
        self.store.mark_discovery_attempt(hospital.id, result.outcome)

        logger.info(
            "[discovery][%s] outcome=%s url=%s platform=%s landing_job_links=%s detail=%s",
            hospital.name,
            result.outcome,
            result.career_url,
            result.platform.value,
            result.job_links_found_on_landing,
            result.detail,
        )

    def run_discovery_batch(self, limit: Optional[int] = None) -> BatchSummary:
        limit = int(limit or self.config.discovery_batch_size)
        summary = self._start("discovery")
        hospitals = self.store.list_discovery_candidates(limit)
        logger.info("[orchestrator][discovery] run=%s candidates=%s", summary.run_id, len(hospitals))

        self._run_units(hospitals, self._discover_one, self._commit_discovery, summary)
        return self._finish(summary)

    # -------------------------
    # Scrape
    # -------------------------

    def _live_links(self, jobs: List[JobRecord]) -> List[JobRecord]:
        out: List[JobRecord] = []
        for job in jobs:
            try:
                status = self.fetcher.head(job.link)
            except FetchError as e:
                logger.info("[extractor] dropping unreachable link %s (%s)", job.link, e.reason)
                continue
            if status in DEAD_LINK_STATUSES:
                logger.info("[extractor] dropping dead link %s (HTTP %s)", job.link, status)
                continue
            out.append(job)
        return out

    def _posting_pages(self, jobs: List[JobRecord]) -> List[JobRecord]:
        out: List[JobRecord] = []
        for job in jobs:
            try:
                page = self.fetcher.get(job.link)
            except FetchError as e:
                logger.info("[extractor] dropping unreachable posting %s (%s)", job.link, e.reason)
                continue
            if not page.ok:
                logger.info("[extractor] dropping posting %s (HTTP %s)", job.link, page.status)
                continue
            ok, reason = check_posting_page(page.text, self.config.role_keywords)
            if not ok:
                logger.info("[extractor] dropping posting %s (%s)", job.link, reason)
                continue
            out.append(job)
        return out

    def _scrape_one(self, hospital: Hospital) -> ScrapeAttempt:
        started = time.monotonic()
        attempt = ScrapeAttempt(hospital=hospital, platform=hospital.platform)
        try:
            jobs = extract(
                hospital.career_page_url or "",
                attempt.platform,
                self.fetcher,
                company=hospital.name,
                role_filter=self.role_filter,
            )
            if self.config.verify_links:
                jobs = self._live_links(jobs)
            if self.config.verify_content:
                jobs = self._posting_pages(jobs)
            attempt.jobs = jobs
        except FetchError as e:
            logger.warning("[extractor][%s] fetch failed: %s", hospital.name, e)
            attempt.error = str(e)
        except Exception as e:
            logger.exception("[extractor][%s] extraction failed", hospital.name)
            attempt.error = f"{e.__class__.__name__}: {e}"
        attempt.duration_s = time.monotonic() - started
        return attempt

    def _commit_scrape(self, attempt: ScrapeAttempt, summary: BatchSummary) -> None:
        hospital = attempt.hospital
        ts = now_utc_iso()

        added = 0
        for job in attempt.jobs:
            if self.store.upsert_job(job, hospital, timestamp=ts):
                added += 1

        self.store.update_hospital_scrape_result(
            hospital.id,
            success=attempt.success,
            error_message=attempt.error or None,
            jobs_found=len(attempt.jobs),
            timestamp=ts,
        )

        summary.count_platform(attempt.platform)
        summary.jobs_found += len(attempt.jobs)
        summary.jobs_added += added
        if not attempt.success:
            summary.errors += 1

        row = {
            "hospital": hospital.name,
            "jobsFound": len(attempt.jobs),
            "jobsAdded": added,
            "platform": attempt.platform.value,
        }
        if attempt.error:
            row["error"] = attempt.error
        summary.results.append(row)

        logger.info(
            "[extractor][%s] platform=%s found=%s added=%s ok=%s took=%.1fs",
            hospital.name,
            attempt.platform.value,
            len(attempt.jobs),
            added,
            attempt.success,
            attempt.duration_s,
        )

    def run_scrape_batch(self, limit: Optional[int] = None) -> BatchSummary:
        limit = int(limit or self.config.scrape_batch_size)
        summary = self._start("scrape")
        hospitals = self.store.list_scrape_candidates(limit)
        logger.info("[orchestrator][scrape] run=%s candidates=%s", summary.run_id, len(hospitals))

        self._run_units(hospitals, self._scrape_one, self._commit_scrape, summary)
        return self._finish(summary)

