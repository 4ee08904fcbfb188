"""
HospitalStore: the only component that reads or writes the store.

One sqlite3 connection shared across threads, every statement serialized
by a lock. Writes commit immediately so a batch interrupted midway keeps
everything already recorded.
"""

import json
import logging
import sqlite3
import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from hospital_jobs.core.models import JOB_SOURCE, Hospital, JobRecord
from hospital_jobs.core.platforms import PlatformTag
from hospital_jobs.core.text import truncate
from hospital_jobs.db.conn import connect
from hospital_jobs.db.schema import init_db

logger = logging.getLogger("store")

MAX_ERROR_CHARS = 500


def now_utc_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class HospitalStore:
    def __init__(self, con: sqlite3.Connection):
        self.con = con
        self._lock = threading.Lock()

    @classmethod
    def open(cls, db_path: str) -> "HospitalStore":
        init_db(db_path)
        return cls(connect(db_path))

    def close(self) -> None:
        with self._lock:
            self.con.close()

    def ping(self) -> bool:
        try:
            with self._lock:
                self.con.execute("SELECT 1").fetchone()
            return True
        except sqlite3.Error:
            return False

    # -------------------------
    # Reads
    # -------------------------

    def list_discovery_candidates(self, limit: int) -> List[Hospital]:
        """Active hospitals with a website and no career page; never-tried first."""
        with self._lock:
            rows = self.con.execute(
                """
                SELECT * FROM hospitals
                WHERE is_active=1
                  AND website IS NOT NULL AND TRIM(website) != ''
                  AND career_page_url IS NULL
                ORDER BY (discovery_attempted_at IS NOT NULL) ASC,
                         discovery_attempted_at ASC,
                         created_at ASC
                LIMIT ?
                """,
                (int(limit),),
            ).fetchall()
        return [Hospital.from_row(r) for r in rows]

    def list_scrape_candidates(self, limit: int) -> List[Hospital]:
        """Active hospitals with a career page; never scraped first, then stalest."""
        with self._lock:
            rows = self.con.execute(
                """
                SELECT * FROM hospitals
                WHERE is_active=1 AND career_page_url IS NOT NULL
                ORDER BY (last_scraped_at IS NOT NULL) ASC,
                         last_scraped_at ASC,
                         created_at ASC
                LIMIT ?
                """,
                (int(limit),),
            ).fetchall()
        return [Hospital.from_row(r) for r in rows]

    def get_hospital(self, hospital_id: str) -> Optional[Hospital]:
        with self._lock:
            row = self.con.execute("SELECT * FROM hospitals WHERE id=?", (hospital_id,)).fetchone()
        return Hospital.from_row(row) if row else None

    def get_profile_role(self, user_id: str) -> Optional[str]:
        with self._lock:
            row = self.con.execute("SELECT role FROM profiles WHERE id=?", (user_id,)).fetchone()
        return row["role"] if row else None

    def count_jobs(self, hospital_id: Optional[str] = None) -> int:
        with self._lock:
            if hospital_id is None:
                row = self.con.execute("SELECT COUNT(*) AS n FROM jobs").fetchone()
            else:
                row = self.con.execute(
                    "SELECT COUNT(*) AS n FROM jobs WHERE hospital_id=?",
                    (hospital_id,),
                ).fetchone()
        return int(row["n"])

    # -------------------------
    # Writes
    # -------------------------

    def add_hospital(
        self,
        name: str,
        website: Optional[str],
        city: Optional[str] = None,
        hospital_id: Optional[str] = None,
        is_active: bool = True,
        career_page_url: Optional[str] = None,
        career_platform: Optional[str] = None,
    ) -> str:
        hospital_id = hospital_id or str(uuid.uuid4())
        with self._lock:
            self.con.execute(
                """
                INSERT INTO hospitals (id, name, website, city, is_active, career_page_url, career_platform, created_at)
                VALUES (?,?,?,?,?,?,?,?)
                """,
                (
                    hospital_id,
                    name,
                    website,
                    city,
                    1 if is_active else 0,
                    career_page_url,
                    career_platform if career_page_url else None,
                    now_utc_iso(),
                ),
            )
            self.con.commit()
        return hospital_id

    def set_profile_role(self, user_id: str, role: str) -> None:
        with self._lock:
            self.con.execute(
                "INSERT INTO profiles(id, role) VALUES(?,?) ON CONFLICT(id) DO UPDATE SET role=excluded.role",
                (user_id, role),
            )
            self.con.commit()

    def has_website(self, website: str) -> bool:
        with self._lock:
            row = self.con.execute(
                "SELECT 1 FROM hospitals WHERE LOWER(RTRIM(website, '/'))=LOWER(RTRIM(?, '/'))",
                (website,),
            ).fetchone()
        return bool(row)

    def upsert_job(self, record: JobRecord, hospital: Hospital, timestamp: Optional[str] = None) -> bool:
        """Insert ``record`` unless its guid exists; True when a row was added.

        An existing posting is never overwritten, only its last_seen_at moves.
        A record without a location takes the hospital's city.
        """
        ts = timestamp or now_utc_iso()
        with self._lock:
            cur = self.con.execute(
                """
                INSERT INTO jobs (guid, title, apply_url, hospital_id, hospital_name, location, source, created_at, last_seen_at)
                VALUES (?,?,?,?,?,?,?,?,?)
                ON CONFLICT(guid) DO NOTHING
                """,
                (
                    record.guid,
                    record.title,
                    record.link,
                    hospital.id,
                    record.company or hospital.name,
                    record.location or hospital.city,
                    JOB_SOURCE,
                    ts,
                    ts,
                ),
            )
            inserted = cur.rowcount == 1
            if not inserted:
                self.con.execute("UPDATE jobs SET last_seen_at=? WHERE guid=?", (ts, record.guid))
            self.con.commit()
        return inserted

    def update_hospital_discovery(self, hospital_id: str, url: str, platform: PlatformTag) -> None:
        with self._lock:
            self.con.execute(
                "UPDATE hospitals SET career_page_url=?, career_platform=? WHERE id=?",
                (url, platform.value, hospital_id),
            )
            self.con.commit()

    def mark_discovery_attempt(self, hospital_id: str, outcome: str, timestamp: Optional[str] = None) -> None:
        with self._lock:
            self.con.execute(
                "UPDATE hospitals SET discovery_attempted_at=?, last_discovery_outcome=? WHERE id=?",
                (timestamp or now_utc_iso(), outcome, hospital_id),
            )
            self.con.commit()

    def update_hospital_scrape_result(
        self,
        hospital_id: str,
        success: bool,
        error_message: Optional[str] = None,
        jobs_found: int = 0,
        timestamp: Optional[str] = None,
    ) -> None:
        """Record one scrape attempt: exactly one counter moves, last_scraped_at always does."""
        ts = timestamp or now_utc_iso()
        with self._lock:
            if success:
                self.con.execute(
                    """
                    UPDATE hospitals
                    SET last_scraped_at=?, last_scrape_success=1,
                        scrape_success_count=scrape_success_count+1,
                        last_error_message=NULL, job_postings_count=?
                    WHERE id=?
                    """,
                    (ts, int(jobs_found), hospital_id),
                )
            else:
                self.con.execute(
                    """
                    UPDATE hospitals
                    SET last_scraped_at=?, last_scrape_success=0,
                        scrape_error_count=scrape_error_count+1,
                        last_error_message=?
                    WHERE id=?
                    """,
                    (ts, truncate(error_message or "unknown error", MAX_ERROR_CHARS), hospital_id),
                )
            self.con.commit()

    # -------------------------
    # Runs / stats
    # -------------------------

    def record_run(self, run_id: str, kind: str, started_at: str, finished_at: str, stats: Dict[str, Any]) -> None:
        with self._lock:
            self.con.execute(
                "INSERT INTO batch_runs(run_id, kind, started_at, finished_at, stats_json) VALUES(?,?,?,?,?)",
                (run_id, kind, started_at, finished_at, json.dumps(stats)),
            )
            self.con.commit()

    def list_runs(self, limit: int = 50) -> List[Dict[str, Any]]:
        with self._lock:
            rows = self.con.execute(
                """
                SELECT run_id, kind, started_at, finished_at, stats_json
                FROM batch_runs
                ORDER BY started_at DESC
                LIMIT ?
                """,
                (int(limit),),
            ).fetchall()

        out: List[Dict[str, Any]] = []
        for r in rows:
            d = dict(r)
            try:
                d["stats"] = json.loads(d.pop("stats_json") or "{}")
            except ValueError:
                d["stats"] = {}
            out.append(d)
        return out

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            h = self.con.execute(
                """
                SELECT
                  COUNT(*) AS total,
                  SUM(CASE WHEN is_active=1 THEN 1 ELSE 0 END) AS active,
                  SUM(CASE WHEN career_page_url IS NOT NULL THEN 1 ELSE 0 END) AS with_career_page,
                  SUM(CASE WHEN discovery_attempted_at IS NOT NULL THEN 1 ELSE 0 END) AS discovery_attempted,
                  SUM(CASE WHEN last_scraped_at IS NOT NULL THEN 1 ELSE 0 END) AS scraped,
                  SUM(CASE WHEN last_scraped_at IS NOT NULL AND last_scrape_success=1 THEN 1 ELSE 0 END) AS last_scrape_ok,
                  COALESCE(SUM(scrape_success_count), 0) AS scrape_successes,
                  COALESCE(SUM(scrape_error_count), 0) AS scrape_errors
                FROM hospitals
                """
            ).fetchone()
            platforms = self.con.execute(
                """
                SELECT career_platform, COUNT(*) AS n
                FROM hospitals
                WHERE career_page_url IS NOT NULL
                GROUP BY career_platform
                ORDER BY n DESC
                """
            ).fetchall()
            jobs = self.con.execute(
                "SELECT COUNT(*) AS n FROM jobs WHERE source=?",
                (JOB_SOURCE,),
            ).fetchone()

        by_platform: Dict[str, int] = {}
        for r in platforms:
            key = PlatformTag.parse(r["career_platform"]).value
            by_platform[key] = by_platform.get(key, 0) + int(r["n"])

        return {
            "hospitals": {k: int(h[k] or 0) for k in h.keys()},
            "jobs": int(jobs["n"]),
            "byPlatform": by_platform,
        }
