import sqlite3
from pathlib import Path

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS hospitals (
  id TEXT PRIMARY KEY,
  name TEXT NOT NULL,
  website TEXT,
  city TEXT,
  is_active INTEGER NOT NULL DEFAULT 1,
  career_page_url TEXT,
  career_platform TEXT,
  discovery_attempted_at TEXT,
  last_discovery_outcome TEXT,
  last_scraped_at TEXT,
  last_scrape_success INTEGER NOT NULL DEFAULT 0,
  scrape_success_count INTEGER NOT NULL DEFAULT 0,
  scrape_error_count INTEGER NOT NULL DEFAULT 0,
  last_error_message TEXT,
  job_postings_count INTEGER NOT NULL DEFAULT 0,
  created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_hospitals_career_page_url ON hospitals(career_page_url);
CREATE INDEX IF NOT EXISTS idx_hospitals_last_scraped_at ON hospitals(last_scraped_at);

CREATE TABLE IF NOT EXISTS jobs (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  guid TEXT NOT NULL UNIQUE,
  title TEXT NOT NULL,
  apply_url TEXT NOT NULL,
  hospital_id TEXT,
  hospital_name TEXT NOT NULL DEFAULT '',
  location TEXT,
  source TEXT NOT NULL DEFAULT 'hospital_scrape',
  created_at TEXT NOT NULL,
  last_seen_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_jobs_hospital_id ON jobs(hospital_id);
CREATE INDEX IF NOT EXISTS idx_jobs_source ON jobs(source);

CREATE TABLE IF NOT EXISTS profiles (
  id TEXT PRIMARY KEY,
  role TEXT NOT NULL DEFAULT 'user'
);

CREATE TABLE IF NOT EXISTS batch_runs (
  run_id TEXT PRIMARY KEY,
  kind TEXT NOT NULL,
  started_at TEXT NOT NULL,
  finished_at TEXT NOT NULL,
  stats_json TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_batch_runs_started_at ON batch_runs(started_at);
"""


def _has_column(con: sqlite3.Connection, table: str, column: str) -> bool:
    rows = con.execute(f"PRAGMA table_info({table})").fetchall()
    return any(r[1] == column for r in rows)  # r[1] = name


def _ensure_schema(con: sqlite3.Connection) -> None:
    """Idempotent upgrades for stores created before discovery bookkeeping existed."""
    if not _has_column(con, "hospitals", "discovery_attempted_at"):
        con.execute("ALTER TABLE hospitals ADD COLUMN discovery_attempted_at TEXT")
    if not _has_column(con, "hospitals", "last_discovery_outcome"):
        con.execute("ALTER TABLE hospitals ADD COLUMN last_discovery_outcome TEXT")
    if not _has_column(con, "jobs", "last_seen_at"):
        con.execute("ALTER TABLE jobs ADD COLUMN last_seen_at TEXT")


def init_db(db_path: str) -> None:
    if db_path != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    con = sqlite3.connect(db_path)
    try:
        con.executescript(SCHEMA_SQL)
        _ensure_schema(con)
        con.commit()
    finally:
        con.close()
