import csv
import json
import os
import sys
from typing import Any, Dict, Iterable, List, Optional, Tuple

from hospital_jobs.db.gateway import HospitalStore

DB_PATH = os.environ.get("DB_PATH", "./hospital_jobs.sqlite3")
IMPORT_PATH = os.environ.get("IMPORT_PATH", "./hospitals.csv")

NAME_KEYS = ("name", "hospital", "hospital_name", "Name")
WEBSITE_KEYS = ("website", "url", "homepage", "Website")
CITY_KEYS = ("city", "ort", "City", "Ort")


def _pick(row: Dict[str, Any], keys: Iterable[str]) -> str:
    for k in keys:
        v = row.get(k)
        if v is not None and str(v).strip():
            return str(v).strip()
    return ""


def normalize_website(url: str) -> Optional[str]:
    url = (url or "").strip()
    if not url:
        return None
    if not url.lower().startswith(("http://", "https://")):
        url = "https://" + url
    return url


def load_rows(path: str) -> List[Dict[str, Any]]:
    abs_path = os.path.abspath(path)
    if not os.path.exists(abs_path):
        raise FileNotFoundError(f"import file not found at: {abs_path}")

    with open(abs_path, "r", encoding="utf-8-sig", newline="") as f:
        if abs_path.lower().endswith(".json"):
            data = json.load(f)
            if isinstance(data, dict):
                data = data.get("hospitals") or []
            if not isinstance(data, list):
                raise ValueError("JSON import must be a list or {'hospitals': [...]}")
            return [r for r in data if isinstance(r, dict)]
        return list(csv.DictReader(f))


def import_rows(store: HospitalStore, rows: Iterable[Dict[str, Any]]) -> Tuple[int, int]:
    """Insert hospitals from seed rows; rows without a name or with a known website are skipped."""
    inserted = 0
    skipped = 0
    seen = set()

    for row in rows:
        name = _pick(row, NAME_KEYS)
        website = normalize_website(_pick(row, WEBSITE_KEYS))
        if not name:
            skipped += 1
            continue

        key = (website or "").lower().rstrip("/")
        if website and (key in seen or store.has_website(website)):
            skipped += 1
            continue
        if key:
            seen.add(key)

        store.add_hospital(
            name=name,
            website=website,
            city=_pick(row, CITY_KEYS) or None,
            career_page_url=(row.get("career_page_url") or "").strip() or None,
            career_platform=(row.get("career_platform") or "").strip() or None,
        )
        inserted += 1

    return inserted, skipped


def main():
    path = sys.argv[1] if len(sys.argv) > 1 else IMPORT_PATH
    rows = load_rows(path)

    store = HospitalStore.open(DB_PATH)
    try:
        inserted, skipped = import_rows(store, rows)
    finally:
        store.close()
    print(f"Done. inserted={inserted} skipped={skipped}")


if __name__ == "__main__":
    main()
