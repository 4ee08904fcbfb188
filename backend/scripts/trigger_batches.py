import os
import sys
import time
from typing import Any, Callable, Dict, List, Optional

import requests

API_BASE_URL = os.environ.get("API_BASE_URL", "http://127.0.0.1:8000").rstrip("/")
CRON_SECRET = os.environ.get("CRON_SECRET", "")

ENDPOINTS = {
    "discovery": "/api/discover-career-pages",
    "scrape": "/api/scrape-hospital-jobs",
}


def _env_int(name: str, default: int, floor: int) -> int:
    try:
        return max(floor, int(os.environ.get(name) or default))
    except ValueError:
        return default


def run_cycles(
    kind: str,
    cycles: int,
    delay_s: float,
    batch_size: Optional[int] = None,
    session: Optional[requests.Session] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> List[Dict[str, Any]]:
    """POST ``cycles`` batches with a fixed pause between them; stop once a batch processes nothing."""
    if kind not in ENDPOINTS:
        raise ValueError(f"unknown batch kind: {kind!r} (expected one of {sorted(ENDPOINTS)})")

    session = session or requests.Session()
    url = API_BASE_URL + ENDPOINTS[kind]
    body = {"batchSize": batch_size} if batch_size else {}

    summaries: List[Dict[str, Any]] = []
    for i in range(1, cycles + 1):
        r = session.post(url, json=body, headers={"x-cron-secret": CRON_SECRET}, timeout=600)
        data = r.json() if r.content else {}
        if r.status_code != 200 or not data.get("success"):
            raise RuntimeError(f"batch {i} failed: HTTP {r.status_code} {data.get('error') or ''}".strip())

        summaries.append(data)
        print(
            f"[{kind}] batch {i}/{cycles}: processed={data.get('processed', 0)} "
            f"found={data.get('found', data.get('totalJobsAdded', 0))} "
            f"errors={data.get('errors', 0)} timedOut={data.get('timedOut', False)}"
        )

        if not data.get("processed"):
            print(f"[{kind}] nothing left to process, stopping")
            break
        if i < cycles:
            sleep(delay_s)

    return summaries


def main():
    kind = sys.argv[1] if len(sys.argv) > 1 else "discovery"
    cycles = _env_int("BATCH_CYCLES", 10, 1)
    delay_s = float(_env_int("BATCH_DELAY_S", 3, 0))
    batch_size = _env_int("BATCH_SIZE", 0, 0) or None

    summaries = run_cycles(kind, cycles, delay_s, batch_size=batch_size)
    total = sum(int(s.get("processed") or 0) for s in summaries)
    print(f"Done. batches={len(summaries)} processed={total}")


if __name__ == "__main__":
    main()
