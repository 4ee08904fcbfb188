from typing import Any, Dict, List

from fastapi import APIRouter, Request
from starlette.concurrency import run_in_threadpool

from hospital_jobs.api.batches import require_admin, require_store

router = APIRouter()


@router.get("/runs")
async def runs(request: Request) -> List[Dict[str, Any]]:
    await require_admin(request)
    store = require_store(request)
    return await run_in_threadpool(store.list_runs, 50)


@router.get("/stats")
async def stats(request: Request) -> Dict[str, Any]:
    await require_admin(request)
    store = require_store(request)
    return await run_in_threadpool(store.stats)
