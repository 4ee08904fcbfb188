import json
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field, ValidationError
from starlette.concurrency import run_in_threadpool

from hospital_jobs.core.auth import authorize
from hospital_jobs.core.errors import BadRequest, ConfigError
from hospital_jobs.services.orchestrator import BatchOrchestrator

logger = logging.getLogger("api")

router = APIRouter()


class BatchRequest(BaseModel):
    """Batch trigger body. Every field is optional; unknown fields are ignored."""

    batchSize: Optional[int] = Field(default=None, ge=1)


async def read_batch_request(request: Request) -> BatchRequest:
    raw = await request.body()
    if not raw.strip():
        return BatchRequest()
    try:
        data = json.loads(raw)
    except ValueError:
        raise BadRequest("Request body must be valid JSON")
    if not isinstance(data, dict):
        raise BadRequest("Request body must be a JSON object")
    try:
        return BatchRequest.model_validate(data)
    except ValidationError as e:
        first = e.errors()[0] if e.errors() else {}
        field = ".".join(str(p) for p in first.get("loc", ())) or "body"
        raise BadRequest(f"Invalid {field}: {first.get('msg', 'invalid value')}")


async def require_admin(request: Request) -> str:
    state = request.app.state
    return await run_in_threadpool(
        authorize,
        request.headers,
        state.config.cron_secret,
        state.store,
        state.identity,
    )


def require_store(request: Request):
    store = request.app.state.store
    if store is None:
        raise ConfigError("Store is not configured")
    return store


def build_orchestrator(request: Request) -> BatchOrchestrator:
    state = request.app.state
    return BatchOrchestrator(
        require_store(request),
        state.fetcher,
        state.config,
        role_filter=state.role_filter,
    )


@router.post("/discover-career-pages")
async def discover_career_pages(request: Request) -> Dict[str, Any]:
    principal = await require_admin(request)
    payload = await read_batch_request(request)
    orchestrator = build_orchestrator(request)

    cfg = request.app.state.config
    limit = cfg.clamp_batch_size(payload.batchSize, cfg.discovery_batch_size)
    logger.info("[api] discovery batch requested by %s limit=%s", principal, limit)

    summary = await run_in_threadpool(orchestrator.run_discovery_batch, limit)
    return summary.to_response()


@router.post("/scrape-hospital-jobs")
async def scrape_hospital_jobs(request: Request) -> Dict[str, Any]:
    principal = await require_admin(request)
    payload = await read_batch_request(request)
    orchestrator = build_orchestrator(request)

    cfg = request.app.state.config
    limit = cfg.clamp_batch_size(payload.batchSize, cfg.scrape_batch_size)
    logger.info("[api] scrape batch requested by %s limit=%s", principal, limit)

    summary = await run_in_threadpool(orchestrator.run_scrape_batch, limit)
    return summary.to_response()
