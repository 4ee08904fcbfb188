import logging
import os
import sqlite3
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from hospital_jobs.api.batches import router as batches_router
from hospital_jobs.api.cors import install_cors
from hospital_jobs.api.health import router as health_router
from hospital_jobs.api.runs import router as runs_router
from hospital_jobs.core.auth import IdentityClient
from hospital_jobs.core.config import PipelineConfig, get_config
from hospital_jobs.core.errors import AuthError, BadRequest, ConfigError
from hospital_jobs.core.http import PageFetcher
from hospital_jobs.core.role_filter import build_role_filter
from hospital_jobs.db.gateway import HospitalStore

logger = logging.getLogger("api")


def _failure(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


def _open_store(cfg: PipelineConfig) -> Optional[HospitalStore]:
    try:
        cfg.validate()
        return HospitalStore.open(cfg.db_path)
    except (ConfigError, sqlite3.Error, OSError) as e:
        logger.error("[api] store unavailable: %s", e)
        return None


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AuthError)
    async def auth_error(request: Request, exc: AuthError):
        return _failure(exc.status_code, exc.message)

    @app.exception_handler(BadRequest)
    async def bad_request(request: Request, exc: BadRequest):
        return _failure(400, exc.message)

    @app.exception_handler(ConfigError)
    async def config_error(request: Request, exc: ConfigError):
        logger.error("[api] %s %s: %s", request.method, request.url.path, exc)
        return _failure(500, str(exc))

    @app.exception_handler(sqlite3.Error)
    async def store_error(request: Request, exc: sqlite3.Error):
        logger.error("[api] store failure on %s: %s", request.url.path, exc)
        return _failure(500, "Store unavailable")


def create_app(
    config: Optional[PipelineConfig] = None,
    store: Optional[HospitalStore] = None,
    fetcher: Optional[PageFetcher] = None,
    identity: Optional[IdentityClient] = None,
) -> FastAPI:
    logging.basicConfig(
        level=getattr(logging, (os.getenv("LOG_LEVEL") or "INFO").upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    cfg = config or get_config()
    app = FastAPI(title="Hospital Job Pipeline", version="0.1.0")

    app.state.config = cfg
    app.state.store = store if store is not None else _open_store(cfg)
    app.state.fetcher = fetcher or PageFetcher(timeout=cfg.fetch_timeout_s, user_agent=cfg.user_agent)
    app.state.identity = identity or IdentityClient(cfg.auth_url, cfg.auth_api_key, timeout=cfg.fetch_timeout_s)
    app.state.role_filter = build_role_filter(cfg)

    @app.on_event("shutdown")
    def shutdown_event():
        app.state.fetcher.close()

    register_exception_handlers(app)
    install_cors(app, cfg.allowed_origins)

    app.include_router(health_router, prefix="/api")
    app.include_router(batches_router, prefix="/api")
    app.include_router(runs_router, prefix="/api")

    return app
