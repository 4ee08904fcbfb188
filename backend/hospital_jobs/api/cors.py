import ipaddress
from typing import Dict, Sequence
from urllib.parse import urlparse

from fastapi import Request
from fastapi.responses import Response

ALLOW_HEADERS = "authorization, x-client-info, apikey, content-type, x-cron-secret"
ALLOW_METHODS = "POST, GET, OPTIONS"

DEVELOPMENT_ORIGINS = (
    "http://localhost:5173",
    "http://localhost:3000",
    "http://127.0.0.1:5173",
    "http://127.0.0.1:3000",
)


def is_local_dev_origin(origin: str) -> bool:
    try:
        p = urlparse(origin)
    except ValueError:
        return False
    if p.scheme not in ("http", "https") or not p.hostname:
        return False

    host = p.hostname.lower()
    if host in ("localhost", "::1") or host.endswith(".local"):
        return True
    try:
        ip = ipaddress.ip_address(host)
    except ValueError:
        return False
    return ip.is_loopback or ip.is_private


def allowed_origin(origin: str, allowed: Sequence[str]) -> str:
    """Echo ``origin`` when it may call us, otherwise the first allow-listed origin."""
    fallback = allowed[0] if allowed else "null"
    origin = (origin or "").strip()
    if not origin or origin == "null":
        return fallback
    if origin in allowed or origin in DEVELOPMENT_ORIGINS or is_local_dev_origin(origin):
        return origin
    return fallback


def cors_headers(request: Request, allowed: Sequence[str]) -> Dict[str, str]:
    return {
        "Access-Control-Allow-Origin": allowed_origin(request.headers.get("origin", ""), allowed),
        "Access-Control-Allow-Headers": ALLOW_HEADERS,
        "Access-Control-Allow-Methods": ALLOW_METHODS,
        "Vary": "Origin",
    }


def install_cors(app, allowed: Sequence[str]) -> None:
    """Answer pre-flight requests with 204 and stamp CORS headers on every response."""

    @app.middleware("http")
    async def cors_middleware(request: Request, call_next):
        headers = cors_headers(request, allowed)
        if request.method == "OPTIONS":
            return Response(status_code=204, headers=headers)
        response = await call_next(request)
        response.headers.update(headers)
        return response
