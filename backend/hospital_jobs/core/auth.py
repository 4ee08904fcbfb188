"""
Batch trigger authorization.

A request is allowed when it carries either
  - ``x-cron-secret`` equal to the configured CRON_SECRET, or
  - ``Authorization: Bearer <token>`` for a user the identity service knows
    and whose profile role is ``admin``.

Everything here runs before any batch work; a failure raises AuthError.
"""

from __future__ import annotations

import hmac
import logging
from typing import Any, Dict, Mapping, Optional

import requests

from hospital_jobs.core.errors import AuthError, ConfigError

logger = logging.getLogger("auth")

CRON_SECRET_HEADER = "x-cron-secret"
ADMIN_ROLE = "admin"


class IdentityClient:
    """Resolves a bearer token to a user through ``GET {AUTH_URL}/auth/v1/user``."""

    def __init__(self, auth_url: str, api_key: str = "", timeout: float = 8.0, session: Optional[requests.Session] = None):
        self.auth_url = (auth_url or "").rstrip("/")
        self.api_key = api_key
        self.timeout = float(timeout)
        self.session = session or requests.Session()

    @property
    def configured(self) -> bool:
        return bool(self.auth_url)

    def get_user(self, token: str) -> Optional[Dict[str, Any]]:
        if not self.configured or not token:
            return None
        headers = {"Authorization": f"Bearer {token}"}
        if self.api_key:
            headers["apikey"] = self.api_key
        try:
            r = self.session.get(f"{self.auth_url}/auth/v1/user", headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning("[auth] identity service unreachable: %s", e)
            return None
        if r.status_code != 200:
            return None
        try:
            data = r.json()
        except ValueError:
            return None
        if not isinstance(data, dict) or not data.get("id"):
            return None
        return data


def _bearer_token(headers: Mapping[str, str]) -> str:
    raw = (headers.get("authorization") or "").strip()
    if raw[:7].lower() != "bearer ":
        return ""
    return raw[7:].strip()


def _secret_matches(supplied: str, expected: str) -> bool:
    if not expected or not supplied:
        return False
    return hmac.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8"))


def authorize(headers: Mapping[str, str], cron_secret: str, store, identity: Optional[IdentityClient]) -> str:
    """Return the principal ("cron" or the user id) or raise AuthError."""
    if _secret_matches((headers.get(CRON_SECRET_HEADER) or "").strip(), cron_secret):
        return "cron"

    token = _bearer_token(headers)
    if not token:
        raise AuthError("Unauthorized", status_code=401)

    user = identity.get_user(token) if identity is not None else None
    if not user:
        raise AuthError("Invalid token", status_code=401)

    if store is None:
        raise ConfigError("store unavailable")
    user_id = str(user["id"])
    role = store.get_profile_role(user_id)
    if role != ADMIN_ROLE:
        logger.info("[auth] user %s denied (role=%s)", user_id, role)
        raise AuthError("Admin access required", status_code=403)
    return user_id
