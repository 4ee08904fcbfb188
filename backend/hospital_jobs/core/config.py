import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Tuple

from hospital_jobs.core.errors import ConfigError

logger = logging.getLogger("config")

DEFAULT_DB_PATH = "./hospital_jobs.sqlite3"
DEFAULT_ALLOWED_ORIGINS = ("https://klaro.tools", "https://www.klaro.tools")
DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; KlaroBot/1.0; +https://klaro.tools)"


@dataclass(frozen=True)
class PipelineConfig:
    db_path: str = DEFAULT_DB_PATH
    cron_secret: str = ""
    auth_url: str = ""
    auth_api_key: str = ""
    allowed_origins: Tuple[str, ...] = DEFAULT_ALLOWED_ORIGINS

    discovery_batch_size: int = 25
    scrape_batch_size: int = 25
    max_batch_size: int = 100
    max_workers: int = 4
    fetch_timeout_s: float = 12.0
    batch_time_budget_s: float = 120.0

    role_keywords: Tuple[str, ...] = ()
    classifier_url: str = ""
    classifier_api_key: str = ""
    verify_links: bool = False
    verify_content: bool = False
    user_agent: str = DEFAULT_USER_AGENT

    def validate(self) -> None:
        if not (self.db_path or "").strip():
            raise ConfigError("DB_PATH is not configured")

    def clamp_batch_size(self, requested: Optional[int], default: int) -> int:
        if requested is None:
            return default
        return max(1, min(int(requested), self.max_batch_size))


def get_db_path() -> str:
    raw = os.environ.get("DB_PATH", DEFAULT_DB_PATH)
    return os.path.abspath(raw) if raw.strip() else ""


def _parse_int_with_floor(
    env_name: str,
    *,
    default_value: int,
    minimum_floor: int,
    maximum_ceiling: Optional[int] = None,
) -> int:
    raw = os.getenv(env_name)
    if raw is None or not str(raw).strip():
        value = int(default_value)
    else:
        try:
            value = int(str(raw).strip())
        except ValueError:
            logger.warning(
                "[config] %s=%r is invalid. Using default %s.",
                env_name,
                raw,
                default_value,
            )
            value = int(default_value)

    if value < minimum_floor:
        logger.warning(
            "[config] %s=%s below minimum (%s). Using %s.",
            env_name,
            value,
            minimum_floor,
            minimum_floor,
        )
        value = minimum_floor

    if maximum_ceiling is not None and value > maximum_ceiling:
        logger.warning(
            "[config] %s=%s above maximum (%s). Using %s.",
            env_name,
            value,
            maximum_ceiling,
            maximum_ceiling,
        )
        value = maximum_ceiling

    return value


def _parse_bool(env_name: str, *, default_value: bool) -> bool:
    raw = os.getenv(env_name)
    if raw is None or not str(raw).strip():
        return bool(default_value)

    normalized = str(raw).strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False

    logger.warning(
        "[config] %s=%r is invalid boolean. Using default %s.",
        env_name,
        raw,
        default_value,
    )
    return bool(default_value)


def _parse_list(env_name: str, *, default_value: Tuple[str, ...] = ()) -> Tuple[str, ...]:
    raw = os.getenv(env_name)
    if raw is None or not raw.strip():
        return tuple(default_value)
    return tuple(p.strip() for p in raw.split(",") if p.strip())


def load_config() -> PipelineConfig:
    cfg = PipelineConfig(
        db_path=get_db_path(),
        cron_secret=(os.getenv("CRON_SECRET") or "").strip(),
        auth_url=(os.getenv("AUTH_URL") or "").strip().rstrip("/"),
        auth_api_key=(os.getenv("AUTH_API_KEY") or "").strip(),
        allowed_origins=_parse_list("ALLOWED_ORIGINS", default_value=DEFAULT_ALLOWED_ORIGINS),
        discovery_batch_size=_parse_int_with_floor(
            "DISCOVERY_BATCH_SIZE",
            default_value=25,
            minimum_floor=1,
        ),
        scrape_batch_size=_parse_int_with_floor(
            "SCRAPE_BATCH_SIZE",
            default_value=25,
            minimum_floor=1,
        ),
        max_batch_size=_parse_int_with_floor(
            "MAX_BATCH_SIZE",
            default_value=100,
            minimum_floor=1,
        ),
        max_workers=_parse_int_with_floor(
            "FETCH_MAX_WORKERS",
            default_value=4,
            minimum_floor=1,
            maximum_ceiling=8,
        ),
        fetch_timeout_s=float(
            _parse_int_with_floor("FETCH_TIMEOUT_S", default_value=12, minimum_floor=2)
        ),
        batch_time_budget_s=float(
            _parse_int_with_floor("BATCH_TIME_BUDGET_S", default_value=120, minimum_floor=5)
        ),
        role_keywords=_parse_list("ROLE_KEYWORDS"),
        classifier_url=(os.getenv("CLASSIFIER_URL") or "").strip(),
        classifier_api_key=(os.getenv("CLASSIFIER_API_KEY") or "").strip(),
        verify_links=_parse_bool("SCRAPE_VERIFY_LINKS", default_value=False),
        verify_content=_parse_bool("SCRAPE_VERIFY_CONTENT", default_value=False),
        user_agent=(os.getenv("USER_AGENT") or "").strip() or DEFAULT_USER_AGENT,
    )

    logger.info(
        "[config] effective DB_PATH=%s BATCH=%s/%s MAX_WORKERS=%s FETCH_TIMEOUT_S=%s "
        "BATCH_TIME_BUDGET_S=%s ROLE_KEYWORDS=%s VERIFY_LINKS=%s VERIFY_CONTENT=%s CRON_SECRET=%s AUTH_URL=%s",
        cfg.db_path,
        cfg.discovery_batch_size,
        cfg.scrape_batch_size,
        cfg.max_workers,
        cfg.fetch_timeout_s,
        cfg.batch_time_budget_s,
        len(cfg.role_keywords),
        cfg.verify_links,
        cfg.verify_content,
        "set" if cfg.cron_secret else "unset",
        cfg.auth_url or "unset",
    )
    return cfg


@lru_cache(maxsize=1)
def get_config() -> PipelineConfig:
    return load_config()
