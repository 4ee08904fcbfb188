# backend/tests/test_config.py
import os

import pytest

from hospital_jobs.core.config import DEFAULT_ALLOWED_ORIGINS, PipelineConfig, load_config
from hospital_jobs.core.errors import ConfigError

ENV_KEYS = (
    "DB_PATH",
    "CRON_SECRET",
    "ALLOWED_ORIGINS",
    "SCRAPE_BATCH_SIZE",
    "FETCH_MAX_WORKERS",
    "FETCH_TIMEOUT_S",
    "ROLE_KEYWORDS",
    "SCRAPE_VERIFY_LINKS",
    "SCRAPE_VERIFY_CONTENT",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for k in ENV_KEYS:
        monkeypatch.delenv(k, raising=False)


def test_defaults():
    cfg = load_config()
    assert cfg.scrape_batch_size == 25
    assert cfg.max_workers == 4
    assert cfg.allowed_origins == DEFAULT_ALLOWED_ORIGINS
    assert cfg.verify_links is False
    assert cfg.verify_content is False
    assert cfg.role_keywords == ()
    assert os.path.isabs(cfg.db_path)


def test_env_overrides_and_bounds(monkeypatch):
    monkeypatch.setenv("SCRAPE_BATCH_SIZE", "0")
    monkeypatch.setenv("FETCH_MAX_WORKERS", "64")
    monkeypatch.setenv("FETCH_TIMEOUT_S", "soon")
    monkeypatch.setenv("ROLE_KEYWORDS", " assistenzarzt, ,arzt in weiterbildung ")
    monkeypatch.setenv("SCRAPE_VERIFY_LINKS", "yes")
    monkeypatch.setenv("SCRAPE_VERIFY_CONTENT", "on")
    monkeypatch.setenv("ALLOWED_ORIGINS", "https://a.example,https://b.example")

    cfg = load_config()

    assert cfg.scrape_batch_size == 1
    assert cfg.max_workers == 8
    assert cfg.fetch_timeout_s == 12.0
    assert cfg.role_keywords == ("assistenzarzt", "arzt in weiterbildung")
    assert cfg.verify_links is True
    assert cfg.verify_content is True
    assert cfg.allowed_origins == ("https://a.example", "https://b.example")


def test_invalid_bool_uses_default(monkeypatch):
    monkeypatch.setenv("SCRAPE_VERIFY_LINKS", "maybe")
    assert load_config().verify_links is False


def test_clamp_batch_size():
    cfg = PipelineConfig(max_batch_size=50)
    assert cfg.clamp_batch_size(None, 25) == 25
    assert cfg.clamp_batch_size(10, 25) == 10
    assert cfg.clamp_batch_size(500, 25) == 50


def test_empty_db_path_fails_validation(monkeypatch):
    monkeypatch.setenv("DB_PATH", "  ")
    cfg = load_config()
    with pytest.raises(ConfigError):
        cfg.validate()
