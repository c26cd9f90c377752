from __future__ import annotations

import pytest

from helpers import FakeClock
from podcastsearch.core.config import AppConfig, load_app_config

CONFIG_ENV_VARS = (
    "APP_NAME",
    "APP_VERSION",
    "APP_ENV",
    "LOG_LEVEL",
    "ELASTICSEARCH_URL",
    "ELASTICSEARCH_USERNAME",
    "ELASTICSEARCH_PASSWORD",
    "ELASTICSEARCH_API_KEY_ID",
    "ELASTICSEARCH_API_KEY_SECRET",
    "ELASTICSEARCH_TIMEOUT_SECONDS",
    "SEARCH_SHOWS_INDEX",
    "SEARCH_EPISODES_INDEX",
    "RRF_RANK_CONSTANT",
    "RRF_WINDOW_SIZE",
    "KNN_NUM_CANDIDATES",
    "SEARCH_FALLBACK_WARNING",
    "EMBEDDING_BACKEND",
    "EMBEDDING_SERVICE_URL",
    "EMBEDDING_TIMEOUT_SECONDS",
    "EMBEDDING_DIMENSIONS",
    "CHARTS_BASE_URL",
    "CHARTS_TIMEOUT_SECONDS",
    "RANKINGS_CACHE_TTL_SECONDS",
    "CORS_ALLOWED_ORIGINS",
    "CORS_MAX_AGE_SECONDS",
)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for name in CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture
def app_config(clean_env: pytest.MonkeyPatch) -> AppConfig:
    return load_app_config()
