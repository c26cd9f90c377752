from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class AppConfig:
    app_name: str
    app_version: str
    environment: str
    log_level: str
    elasticsearch_url: str
    elasticsearch_username: str | None
    elasticsearch_password: str | None
    elasticsearch_api_key_id: str | None
    elasticsearch_api_key_secret: str | None
    elasticsearch_timeout_seconds: float
    shows_index: str
    episodes_index: str
    rrf_rank_constant: int
    rrf_window_size: int
    knn_num_candidates: int
    search_fallback_warning: bool
    embedding_backend: str
    embedding_service_url: str
    embedding_timeout_seconds: float
    embedding_dimensions: int
    charts_base_url: str
    charts_timeout_seconds: float
    rankings_cache_ttl_seconds: int
    cors_allowed_origins: tuple[str, ...]
    cors_max_age_seconds: int


def _read_optional_env(name: str) -> str | None:
    value = os.getenv(name)
    if not value:
        return None
    stripped = value.strip()
    return stripped if stripped else None


def _read_str_env(name: str, default: str) -> str:
    return _read_optional_env(name) or default


def _read_csv_env(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    value = _read_optional_env(name)
    if value is None:
        return default
    parsed = tuple(part.strip() for part in value.split(",") if part.strip())
    return parsed or default


def _read_bool_env(name: str, default: bool) -> bool:
    value = _read_optional_env(name)
    if value is None:
        return default
    normalized = value.lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    return default


def _read_int_env(name: str, default: int) -> int:
    value = _read_optional_env(name)
    if value is None:
        return default
    try:
        parsed = int(value)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_float_env(name: str, default: float) -> float:
    value = _read_optional_env(name)
    if value is None:
        return default
    try:
        parsed = float(value)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def load_app_config() -> AppConfig:
    return AppConfig(
        app_name=_read_str_env("APP_NAME", "Podcast Search Backend"),
        app_version=_read_str_env("APP_VERSION", "0.1.0"),
        environment=_read_str_env("APP_ENV", "development"),
        log_level=_read_str_env("LOG_LEVEL", "INFO").upper(),
        elasticsearch_url=_read_str_env(
            "ELASTICSEARCH_URL", "http://localhost:9200"
        ),
        elasticsearch_username=_read_optional_env("ELASTICSEARCH_USERNAME"),
        elasticsearch_password=_read_optional_env("ELASTICSEARCH_PASSWORD"),
        elasticsearch_api_key_id=_read_optional_env("ELASTICSEARCH_API_KEY_ID"),
        elasticsearch_api_key_secret=_read_optional_env(
            "ELASTICSEARCH_API_KEY_SECRET"
        ),
        elasticsearch_timeout_seconds=_read_float_env(
            "ELASTICSEARCH_TIMEOUT_SECONDS", default=30.0
        ),
        shows_index=_read_str_env("SEARCH_SHOWS_INDEX", "shows"),
        episodes_index=_read_str_env("SEARCH_EPISODES_INDEX", "episodes"),
        rrf_rank_constant=_read_int_env("RRF_RANK_CONSTANT", default=60),
        rrf_window_size=_read_int_env("RRF_WINDOW_SIZE", default=100),
        knn_num_candidates=_read_int_env("KNN_NUM_CANDIDATES", default=100),
        search_fallback_warning=_read_bool_env(
            "SEARCH_FALLBACK_WARNING", default=False
        ),
        embedding_backend=_read_str_env("EMBEDDING_BACKEND", "remote").lower(),
        embedding_service_url=_read_str_env(
            "EMBEDDING_SERVICE_URL", "http://localhost:8081"
        ),
        embedding_timeout_seconds=_read_float_env(
            "EMBEDDING_TIMEOUT_SECONDS", default=5.0
        ),
        embedding_dimensions=_read_int_env("EMBEDDING_DIMENSIONS", default=384),
        charts_base_url=_read_str_env(
            "CHARTS_BASE_URL", "https://rss.applemarketingtools.com/api/v2"
        ),
        charts_timeout_seconds=_read_float_env("CHARTS_TIMEOUT_SECONDS", default=30.0),
        rankings_cache_ttl_seconds=_read_int_env(
            "RANKINGS_CACHE_TTL_SECONDS", default=3600
        ),
        cors_allowed_origins=_read_csv_env(
            "CORS_ALLOWED_ORIGINS", default=("http://localhost:3000",)
        ),
        cors_max_age_seconds=_read_int_env("CORS_MAX_AGE_SECONDS", default=3600),
    )
