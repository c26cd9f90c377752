from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, field_validator

from podcastsearch.app.embeddings.service import (
    EmbeddingProvider,
    RemoteEmbeddingProvider,
    build_embedding_provider,
)
from podcastsearch.app.rankings.cache import RankingsCache
from podcastsearch.app.rankings.charts_client import AppleChartsClient
from podcastsearch.app.rankings.contracts import RankingType
from podcastsearch.app.rankings.service import RankingsService
from podcastsearch.app.response.contracts import ResponseStatus
from podcastsearch.app.search.contracts import SearchMode, SearchParams
from podcastsearch.app.search.index_client import ElasticsearchIndexClient
from podcastsearch.app.search.query_builder import QueryBuilder
from podcastsearch.app.search.service import SearchService, SearchSettings
from podcastsearch.core.config import AppConfig, load_app_config
from podcastsearch.core.errors import (
    InvalidSearchRequestError,
    SearchParseError,
    SearchServiceError,
)
from podcastsearch.core.logging import configure_logging

LOGGER = logging.getLogger(__name__)

SUPPORTED_REGIONS_PATTERN = "^(tw|us)$"


class ShowSearchRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    q: str
    page: int = Field(default=1, ge=1)
    size: int = Field(default=10, ge=1, le=100)
    language: list[str] | None = None

    @field_validator("q")
    @classmethod
    def _query_not_blank(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("Search query cannot be empty")
        return stripped

    def to_params(self) -> SearchParams:
        return SearchParams(
            query=self.q,
            page=self.page,
            size=self.size,
            languages=tuple(self.language or ()),
        )


class EpisodeSearchRequest(ShowSearchRequest):
    size: int = Field(default=20, ge=1, le=100)
    sort: str | None = Field(default=None, pattern="^(relevance|date)$")
    search_mode: SearchMode = Field(default=SearchMode.LEXICAL, alias="searchMode")

    def to_params(self) -> SearchParams:
        return SearchParams(
            query=self.q,
            page=self.page,
            size=self.size,
            languages=tuple(self.language or ()),
            mode=self.search_mode,
            sort=self.sort,
        )


def _error_response(
    status_code: int, code: str, message: str, **extra: object
) -> JSONResponse:
    error: dict[str, object] = {"code": code, "message": message, **extra}
    return JSONResponse(
        status_code=status_code, content={"status": "error", "error": error}
    )


def _format_validation_error(error: dict[str, object]) -> str:
    location = error.get("loc") or ()
    field = ".".join(
        str(part) for part in location if part not in {"body", "query"}
    )
    message = str(error.get("msg", "invalid value"))
    return f"{field}: {message}" if field else message


def _build_search_service(
    config: AppConfig, embedding_provider: EmbeddingProvider
) -> SearchService:
    index_client = ElasticsearchIndexClient(
        url=config.elasticsearch_url,
        username=config.elasticsearch_username,
        password=config.elasticsearch_password,
        api_key_id=config.elasticsearch_api_key_id,
        api_key_secret=config.elasticsearch_api_key_secret,
        timeout_seconds=config.elasticsearch_timeout_seconds,
    )
    return SearchService(
        index_client=index_client,
        query_builder=QueryBuilder(knn_num_candidates=config.knn_num_candidates),
        embedding_provider=embedding_provider,
        settings=SearchSettings(
            shows_index=config.shows_index,
            episodes_index=config.episodes_index,
            rank_constant=config.rrf_rank_constant,
            window_size=config.rrf_window_size,
            fallback_warning=config.search_fallback_warning,
        ),
    )


def _build_rankings_service(config: AppConfig) -> RankingsService:
    return RankingsService(
        charts_client=AppleChartsClient(
            base_url=config.charts_base_url,
            timeout_seconds=config.charts_timeout_seconds,
        ),
        cache=RankingsCache(ttl_seconds=config.rankings_cache_ttl_seconds),
    )


def create_app(
    config: AppConfig | None = None,
    *,
    embedding_provider: EmbeddingProvider | None = None,
    search_service: SearchService | None = None,
    rankings_service: RankingsService | None = None,
) -> FastAPI:
    config = config or load_app_config()
    configure_logging(config.log_level)
    embedding_provider = embedding_provider or build_embedding_provider(config)
    search_service = search_service or _build_search_service(
        config, embedding_provider
    )
    rankings_service = rankings_service or _build_rankings_service(config)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        if isinstance(embedding_provider, RemoteEmbeddingProvider):
            await embedding_provider.check_health()
        yield

    app = FastAPI(title=config.app_name, version=config.app_version, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(config.cors_allowed_origins),
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        max_age=config.cors_max_age_seconds,
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started_at = time.perf_counter()
        path = request.url.path
        full_path = f"{path}?{request.url.query}" if request.url.query else path
        LOGGER.info("Request: %s %s", request.method, full_path)
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            elapsed_ms = int((time.perf_counter() - started_at) * 1000)
            LOGGER.info(
                "Response: %s %s - %s (%sms)",
                request.method,
                path,
                status_code,
                elapsed_ms,
            )

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(
        _request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        details = [_format_validation_error(error) for error in exc.errors()]
        return _error_response(
            400, "INVALID_PARAMETER", "; ".join(details), details=details
        )

    @app.exception_handler(InvalidSearchRequestError)
    async def handle_invalid_request(
        _request: Request, exc: InvalidSearchRequestError
    ) -> JSONResponse:
        return _error_response(400, "BAD_REQUEST", str(exc))

    @app.exception_handler(SearchParseError)
    async def handle_parse_error(
        _request: Request, exc: SearchParseError
    ) -> JSONResponse:
        LOGGER.error("Search parse error: %s", exc.message, extra={"code": exc.code})
        return _error_response(500, exc.code, exc.message)

    @app.exception_handler(SearchServiceError)
    async def handle_service_error(
        _request: Request, exc: SearchServiceError
    ) -> JSONResponse:
        LOGGER.error("Search service error", exc_info=exc)
        return _error_response(
            503, "SEARCH_SERVICE_ERROR", "Search service temporarily unavailable"
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(
        _request: Request, exc: Exception
    ) -> JSONResponse:
        trace_id = uuid4().hex[:8]
        LOGGER.error(
            "Unexpected error occurred", exc_info=exc, extra={"trace_id": trace_id}
        )
        return _error_response(
            500, "INTERNAL_ERROR", "An unexpected error occurred", traceId=trace_id
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "UP"}

    @app.post("/api/search/shows")
    async def search_shows(payload: ShowSearchRequest) -> JSONResponse:
        response = await search_service.search_shows(payload.to_params())
        return JSONResponse(content=response.to_payload())

    @app.post("/api/search/episodes")
    async def search_episodes(payload: EpisodeSearchRequest) -> JSONResponse:
        response = await search_service.search_episodes(payload.to_params())
        return JSONResponse(content=response.to_payload())

    @app.get("/api/rankings")
    async def rankings(
        region: str = Query(default="tw", pattern=SUPPORTED_REGIONS_PATTERN),
        ranking_type: RankingType = Query(default=RankingType.PODCAST, alias="type"),
        limit: int = Query(default=20, ge=1, le=100),
    ) -> JSONResponse:
        response = await rankings_service.get_rankings_response(
            region, ranking_type, limit
        )
        status_code = 500 if response.status == ResponseStatus.ERROR else 200
        return JSONResponse(content=response.to_payload(), status_code=status_code)

    return app
