from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Protocol

from podcastsearch.app.embeddings.service import EmbeddingProvider
from podcastsearch.app.response.contracts import (
    EpisodeSearchResponse,
    ResponseStatus,
    ShowSearchResponse,
)
from podcastsearch.app.search.contracts import IndexResult, SearchMode, SearchParams
from podcastsearch.app.search.fusion import DEFAULT_RANK_CONSTANT, fuse
from podcastsearch.app.search.mapper import to_episode_response, to_show_response
from podcastsearch.app.search.query_builder import QueryBuilder
from podcastsearch.core.errors import EmbeddingError, InvalidSearchRequestError

LOGGER = logging.getLogger(__name__)

DEFAULT_WINDOW_SIZE = 100


class SearchIndex(Protocol):
    async def search(self, index_name: str, query: dict[str, Any]) -> IndexResult: ...


@dataclass(frozen=True)
class SearchSettings:
    shows_index: str = "shows"
    episodes_index: str = "episodes"
    rank_constant: int = DEFAULT_RANK_CONSTANT
    window_size: int = DEFAULT_WINDOW_SIZE
    fallback_warning: bool = False


def _total_or_count(result: IndexResult) -> int:
    return result.total if result.total is not None else len(result.hits)


class SearchService:
    def __init__(
        self,
        *,
        index_client: SearchIndex,
        query_builder: QueryBuilder,
        embedding_provider: EmbeddingProvider,
        settings: SearchSettings | None = None,
    ) -> None:
        self._index_client = index_client
        self._query_builder = query_builder
        self._embedding_provider = embedding_provider
        self._settings = settings or SearchSettings()

    async def search_shows(self, params: SearchParams) -> ShowSearchResponse:
        LOGGER.info(
            "Searching shows",
            extra={"query": params.query, "page": params.page, "size": params.size},
        )
        query = self._query_builder.build_show_query(params)
        result = await self._index_client.search(self._settings.shows_index, query)
        return to_show_response(result, params)

    async def search_episodes(self, params: SearchParams) -> EpisodeSearchResponse:
        mode = params.mode
        LOGGER.info(
            "Searching episodes",
            extra={
                "query": params.query,
                "mode": mode.value,
                "page": params.page,
                "size": params.size,
            },
        )
        if mode == SearchMode.LEXICAL:
            return await self._search_lexical(params)

        if params.page > 1:
            raise InvalidSearchRequestError(
                f"Pagination beyond page 1 is not supported for searchMode={mode.value}"
            )

        if not self._embedding_provider.is_available():
            return await self._fallback_to_lexical(params, reason="embedding_unavailable")

        try:
            vector = await self._embedding_provider.encode(params.query)
        except EmbeddingError:
            return await self._fallback_to_lexical(params, reason="embedding_failed")

        if mode == SearchMode.VECTOR:
            return await self._search_vector(params, vector)
        return await self._search_hybrid(params, vector)

    async def _search_lexical(self, params: SearchParams) -> EpisodeSearchResponse:
        query = self._query_builder.build_lexical_query(params)
        result = await self._index_client.search(self._settings.episodes_index, query)
        LOGGER.debug("BM25 search completed", extra={"total": result.total})
        return to_episode_response(result, params)

    async def _search_vector(
        self, params: SearchParams, vector: list[float]
    ) -> EpisodeSearchResponse:
        query = self._query_builder.build_vector_query(
            vector, size=params.size, languages=params.languages
        )
        result = await self._index_client.search(self._settings.episodes_index, query)
        LOGGER.debug("kNN search completed", extra={"total": result.total})
        return to_episode_response(result, params)

    async def _search_hybrid(
        self, params: SearchParams, vector: list[float]
    ) -> EpisodeSearchResponse:
        window = self._settings.window_size
        index_name = self._settings.episodes_index
        lexical_query = self._query_builder.build_lexical_query(
            params, offset=0, size=window
        )
        vector_query = self._query_builder.build_vector_query(
            vector, size=window, languages=params.languages
        )
        lexical_result, vector_result = await asyncio.gather(
            self._index_client.search(index_name, lexical_query),
            self._index_client.search(index_name, vector_query),
            return_exceptions=True,
        )
        # Fusing against a single surviving list is not supported.
        for outcome in (lexical_result, vector_result):
            if isinstance(outcome, BaseException):
                raise outcome

        fused = fuse(
            lexical_result.hits,
            vector_result.hits,
            limit=params.size,
            rank_constant=self._settings.rank_constant,
        )
        total = min(
            _total_or_count(lexical_result) + _total_or_count(vector_result),
            window * 2,
        )
        LOGGER.info(
            "Hybrid search completed",
            extra={
                "bm25": len(lexical_result.hits),
                "knn": len(vector_result.hits),
                "fused": len(fused),
            },
        )
        fused_result = IndexResult(hits=tuple(result.hit for result in fused))
        return to_episode_response(fused_result, params, total=total)

    async def _fallback_to_lexical(
        self, params: SearchParams, *, reason: str
    ) -> EpisodeSearchResponse:
        LOGGER.warning(
            "Embedding service not available, falling back to BM25",
            extra={"mode": params.mode.value, "reason": reason},
        )
        response = await self._search_lexical(params)
        if not self._settings.fallback_warning or response.status == ResponseStatus.ERROR:
            return response
        warning = f"searchMode={params.mode.value} unavailable; returned bm25 results"
        if response.warning:
            warning = f"{response.warning}; {warning}"
        return EpisodeSearchResponse.partial(response.data, warning)
