from __future__ import annotations

import base64
import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import httpx

from podcastsearch.app.search.contracts import IndexResult, RetrievalHit
from podcastsearch.core.errors import ES_PARSE_ERROR, SearchParseError, SearchServiceError

LOGGER = logging.getLogger(__name__)


def _parse_highlight(raw: object) -> dict[str, tuple[str, ...]]:
    if not isinstance(raw, Mapping):
        return {}
    highlight: dict[str, tuple[str, ...]] = {}
    for field, snippets in raw.items():
        if isinstance(snippets, list):
            highlight[str(field)] = tuple(
                snippet for snippet in snippets if isinstance(snippet, str)
            )
    return highlight


def _parse_total(raw: object) -> int | None:
    if isinstance(raw, Mapping):
        raw = raw.get("value")
    if isinstance(raw, bool) or not isinstance(raw, int):
        return None
    return raw


def parse_search_response(payload: object) -> IndexResult:
    hits_container = payload.get("hits") if isinstance(payload, Mapping) else None
    raw_hits = (
        hits_container.get("hits") if isinstance(hits_container, Mapping) else None
    )
    if not isinstance(raw_hits, list):
        raise SearchParseError(ES_PARSE_ERROR, "Missing hits in search response")

    hits: list[RetrievalHit] = []
    for rank, raw_hit in enumerate(raw_hits):
        if not isinstance(raw_hit, Mapping):
            hits.append(
                RetrievalHit(hit_id=f"#{rank}", source=None, rank=rank, anonymous=True)
            )
            continue
        source = raw_hit.get("_source")
        raw_id = raw_hit.get("_id")
        hits.append(
            RetrievalHit(
                hit_id=f"#{rank}" if raw_id is None else str(raw_id),
                source=source if isinstance(source, Mapping) else None,
                highlight=_parse_highlight(raw_hit.get("highlight")),
                rank=rank,
                anonymous=raw_id is None,
            )
        )
    return IndexResult(hits=tuple(hits), total=_parse_total(hits_container.get("total")))


@dataclass(frozen=True)
class ElasticsearchIndexClient:
    url: str
    username: str | None = None
    password: str | None = None
    api_key_id: str | None = None
    api_key_secret: str | None = None
    timeout_seconds: float = 30.0
    transport: httpx.AsyncBaseTransport | None = None

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self.api_key_id and self.api_key_secret:
            credentials = f"{self.api_key_id}:{self.api_key_secret}".encode("utf-8")
            headers["Authorization"] = (
                f"ApiKey {base64.b64encode(credentials).decode('ascii')}"
            )
        return headers

    def _auth(self) -> httpx.BasicAuth | None:
        # API key auth takes priority over basic auth.
        if self.api_key_id and self.api_key_secret:
            return None
        if self.username and self.password:
            return httpx.BasicAuth(self.username, self.password)
        return None

    async def search(self, index_name: str, query: dict[str, Any]) -> IndexResult:
        endpoint = f"{self.url.rstrip('/')}/{index_name}/_search"
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_seconds,
                transport=self.transport,
                auth=self._auth(),
            ) as client:
                response = await client.post(
                    endpoint,
                    headers=self._headers(),
                    content=json.dumps(query),
                )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            LOGGER.error(
                "Search index request failed",
                extra={"index": index_name, "error": exc.__class__.__name__},
            )
            raise SearchServiceError(f"Search on index '{index_name}' failed") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise SearchParseError(
                ES_PARSE_ERROR, "Invalid response from search service"
            ) from exc
        return parse_search_response(payload)
