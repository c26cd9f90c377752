from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from podcastsearch.app.search.contracts import SearchParams

EPISODE_TEXT_FIELDS = ("title^3", "description", "show.title^2", "show.publisher")
SHOW_TEXT_FIELDS = ("title^3", "publisher^2", "description")
EPISODE_HIGHLIGHT_FIELDS = ("title", "description")
SHOW_HIGHLIGHT_FIELDS = ("title", "description")


def _language_filter(languages: tuple[str, ...]) -> list[dict[str, Any]]:
    if not languages:
        return []
    return [{"terms": {"language": list(languages)}}]


def _highlight(fields: tuple[str, ...]) -> dict[str, Any]:
    return {
        "pre_tags": ["<em>"],
        "post_tags": ["</em>"],
        "fields": {field: {"number_of_fragments": 3} for field in fields},
    }


@dataclass(frozen=True)
class QueryBuilder:
    knn_num_candidates: int = 100
    vector_field: str = "embedding"

    def build_lexical_query(
        self,
        params: SearchParams,
        *,
        offset: int | None = None,
        size: int | None = None,
    ) -> dict[str, Any]:
        query: dict[str, Any] = {
            "from": params.offset if offset is None else offset,
            "size": params.size if size is None else size,
            "track_total_hits": True,
            "query": {
                "bool": {
                    "must": [
                        {
                            "multi_match": {
                                "query": params.query,
                                "fields": list(EPISODE_TEXT_FIELDS),
                                "type": "best_fields",
                            }
                        }
                    ],
                    "filter": _language_filter(params.languages),
                }
            },
            "highlight": _highlight(EPISODE_HIGHLIGHT_FIELDS),
            "_source": {"excludes": [self.vector_field]},
        }
        if params.sort_by_date:
            query["sort"] = [{"published_at": {"order": "desc"}}, "_score"]
        return query

    def build_vector_query(
        self,
        vector: list[float],
        *,
        size: int,
        languages: tuple[str, ...] = tuple(),
    ) -> dict[str, Any]:
        knn: dict[str, Any] = {
            "field": self.vector_field,
            "query_vector": list(vector),
            "k": size,
            "num_candidates": max(self.knn_num_candidates, size),
        }
        language_filter = _language_filter(languages)
        if language_filter:
            knn["filter"] = language_filter
        return {
            "size": size,
            "knn": knn,
            "_source": {"excludes": [self.vector_field]},
        }

    def build_show_query(self, params: SearchParams) -> dict[str, Any]:
        return {
            "from": params.offset,
            "size": params.size,
            "track_total_hits": True,
            "query": {
                "bool": {
                    "must": [
                        {
                            "multi_match": {
                                "query": params.query,
                                "fields": list(SHOW_TEXT_FIELDS),
                                "type": "best_fields",
                            }
                        }
                    ],
                    "filter": _language_filter(params.languages),
                }
            },
            "highlight": _highlight(SHOW_HIGHLIGHT_FIELDS),
        }
