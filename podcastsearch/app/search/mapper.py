from __future__ import annotations

import logging
import math
from collections.abc import Callable, Mapping
from typing import Any, TypeVar

from pydantic import BaseModel

from podcastsearch.app.response.contracts import (
    AudioInfo,
    EpisodeSearchItem,
    EpisodeSearchResponse,
    ExternalUrl,
    ResponseEnvelope,
    SearchResponseData,
    ShowInfo,
    ShowSearchItem,
    ShowSearchResponse,
)
from podcastsearch.app.search.contracts import IndexResult, RetrievalHit, SearchParams
from podcastsearch.core.errors import (
    ES_DOCUMENT_PARSE_ERROR,
    ES_PARSE_ERROR,
    SearchParseError,
)

LOGGER = logging.getLogger(__name__)

ItemT = TypeVar("ItemT", bound=BaseModel)


class HitParseError(ValueError):
    pass


def _text(node: Mapping[str, Any], field: str) -> str | None:
    value = node.get(field)
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)):
        return str(value)
    raise HitParseError(f"field '{field}' is not a scalar value")


def _int(node: Mapping[str, Any], field: str) -> int | None:
    value = node.get(field)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return int(value)


def _object(node: Mapping[str, Any], field: str) -> Mapping[str, Any] | None:
    value = node.get(field)
    if value is None:
        return None
    if not isinstance(value, Mapping):
        raise HitParseError(f"field '{field}' is not an object")
    return value


def _string_map(node: Mapping[str, Any], field: str) -> dict[str, str]:
    value = node.get(field)
    if not isinstance(value, Mapping):
        return {}
    return {
        str(key): str(entry)
        for key, entry in value.items()
        if entry is not None and not isinstance(entry, (Mapping, list))
    }


def _highlights(hit: RetrievalHit) -> dict[str, list[str]]:
    return {field: list(snippets) for field, snippets in hit.highlight.items()}


def _require_source(hit: RetrievalHit) -> Mapping[str, Any]:
    if not isinstance(hit.source, Mapping):
        raise HitParseError(f"missing source in search hit {hit.hit_id}")
    return hit.source


def _audio_info(source: Mapping[str, Any]) -> AudioInfo | None:
    audio = _object(source, "audio")
    if audio is None:
        return None
    return AudioInfo(
        url=_text(audio, "url"),
        type=_text(audio, "type"),
        length_bytes=_int(audio, "length_bytes"),
    )


def _show_info(source: Mapping[str, Any]) -> ShowInfo | None:
    show = _object(source, "show")
    if show is None:
        return None
    external_url = None
    external_urls = _object(show, "external_urls")
    if external_urls is not None:
        apple_podcasts = _text(external_urls, "apple_podcasts")
        if apple_podcasts is not None:
            external_url = ExternalUrl(apple_podcasts=apple_podcasts)
    return ShowInfo(
        show_id=_text(show, "show_id"),
        title=_text(show, "title"),
        publisher=_text(show, "publisher"),
        image_url=_text(show, "image_url"),
        external_url=external_url,
    )


def build_episode_item(hit: RetrievalHit) -> EpisodeSearchItem:
    source = _require_source(hit)
    return EpisodeSearchItem(
        episode_id=_text(source, "episode_id"),
        title=_text(source, "title"),
        description=_text(source, "description"),
        highlights=_highlights(hit),
        published_at=_text(source, "published_at"),
        duration_sec=_int(source, "duration_sec"),
        image_url=_text(source, "image_url"),
        language=_text(source, "language"),
        audio=_audio_info(source),
        show=_show_info(source),
    )


def build_show_item(hit: RetrievalHit) -> ShowSearchItem:
    source = _require_source(hit)
    return ShowSearchItem(
        show_id=_text(source, "show_id"),
        title=_text(source, "title"),
        description=_text(source, "description"),
        language=_text(source, "language"),
        publisher=_text(source, "publisher"),
        image_url=_text(source, "image_url"),
        episode_count=_int(source, "episode_count"),
        highlights=_highlights(hit),
        external_ids=_string_map(source, "external_ids"),
        external_urls=_string_map(source, "external_urls"),
    )


def map_hits(
    hits: tuple[RetrievalHit, ...],
    build_item: Callable[[RetrievalHit], ItemT],
) -> tuple[list[ItemT], int]:
    items: list[ItemT] = []
    skipped = 0
    for hit in hits:
        try:
            items.append(build_item(hit))
        except (ValueError, TypeError, ArithmeticError) as exc:
            # pydantic.ValidationError is a ValueError subclass.
            skipped += 1
            LOGGER.warning(
                "Failed to parse search hit",
                extra={"hit_id": hit.hit_id, "error": str(exc)},
            )
    return items, skipped


def to_response(
    index_result: IndexResult | None,
    params: SearchParams,
    item_type: type[ItemT],
    build_item: Callable[[RetrievalHit], ItemT],
    *,
    total: int | None = None,
) -> ResponseEnvelope[SearchResponseData[ItemT]]:
    if index_result is None or index_result.hits is None:
        raise SearchParseError(ES_PARSE_ERROR, "Missing hits in search response")

    processed = len(index_result.hits)
    items, skipped = map_hits(index_result.hits, build_item)

    if processed > 0 and skipped == processed:
        raise SearchParseError(
            ES_DOCUMENT_PARSE_ERROR,
            f"All {processed} search hit(s) failed to parse",
        )

    if total is None:
        total = index_result.total if index_result.total is not None else len(items)

    data = SearchResponseData[item_type](
        page=params.page,
        size=params.size,
        total=max(int(total), 0),
        items=items,
    )
    envelope_type = ResponseEnvelope[SearchResponseData[item_type]]
    if skipped > 0:
        warning = f"{skipped} item(s) skipped due to parse errors"
        LOGGER.warning(
            "Search partial success: %s",
            warning,
            extra={"processed": processed, "skipped": skipped},
        )
        return envelope_type.partial(data, warning)
    return envelope_type.ok(data)


def to_episode_response(
    index_result: IndexResult | None,
    params: SearchParams,
    *,
    total: int | None = None,
) -> EpisodeSearchResponse:
    return to_response(
        index_result, params, EpisodeSearchItem, build_episode_item, total=total
    )


def to_show_response(
    index_result: IndexResult | None,
    params: SearchParams,
    *,
    total: int | None = None,
) -> ShowSearchResponse:
    return to_response(
        index_result, params, ShowSearchItem, build_show_item, total=total
    )
