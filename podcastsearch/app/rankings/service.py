from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any, Protocol

from podcastsearch.app.rankings.cache import RankingsCache, utc_now
from podcastsearch.app.rankings.contracts import (
    RANKING_ID_PREFIXES,
    RankingType,
    RankingsItem,
)
from podcastsearch.app.response.contracts import RankingsResponse, RankingsResponseData

LOGGER = logging.getLogger(__name__)


class ChartsSource(Protocol):
    async def fetch_chart(
        self, region: str, ranking_type: RankingType
    ) -> dict[str, Any] | None: ...


def _text(node: Mapping[str, Any], field: str) -> str | None:
    value = node.get(field)
    if value is None or isinstance(value, (dict, list)):
        return None
    return str(value)


def parse_chart_feed(
    chart_data: Mapping[str, Any], ranking_type: RankingType
) -> list[RankingsItem]:
    feed = chart_data.get("feed")
    results = feed.get("results") if isinstance(feed, Mapping) else None
    if not isinstance(results, list):
        LOGGER.warning(
            "No results array in chart response",
            extra={"ranking_type": ranking_type.value},
        )
        return []

    id_prefix = RANKING_ID_PREFIXES[ranking_type]
    items: list[RankingsItem] = []
    for entry in results:
        if not isinstance(entry, Mapping):
            continue
        raw_id = _text(entry, "id")
        items.append(
            RankingsItem(
                rank=len(items) + 1,
                show_id=f"{id_prefix}{raw_id}" if raw_id is not None else None,
                title=_text(entry, "name"),
                publisher=_text(entry, "artistName") or _text(entry, "collectionName"),
                image_url=_text(entry, "artworkUrl100"),
            )
        )
    return items


class RankingsService:
    def __init__(
        self,
        *,
        charts_client: ChartsSource,
        cache: RankingsCache,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._charts_client = charts_client
        self._cache = cache
        self._clock = clock

    async def get_rankings(
        self, region: str, ranking_type: RankingType, limit: int
    ) -> tuple[list[RankingsItem], datetime]:
        ranking_type = RankingType(ranking_type)
        cached = self._cache.get(region, ranking_type)
        if cached is not None:
            cached_at = self._cache.get_cached_at(region, ranking_type) or self._clock()
            return list(cached[:limit]), cached_at

        chart_data = await self._charts_client.fetch_chart(region, ranking_type)
        if chart_data is None:
            stale = self._cache.get_stale(region, ranking_type)
            if stale is not None:
                cached_at = (
                    self._cache.get_cached_at(region, ranking_type) or self._clock()
                )
                LOGGER.warning(
                    "Using stale cache for rankings",
                    extra={
                        "region": region,
                        "ranking_type": ranking_type.value,
                        "cached_at": cached_at.isoformat(),
                    },
                )
                return list(stale[:limit]), cached_at
            LOGGER.warning(
                "Charts unavailable and no cached rankings; returning empty list",
                extra={"region": region, "ranking_type": ranking_type.value},
            )
            return [], self._clock()

        items = parse_chart_feed(chart_data, ranking_type)
        entry = self._cache.put(region, ranking_type, items)
        return items[:limit], entry.cached_at

    async def get_rankings_response(
        self, region: str, ranking_type: RankingType, limit: int
    ) -> RankingsResponse:
        ranking_type = RankingType(ranking_type)
        try:
            items, updated_at = await self.get_rankings(region, ranking_type, limit)
        except Exception as exc:  # noqa: BLE001
            LOGGER.exception(
                "Failed to get rankings",
                extra={"region": region, "ranking_type": ranking_type.value},
            )
            return RankingsResponse.failure("RANKINGS_ERROR", str(exc))

        return RankingsResponse.ok(
            RankingsResponseData(
                region=region,
                ranking_type=ranking_type.value,
                items=items,
                updated_at=updated_at,
            )
        )
