from __future__ import annotations

from typing import Any

import pytest

from helpers import FakeClock
from podcastsearch.app.rankings.cache import RankingsCache
from podcastsearch.app.rankings.contracts import RankingType, RankingsItem
from podcastsearch.app.rankings.service import RankingsService, parse_chart_feed
from podcastsearch.app.response.contracts import ResponseStatus


def _feed(*ids: str) -> dict[str, Any]:
    return {
        "feed": {
            "results": [
                {
                    "id": chart_id,
                    "name": f"Chart {chart_id}",
                    "artistName": "Artist",
                    "artworkUrl100": f"https://img.example/{chart_id}.png",
                }
                for chart_id in ids
            ]
        }
    }


class FakeChartsClient:
    def __init__(self, payload: dict[str, Any] | None) -> None:
        self.payload = payload
        self.calls: list[tuple[str, RankingType]] = []

    async def fetch_chart(
        self, region: str, ranking_type: RankingType
    ) -> dict[str, Any] | None:
        self.calls.append((region, ranking_type))
        return self.payload


class BrokenCache(RankingsCache):
    def get(self, region: str, ranking_type: str) -> None:
        raise RuntimeError("cache corrupted")


def _service(
    charts: FakeChartsClient, clock: FakeClock, cache: RankingsCache | None = None
) -> tuple[RankingsService, RankingsCache]:
    cache = cache or RankingsCache(ttl_seconds=3600, clock=clock)
    return RankingsService(charts_client=charts, cache=cache, clock=clock), cache


def test_parse_chart_feed_assigns_ranks_and_prefixes() -> None:
    feed = _feed("123", "456")
    feed["feed"]["results"][1].pop("artistName")
    feed["feed"]["results"][1]["collectionName"] = "Collection"
    feed["feed"]["results"].insert(1, "not-an-entry")

    items = parse_chart_feed(feed, RankingType.PODCAST)

    assert [item.rank for item in items] == [1, 2]
    assert items[0].show_id == "show:apple:123"
    assert items[0].publisher == "Artist"
    assert items[1].publisher == "Collection"
    assert parse_chart_feed(_feed("9"), RankingType.EPISODE)[0].show_id == (
        "episode:apple:9"
    )


def test_parse_chart_feed_without_results_is_empty() -> None:
    assert parse_chart_feed({"feed": {}}, RankingType.PODCAST) == []
    assert parse_chart_feed({}, RankingType.PODCAST) == []


@pytest.mark.asyncio
async def test_cache_miss_fetches_and_stores(clock: FakeClock) -> None:
    charts = FakeChartsClient(_feed("1", "2", "3"))
    service, cache = _service(charts, clock)

    items, updated_at = await service.get_rankings("tw", RankingType.PODCAST, 2)

    assert [item.show_id for item in items] == ["show:apple:1", "show:apple:2"]
    assert updated_at == clock.now
    assert len(cache.get("tw", "podcast")) == 3
    assert charts.calls == [("tw", RankingType.PODCAST)]


@pytest.mark.asyncio
async def test_cache_hit_skips_fetch(clock: FakeClock) -> None:
    charts = FakeChartsClient(_feed("1"))
    service, cache = _service(charts, clock)
    cached = [
        RankingsItem(
            rank=1, show_id="show:apple:7", title="Cached", publisher=None, image_url=None
        )
    ]
    cache.put("us", "podcast", cached)
    cached_at = clock.now
    clock.advance(10)

    items, updated_at = await service.get_rankings("us", RankingType.PODCAST, 10)

    assert items == cached
    assert updated_at == cached_at
    assert charts.calls == []


@pytest.mark.asyncio
async def test_fetch_failure_serves_stale_items(clock: FakeClock) -> None:
    charts = FakeChartsClient(_feed("1", "2"))
    service, _ = _service(charts, clock)
    await service.get_rankings("tw", RankingType.EPISODE, 10)
    cached_at = clock.now

    clock.advance(7200)
    charts.payload = None
    response = await service.get_rankings_response("tw", RankingType.EPISODE, 1)

    assert response.status == ResponseStatus.OK
    assert [item.show_id for item in response.data.items] == ["episode:apple:1"]
    assert response.data.updated_at == cached_at
    assert len(charts.calls) == 2


@pytest.mark.asyncio
async def test_fetch_failure_without_cache_is_empty_ok(clock: FakeClock) -> None:
    service, _ = _service(FakeChartsClient(None), clock)

    response = await service.get_rankings_response("us", RankingType.PODCAST, 10)

    assert response.status == ResponseStatus.OK
    assert response.data.items == []
    assert response.data.updated_at == clock.now
    assert response.to_payload()["data"]["type"] == "podcast"


@pytest.mark.asyncio
async def test_cache_failure_becomes_error_envelope(clock: FakeClock) -> None:
    service, _ = _service(
        FakeChartsClient(_feed("1")), clock, cache=BrokenCache(clock=clock)
    )

    response = await service.get_rankings_response("tw", RankingType.PODCAST, 10)

    assert response.status == ResponseStatus.ERROR
    assert response.error.code == "RANKINGS_ERROR"
    assert response.data is None
