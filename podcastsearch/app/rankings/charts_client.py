from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from podcastsearch.app.rankings.contracts import RankingType

LOGGER = logging.getLogger(__name__)

CHART_FEEDS = {
    RankingType.PODCAST: "podcasts.json",
    RankingType.EPISODE: "podcast-episodes.json",
}
CHART_SIZE = 100


@dataclass(frozen=True)
class AppleChartsClient:
    base_url: str = "https://rss.applemarketingtools.com/api/v2"
    timeout_seconds: float = 30.0
    transport: httpx.AsyncBaseTransport | None = None

    def chart_url(self, region: str, ranking_type: RankingType) -> str:
        feed = CHART_FEEDS[RankingType(ranking_type)]
        return (
            f"{self.base_url.rstrip('/')}/{region}/podcasts/top/{CHART_SIZE}/{feed}"
        )

    async def fetch_chart(
        self, region: str, ranking_type: RankingType
    ) -> dict[str, Any] | None:
        """Return the raw chart feed, or None when the charts source is unavailable."""
        url = self.chart_url(region, ranking_type)
        LOGGER.info(
            "Fetching chart",
            extra={"ranking_type": RankingType(ranking_type).value, "region": region},
        )
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_seconds,
                transport=self.transport,
                follow_redirects=True,
            ) as client:
                response = await client.get(url, headers={"Accept": "application/json"})
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            LOGGER.error(
                "Failed to fetch chart",
                extra={
                    "ranking_type": RankingType(ranking_type).value,
                    "region": region,
                    "error": exc.__class__.__name__,
                },
            )
            return None

        if not isinstance(payload, dict):
            LOGGER.error("Chart response is not a JSON object", extra={"region": region})
            return None
        return payload
