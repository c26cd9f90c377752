from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class RankingType(str, Enum):
    PODCAST = "podcast"
    EPISODE = "episode"


RANKING_ID_PREFIXES = {
    RankingType.PODCAST: "show:apple:",
    RankingType.EPISODE: "episode:apple:",
}


class RankingsItem(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    rank: int
    show_id: str | None
    title: str | None
    publisher: str | None
    image_url: str | None
    language: str | None = None
    episode_count: int | None = None
    external_urls: dict[str, str] | None = None


@dataclass(frozen=True)
class CacheEntry:
    items: tuple[RankingsItem, ...]
    cached_at: datetime
    ttl_seconds: int

    def is_expired(self, now: datetime) -> bool:
        return now > self.cached_at + timedelta(seconds=self.ttl_seconds)
