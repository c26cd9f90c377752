from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence
from datetime import datetime, timezone
from enum import Enum

from podcastsearch.app.rankings.contracts import CacheEntry, RankingsItem

LOGGER = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 3600


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _cache_key(region: str, ranking_type: str) -> tuple[str, str]:
    if isinstance(ranking_type, Enum):
        ranking_type = ranking_type.value
    return region, ranking_type


class RankingsCache:
    """Per-(region, ranking type) TTL cache of chart items.

    ``get`` treats expired entries as absent but deliberately does not evict
    them, so the stale-on-failure fallback can still read them through
    ``get_stale`` until they are replaced or the cache is cleared.
    """

    def __init__(
        self,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[tuple[str, str], CacheEntry] = {}
        self._lock = threading.Lock()
        LOGGER.info("RankingsCache initialized", extra={"ttl_seconds": ttl_seconds})

    @property
    def ttl_seconds(self) -> int:
        return self._ttl_seconds

    def get(self, region: str, ranking_type: str) -> tuple[RankingsItem, ...] | None:
        key = _cache_key(region, ranking_type)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                LOGGER.debug("Cache miss", extra={"cache_key": key})
                return None
            if entry.is_expired(self._clock()):
                LOGGER.debug("Cache expired", extra={"cache_key": key})
                return None
        LOGGER.debug("Cache hit", extra={"cache_key": key})
        return entry.items

    def get_stale(
        self, region: str, ranking_type: str
    ) -> tuple[RankingsItem, ...] | None:
        with self._lock:
            entry = self._entries.get(_cache_key(region, ranking_type))
        return entry.items if entry is not None else None

    def put(
        self, region: str, ranking_type: str, items: Sequence[RankingsItem]
    ) -> CacheEntry:
        key = _cache_key(region, ranking_type)
        entry = CacheEntry(
            items=tuple(items),
            cached_at=self._clock(),
            ttl_seconds=self._ttl_seconds,
        )
        with self._lock:
            self._entries[key] = entry
        LOGGER.info("Cached rankings", extra={"cache_key": key, "count": len(items)})
        return entry

    def get_cached_at(self, region: str, ranking_type: str) -> datetime | None:
        with self._lock:
            entry = self._entries.get(_cache_key(region, ranking_type))
        return entry.cached_at if entry is not None else None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
        LOGGER.info("Rankings cache cleared")

    def stats(self) -> dict[str, object]:
        with self._lock:
            keys = [f"{region}:{ranking_type}" for region, ranking_type in self._entries]
        return {"size": len(keys), "keys": sorted(keys)}
