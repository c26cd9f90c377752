from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

from podcastsearch.app.embeddings.service import EmbeddingProvider
from podcastsearch.app.search.contracts import IndexResult, RetrievalHit
from podcastsearch.core.errors import EmbeddingError


def episode_source(episode_id: str, title: str | None = None) -> dict[str, Any]:
    return {
        "episode_id": episode_id,
        "title": title or f"Episode {episode_id}",
        "description": "A conversation about podcasts",
        "published_at": "2024-05-01T08:00:00Z",
        "duration_sec": 1800,
        "image_url": f"https://img.example/{episode_id}.jpg",
        "language": "zh-tw",
        "audio": {
            "url": "https://cdn.example/a.mp3",
            "type": "audio/mpeg",
            "length_bytes": 1024,
        },
        "show": {
            "show_id": "show-1",
            "title": "Tech Talk",
            "publisher": "Tech Corp",
            "external_urls": {"apple_podcasts": "https://podcasts.apple.com/1"},
        },
    }


def episode_hit(episode_id: str, rank: int = 0) -> RetrievalHit:
    return RetrievalHit(hit_id=episode_id, source=episode_source(episode_id), rank=rank)


def episode_result(*episode_ids: str, total: int | None = None) -> IndexResult:
    hits = tuple(
        episode_hit(episode_id, rank) for rank, episode_id in enumerate(episode_ids)
    )
    return IndexResult(hits=hits, total=total)


class FakeIndexClient:
    def __init__(self, *results: IndexResult | Exception) -> None:
        self._results = list(results)
        self.calls: list[tuple[str, dict[str, Any]]] = []

    async def search(self, index_name: str, query: dict[str, Any]) -> IndexResult:
        self.calls.append((index_name, query))
        if not self._results:
            raise AssertionError("unexpected search call")
        result = self._results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


class FakeEmbeddingProvider(EmbeddingProvider):
    def __init__(self, available: bool = True, fail: bool = False) -> None:
        self.available = available
        self.fail = fail
        self.encoded: list[str] = []

    async def encode(self, text: str) -> list[float]:
        self.encoded.append(text)
        if self.fail:
            self.available = False
            raise EmbeddingError("embedding backend down")
        return [0.1, 0.2, 0.3]

    def is_available(self) -> bool:
        return self.available


class FakeClock:
    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)
