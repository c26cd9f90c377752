from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class SearchMode(str, Enum):
    LEXICAL = "bm25"
    VECTOR = "knn"
    HYBRID = "hybrid"


@dataclass(frozen=True)
class RetrievalHit:
    hit_id: str
    source: Mapping[str, Any] | None
    highlight: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    rank: int = 0
    # True when the index returned no document id and hit_id is positional.
    anonymous: bool = False


@dataclass(frozen=True)
class IndexResult:
    hits: tuple[RetrievalHit, ...]
    total: int | None = None


@dataclass(frozen=True)
class FusedResult:
    hit_id: str
    hit: RetrievalHit
    score: float


@dataclass(frozen=True)
class SearchParams:
    query: str
    page: int = 1
    size: int = 20
    languages: tuple[str, ...] = tuple()
    mode: SearchMode = SearchMode.LEXICAL
    sort: str | None = None

    @property
    def offset(self) -> int:
        return (max(self.page, 1) - 1) * self.size

    @property
    def sort_by_date(self) -> bool:
        return (self.sort or "").lower() == "date"
