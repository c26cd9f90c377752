"""Reciprocal Rank Fusion over ranked retrieval hit lists.

Each hit at zero-based position ``r`` in a list contributes
``1 / (rank_constant + r + 1)`` to the score of its id. Ids are ordered by
descending total score; equal scores keep first-encounter order. Anonymous
hits (no index id) are never merged across lists.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Union

from podcastsearch.app.search.contracts import FusedResult, RetrievalHit

LOGGER = logging.getLogger(__name__)

DEFAULT_RANK_CONSTANT = 60

FusionKey = Union[str, tuple[int, int]]


def rrf_contribution(rank: int, rank_constant: int = DEFAULT_RANK_CONSTANT) -> float:
    return 1.0 / (rank_constant + rank + 1)


def fuse_ranked_lists(
    ranked_lists: Sequence[Sequence[RetrievalHit]],
    limit: int,
    rank_constant: int = DEFAULT_RANK_CONSTANT,
) -> list[FusedResult]:
    if limit <= 0:
        return []

    scores: dict[FusionKey, float] = {}
    first_hits: dict[FusionKey, RetrievalHit] = {}
    for list_index, ranked_list in enumerate(ranked_lists):
        for rank, hit in enumerate(ranked_list):
            key: FusionKey = (list_index, rank) if hit.anonymous else hit.hit_id
            first_hits.setdefault(key, hit)
            scores[key] = scores.get(key, 0.0) + rrf_contribution(rank, rank_constant)

    # sorted() is stable, so ties stay in insertion (first-encounter) order.
    ordered_keys = sorted(scores, key=lambda key: scores[key], reverse=True)
    fused = [
        FusedResult(
            hit_id=first_hits[key].hit_id, hit=first_hits[key], score=scores[key]
        )
        for key in ordered_keys[:limit]
    ]
    LOGGER.debug(
        "rrf fusion: %d lists -> %d unique ids, returning %d",
        len(ranked_lists),
        len(ordered_keys),
        len(fused),
    )
    return fused


def fuse(
    list_a: Sequence[RetrievalHit],
    list_b: Sequence[RetrievalHit],
    limit: int,
    rank_constant: int = DEFAULT_RANK_CONSTANT,
) -> list[FusedResult]:
    return fuse_ranked_lists([list_a, list_b], limit, rank_constant=rank_constant)
