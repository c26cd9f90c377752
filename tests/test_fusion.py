from __future__ import annotations

import pytest

from podcastsearch.app.search.contracts import RetrievalHit
from podcastsearch.app.search.fusion import fuse, fuse_ranked_lists


def _hits(*ids: str) -> list[RetrievalHit]:
    return [
        RetrievalHit(hit_id=hit_id, source={"episode_id": hit_id}, rank=rank)
        for rank, hit_id in enumerate(ids)
    ]


def test_single_hit_scores_one_over_k_plus_one() -> None:
    fused = fuse(_hits("doc1"), [], limit=10)

    assert [result.hit_id for result in fused] == ["doc1"]
    assert fused[0].score == pytest.approx(1 / 61)


def test_id_in_both_lists_sums_contributions() -> None:
    fused = fuse(_hits("doc1"), _hits("doc1"), limit=10)

    assert len(fused) == 1
    assert fused[0].score == pytest.approx(2 / 61)


def test_overlap_outranks_single_list_hits() -> None:
    fused = fuse(_hits("doc1", "doc2"), _hits("doc2", "doc3"), limit=10)

    assert [result.hit_id for result in fused] == ["doc2", "doc1", "doc3"]
    assert fused[0].score == pytest.approx(1 / 62 + 1 / 61)
    assert fused[1].score == pytest.approx(1 / 61)
    assert fused[2].score == pytest.approx(1 / 62)


def test_zero_limit_returns_empty() -> None:
    assert fuse(_hits("doc1", "doc2"), _hits("doc3"), limit=0) == []


def test_empty_lists_return_empty() -> None:
    assert fuse([], [], limit=5) == []


def test_limit_truncates_results() -> None:
    fused = fuse(_hits("a", "b", "c"), _hits("d", "e"), limit=2)

    assert len(fused) == 2


def test_equal_scores_keep_first_encounter_order() -> None:
    fused = fuse(_hits("a", "b"), _hits("c", "d"), limit=10)

    assert [result.hit_id for result in fused] == ["a", "c", "b", "d"]


def test_output_is_sorted_non_increasing() -> None:
    fused = fuse_ranked_lists(
        [_hits("a", "b", "c", "d"), _hits("d", "c", "x"), _hits("x", "a")],
        limit=10,
    )
    scores = [result.score for result in fused]

    assert scores == sorted(scores, reverse=True)
    assert len({result.hit_id for result in fused}) == len(fused)


def test_first_seen_hit_payload_is_retained() -> None:
    lexical = [RetrievalHit(hit_id="doc1", source={"origin": "bm25"})]
    vector = [RetrievalHit(hit_id="doc1", source={"origin": "knn"})]

    fused = fuse(lexical, vector, limit=1)

    assert fused[0].hit.source == {"origin": "bm25"}


def test_custom_rank_constant_changes_scores() -> None:
    fused = fuse(_hits("doc1"), [], limit=1, rank_constant=1)

    assert fused[0].score == pytest.approx(1 / 2)


def test_does_not_mutate_inputs() -> None:
    lexical = _hits("a", "b")
    vector = _hits("b")
    fuse(lexical, vector, limit=5)

    assert [hit.hit_id for hit in lexical] == ["a", "b"]
    assert [hit.hit_id for hit in vector] == ["b"]


def test_anonymous_hits_are_not_merged_across_lists() -> None:
    lexical = [RetrievalHit(hit_id="#0", source={"episode_id": "a"}, anonymous=True)]
    vector = [RetrievalHit(hit_id="#0", source={"episode_id": "b"}, anonymous=True)]

    fused = fuse(lexical, vector, limit=10)

    assert len(fused) == 2
    assert [result.hit.source["episode_id"] for result in fused] == ["a", "b"]
    assert all(result.score == pytest.approx(1 / 61) for result in fused)


def test_anonymous_hit_does_not_absorb_a_real_id() -> None:
    lexical = _hits("#0")
    vector = [RetrievalHit(hit_id="#0", source={"episode_id": "b"}, anonymous=True)]

    fused = fuse(lexical, vector, limit=10)

    assert len(fused) == 2
