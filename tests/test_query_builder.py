from __future__ import annotations

from podcastsearch.app.search.contracts import SearchParams
from podcastsearch.app.search.query_builder import QueryBuilder


def test_lexical_query_pages_and_filters_languages() -> None:
    query = QueryBuilder().build_lexical_query(
        SearchParams(query="ai", page=2, size=20, languages=("zh-tw", "en"))
    )

    assert query["from"] == 20
    assert query["size"] == 20
    assert query["track_total_hits"] is True
    assert query["query"]["bool"]["must"][0]["multi_match"]["query"] == "ai"
    assert query["query"]["bool"]["filter"] == [
        {"terms": {"language": ["zh-tw", "en"]}}
    ]
    assert "sort" not in query
    assert query["_source"] == {"excludes": ["embedding"]}


def test_lexical_query_sorts_by_date_on_request() -> None:
    query = QueryBuilder().build_lexical_query(SearchParams(query="ai", sort="date"))

    assert query["sort"][0] == {"published_at": {"order": "desc"}}


def test_lexical_query_window_override() -> None:
    query = QueryBuilder().build_lexical_query(
        SearchParams(query="ai", page=3, size=10), offset=0, size=100
    )

    assert (query["from"], query["size"]) == (0, 100)


def test_vector_query_widens_candidates_to_k() -> None:
    builder = QueryBuilder(knn_num_candidates=50, vector_field="vec")

    query = builder.build_vector_query([0.1, 0.2], size=100, languages=("en",))

    assert query["knn"] == {
        "field": "vec",
        "query_vector": [0.1, 0.2],
        "k": 100,
        "num_candidates": 100,
        "filter": [{"terms": {"language": ["en"]}}],
    }
    assert query["size"] == 100


def test_vector_query_without_languages_has_no_filter() -> None:
    query = QueryBuilder().build_vector_query([0.1], size=10)

    assert "filter" not in query["knn"]
    assert query["knn"]["num_candidates"] == 100


def test_show_query_searches_show_fields() -> None:
    query = QueryBuilder().build_show_query(SearchParams(query="tech", size=10))

    fields = query["query"]["bool"]["must"][0]["multi_match"]["fields"]
    assert "publisher^2" in fields
    assert query["from"] == 0
    assert query["query"]["bool"]["filter"] == []
