import pytest

from algolite.model.query_model import QueryRequest
from algolite.repositories.index_registry import IndexRegistry
from algolite.repositories.search_index import IndexMatch, SearchIndex
from algolite.services.query_service import QueryService, paginate, sort_hits, to_hit
from algolite.utils.errors import FilterSyntaxError, IndexUnavailableError, InvalidQueryError, UnsupportedFilterError


@pytest.fixture
def registry(tmp_path):
    return IndexRegistry(path=str(tmp_path))


@pytest.fixture
def service(registry):
    return QueryService(registry)


@pytest.fixture
def key_index():
    index = SearchIndex("keys")
    index.put([{"_id": "a", "key": "x"}, {"_id": "b", "key": "y"}])
    return index


@pytest.fixture
def numbered_index():
    index = SearchIndex("numbers")
    index.put([{"_id": str(i), "n": i, "group": "even" if i % 2 == 0 else "odd"} for i in range(25)])
    return index


def object_ids(result):
    return [hit["objectID"] for hit in result.hits]


# ----------------------------
# clause assembly
# ----------------------------

def test_or_filter_returns_both(service, key_index):
    result = service.search(key_index, QueryRequest(filters="key:x OR key:y"))
    assert object_ids(result) == ["a", "b"]

def test_and_filter_returns_none(service, key_index):
    result = service.search(key_index, QueryRequest(filters="key:x AND key:y"))
    assert result.hits == []
    assert result.nb_hits == 0
    assert result.nb_pages == 0

def test_facet_filter_returns_one(service, key_index):
    result = service.search(key_index, QueryRequest(facetFilters=["key:x"]))
    assert object_ids(result) == ["a"]

def test_negated_filter(service, key_index):
    assert object_ids(service.search(key_index, QueryRequest(filters="NOT key:x"))) == ["b"]

def test_clauses_are_intersected(service, numbered_index):
    request = QueryRequest(query="", filters="group:even", facetFilters=[["n:2", "n:3", "n:4"]])
    assert object_ids(service.search(numbered_index, request)) == ["2", "4"]

def test_empty_query_is_wildcard(service, key_index):
    assert service.build_expressions(key_index, QueryRequest(query="")) == ["*"]

def test_absent_query_is_omitted(service, key_index):
    assert service.build_expressions(key_index, QueryRequest()) == []

def test_text_query_is_used_verbatim(service, key_index):
    assert service.build_expressions(key_index, QueryRequest(query="red shoe")) == ["red shoe"]

def test_empty_facet_filters_add_no_clause(service, key_index):
    assert service.build_expressions(key_index, QueryRequest(facetFilters=[])) == []

def test_syntax_error_fails_request(service, key_index):
    with pytest.raises(FilterSyntaxError):
        service.search(key_index, QueryRequest(filters="key:x AND"))

def test_unsupported_filter_fails_request(service, key_index):
    with pytest.raises(UnsupportedFilterError):
        service.search(key_index, QueryRequest(filters="NOT (key:x OR key:y)"))

def test_index_failure_propagates(service, key_index):
    key_index.close()
    with pytest.raises(IndexUnavailableError):
        service.search(key_index, QueryRequest(query=""))

# ----------------------------
# pagination
# ----------------------------

def test_first_page_is_full(service, numbered_index):
    result = service.search(numbered_index, QueryRequest(query="", hitsPerPage=20))
    assert result.nb_hits == 25
    assert result.nb_pages == 2
    assert object_ids(result) == [str(i) for i in range(20)]

def test_last_page_holds_the_remainder(service, numbered_index):
    result = service.search(numbered_index, QueryRequest(query="", page=1, hitsPerPage=20))
    assert object_ids(result) == ["20", "21", "22", "23", "24"]

def test_page_past_the_end_is_empty(service, numbered_index):
    result = service.search(numbered_index, QueryRequest(query="", page=3, hitsPerPage=20))
    assert result.hits == []
    assert result.nb_hits == 25

@pytest.mark.parametrize("nb_hits, hits_per_page, nb_pages", [(0, 20, 0), (20, 20, 1), (21, 20, 2), (25, 5, 5), (1, 1, 1)])
def test_nb_pages(service, nb_hits, hits_per_page, nb_pages):
    index = SearchIndex("sized")
    index.put([{"_id": str(i)} for i in range(nb_hits)])
    assert service.search(index, QueryRequest(hitsPerPage=hits_per_page)).nb_pages == nb_pages

def test_paginate_windows_are_contiguous():
    hits = [{"n": i} for i in range(7)]
    pages = [paginate(hits, page, 3) for page in range(3)]
    assert [len(p) for p in pages] == [3, 3, 1]
    assert sum(pages, []) == hits

# ----------------------------
# sorting & hit mapping
# ----------------------------

def test_sort_ascending_and_descending(service, numbered_index):
    asc = service.search(numbered_index, QueryRequest(hitsPerPage=3), sort_attribute="n")
    desc = service.search(numbered_index, QueryRequest(hitsPerPage=3), sort_attribute="n", sort_desc=True)
    assert object_ids(asc) == ["0", "1", "2"]
    assert object_ids(desc) == ["24", "23", "22"]

def test_sort_is_stable():
    hits = [{"id": 1, "s": "b"}, {"id": 2, "s": "a"}, {"id": 3, "s": "b"}, {"id": 4, "s": "a"}]
    assert [h["id"] for h in sort_hits(hits, "s")] == [2, 4, 1, 3]
    assert [h["id"] for h in sort_hits(hits, "s", desc=True)] == [1, 3, 2, 4]

def test_missing_values_sort_last_in_both_directions():
    hits = [{"id": 1}, {"id": 2, "s": 5}, {"id": 3, "s": None}, {"id": 4, "s": 1}]
    assert [h["id"] for h in sort_hits(hits, "s")] == [4, 2, 1, 3]
    assert [h["id"] for h in sort_hits(hits, "s", desc=True)] == [2, 4, 1, 3]

def test_mixed_types_have_a_total_order():
    hits = [{"s": "b"}, {"s": 2}, {"s": [1]}, {"s": 1.5}, {"s": "a"}]
    assert [h["s"] for h in sort_hits(hits, "s")] == [1.5, 2, "a", "b", [1]]

def test_to_hit_renames_id_without_touching_store():
    record = {"_id": "42", "name": "shoe"}
    hit = to_hit(IndexMatch("42", record))
    assert hit == {"name": "shoe", "objectID": "42"}
    assert record == {"_id": "42", "name": "shoe"}

# ----------------------------
# query endpoint
# ----------------------------

def test_query_index_echoes_request(service, registry):
    registry.get_index("products").put([{"_id": "1", "brand": "Nike"}, {"_id": "2", "brand": "Puma"}])
    response = service.query_index("products", {"query": "", "filters": "brand:nike", "hitsPerPage": 10})
    assert response == {
        "hits": [{"brand": "Nike", "objectID": "1"}],
        "nbHits": 1,
        "nbPages": 1,
        "page": 0,
        "hitsPerPage": 10,
        "query": "",
        "params": "",
    }

def test_query_index_reads_params_string(service, registry):
    registry.get_index("products").put([{"_id": "1", "brand": "Nike"}, {"_id": "2", "brand": "Puma"}])
    params = "query=&facetFilters=%5B%5B%22brand%3APuma%22%5D%5D&page=0&hitsPerPage=5"
    response = service.query_index("products", {"params": params})
    assert [hit["objectID"] for hit in response["hits"]] == ["2"]
    assert response["hitsPerPage"] == 5
    assert response["params"] == params

def test_query_index_sorts_replica_names(service, registry):
    registry.get_index("products").put([{"_id": "1", "price": 10}, {"_id": "2", "price": 30}, {"_id": "3"}])
    response = service.query_index("products_price_desc", {"query": ""})
    assert [hit["objectID"] for hit in response["hits"]] == ["2", "1", "3"]

@pytest.mark.parametrize("body", [{"page": -1}, {"hitsPerPage": 0}, {"facetFilters": "[oops"}])
def test_invalid_parameters(service, body):
    with pytest.raises(InvalidQueryError):
        service.query_index("products", body)

# ----------------------------
# field terms end to end
# ----------------------------

@pytest.fixture
def gift_index():
    index = SearchIndex("gifts")
    index.put([{"_id": "1", "product type": "gift card"}, {"_id": "2", "product type": "shoe"}])
    return index

def test_quoted_attribute_names_match_fields(service, gift_index):
    assert object_ids(service.search(gift_index, QueryRequest(filters='"product type":"gift card"'))) == ["1"]
    assert object_ids(service.search(gift_index, QueryRequest(facetFilters=['"product type":"gift card"']))) == ["1"]
    assert object_ids(service.search(gift_index, QueryRequest(filters='NOT "product type":"gift card"'))) == ["2"]

def test_quoted_value_with_colon(service):
    index = SearchIndex("times")
    index.put([{"_id": "1", "opens": "09:30"}, {"_id": "2", "opens": "10:00"}])
    assert object_ids(service.search(index, QueryRequest(filters='opens:"09:30"'))) == ["1"]

def test_numeric_looking_words_keep_their_text(service):
    index = SearchIndex("zips")
    index.put([{"_id": "1", "zip": "007"}, {"_id": "2", "zip": "7"}])
    assert object_ids(service.search(index, QueryRequest(filters="zip:007"))) == ["1", "2"]
    assert object_ids(service.search(index, QueryRequest(filters='zip:"007"'))) == ["1"]

def test_whole_floats_match_integers(service):
    index = SearchIndex("prices")
    index.put([{"_id": "1", "price": 10.0}, {"_id": "2", "price": 10}, {"_id": "3", "price": 10.5}])
    assert object_ids(service.search(index, QueryRequest(filters="price:10"))) == ["1", "2"]
    assert object_ids(service.search(index, QueryRequest(filters="price:10.0"))) == ["1", "2"]
    assert object_ids(service.search(index, QueryRequest(facetFilters=["price:10.50"]))) == ["3"]

@pytest.mark.parametrize("filters", ["", "   ", "\t\n"])
def test_blank_filters_add_no_clause(service, key_index, filters):
    assert service.build_expressions(key_index, QueryRequest(filters=filters)) == []
    assert object_ids(service.search(key_index, QueryRequest(filters=filters))) == ["a", "b"]
