import json

import pytest

from algolite.repositories.search_index import SearchIndex, normalize_term
from algolite.utils.errors import IndexUnavailableError, RecordNotFoundError
from algolite.utils.filter_compiler import FilterTerm


@pytest.fixture
def records():
    return [
        {"_id": "1", "name": "Red running shoe", "brand": "Nike", "color": "red", "price": 120,
         "tags": ["sport", "outdoor"], "available": True, "vendor": {"country": "US"}},
        {"_id": "2", "name": "Blue trail shoe", "brand": "Adidas", "color": "blue", "price": 90,
         "tags": ["outdoor"], "available": False, "vendor": {"country": "DE"}},
        {"_id": "3", "name": "Red cap", "brand": "Nike", "color": "red", "price": 25,
         "tags": [], "available": True},
    ]


@pytest.fixture
def index(tmp_path, records):
    idx = SearchIndex("products", tmp_path)
    idx.put(records)
    return idx


def ids(matches):
    return [m.id for m in matches]


def test_wildcard_matches_everything_in_insertion_order(index):
    assert ids(index.search("*")) == ["1", "2", "3"]

def test_no_expression_matches_everything(index):
    assert ids(index.search()) == ["1", "2", "3"]

def test_field_match_is_case_insensitive_on_values(index):
    assert ids(index.search("brand:nike")) == ["1", "3"]
    assert ids(index.search("brand:NIKE")) == ["1", "3"]

def test_field_match_on_numbers_and_booleans(index):
    assert ids(index.search("price:90")) == ["2"]
    assert ids(index.search("available:true")) == ["1", "3"]

def test_field_match_on_list_elements(index):
    assert ids(index.search("tags:outdoor")) == ["1", "2"]

def test_field_match_on_nested_attribute(index):
    assert ids(index.search("vendor.country:de")) == ["2"]

def test_field_match_is_whole_value(index):
    assert ids(index.search("name:red")) == []

def test_free_text_requires_every_token(index):
    assert ids(index.search("red shoe")) == ["1"]
    assert ids(index.search("shoe")) == ["1", "2"]
    assert ids(index.search("green")) == []

def test_algebra(index):
    assert index.AND("brand:nike", "color:red") == frozenset({"1", "3"})
    assert index.OR("color:blue", "price:25") == frozenset({"2", "3"})
    assert index.NOT(index.WILDCARD, "brand:nike") == frozenset({"2"})

def test_search_intersects_expressions(index):
    assert ids(index.search("shoe", index.OR("color:red", "color:blue"), "available:true")) == ["1"]

def test_put_replaces_and_reindexes(index):
    index.put([{"_id": "1", "name": "Green hat", "brand": "Puma"}])
    assert ids(index.search("brand:nike")) == ["3"]
    assert ids(index.search("green")) == ["1"]
    assert index.get("1") == {"_id": "1", "name": "Green hat", "brand": "Puma"}

def test_put_requires_id(index):
    with pytest.raises(ValueError):
        index.put([{"name": "no id"}])
    assert len(index) == 3

def test_delete_reports_missing_ids_after_deleting_known(index):
    with pytest.raises(RecordNotFoundError) as excinfo:
        index.delete(["2", "404"])
    assert excinfo.value.object_ids == ["404"]
    assert index.all_ids() == ["1", "3"]
    assert ids(index.search("brand:adidas")) == []

def test_clear(index):
    index.clear()
    assert index.search("*") == []
    assert len(index) == 0

def test_persistence_round_trip(tmp_path, index):
    index.delete(["3"])
    reloaded = SearchIndex.load("products", tmp_path)
    assert reloaded.all_ids() == ["1", "2"]
    assert ids(reloaded.search("tags:outdoor")) == ["1", "2"]

def test_load_missing_file_gives_empty_index(tmp_path):
    assert len(SearchIndex.load("nothing", tmp_path)) == 0

def test_load_corrupt_file(tmp_path):
    (tmp_path / "broken.json").write_text("{not json", encoding="utf-8")
    with pytest.raises(IndexUnavailableError):
        SearchIndex.load("broken", tmp_path)

def test_stored_file_is_a_json_list(tmp_path, index):
    stored = json.loads((tmp_path / "products.json").read_text(encoding="utf-8"))
    assert [r["_id"] for r in stored] == ["1", "2", "3"]

def test_closed_index_is_unavailable(index):
    index.close()
    with pytest.raises(IndexUnavailableError):
        index.search("*")
    with pytest.raises(IndexUnavailableError):
        index.put([{"_id": "9"}])

def test_in_memory_index_does_not_touch_disk(records):
    idx = SearchIndex("memory")
    idx.put(records)
    assert idx.file_path is None
    assert len(idx) == 3

def test_whole_floats_normalize_like_integers():
    assert normalize_term(10.0) == normalize_term(10) == "10"
    assert normalize_term(10.5) == "10.5"
    assert normalize_term(True) == "true"

def test_filter_terms_always_match_fields(tmp_path):
    idx = SearchIndex("gifts", tmp_path)
    idx.put([{"_id": "1", "product type": "gift card", "note": "gift card"}, {"_id": "2", "product type": "shoe"}])
    assert ids(idx.search(FilterTerm("product type", "gift card"))) == ["1"]
    assert idx.NOT(idx.WILDCARD, FilterTerm("product type", "gift card")) == frozenset({"2"})
    assert ids(idx.search(FilterTerm("product type", "card"))) == []

def test_filter_term_matches_source_text_and_number(index):
    index.put([{"_id": "4", "code": "007"}, {"_id": "5", "code": 7}])
    assert ids(index.search(FilterTerm("code", 7, "007"))) == ["4", "5"]
    assert ids(index.search(FilterTerm("code", "007"))) == ["4"]
