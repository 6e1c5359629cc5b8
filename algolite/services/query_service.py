import json
import logging
import math
from typing import Any, Dict, List, Optional, Tuple

from algolite.constants.app_constants import AppConstants
from algolite.model.query_model import QueryRequest, QueryResult
from algolite.repositories.index_registry import IndexRegistry
from algolite.repositories.search_index import IndexMatch, SearchIndex
from algolite.utils.filter_compiler import FilterCompiler

logger = logging.getLogger(__name__)


def to_hit(match: IndexMatch) -> Dict[str, Any]:
    """Public shape of a stored record: `_id` is exposed as `objectID`."""
    hit = {k: v for k, v in match.obj.items() if k != AppConstants.INTERNAL_ID}
    hit[AppConstants.OBJECT_ID] = match.id
    return hit


def _sort_key(value: Any) -> Tuple[int, Any]:
    # numbers, then strings, then anything else by its JSON form
    if isinstance(value, (int, float)):
        return 0, value
    if isinstance(value, str):
        return 1, value
    return 2, json.dumps(value, sort_keys=True, default=str)


def sort_hits(hits: List[Dict[str, Any]], attribute: str, desc: bool = False) -> List[Dict[str, Any]]:
    """
    Stable sort on `attribute`. Records without the attribute (or with null)
    always come last, in their original order, whatever the direction.
    """
    present = [hit for hit in hits if hit.get(attribute) is not None]
    missing = [hit for hit in hits if hit.get(attribute) is None]
    present.sort(key=lambda hit: _sort_key(hit[attribute]), reverse=desc)
    return present + missing


def paginate(hits: List[Dict[str, Any]], page: int, hits_per_page: int) -> List[Dict[str, Any]]:
    start = page * hits_per_page
    return hits[start:start + hits_per_page]


class QueryService:
    def __init__(self, registry: IndexRegistry):
        self.registry = registry
        logger.info("Initialized QueryService")

    def query_index(self, index_name: str, body: Dict[str, Any]) -> Dict[str, Any]:
        """Run the query endpoint for a (possibly replica-style) index name."""
        route = self.registry.resolve_route(index_name)
        request = QueryRequest.of(body)
        index = self.registry.get_index(route.index_name)
        result = self.search(index, request, sort_attribute=route.sort_attribute, sort_desc=route.sort_desc)
        return result.to_response()

    @staticmethod
    def build_expressions(index: SearchIndex, request: QueryRequest) -> List[Any]:
        """
        One expression per clause present in the request; the index
        intersects them.
        """
        compiler = FilterCompiler(index)
        expressions = []
        if request.query is not None:
            expressions.append(request.query if request.query else index.WILDCARD)
        if request.filters and request.filters.strip():
            expressions.append(compiler.compile_filters(request.filters))
        if request.facet_filters is not None:
            facet_expression = compiler.compile_facet_filters(request.facet_filters)
            if facet_expression is not None:
                expressions.append(facet_expression)
        return expressions

    def search(
        self,
        index: SearchIndex,
        request: QueryRequest,
        sort_attribute: Optional[str] = None,
        sort_desc: bool = False,
    ) -> QueryResult:
        expressions = self.build_expressions(index, request)
        matches = index.search(*expressions)

        hits = [to_hit(match) for match in matches]
        if sort_attribute:
            hits = sort_hits(hits, sort_attribute, desc=sort_desc)

        nb_hits = len(hits)
        logger.debug(f"Query on '{index.name}' matched {nb_hits} record(s)")
        return QueryResult(
            hits=paginate(hits, request.page, request.hits_per_page),
            nb_hits=nb_hits,
            nb_pages=math.ceil(nb_hits / request.hits_per_page),
            page=request.page,
            hits_per_page=request.hits_per_page,
            query=request.query or '',
            params=request.params,
        )
