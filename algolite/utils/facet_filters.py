"""
facetFilters follow Algolia's combination rule: members of a nested list are
OR-ed, top-level entries are AND-ed.

    [["color:red", "color:blue"], "brand:Nike"]
    -> (color:red OR color:blue) AND brand:Nike
"""
from functools import reduce
from typing import List, Optional, Sequence, Union

from algolite.utils.filter_parser import And, FilterNode, Or, parse_match

FacetFilterGroup = Union[str, Sequence[str]]


def _or_group(members: Sequence[str]) -> Optional[FilterNode]:
    matches = [parse_match(member) for member in members]
    if not matches:
        return None
    return reduce(Or, matches)


def normalize_facet_filters(facet_filters: Sequence[FacetFilterGroup]) -> Optional[FilterNode]:
    groups: List[FilterNode] = []
    for group in facet_filters:
        if isinstance(group, str):
            groups.append(parse_match(group))
            continue
        node = _or_group(group)
        if node is not None:
            groups.append(node)

    if not groups:
        return None
    return reduce(And, groups)
