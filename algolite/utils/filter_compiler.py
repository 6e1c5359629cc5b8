import logging
from typing import Any, List, Optional, Protocol, Union

from algolite.utils.errors import UnsupportedFilterError
from algolite.utils.facet_filters import normalize_facet_filters
from algolite.utils.filter_parser import And, FilterNode, FilterValue, Match, Not, Or, parse

logger = logging.getLogger(__name__)


class FilterTerm(str):
    """
    A compiled `key:value` leaf. It reads as the plain `"key:value"` string
    and keeps the key and value apart, so an index never has to split it
    again (keys may contain spaces, quoted values may contain colons).
    """

    def __new__(cls, key: str, value: FilterValue, text: Optional[str] = None):
        term = super().__new__(cls, f"{key}:{text if text is not None else FilterCompiler.format_value(value)}")
        term.key = key
        term.value = value
        term.text = text
        return term


class FilterAlgebra(Protocol):
    """
    Boolean combinators of an index. Leaves are `FilterTerm` strings,
    everything else is whatever the index hands back from these methods.
    """
    WILDCARD: str

    def AND(self, left: Any, right: Any) -> Any: ...

    def OR(self, left: Any, right: Any) -> Any: ...

    def NOT(self, universe: Any, excluded: Any) -> Any: ...


class FilterCompiler:
    """
    Lower a filter AST into an expression built with the given algebra.
    """

    def __init__(self, algebra: FilterAlgebra):
        self.algebra = algebra

    @staticmethod
    def format_value(value: FilterValue) -> str:
        if isinstance(value, bool):
            return 'true' if value else 'false'
        return str(value)

    def compile(self, node: FilterNode) -> Any:
        match node:
            case Match(key=key, value=value, text=text):
                return FilterTerm(key, value, text)
            case And(left=left, right=right):
                return self.algebra.AND(self.compile(left), self.compile(right))
            case Or(left=left, right=right):
                return self.algebra.OR(self.compile(left), self.compile(right))
            case Not(operand=Match() as operand):
                return self.algebra.NOT(self.algebra.WILDCARD, self.compile(operand))
            case Not():
                # Algolia does not allow negating combined filters
                raise UnsupportedFilterError('NOT only supports MATCH')
        raise UnsupportedFilterError('UNKNOWN TOKEN')

    def compile_filters(self, filters: str) -> Any:
        """Parse and compile a `filters` string."""
        return self.compile(parse(filters))

    def compile_facet_filters(self, facet_filters: List[Union[str, List[str]]]) -> Optional[Any]:
        """
        Normalize and compile `facetFilters`.
        Returns None when the structure holds no match at all.
        """
        node = normalize_facet_filters(facet_filters)
        if node is None:
            logger.debug("facetFilters %r contain no match, skipping", facet_filters)
            return None
        return self.compile(node)
