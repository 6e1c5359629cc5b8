import json
import logging
import os
import re
import threading
from collections import defaultdict
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, FrozenSet, Iterable, Iterator, List, Optional, Set, Tuple, Union

from algolite.constants.app_constants import AppConstants
from algolite.constants.app_message import AppMessage
from algolite.utils.errors import IndexUnavailableError, RecordNotFoundError
from algolite.utils.filter_compiler import FilterTerm

logger = logging.getLogger(__name__)

Expression = Union[str, FrozenSet[str]]

_TOKEN_RE = re.compile(r'\w+')


@dataclass(frozen=True)
class IndexMatch:
    id: str
    obj: Dict[str, Any]


def normalize_term(value: Any) -> str:
    """Canonical form used on both sides of a `key:value` comparison"""
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if value is None:
        return 'null'
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip().lower()


def _flatten(value: Any, prefix: str = '') -> Iterator[Tuple[str, Any]]:
    # nested objects are addressed with dotted keys, list elements share their parent's key
    if isinstance(value, dict):
        for key, inner in value.items():
            yield from _flatten(inner, f"{prefix}.{key}" if prefix else str(key))
    elif isinstance(value, (list, tuple)):
        for inner in value:
            yield from _flatten(inner, prefix)
    else:
        yield prefix, value


class SearchIndex:
    """
    Embedded index: a record store with inverted postings for `key:value`
    terms and free-text tokens.

    Expressions are either strings (`"*"`, `"key:value"` or free text) or the
    frozensets of ids returned by AND / OR / NOT. `search` intersects every
    expression it is given.
    """

    WILDCARD = AppConstants.WILDCARD

    def __init__(self, name: str, directory: Optional[Path] = None):
        self.name = name
        self.directory = Path(directory) if directory is not None else None
        self._records: Dict[str, Dict[str, Any]] = {}
        self._field_postings: Dict[Tuple[str, str], Set[str]] = defaultdict(set)
        self._token_postings: Dict[str, Set[str]] = defaultdict(set)
        self._lock = threading.RLock()
        self._closed = False

    @property
    def file_path(self) -> Optional[Path]:
        if self.directory is None:
            return None
        return self.directory / f"{self.name}.json"

    @classmethod
    def load(cls, name: str, directory: Path) -> 'SearchIndex':
        index = cls(name, directory)
        path = index.file_path
        if not path.exists():
            return index
        try:
            with open(path, 'r', encoding='utf-8') as f:
                records = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise IndexUnavailableError(f"Cannot load index '{name}' from {path}: {e}") from e
        if not isinstance(records, list):
            raise IndexUnavailableError(f"Cannot load index '{name}' from {path}: expected a list of records")
        for record in records:
            index._add(record)
        logger.info(f"Loaded index '{name}' with {len(index._records)} records")
        return index

    # -------------------------
    # combinator algebra
    # -------------------------
    def AND(self, left: Expression, right: Expression) -> FrozenSet[str]:
        with self._lock:
            return self._resolve(left) & self._resolve(right)

    def OR(self, left: Expression, right: Expression) -> FrozenSet[str]:
        with self._lock:
            return self._resolve(left) | self._resolve(right)

    def NOT(self, universe: Expression, excluded: Expression) -> FrozenSet[str]:
        with self._lock:
            return self._resolve(universe) - self._resolve(excluded)

    # -------------------------
    # search & storage
    # -------------------------
    def search(self, *expressions: Expression) -> List[IndexMatch]:
        """
        Records matching every expression, in insertion order.
        No expression at all matches every record.
        """
        with self._lock:
            self._ensure_open()
            ids = frozenset(self._records)
            for expression in expressions:
                ids &= self._resolve(expression)
            return [IndexMatch(_id, record) for _id, record in self._records.items() if _id in ids]

    def get(self, object_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            self._ensure_open()
            return self._records.get(object_id)

    def all_ids(self) -> List[str]:
        with self._lock:
            self._ensure_open()
            return list(self._records)

    def put(self, records: Iterable[Dict[str, Any]]) -> None:
        """Insert or replace records keyed by their `_id`."""
        records = [dict(record) for record in records]
        if not all(record.get(AppConstants.INTERNAL_ID) is not None for record in records):
            raise ValueError(f"Every record must contain '{AppConstants.INTERNAL_ID}'")
        with self._lock:
            self._ensure_open()
            for record in records:
                record[AppConstants.INTERNAL_ID] = str(record[AppConstants.INTERNAL_ID])
                self._remove(record[AppConstants.INTERNAL_ID])
                self._add(record)
            self._flush()

    def delete(self, object_ids: Iterable[str]) -> List[str]:
        """
        Delete records by id. Known ids are removed even when others are missing.

        :raises RecordNotFoundError: listing the ids that were not in the index
        """
        with self._lock:
            self._ensure_open()
            deleted, missing = [], []
            for object_id in object_ids:
                (deleted if self._remove(str(object_id)) else missing).append(str(object_id))
            if deleted:
                self._flush()
            if missing:
                raise RecordNotFoundError(missing)
            return deleted

    def clear(self) -> None:
        with self._lock:
            self._ensure_open()
            self._records.clear()
            self._field_postings.clear()
            self._token_postings.clear()
            self._flush()

    def close(self) -> None:
        with self._lock:
            self._closed = True

    def __len__(self) -> int:
        return len(self._records)

    # -------------------------
    # internals
    # -------------------------
    def _ensure_open(self):
        if self._closed:
            raise IndexUnavailableError(f"{AppMessage.INDEX_CLOSED}: '{self.name}'")

    def _resolve(self, expression: Expression) -> FrozenSet[str]:
        self._ensure_open()
        if isinstance(expression, frozenset):
            return expression
        if not isinstance(expression, str):
            raise TypeError(f"Unsupported expression type: {type(expression).__name__}")
        if isinstance(expression, FilterTerm):
            return self._term_match(expression)
        if expression.strip() == self.WILDCARD:
            return frozenset(self._records)
        key, sep, value = expression.partition(':')
        if sep and key and not any(c.isspace() for c in key):
            return frozenset(self._field_postings.get((key, normalize_term(value)), ()))
        return self._text_match(expression)

    def _term_match(self, term: FilterTerm) -> FrozenSet[str]:
        # a number written as "007" or "10.0" matches both its text and its numeric value
        values = {normalize_term(term.value)}
        if term.text is not None:
            values.add(normalize_term(term.text))
        ids = set()
        for value in values:
            ids |= self._field_postings.get((term.key, value), set())
        return frozenset(ids)

    def _text_match(self, text: str) -> FrozenSet[str]:
        tokens = _TOKEN_RE.findall(text.lower())
        if not tokens:
            return frozenset(self._records)
        ids: Optional[Set[str]] = None
        for token in tokens:
            postings = self._token_postings.get(token, set())
            ids = set(postings) if ids is None else ids & postings
            if not ids:
                break
        return frozenset(ids or ())

    @staticmethod
    def _terms(record: Dict[str, Any]) -> Tuple[Set[Tuple[str, str]], Set[str]]:
        fields, tokens = set(), set()
        for key, value in _flatten(record):
            if key == AppConstants.INTERNAL_ID:
                continue
            fields.add((key, normalize_term(value)))
            if isinstance(value, (str, int, float)) and not isinstance(value, bool):
                tokens.update(_TOKEN_RE.findall(str(value).lower()))
        return fields, tokens

    def _add(self, record: Dict[str, Any]):
        _id = record[AppConstants.INTERNAL_ID]
        self._records[_id] = record
        fields, tokens = self._terms(record)
        for field in fields:
            self._field_postings[field].add(_id)
        for token in tokens:
            self._token_postings[token].add(_id)

    def _remove(self, object_id: str) -> bool:
        record = self._records.pop(object_id, None)
        if record is None:
            return False
        fields, tokens = self._terms(record)
        for postings, keys in ((self._field_postings, fields), (self._token_postings, tokens)):
            for key in keys:
                ids = postings.get(key)
                if ids is None:
                    continue
                ids.discard(object_id)
                if not ids:
                    del postings[key]
        return True

    def _flush(self):
        path = self.file_path
        if path is None:
            return
        tmp_path = path.with_suffix('.json.tmp')
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, 'w', encoding='utf-8') as f:
                json.dump(list(self._records.values()), f)
            os.replace(tmp_path, path)
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to persist index '{self.name}' to {path}: {str(e)}", exc_info=True)
            raise IndexUnavailableError(f"Cannot persist index '{self.name}': {e}") from e
