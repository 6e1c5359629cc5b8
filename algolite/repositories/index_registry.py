import logging
import re
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from algolite.constants.app_constants import AppConstants
from algolite.repositories.search_index import SearchIndex
from algolite.utils.errors import IndexUnavailableError

logger = logging.getLogger(__name__)

_SORT_SUFFIX_RE = re.compile(rf"_(?P<order>{AppConstants.SORT_ASC}|{AppConstants.SORT_DESC})$")


@dataclass(frozen=True)
class IndexRoute:
    index_name: str
    sort_attribute: Optional[str] = None
    sort_desc: bool = False


def parse_index_route(name: str, known_indexes: Iterable[str] = ()) -> IndexRoute:
    """
    Replica-style names route to their base index with a sort hint:
    `products_price_desc` reads index `products` sorted by `price` descending.

    The base is the shortest prefix found in `known_indexes`, so
    `products_created_at_desc` sorts by `created_at`. Without a known base the
    name is split at its first underscore. A name that is itself a known index
    is never treated as a replica.
    """
    known = set(known_indexes)
    m = _SORT_SUFFIX_RE.search(name)
    if m is None or name in known:
        return IndexRoute(index_name=name)

    stem = name[:m.start()]
    splits = [i for i, char in enumerate(stem) if char == '_' and 0 < i < len(stem) - 1]
    if not splits:
        return IndexRoute(index_name=name)
    split = next((i for i in splits if stem[:i] in known), splits[0])
    return IndexRoute(
        index_name=stem[:split],
        sort_attribute=stem[split + 1:],
        sort_desc=m.group('order') == AppConstants.SORT_DESC,
    )


class IndexRegistry:
    """Named indexes persisted under `<path>/.algolite/`."""

    def __init__(self, path: str):
        self.path = Path(path)
        self.directory = self.path / AppConstants.STORAGE_DIR
        self._indexes: Dict[str, SearchIndex] = {}
        self._lock = threading.Lock()

    def get_index(self, name: str) -> SearchIndex:
        """Return the index, loading it from disk or creating it on first use."""
        with self._lock:
            index = self._indexes.get(name)
            if index is None:
                index = SearchIndex.load(name, self.directory)
                self._indexes[name] = index
                logger.info(f"Opened index '{name}'")
            return index

    def exist_index(self, name: str) -> bool:
        with self._lock:
            return name in self._indexes or (self.directory / f"{name}.json").exists()

    def index_names(self) -> List[str]:
        with self._lock:
            names = set(self._indexes)
        if self.directory.is_dir():
            names.update(p.stem for p in self.directory.glob('*.json'))
        return sorted(names)

    def resolve_route(self, name: str) -> IndexRoute:
        return parse_index_route(name, self.index_names())

    def init_existing_indexes(self) -> List[str]:
        """
        Load every persisted index. Unreadable files are logged and skipped.
        Returns the names that were loaded.
        """
        loaded = []
        for name in self.index_names():
            try:
                self.get_index(name)
                loaded.append(name)
            except IndexUnavailableError as e:
                logger.warning(f"Skipping index '{name}': {str(e)}")
        logger.info(f"Initialized {len(loaded)} existing index(es) from {self.directory}")
        return loaded

    def close(self) -> None:
        with self._lock:
            for index in self._indexes.values():
                index.close()
            self._indexes.clear()
