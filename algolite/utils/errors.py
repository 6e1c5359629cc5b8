from typing import List, Optional


class AlgoliteError(Exception):
    """Base class for errors surfaced to API clients."""
    status_code = 400


class FilterError(AlgoliteError):
    pass


class FilterSyntaxError(FilterError):
    """Malformed filter text. `position` is the zero-based offset of `token`."""

    def __init__(self, message: str, position: int, token: Optional[str] = None):
        self.position = position
        self.token = token
        found = 'end of input' if token is None else f"'{token}'"
        super().__init__(f"{message} at position {position} (found {found})")


class UnsupportedFilterError(FilterError):
    pass


class InvalidQueryError(AlgoliteError):
    pass


class UnsupportedBatchActionError(AlgoliteError):
    pass


class IndexNotFoundError(AlgoliteError):
    pass


class RecordNotFoundError(AlgoliteError):
    status_code = 404

    def __init__(self, object_ids: List[str]):
        self.object_ids = list(object_ids)
        super().__init__(f"Object(s) not found: {', '.join(self.object_ids)}")


class IndexUnavailableError(AlgoliteError):
    status_code = 503
