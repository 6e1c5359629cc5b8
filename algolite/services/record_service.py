import logging
from typing import Any, Dict, List
from uuid import uuid4

from pydantic import ValidationError

from algolite.constants.app_constants import AppConstants
from algolite.constants.app_message import AppMessage
from algolite.model.query_model import QueryRequest
from algolite.model.record_model import BatchRequest
from algolite.repositories.index_registry import IndexRegistry
from algolite.repositories.search_index import IndexMatch
from algolite.services.query_service import QueryService, to_hit
from algolite.utils.datetime_utils import utc_now_iso
from algolite.utils.errors import (
    IndexNotFoundError,
    InvalidQueryError,
    RecordNotFoundError,
    UnsupportedBatchActionError,
)

logger = logging.getLogger(__name__)


class RecordService:
    """
    Record writes against named indexes. Every write answers with the fixed
    Algolia task id since writes are applied synchronously.
    """

    def __init__(self, registry: IndexRegistry):
        self.registry = registry
        logger.info("Initialized RecordService")

    def _index(self, index_name: str):
        return self.registry.get_index(self.registry.resolve_route(index_name).index_name)

    @staticmethod
    def _to_record(object_id: str, body: Dict[str, Any]) -> Dict[str, Any]:
        record = {k: v for k, v in body.items() if k != AppConstants.OBJECT_ID}
        record[AppConstants.INTERNAL_ID] = str(object_id)
        return record

    def _delete_ignoring_missing(self, index, object_ids: List[str]) -> None:
        try:
            index.delete(object_ids)
        except RecordNotFoundError as e:
            logger.warning(f"Object not found in '{index.name}': {', '.join(e.object_ids)}")

    def add_object(self, index_name: str, body: Dict[str, Any]) -> Dict[str, Any]:
        object_id = str(uuid4())
        self._index(index_name).put([self._to_record(object_id, body)])
        return {
            'createdAt': utc_now_iso(),
            'taskID': AppConstants.TASK_ID,
            AppConstants.OBJECT_ID: object_id,
        }

    def get_object(self, index_name: str, object_id: str) -> Dict[str, Any]:
        index = self._index(index_name)
        record = index.get(object_id)
        if record is None:
            raise RecordNotFoundError([object_id])
        return to_hit(IndexMatch(object_id, record))

    def save_object(self, index_name: str, object_id: str, body: Dict[str, Any]) -> Dict[str, Any]:
        """Replace the record stored under `object_id`, creating it if needed."""
        self._index(index_name).put([self._to_record(object_id, body)])
        return {
            'updatedAt': utc_now_iso(),
            'taskID': AppConstants.TASK_ID,
            AppConstants.OBJECT_ID: object_id,
        }

    def delete_object(self, index_name: str, object_id: str) -> Dict[str, Any]:
        self._delete_ignoring_missing(self._index(index_name), [object_id])
        return {
            'deletedAt': utc_now_iso(),
            'taskID': AppConstants.TASK_ID,
            AppConstants.OBJECT_ID: object_id,
        }

    def batch(self, index_name: str, body: Dict[str, Any]) -> Dict[str, Any]:
        """
        Apply addObject / updateObject / deleteObject operations.
        Nothing is written if any action is unsupported.
        """
        try:
            batch = BatchRequest.model_validate(body)
        except ValidationError as e:
            raise InvalidQueryError(f"Invalid batch request: {e}") from e

        puts, deletes, object_ids = [], [], []
        for operation in batch.requests:
            match operation.action:
                case AppConstants.ADD_OBJECT:
                    object_id = str(operation.body.get(AppConstants.OBJECT_ID) or uuid4())
                    puts.append(self._to_record(object_id, operation.body))
                case AppConstants.UPDATE_OBJECT:
                    object_id = operation.body.get(AppConstants.OBJECT_ID)
                    if object_id is None:
                        raise InvalidQueryError(f"{AppConstants.UPDATE_OBJECT} requires an {AppConstants.OBJECT_ID}")
                    puts.append(self._to_record(object_id, operation.body))
                case AppConstants.DELETE_OBJECT:
                    object_id = operation.body.get(AppConstants.OBJECT_ID)
                    if object_id is None:
                        raise InvalidQueryError(f"{AppConstants.DELETE_OBJECT} requires an {AppConstants.OBJECT_ID}")
                    deletes.append(str(object_id))
                case _:
                    raise UnsupportedBatchActionError(f"{AppMessage.BATCH_ACTION_NOT_SUPPORTED}: '{operation.action}'")
            object_ids.append(str(object_id))

        index = self._index(index_name)
        if puts:
            index.put(puts)
        if deletes:
            self._delete_ignoring_missing(index, deletes)
        logger.info(f"Batch on '{index.name}': {len(puts)} put(s), {len(deletes)} delete(s)")

        return {
            'taskID': AppConstants.TASK_ID,
            'objectIDs': object_ids,
        }

    def delete_by_query(self, index_name: str, body: Dict[str, Any]) -> Dict[str, Any]:
        """Delete every record matching the `facetFilters` / `filters` of the request."""
        request = QueryRequest.of(body)
        if not request.facet_filters and not request.filters:
            raise InvalidQueryError(AppMessage.DELETE_BY_QUERY_UNSUPPORTED)

        index = self._index(index_name)
        expressions = QueryService.build_expressions(index, request.model_copy(update={'query': None}))
        if not expressions:
            raise InvalidQueryError(AppMessage.DELETE_BY_QUERY_UNSUPPORTED)
        ids = [match.id for match in index.search(*expressions)]
        if ids:
            index.delete(ids)
        logger.info(f"deleteByQuery on '{index.name}' removed {len(ids)} record(s)")

        return {
            'updatedAt': utc_now_iso(),
            'taskID': AppConstants.TASK_ID,
        }

    def clear_index(self, index_name: str) -> Dict[str, Any]:
        base_name = self.registry.resolve_route(index_name).index_name
        if not self.registry.exist_index(base_name):
            raise IndexNotFoundError(f"{AppMessage.INDEX_NOT_FOUND}: '{index_name}'")

        self.registry.get_index(base_name).clear()
        logger.info(f"Cleared index '{base_name}'")
        return {
            'taskID': AppConstants.TASK_ID,
        }
