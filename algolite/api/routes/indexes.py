"""
Algolia REST routes under /1/indexes.

Request bodies are read as JSON whatever their content type: Algolia
clients commonly post JSON as text/plain or application/x-www-form-urlencoded.
"""
import json
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request

from algolite.constants.app_message import AppMessage
from algolite.dependencies.service_provider import (
    get_query_service,
    get_recommendation_service,
    get_record_service,
)
from algolite.services.query_service import QueryService
from algolite.services.recommendation_service import RecommendationService
from algolite.services.record_service import RecordService
from algolite.utils.errors import InvalidQueryError

router = APIRouter(prefix="/1/indexes")


async def json_body(request: Request) -> Dict[str, Any]:
    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        body = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise InvalidQueryError(f"{AppMessage.INVALID_JSON_BODY}: {e}") from e
    if not isinstance(body, dict):
        raise InvalidQueryError(f"{AppMessage.INVALID_JSON_BODY}: expected an object")
    return body


# See https://www.algolia.com/doc/api-reference/api-methods/get-related-products/
@router.post("/*/recommendations")
def get_recommendations(
    body: Dict[str, Any] = Depends(json_body),
    service: RecommendationService = Depends(get_recommendation_service),
):
    return service.get_recommendations(body)


@router.post("/{index_name}/query")
def query_index(
    index_name: str,
    body: Dict[str, Any] = Depends(json_body),
    service: QueryService = Depends(get_query_service),
):
    return service.query_index(index_name, body)


@router.post("/{index_name}/batch", status_code=201)
def batch(
    index_name: str,
    body: Dict[str, Any] = Depends(json_body),
    service: RecordService = Depends(get_record_service),
):
    return service.batch(index_name, body)


@router.post("/{index_name}/deleteByQuery", status_code=201)
def delete_by_query(
    index_name: str,
    body: Dict[str, Any] = Depends(json_body),
    service: RecordService = Depends(get_record_service),
):
    return service.delete_by_query(index_name, body)


@router.post("/{index_name}/clear")
def clear_index(index_name: str, service: RecordService = Depends(get_record_service)):
    return service.clear_index(index_name)


@router.post("/{index_name}", status_code=201)
def add_object(
    index_name: str,
    body: Dict[str, Any] = Depends(json_body),
    service: RecordService = Depends(get_record_service),
):
    return service.add_object(index_name, body)


@router.get("/{index_name}/{object_id}")
def get_object(index_name: str, object_id: str, service: RecordService = Depends(get_record_service)):
    return service.get_object(index_name, object_id)


@router.put("/{index_name}/{object_id}", status_code=201)
def save_object(
    index_name: str,
    object_id: str,
    body: Dict[str, Any] = Depends(json_body),
    service: RecordService = Depends(get_record_service),
):
    return service.save_object(index_name, object_id, body)


@router.delete("/{index_name}/{object_id}")
def delete_object(index_name: str, object_id: str, service: RecordService = Depends(get_record_service)):
    return service.delete_object(index_name, object_id)
