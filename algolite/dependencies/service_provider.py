from fastapi import Request

from algolite.services.query_service import QueryService
from algolite.services.recommendation_service import RecommendationService
from algolite.services.record_service import RecordService


def get_query_service(request: Request) -> QueryService:
    """Dependency provider for the QueryService of the running app"""
    return request.app.state.query_service


def get_record_service(request: Request) -> RecordService:
    return request.app.state.record_service


def get_recommendation_service(request: Request) -> RecommendationService:
    return request.app.state.recommendation_service
