import logging
from typing import Any, Dict, List

from pydantic import ValidationError

from algolite.constants.app_constants import AppConstants
from algolite.model.record_model import RecommendationQuery, RecommendationRequest
from algolite.repositories.index_registry import IndexRegistry
from algolite.services.query_service import sort_hits, to_hit
from algolite.utils.errors import InvalidQueryError

logger = logging.getLogger(__name__)


class RecommendationService:
    """
    Mimics Algolia's related-products endpoint: every other record of the
    index ranked by `featuredScore`. Records are expected to carry
    `featuredScore` and `name`.
    """

    def __init__(self, registry: IndexRegistry):
        self.registry = registry
        logger.info("Initialized RecommendationService")

    def recommend(self, query: RecommendationQuery) -> List[Dict[str, Any]]:
        index = self.registry.get_index(query.index_name)
        candidates = [
            hit for hit in (to_hit(match) for match in index.search(index.WILDCARD))
            if hit[AppConstants.OBJECT_ID] != query.object_id
        ]
        ranked = sort_hits(candidates, AppConstants.FEATURED_SCORE, desc=True)
        if query.max_recommendations > 0:
            ranked = ranked[:query.max_recommendations]

        return [
            {
                AppConstants.SCORE: hit.get(AppConstants.FEATURED_SCORE),
                AppConstants.OBJECT_ID: hit[AppConstants.OBJECT_ID],
                AppConstants.NAME: hit.get(AppConstants.NAME),
            }
            for hit in ranked
        ]

    def get_recommendations(self, body: Dict[str, Any]) -> Dict[str, Any]:
        try:
            request = RecommendationRequest.model_validate(body)
        except ValidationError as e:
            raise InvalidQueryError(f"Invalid recommendations request: {e}") from e

        return {
            'results': [{'hits': self.recommend(query)} for query in request.requests]
        }
