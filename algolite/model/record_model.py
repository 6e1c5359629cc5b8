from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class BatchOperation(BaseModel):
    action: str
    body: Dict[str, Any] = Field(default_factory=dict)


class BatchRequest(BaseModel):
    requests: List[BatchOperation] = Field(default_factory=list)


class RecommendationQuery(BaseModel):
    """One entry of a related-products request"""
    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    index_name: str = Field(..., alias='indexName')
    object_id: Optional[str] = Field(None, alias='objectID')
    max_recommendations: int = Field(0, alias='maxRecommendations',
                                     description="0 or less returns every candidate")


class RecommendationRequest(BaseModel):
    requests: List[RecommendationQuery] = Field(default_factory=list)
