import json
from typing import Any, Dict, List, Optional, Union
from urllib.parse import parse_qs

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from algolite.constants.app_constants import AppConstants
from algolite.utils.errors import InvalidQueryError


class QueryRequest(BaseModel):
    """Search parameters accepted by the query endpoint"""
    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    query: Optional[str] = None
    filters: Optional[str] = None
    facet_filters: Optional[List[Union[str, List[str]]]] = Field(None, alias=AppConstants.FACET_FILTERS)
    page: int = Field(AppConstants.DEFAULT_PAGE, ge=0)
    hits_per_page: int = Field(AppConstants.DEFAULT_HITS_PER_PAGE, gt=0, alias=AppConstants.HITS_PER_PAGE)
    params: str = Field('', description="Raw params string, echoed back in the response")

    @field_validator('facet_filters', mode='before')
    @classmethod
    def decode_facet_filters(cls, value: Any) -> Any:
        """Clients send facetFilters JSON-encoded inside `params`; a bare string is a single match."""
        if not isinstance(value, str):
            return value
        stripped = value.strip()
        if stripped.startswith('['):
            try:
                return json.loads(stripped)
            except json.JSONDecodeError as e:
                raise ValueError(f"facetFilters is not valid JSON: {e}")
        return [stripped] if stripped else []

    @classmethod
    def of(cls, body: Dict[str, Any]) -> 'QueryRequest':
        """
        Build a request from a query body. A `params` query string, when present,
        replaces the other body fields.
        """
        raw_params = body.get(AppConstants.PARAMS)
        if raw_params:
            fields = {key: values[-1] for key, values in parse_qs(raw_params, keep_blank_values=True).items()}
            fields[AppConstants.PARAMS] = raw_params
        else:
            fields = {k: v for k, v in body.items() if k != AppConstants.PARAMS}
        try:
            return cls.model_validate(fields)
        except ValidationError as e:
            raise InvalidQueryError(f"Invalid query parameters: {e}") from e


class QueryResult(BaseModel):
    """Response of the query endpoint"""
    model_config = ConfigDict(populate_by_name=True)

    hits: List[Dict[str, Any]]
    nb_hits: int = Field(..., alias='nbHits')
    nb_pages: int = Field(..., alias='nbPages')
    page: int
    hits_per_page: int = Field(..., alias=AppConstants.HITS_PER_PAGE)
    query: str = ''
    params: str = ''

    def to_response(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)
