"""Search filter endpoints (JSON expression dialect)."""
from typing import Any

from fastapi import APIRouter, Body, Depends

from api.dependencies import get_filter_service
from schemas.errors import FilterErrorResponse
from schemas.filter import SearchFiltersRequest, SearchFiltersResponse
from services.exceptions import FilterBadInputError
from services.filter_service import FilterService
from services.sort_service import build_sorts, parse_sort_options

router = APIRouter(prefix="/v1/spaces/{space_id}/search", tags=["search"])

SEARCH_BODY_FIELDS = frozenset(SearchFiltersRequest.model_fields)


@router.post(
    "/filters",
    response_model=SearchFiltersResponse,
    responses={400: {"model": FilterErrorResponse}, 500: {"model": FilterErrorResponse}},
)
async def compile_search_filters(
    space_id: str,
    payload: Any = Body(default=None),
    filter_service: FilterService = Depends(get_filter_service),
) -> SearchFiltersResponse:
    """
    Compile a JSON filter expression for searching a space.

    Body: `{"filters": {"operator": "and", "conditions": [...], "filters": [...]},
    "sort": {"property_key": "last_modified_date", "direction": "desc"}}`.
    Each condition carries exactly one value field named for its property
    format, e.g. `{"property_key": "done", "condition": "eq", "checkbox": true}`.
    """
    payload = payload if payload is not None else {}
    if not isinstance(payload, dict):
        raise FilterBadInputError("invalid request body: expected a JSON object")
    unknown = sorted(set(payload) - SEARCH_BODY_FIELDS)
    if unknown:
        raise FilterBadInputError(f"invalid request body: unknown field(s) {', '.join(unknown)}")

    sort_options = parse_sort_options(payload.get("sort"))
    root = await filter_service.build_expression_filter(space_id, payload.get("filters"))
    return SearchFiltersResponse(filter=root, sorts=build_sorts(sort_options))
