"""Space listing filter endpoints."""
from fastapi import APIRouter, Depends, Query, Request

from api.dependencies import get_filter_service
from schemas.errors import FilterErrorResponse
from schemas.filter import FilterCondition, QueryFiltersResponse
from services.filter_service import FilterService
from services.property_service import SPACE_SNAPSHOT
from services.sort_service import build_sorts, parse_sort_params

router = APIRouter(prefix="/v1/spaces", tags=["spaces"])

# A bare `name=...` searches space names instead of matching them exactly
SPACE_DEFAULT_CONDITIONS = {"name": FilterCondition.CONTAINS}


@router.get(
    "/filters",
    response_model=QueryFiltersResponse,
    responses={400: {"model": FilterErrorResponse}, 500: {"model": FilterErrorResponse}},
)
async def compile_space_filters(
    request: Request,
    sort: str | None = Query(default=None, description="Sort property"),
    order: str | None = Query(default=None, description="Sort direction (asc or desc)"),
    filter_service: FilterService = Depends(get_filter_service),
) -> QueryFiltersResponse:
    """
    Compile query-parameter filters for listing spaces.

    Filters apply to the built-in space attributes (`name`, `description`,
    `status`, `created_date`, `last_modified_date`). A bare `name=...` means
    `name[contains]=...`; every other bare parameter means equal.
    """
    sort_options = parse_sort_params(sort, order)
    filters = await filter_service.build_query_filters(
        "",
        request.url.query,
        default_conditions=SPACE_DEFAULT_CONDITIONS,
        snapshot=SPACE_SNAPSHOT,
    )
    return QueryFiltersResponse(filters=filters, sorts=build_sorts(sort_options))
