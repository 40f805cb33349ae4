"""Object listing filter endpoints."""
from fastapi import APIRouter, Depends, Query, Request

from api.dependencies import get_filter_service
from schemas.errors import FilterErrorResponse
from schemas.filter import QueryFiltersResponse
from services.filter_service import FilterService
from services.sort_service import build_sorts, parse_sort_params

router = APIRouter(prefix="/v1/spaces/{space_id}/objects", tags=["objects"])


@router.get(
    "/filters",
    response_model=QueryFiltersResponse,
    responses={400: {"model": FilterErrorResponse}, 500: {"model": FilterErrorResponse}},
)
async def compile_object_filters(
    space_id: str,
    request: Request,
    sort: str | None = Query(default=None, description="Sort property"),
    order: str | None = Query(default=None, description="Sort direction (asc or desc)"),
    filter_service: FilterService = Depends(get_filter_service),
) -> QueryFiltersResponse:
    """
    Compile query-parameter filters for listing a space's objects.

    Every parameter other than `offset`, `limit`, `sort` and `order` is a
    filter: `key=value` (equal) or `key[condition]=value`, e.g.
    `?status=done&priority[gte]=3&tags[in]=urgent,blocked`.
    Filters are combined with AND.
    """
    sort_options = parse_sort_params(sort, order)
    filters = await filter_service.build_query_filters(space_id, request.url.query)
    return QueryFiltersResponse(filters=filters, sorts=build_sorts(sort_options))
