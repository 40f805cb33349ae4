"""
Error response schemas for API endpoints.

Provides structured error responses for OpenAPI documentation and consistent
error handling across the filter endpoints.
"""
from pydantic import BaseModel, Field

from services.exceptions import FilterErrorKind


class FilterErrorBody(BaseModel):
    """Machine-readable error kind plus a human-readable message."""

    error: FilterErrorKind = Field(
        description="Error type identifier",
    )
    message: str = Field(
        description="Human-readable error message naming the offending property and condition",
    )


class FilterErrorResponse(BaseModel):
    """Error response returned for any failed filter compilation."""

    detail: FilterErrorBody
