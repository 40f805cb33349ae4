"""Pydantic schemas for sort options."""
from enum import StrEnum

from pydantic import BaseModel, ConfigDict


class SortDirection(StrEnum):
    """Public sort direction vocabulary."""

    ASC = "asc"
    DESC = "desc"


class SortProperty(StrEnum):
    """Properties a listing can be sorted by."""

    CREATED_DATE = "created_date"
    LAST_MODIFIED_DATE = "last_modified_date"
    LAST_OPENED_DATE = "last_opened_date"
    NAME = "name"


class SortOptions(BaseModel):
    """Sort request. Defaults to most recently modified first."""

    model_config = ConfigDict(extra="forbid")

    property_key: SortProperty = SortProperty.LAST_MODIFIED_DATE
    direction: SortDirection = SortDirection.DESC
