"""Pydantic schemas for space properties."""
from collections.abc import Mapping
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class PropertyFormat(StrEnum):
    """Value domain of a property."""

    TEXT = "text"
    URL = "url"
    EMAIL = "email"
    PHONE = "phone"
    NUMBER = "number"
    DATE = "date"
    CHECKBOX = "checkbox"
    SELECT = "select"
    MULTI_SELECT = "multi_select"
    FILES = "files"
    OBJECTS = "objects"


# Formats whose stored value is a list of identifiers
LIST_FORMATS = frozenset({
    PropertyFormat.MULTI_SELECT,
    PropertyFormat.FILES,
    PropertyFormat.OBJECTS,
})

TEXT_FORMATS = frozenset({
    PropertyFormat.TEXT,
    PropertyFormat.URL,
    PropertyFormat.EMAIL,
    PropertyFormat.PHONE,
})


class Property(BaseModel):
    """
    Read-only property definition from a space snapshot.

    `key` is what API users write in filters; `relation_key` is the identifier
    the object store filters on. The two differ for properties with a custom
    API key.
    """

    model_config = ConfigDict(frozen=True)

    id: str = ""
    key: str = Field(min_length=1)
    relation_key: str = Field(min_length=1)
    name: str = ""
    format: PropertyFormat
    options: tuple[str, ...] | None = Field(
        default=None,
        description="Valid tag ids for select/multi_select properties (None = not checked)",
    )


# Snapshot of a space's properties keyed by the user-visible key
PropertySnapshot = Mapping[str, Property]

