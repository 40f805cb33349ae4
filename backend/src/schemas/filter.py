"""
Pydantic schemas for the public filter dialects.

Two dialects share these types:

- URL query parameters (`name[cond]=value`), parsed into `QueryFilterItem`s.
- A JSON expression tree whose leaves are tagged by their value field:

      {
        "operator": "and",
        "conditions": [
          {"property_key": "done", "condition": "eq", "checkbox": true},
          {"property_key": "tags", "condition": "in", "multi_select": ["urgent"]}
        ],
        "filters": [ ...nested expressions... ]
      }

A JSON leaf carries exactly one value field named for its format. `empty` and
`nempty` leaves may omit it, in which case the format comes from the property.
"""
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Annotated, Any, ClassVar, Literal, Protocol

from pydantic import (
    BaseModel,
    ConfigDict,
    Discriminator,
    Field,
    StrictBool,
    StrictFloat,
    StrictInt,
    Tag,
    field_validator,
    model_validator,
)

from schemas.dataview import DataviewFilter, DataviewFilterLeaf, DataviewSort
from schemas.property import PropertyFormat
from schemas.sort import SortOptions


class FilterCondition(StrEnum):
    """Public condition tokens."""

    EQ = "eq"
    NE = "ne"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    CONTAINS = "contains"
    NCONTAINS = "ncontains"
    IN = "in"
    NIN = "nin"
    ALL = "all"
    EMPTY = "empty"
    NEMPTY = "nempty"


class FilterOperator(StrEnum):
    """Public logical operators."""

    AND = "and"
    OR = "or"


# Leaf value fields, one per property format
FORMAT_FIELDS: tuple[str, ...] = tuple(f.value for f in PropertyFormat)

EMPTY_CONDITIONS = frozenset({FilterCondition.EMPTY, FilterCondition.NEMPTY})


class FilterItemLike(Protocol):
    """Anything the validator can resolve: a property key, a condition and a raw value."""

    property_key: str
    condition: FilterCondition

    @property
    def value(self) -> Any: ...


@dataclass(frozen=True)
class QueryFilterItem:
    """A leaf parsed from URL query parameters. Carries no format information."""

    property_key: str
    condition: FilterCondition
    value: Any = None


@dataclass(frozen=True)
class ParsedQueryFilters:
    """Flat list of leaves parsed from a query string."""

    filters: list[QueryFilterItem] = field(default_factory=list)


class _FilterItemBase(BaseModel):
    """Common fields of every JSON leaf variant."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    format: ClassVar[PropertyFormat | None] = None

    property_key: str = Field(min_length=1)
    condition: FilterCondition

    @model_validator(mode="before")
    @classmethod
    def drop_null_value_fields(cls, data: Any) -> Any:
        """Treat `"text": null` and friends as absent."""
        if isinstance(data, dict):
            return {
                k: v for k, v in data.items() if not (k in FORMAT_FIELDS and v is None)
            }
        return data

    @property
    def value(self) -> Any:
        """The raw value carried in this leaf's format field."""
        if self.format is None:
            return None
        return getattr(self, self.format.value)


class TextFilterItem(_FilterItemBase):
    """Leaf over a text property."""

    format: ClassVar[PropertyFormat] = PropertyFormat.TEXT
    text: str


class UrlFilterItem(_FilterItemBase):
    """Leaf over a url property."""

    format: ClassVar[PropertyFormat] = PropertyFormat.URL
    url: str


class EmailFilterItem(_FilterItemBase):
    """Leaf over an email property."""

    format: ClassVar[PropertyFormat] = PropertyFormat.EMAIL
    email: str


class PhoneFilterItem(_FilterItemBase):
    """Leaf over a phone property."""

    format: ClassVar[PropertyFormat] = PropertyFormat.PHONE
    phone: str


class NumberFilterItem(_FilterItemBase):
    """Leaf over a number property."""

    format: ClassVar[PropertyFormat] = PropertyFormat.NUMBER
    number: StrictInt | StrictFloat


class DateFilterItem(_FilterItemBase):
    """Leaf over a date property (RFC3339 or YYYY-MM-DD)."""

    format: ClassVar[PropertyFormat] = PropertyFormat.DATE
    date: str | list[str]


class CheckboxFilterItem(_FilterItemBase):
    """Leaf over a checkbox property."""

    format: ClassVar[PropertyFormat] = PropertyFormat.CHECKBOX
    checkbox: StrictBool


class SelectFilterItem(_FilterItemBase):
    """Leaf over a select property (tag id or list of tag ids)."""

    format: ClassVar[PropertyFormat] = PropertyFormat.SELECT
    select: str | list[str]


class MultiSelectFilterItem(_FilterItemBase):
    """Leaf over a multi_select property."""

    format: ClassVar[PropertyFormat] = PropertyFormat.MULTI_SELECT
    multi_select: list[str] | str


class FilesFilterItem(_FilterItemBase):
    """Leaf over a files property (file object ids)."""

    format: ClassVar[PropertyFormat] = PropertyFormat.FILES
    files: list[str] | str


class ObjectsFilterItem(_FilterItemBase):
    """Leaf over an objects property (object ids)."""

    format: ClassVar[PropertyFormat] = PropertyFormat.OBJECTS
    objects: list[str] | str


class EmptyFilterItem(_FilterItemBase):
    """`empty`/`nempty` leaf without a value field; format comes from the property."""

    condition: Literal[FilterCondition.EMPTY, FilterCondition.NEMPTY]


def filter_item_kind(data: Any) -> str | None:
    """
    Pick the leaf variant for a raw JSON leaf.

    Returns the name of the single non-null value field, "empty" for a
    format-less empty/nempty leaf, "ambiguous" when several value fields are
    present, or None when nothing identifies the variant.
    """
    if isinstance(data, _FilterItemBase):
        return data.format.value if data.format is not None else "empty"
    if not isinstance(data, dict):
        return None
    present = [name for name in FORMAT_FIELDS if data.get(name) is not None]
    if len(present) == 1:
        return present[0]
    if len(present) > 1:
        return "ambiguous"
    condition = data.get("condition")
    if isinstance(condition, str) and condition in EMPTY_CONDITIONS:
        return "empty"
    return None


FilterItem = Annotated[
    Annotated[TextFilterItem, Tag("text")]
    | Annotated[UrlFilterItem, Tag("url")]
    | Annotated[EmailFilterItem, Tag("email")]
    | Annotated[PhoneFilterItem, Tag("phone")]
    | Annotated[NumberFilterItem, Tag("number")]
    | Annotated[DateFilterItem, Tag("date")]
    | Annotated[CheckboxFilterItem, Tag("checkbox")]
    | Annotated[SelectFilterItem, Tag("select")]
    | Annotated[MultiSelectFilterItem, Tag("multi_select")]
    | Annotated[FilesFilterItem, Tag("files")]
    | Annotated[ObjectsFilterItem, Tag("objects")]
    | Annotated[EmptyFilterItem, Tag("empty")],
    Discriminator(filter_item_kind),
]


class FilterExpression(BaseModel):
    """
    Recursive filter expression.

    An expression with no conditions and no nested filters means "no filter".
    `operator` is None when the caller did not specify one; it then defaults
    to `and`.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    operator: FilterOperator | None = None
    conditions: list[FilterItem] = Field(default_factory=list)
    filters: list["FilterExpression"] = Field(default_factory=list)

    @field_validator("conditions", "filters", mode="before")
    @classmethod
    def null_as_empty(cls, v: Any) -> Any:
        """Accept `null` for the list fields."""
        return [] if v is None else v

    @property
    def is_empty(self) -> bool:
        """True if the expression holds no conditions and no nested filters."""
        return not self.conditions and not self.filters


class SearchFiltersRequest(BaseModel):
    """Body of the search filter endpoint (documentation only; parsed by the service)."""

    filters: FilterExpression | None = None
    sort: SortOptions | None = None


class QueryFiltersResponse(BaseModel):
    """Compiled query-dialect filters: a flat list of leaves, implicitly AND-ed."""

    filters: list[DataviewFilterLeaf]
    sorts: list[DataviewSort]


class SearchFiltersResponse(BaseModel):
    """Compiled JSON-dialect filter tree (None = no filter)."""

    filter: DataviewFilter | None
    sorts: list[DataviewSort]
