"""
Backend dataview filter and sort shapes.

These are the nodes handed to the object store. A node is either a leaf (one
condition over one relation) or a group (an operator over nested nodes); the
two are separate models so a node can never carry both.
"""
from enum import StrEnum
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SerializerFunctionWrapHandler,
    model_serializer,
)


class DataviewCondition(StrEnum):
    """Conditions understood by the object store."""

    EQUAL = "Equal"
    NOT_EQUAL = "NotEqual"
    GREATER = "Greater"
    GREATER_OR_EQUAL = "GreaterOrEqual"
    LESS = "Less"
    LESS_OR_EQUAL = "LessOrEqual"
    LIKE = "Like"
    NOT_LIKE = "NotLike"
    IN = "In"
    NOT_IN = "NotIn"
    ALL_IN = "AllIn"
    EMPTY = "Empty"
    NOT_EMPTY = "NotEmpty"
    # Internal-only: never produced from public input
    NOT_ALL_IN = "NotAllIn"
    EXACT_IN = "ExactIn"
    NOT_EXACT_IN = "NotExactIn"
    EXISTS = "Exists"


class DataviewOperator(StrEnum):
    """Logical connectors between nested filters."""

    AND = "And"
    OR = "Or"


class DataviewSortType(StrEnum):
    """Sort direction understood by the object store."""

    ASC = "Asc"
    DESC = "Desc"


class DataviewRelationFormat(StrEnum):
    """Relation format hint attached to sorts."""

    DATE = "date"
    LONGTEXT = "longtext"


class DataviewFilterLeaf(BaseModel):
    """A single condition over one relation."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    relation_key: str
    condition: DataviewCondition
    value: Any = None

    @model_serializer(mode="wrap")
    def omit_missing_value(self, handler: SerializerFunctionWrapHandler) -> dict[str, Any]:
        """Leave `value` out of the serialized leaf when there is none."""
        data = handler(self)
        if self.value is None:
            data.pop("value", None)
        return data


class DataviewFilterGroup(BaseModel):
    """An operator applied to nested filter nodes."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    operator: DataviewOperator
    nested: list["DataviewFilterLeaf | DataviewFilterGroup"] = Field(default_factory=list)


DataviewFilter = DataviewFilterLeaf | DataviewFilterGroup


class DataviewSort(BaseModel):
    """A sort descriptor for the object store."""

    model_config = ConfigDict(frozen=True)

    relation_key: str
    type: DataviewSortType
    format: DataviewRelationFormat
    include_time: bool = True


DataviewFilterGroup.model_rebuild()
