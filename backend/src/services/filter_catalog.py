"""
Condition and operator tables shared by both filter dialects.

The tables are built once at import time and exposed as read-only mappings.
`CONDITION_MAP` and `REVERSE_CONDITION_MAP` must stay inverse of each other;
internal-only conditions appear in neither.
"""
from types import MappingProxyType

from schemas.dataview import DataviewCondition, DataviewOperator
from schemas.filter import FilterCondition, FilterOperator
from schemas.property import PropertyFormat

CONDITION_MAP: MappingProxyType[FilterCondition, DataviewCondition] = MappingProxyType({
    FilterCondition.EQ: DataviewCondition.EQUAL,
    FilterCondition.NE: DataviewCondition.NOT_EQUAL,
    FilterCondition.GT: DataviewCondition.GREATER,
    FilterCondition.GTE: DataviewCondition.GREATER_OR_EQUAL,
    FilterCondition.LT: DataviewCondition.LESS,
    FilterCondition.LTE: DataviewCondition.LESS_OR_EQUAL,
    FilterCondition.CONTAINS: DataviewCondition.LIKE,
    FilterCondition.NCONTAINS: DataviewCondition.NOT_LIKE,
    FilterCondition.IN: DataviewCondition.IN,
    FilterCondition.NIN: DataviewCondition.NOT_IN,
    FilterCondition.ALL: DataviewCondition.ALL_IN,
    FilterCondition.EMPTY: DataviewCondition.EMPTY,
    FilterCondition.NEMPTY: DataviewCondition.NOT_EMPTY,
})

REVERSE_CONDITION_MAP: MappingProxyType[DataviewCondition, FilterCondition] = MappingProxyType(
    {internal: token for token, internal in CONDITION_MAP.items()},
)

INTERNAL_ONLY_CONDITIONS: frozenset[DataviewCondition] = frozenset({
    DataviewCondition.NOT_ALL_IN,
    DataviewCondition.EXACT_IN,
    DataviewCondition.NOT_EXACT_IN,
    DataviewCondition.EXISTS,
})

OPERATOR_MAP: MappingProxyType[FilterOperator, DataviewOperator] = MappingProxyType({
    FilterOperator.AND: DataviewOperator.AND,
    FilterOperator.OR: DataviewOperator.OR,
})

DEFAULT_OPERATOR = FilterOperator.AND

# Conditions that take a list of values
SET_CONDITIONS: frozenset[FilterCondition] = frozenset({
    FilterCondition.IN,
    FilterCondition.NIN,
    FilterCondition.ALL,
})

# Conditions whose emitted leaf never carries a value
VALUELESS_CONDITIONS: frozenset[FilterCondition] = frozenset({
    FilterCondition.EMPTY,
    FilterCondition.NEMPTY,
})

_TEXT_CONDITIONS = frozenset({
    DataviewCondition.EQUAL,
    DataviewCondition.NOT_EQUAL,
    DataviewCondition.LIKE,
    DataviewCondition.NOT_LIKE,
    DataviewCondition.EMPTY,
    DataviewCondition.NOT_EMPTY,
})

_TAG_CONDITIONS = frozenset({
    DataviewCondition.IN,
    DataviewCondition.NOT_IN,
    DataviewCondition.ALL_IN,
    DataviewCondition.EMPTY,
    DataviewCondition.NOT_EMPTY,
})

CONDITIONS_FOR_PROPERTY_FORMAT: MappingProxyType[
    PropertyFormat, frozenset[DataviewCondition]
] = MappingProxyType({
    PropertyFormat.TEXT: _TEXT_CONDITIONS,
    PropertyFormat.URL: _TEXT_CONDITIONS,
    PropertyFormat.EMAIL: _TEXT_CONDITIONS,
    PropertyFormat.PHONE: _TEXT_CONDITIONS,
    PropertyFormat.NUMBER: frozenset({
        DataviewCondition.EQUAL,
        DataviewCondition.NOT_EQUAL,
        DataviewCondition.GREATER,
        DataviewCondition.GREATER_OR_EQUAL,
        DataviewCondition.LESS,
        DataviewCondition.LESS_OR_EQUAL,
        DataviewCondition.EMPTY,
        DataviewCondition.NOT_EMPTY,
    }),
    PropertyFormat.DATE: frozenset({
        DataviewCondition.EQUAL,
        DataviewCondition.GREATER,
        DataviewCondition.GREATER_OR_EQUAL,
        DataviewCondition.LESS,
        DataviewCondition.LESS_OR_EQUAL,
        DataviewCondition.IN,
        DataviewCondition.EMPTY,
        DataviewCondition.NOT_EMPTY,
    }),
    PropertyFormat.CHECKBOX: frozenset({
        DataviewCondition.EQUAL,
        DataviewCondition.NOT_EQUAL,
    }),
    PropertyFormat.SELECT: _TAG_CONDITIONS,
    PropertyFormat.MULTI_SELECT: _TAG_CONDITIONS,
    PropertyFormat.FILES: _TAG_CONDITIONS,
    PropertyFormat.OBJECTS: _TAG_CONDITIONS,
})


def to_internal(token: str) -> DataviewCondition | None:
    """Map a public condition token to its internal condition, or None if unknown."""
    try:
        return CONDITION_MAP.get(FilterCondition(token))
    except ValueError:
        return None


def from_internal(condition: DataviewCondition) -> FilterCondition | None:
    """Map an internal condition back to its public token (None for internal-only conditions)."""
    return REVERSE_CONDITION_MAP.get(condition)


def is_allowed(property_format: PropertyFormat, condition: DataviewCondition) -> bool:
    """Check whether a condition is legal for a property format."""
    return condition in CONDITIONS_FOR_PROPERTY_FORMAT.get(property_format, frozenset())


def to_internal_operator(operator: FilterOperator | None) -> DataviewOperator:
    """Map a public operator to its internal form; absent means `and`."""
    return OPERATOR_MAP[operator or DEFAULT_OPERATOR]


def allowed_tokens(property_format: PropertyFormat) -> list[str]:
    """Public tokens legal for a format, in vocabulary order (used in error messages)."""
    allowed = CONDITIONS_FOR_PROPERTY_FORMAT.get(property_format, frozenset())
    return [token.value for token in FilterCondition if CONDITION_MAP[token] in allowed]
