"""
Emission of validated filters into backend dataview nodes.

Emission is a pure fold and cannot fail. Collapsing rules, bottom-up:
- a group with no children disappears;
- a group with one child and no explicit operator becomes that child;
- a group with one child and an explicit operator is kept;
- otherwise the group keeps its operator (default `and`).
"""
from schemas.dataview import DataviewFilter, DataviewFilterGroup, DataviewFilterLeaf
from services.filter_catalog import REVERSE_CONDITION_MAP, VALUELESS_CONDITIONS, to_internal_operator
from services.filter_validator import ValidatedExpression, ValidatedFilter


def emit_leaf(validated: ValidatedFilter) -> DataviewFilterLeaf:
    """Emit one leaf; `empty`/`nempty` leaves never carry a value."""
    token = REVERSE_CONDITION_MAP.get(validated.condition)
    value = None if token in VALUELESS_CONDITIONS else validated.value
    return DataviewFilterLeaf(
        relation_key=validated.relation_key,
        condition=validated.condition,
        value=value,
    )


def emit_query_filters(validated: list[ValidatedFilter]) -> list[DataviewFilterLeaf]:
    """Emit query-dialect leaves as a flat list; the caller AND-s them."""
    return [emit_leaf(v) for v in validated]


def emit_expression(expression: ValidatedExpression | None) -> DataviewFilter | None:
    """Emit a validated expression tree, or None for "no filter"."""
    if expression is None:
        return None

    children: list[DataviewFilter] = [emit_leaf(c) for c in expression.conditions]
    for child in expression.filters:
        emitted = emit_expression(child)
        if emitted is not None:
            children.append(emitted)

    if not children:
        return None
    if len(children) == 1 and expression.operator is None:
        return children[0]
    return DataviewFilterGroup(
        operator=to_internal_operator(expression.operator),
        nested=children,
    )
