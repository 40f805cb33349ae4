"""
JSON expression filter dialect.

Leaves are resolved to a variant by their single value field (see
`schemas.filter.filter_item_kind`); pydantic does the structural validation.
Every pydantic error is reported as `bad_input` naming the offending property.
"""
import logging
from typing import Any

from pydantic import ValidationError

from schemas.filter import FORMAT_FIELDS, FilterCondition, FilterExpression
from services.exceptions import FilterBadInputError

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 10
DEFAULT_MAX_CONDITIONS = 100

_CONDITION_TOKENS = frozenset(c.value for c in FilterCondition)

_VARIANT_TAGS = frozenset(FORMAT_FIELDS) | {"empty"}


def expression_depth(expression: FilterExpression) -> int:
    """Nesting depth of an expression; a single group with no children has depth 1."""
    if not expression.filters:
        return 1
    return 1 + max(expression_depth(child) for child in expression.filters)


def count_conditions(expression: FilterExpression) -> int:
    """Total number of leaf conditions in an expression tree."""
    return len(expression.conditions) + sum(
        count_conditions(child) for child in expression.filters
    )


def _locate_leaf(payload: Any, loc: tuple[int | str, ...]) -> tuple[dict | None, list[str]]:
    """
    Walk an error location into the raw payload.

    Returns the innermost dict that carries a `property_key` along the path
    (None if there is none) and the field path below it.
    """
    leaf = None
    below: list[str] = []
    node = payload
    for i, part in enumerate(loc):
        is_last = i == len(loc) - 1
        if node is leaf and part in _VARIANT_TAGS and not is_last:
            # Discriminated unions insert the variant tag into the location
            continue
        if isinstance(node, dict) and isinstance(part, str) and part in node:
            node = node[part]
        elif isinstance(node, list) and isinstance(part, int) and 0 <= part < len(node):
            node = node[part]
        else:
            # Missing keys are reported; union member names below a scalar are not
            if isinstance(node, dict):
                below.append(str(part))
            continue
        below.append(str(part))
        if isinstance(node, dict) and "property_key" in node:
            leaf = node
            below = []
    return leaf, below


def _describe_error(payload: Any, error: dict[str, Any]) -> str:
    """Turn one pydantic error into an actionable message."""
    leaf, below = _locate_leaf(payload, tuple(error.get("loc", ())))
    error_type = error.get("type", "")

    if leaf is None:
        location = ".".join(str(p) for p in error.get("loc", ())) or "expression"
        return f"invalid filter expression at {location}: {error.get('msg', 'invalid value')}"

    property_key = leaf.get("property_key")
    condition = leaf.get("condition")
    if isinstance(condition, str) and condition not in _CONDITION_TOKENS:
        return f'invalid condition "{condition}" for property "{property_key}"'
    if error_type == "union_tag_invalid":
        present = [name for name in FORMAT_FIELDS if leaf.get(name) is not None]
        return (
            f'invalid filter for property "{property_key}": exactly one value field '
            f"is allowed, got {', '.join(present)}"
        )
    if error_type == "union_tag_not_found":
        return (
            f'invalid filter for property "{property_key}": condition "{condition}" '
            f"requires a value field (one of {', '.join(FORMAT_FIELDS)})"
        )

    field = ".".join(below) or "condition"
    return f'invalid filter for property "{property_key}": {field}: {error.get("msg", "")}'


class ExpressionParser:
    """
    Parses and bounds a recursive JSON filter expression.

    Args:
        max_depth: Maximum nesting depth of the expression tree.
        max_conditions: Maximum number of leaf conditions across the tree.
    """

    def __init__(
        self,
        max_depth: int = DEFAULT_MAX_DEPTH,
        max_conditions: int = DEFAULT_MAX_CONDITIONS,
    ) -> None:
        self.max_depth = max_depth
        self.max_conditions = max_conditions

    def parse(self, payload: Any) -> FilterExpression | None:
        """
        Parse a decoded JSON value into a filter expression.

        Args:
            payload: The decoded JSON body (a dict), an already-built
                FilterExpression, or None for "no filter".

        Returns:
            The parsed expression, or None when the payload is None.

        Raises:
            FilterBadInputError: If the payload is malformed or exceeds the configured limits.
        """
        if payload is None:
            return None
        if isinstance(payload, FilterExpression):
            expression = payload
        else:
            if not isinstance(payload, dict):
                raise FilterBadInputError(
                    f"invalid filter expression: expected an object, got {type(payload).__name__}",
                )
            try:
                expression = FilterExpression.model_validate(payload)
            except ValidationError as e:
                errors = e.errors()
                logger.debug("Filter expression rejected with %d error(s)", len(errors))
                raise FilterBadInputError(_describe_error(payload, errors[0])) from None

        self.check_limits(expression)
        return expression

    def check_limits(self, expression: FilterExpression) -> None:
        """
        Enforce depth and condition-count limits.

        Raises:
            FilterBadInputError: If either limit is exceeded.
        """
        depth = expression_depth(expression)
        if depth > self.max_depth:
            raise FilterBadInputError(
                f"filter expression too deep: depth {depth} exceeds maximum of {self.max_depth}",
            )
        total = count_conditions(expression)
        if total > self.max_conditions:
            raise FilterBadInputError(
                f"filter expression has too many conditions: {total} exceeds maximum "
                f"of {self.max_conditions}",
            )
