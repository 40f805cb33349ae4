"""
Type-aware validation shared by both filter dialects.

For each leaf: map the condition, resolve the property (user key or relation
key), check the condition is legal for the property format, then sanitize
the value through the property service. The first bad leaf aborts the request.
"""
import logging
from dataclasses import dataclass, field
from typing import Any

from schemas.dataview import DataviewCondition
from schemas.filter import FilterExpression, FilterItemLike, FilterOperator, ParsedQueryFilters
from schemas.property import LIST_FORMATS, Property, PropertySnapshot
from services.exceptions import (
    FilterBadInputError,
    FilterError,
    FilterInternalError,
    FilterInvalidValueError,
    FilterNotFoundError,
    FilterUnsupportedForTypeError,
)
from services.filter_catalog import (
    SET_CONDITIONS,
    VALUELESS_CONDITIONS,
    allowed_tokens,
    is_allowed,
    to_internal,
)
from services.property_service import PropertyService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValidatedFilter:
    """A leaf whose property is resolved and whose value is sanitized."""

    relation_key: str
    condition: DataviewCondition
    value: Any = None


@dataclass(frozen=True)
class ValidatedExpression:
    """A validated group; `operator` stays None when the caller did not set one."""

    operator: FilterOperator | None = None
    conditions: list[ValidatedFilter] = field(default_factory=list)
    filters: list["ValidatedExpression"] = field(default_factory=list)


class FilterValidator:
    """Validates parsed filters against a property snapshot."""

    def __init__(self, property_service: PropertyService) -> None:
        self.property_service = property_service

    async def validate_item(
        self,
        space_id: str,
        snapshot: PropertySnapshot,
        item: FilterItemLike,
    ) -> ValidatedFilter:
        """
        Validate one leaf.

        Args:
            space_id: The space the filter targets.
            snapshot: Property definitions taken once for this request.
            item: A parsed leaf from either dialect.

        Returns:
            The leaf with its relation key, internal condition and sanitized value.

        Raises:
            FilterBadInputError: Unknown condition token.
            FilterNotFoundError: The property key does not resolve.
            FilterUnsupportedForTypeError: The condition is illegal for the property format.
            FilterInvalidValueError: The value cannot be sanitized.
            FilterInternalError: The property service failed unexpectedly.
        """
        token = item.condition
        condition = to_internal(token)
        if condition is None:
            raise FilterBadInputError(
                f'invalid condition "{token}" for property "{item.property_key}"',
            )

        prop = self.property_service.resolve_property(snapshot, item.property_key)
        if prop is None:
            raise FilterNotFoundError(
                item.property_key,
                f'failed to resolve property "{item.property_key}": '
                f'property "{item.property_key}" not found',
            )

        if not is_allowed(prop.format, condition):
            raise FilterUnsupportedForTypeError(
                f'condition "{token}" ({condition}) is not valid for property '
                f'"{item.property_key}" of type "{prop.format}"; '
                f'allowed conditions: {", ".join(allowed_tokens(prop.format))}',
            )

        if token in VALUELESS_CONDITIONS:
            return ValidatedFilter(relation_key=prop.relation_key, condition=condition)

        value = await self._sanitize(space_id, snapshot, prop, token, item.value)
        return ValidatedFilter(relation_key=prop.relation_key, condition=condition, value=value)

    async def _sanitize(
        self,
        space_id: str,
        snapshot: PropertySnapshot,
        prop: Property,
        token: str,
        raw_value: Any,
    ) -> Any:
        is_set_condition = token in SET_CONDITIONS
        if is_set_condition and not isinstance(raw_value, list):
            raw_value = [raw_value]
        elif (
            not is_set_condition
            and isinstance(raw_value, list)
            and prop.format not in LIST_FORMATS
        ):
            raise FilterInvalidValueError(
                f'invalid value for property "{prop.key}": condition "{token}" '
                f"takes a single value, got a list",
            )

        try:
            value = await self.property_service.sanitize_and_validate_property_value(
                space_id, prop.key, prop.format, raw_value, prop, snapshot,
            )
        except FilterError:
            raise
        except Exception as e:
            logger.exception("Property service failed while sanitizing %r", prop.key)
            raise FilterInternalError(
                f'failed to sanitize value for property "{prop.key}": {e}',
            ) from e

        if is_set_condition and not isinstance(value, list):
            value = [value]
        return value

    async def validate_query_filters(
        self,
        space_id: str,
        snapshot: PropertySnapshot,
        parsed: ParsedQueryFilters | None,
    ) -> list[ValidatedFilter]:
        """
        Validate every leaf of the query dialect, in order.

        Raises:
            FilterError: Of the failing leaf's kind, with the leaf index prefixed to the message.
        """
        if parsed is None:
            return []

        validated = []
        for index, item in enumerate(parsed.filters):
            try:
                validated.append(await self.validate_item(space_id, snapshot, item))
            except FilterError as e:
                logger.debug("Query filter %d rejected: %s", index, e.message)
                e.message = f"invalid filter at index {index}: {e.message}"
                e.args = (e.message,)
                raise
        return validated

    async def validate_expression(
        self,
        space_id: str,
        snapshot: PropertySnapshot,
        expression: FilterExpression | None,
    ) -> ValidatedExpression | None:
        """
        Validate a JSON expression tree recursively.

        Returns:
            The validated tree, or None when the expression is None.
        """
        if expression is None:
            return None

        conditions = [
            await self.validate_item(space_id, snapshot, item) for item in expression.conditions
        ]
        filters = []
        for child in expression.filters:
            validated = await self.validate_expression(space_id, snapshot, child)
            if validated is not None:
                filters.append(validated)

        return ValidatedExpression(
            operator=expression.operator,
            conditions=conditions,
            filters=filters,
        )
