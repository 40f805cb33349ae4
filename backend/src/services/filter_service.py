"""
Filter compilation pipeline: parse, validate against one property snapshot, emit.

Both dialects take exactly one property snapshot per call; nothing is cached
here. Any error aborts the whole call, so no partial filter is ever returned.
"""
import logging
from collections.abc import Iterable, Mapping
from typing import Any

from core.config import Settings
from schemas.dataview import DataviewFilter, DataviewFilterLeaf
from schemas.filter import FilterCondition, FilterExpression, ParsedQueryFilters
from schemas.property import PropertySnapshot
from services.filter_emitter import emit_expression, emit_query_filters
from services.filter_expression_parser import ExpressionParser
from services.filter_query_parser import QueryParser
from services.filter_validator import FilterValidator
from services.property_service import PropertyService

logger = logging.getLogger(__name__)


class FilterService:
    """
    Compiles public filters into backend dataview filters.

    Args:
        property_service: Source of property snapshots and value sanitization.
        settings: Limits for JSON expressions.
    """

    def __init__(self, property_service: PropertyService, settings: Settings) -> None:
        self.property_service = property_service
        self.validator = FilterValidator(property_service)
        self.expression_parser = ExpressionParser(
            max_depth=settings.max_filter_depth,
            max_conditions=settings.max_filter_conditions,
        )

    async def build_query_filters(
        self,
        space_id: str,
        query: str | Iterable[tuple[str, str]],
        *,
        default_conditions: Mapping[str, FilterCondition] | None = None,
        reserved_keys: Iterable[str] = (),
        snapshot: PropertySnapshot | None = None,
    ) -> list[DataviewFilterLeaf]:
        """
        Compile query-dialect filters into a flat list of leaves (implicitly AND-ed).

        Args:
            space_id: The space the filters target.
            query: The raw query string or undecoded (key, value) pairs.
            default_conditions: Per-property default conditions for bare `name=value`.
            reserved_keys: Extra parameter names the endpoint owns.
            snapshot: A property snapshot to use instead of the space's own.

        Raises:
            FilterError: On the first failing parameter.
        """
        parser = QueryParser(default_conditions=default_conditions, reserved_keys=reserved_keys)
        parsed: ParsedQueryFilters = parser.parse(query)
        if not parsed.filters:
            return []

        if snapshot is None:
            snapshot = await self.property_service.get_cached_properties(space_id)
        validated = await self.validator.validate_query_filters(space_id, snapshot, parsed)
        leaves = emit_query_filters(validated)
        logger.debug("Compiled %d query filter(s) for space %s", len(leaves), space_id)
        return leaves

    async def build_expression_filter(
        self,
        space_id: str,
        payload: dict[str, Any] | FilterExpression | None,
    ) -> DataviewFilter | None:
        """
        Compile a JSON expression into a backend filter tree.

        Returns:
            The root node, or None when the expression holds no conditions.

        Raises:
            FilterError: On malformed input or the first failing leaf.
        """
        expression = self.expression_parser.parse(payload)
        if expression is None or expression.is_empty:
            return None

        snapshot = await self.property_service.get_cached_properties(space_id)
        validated = await self.validator.validate_expression(space_id, snapshot, expression)
        root = emit_expression(validated)
        logger.debug("Compiled filter expression for space %s: %s", space_id, root)
        return root
