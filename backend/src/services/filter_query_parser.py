"""
URL query-parameter filter dialect.

Grammar:
    name=value          -> property `name`, default condition (usually `eq`)
    name[cond]=value    -> property `name`, condition `cond`

Pagination and sort parameters are reserved and never treated as filters.
The parser has no knowledge of property formats; values stay strings except
for set conditions (lists) and `empty`/`nempty` (booleans).
"""
import logging
import re
from collections.abc import Iterable, Mapping
from urllib.parse import unquote_plus

from schemas.filter import FilterCondition, ParsedQueryFilters, QueryFilterItem
from services.exceptions import FilterBadInputError
from services.filter_catalog import SET_CONDITIONS, VALUELESS_CONDITIONS

logger = logging.getLogger(__name__)

RESERVED_KEYS: frozenset[str] = frozenset({"offset", "limit", "sort", "order"})

# Matched with fullmatch: `$` would also accept a trailing newline
FILTER_KEY_PATTERN = re.compile(r"(.+)\[(\w+)\]", re.ASCII)

# A `%` not followed by two hex digits is a malformed escape
_BAD_ESCAPE_PATTERN = re.compile(r"%(?![0-9A-Fa-f]{2})")

_TRUTHY_FLAGS = frozenset({"", "true", "1"})


def decode_component(raw: str) -> str:
    """
    Percent-decode one query component (`+` is a space).

    Raises:
        FilterBadInputError: If the component has a malformed escape or is not valid UTF-8.
    """
    if _BAD_ESCAPE_PATTERN.search(raw):
        raise FilterBadInputError(f'failed to decode query value "{raw}": malformed escape')
    try:
        return unquote_plus(raw, encoding="utf-8", errors="strict")
    except UnicodeDecodeError as e:
        raise FilterBadInputError(
            f'failed to decode query value "{raw}": invalid UTF-8',
        ) from e


def split_query(query: str) -> list[tuple[str, str]]:
    """Split a raw query string into undecoded (key, value) pairs, keeping order."""
    pairs = []
    for segment in query.lstrip("?").split("&"):
        if not segment:
            continue
        key, _, value = segment.partition("=")
        pairs.append((key, value))
    return pairs


def parse_condition_value(condition: FilterCondition, value: str) -> object:
    """
    Shape a decoded value for its condition.

    - `in`, `nin`, `all`: comma-separated list, elements trimmed; "" -> [].
    - `empty`, `nempty`: truthiness flag ("", "true", "1" are true).
    - anything else: the string verbatim.
    """
    if condition in SET_CONDITIONS:
        if value == "":
            return []
        return [part.strip() for part in value.split(",")]
    if condition in VALUELESS_CONDITIONS:
        return value.strip().lower() in _TRUTHY_FLAGS
    return value


class QueryParser:
    """
    Parses URL query parameters into a flat list of filter leaves.

    Args:
        default_conditions: Per-property condition used for bare `name=value`
            parameters. Properties not listed default to `eq`.
        reserved_keys: Extra parameter names the endpoint owns, ignored in
            addition to `offset`, `limit`, `sort`, `order`.
    """

    def __init__(
        self,
        default_conditions: Mapping[str, FilterCondition] | None = None,
        reserved_keys: Iterable[str] = (),
    ) -> None:
        self.default_conditions = dict(default_conditions or {})
        self.reserved_keys = RESERVED_KEYS | frozenset(reserved_keys)

    def parse(self, query: str | Iterable[tuple[str, str]]) -> ParsedQueryFilters:
        """
        Parse a raw query string or a sequence of raw (key, value) pairs.

        Args:
            query: The undecoded query. Each key and value is decoded exactly once.

        Returns:
            ParsedQueryFilters with one leaf per non-reserved parameter, in input order.

        Raises:
            FilterBadInputError: On an empty property name, an unknown condition
                token or an undecodable component. Parsing stops at the first error.
        """
        pairs = split_query(query) if isinstance(query, str) else list(query)
        filters = []
        for raw_key, raw_value in pairs:
            key = decode_component(raw_key)
            if key in self.reserved_keys:
                continue
            filters.append(self.parse_parameter(key, decode_component(raw_value)))

        logger.debug("Parsed %d query filter(s)", len(filters))
        return ParsedQueryFilters(filters=filters)

    def parse_parameter(self, key: str, value: str) -> QueryFilterItem:
        """
        Parse one decoded parameter into a leaf.

        Raises:
            FilterBadInputError: On an empty property name or an unknown condition token.
        """
        property_key, condition = self.parse_key(key)
        return QueryFilterItem(
            property_key=property_key,
            condition=condition,
            value=parse_condition_value(condition, value),
        )

    def parse_key(self, key: str) -> tuple[str, FilterCondition]:
        """
        Split a decoded key into property name and condition.

        Keys that do not match `name[cond]` are bare property names using the
        default condition. `[eq]` on its own is therefore the property "[eq]".
        """
        if not key:
            raise FilterBadInputError("invalid filter key: empty property name")

        match = FILTER_KEY_PATTERN.fullmatch(key)
        if match is None:
            return key, self.default_conditions.get(key, FilterCondition.EQ)

        property_key, token = match.group(1), match.group(2).lower()
        try:
            condition = FilterCondition(token)
        except ValueError:
            raise FilterBadInputError(
                f'invalid condition "{match.group(2)}" for property "{property_key}"',
            ) from None
        return property_key, condition
