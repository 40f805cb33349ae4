"""
Property definitions, resolution and value sanitization.

`PropertyService` is the interface the filter core depends on.
`SpacePropertyService` implements it over definitions loaded from YAML (or
passed in directly), with an optional Redis-backed snapshot cache.
"""
import calendar
import logging
import math
import re
from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Protocol

import yaml
from pydantic import ValidationError

from schemas.property import TEXT_FORMATS, Property, PropertyFormat, PropertySnapshot
from services.exceptions import FilterInternalError, FilterInvalidValueError

if TYPE_CHECKING:
    from core.property_cache import PropertyCache

logger = logging.getLogger(__name__)

_DATE_ONLY_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_RFC3339_PATTERN = re.compile(
    r"^\d{4}-\d{2}-\d{2}[Tt]\d{2}:\d{2}:\d{2}(\.\d+)?([Zz]|[+-]\d{2}:\d{2})$",
)

_CHECKBOX_STRINGS = MappingProxyType({"true": True, "1": True, "false": False, "0": False})

# Attributes every space exposes to the spaces listing
SPACE_PROPERTIES: tuple[Property, ...] = (
    Property(key="name", relation_key="name", name="Name", format=PropertyFormat.TEXT),
    Property(
        key="description", relation_key="description", name="Description",
        format=PropertyFormat.TEXT,
    ),
    Property(key="status", relation_key="status", name="Status", format=PropertyFormat.TEXT),
    Property(
        key="created_date", relation_key="createdDate", name="Created date",
        format=PropertyFormat.DATE,
    ),
    Property(
        key="last_modified_date", relation_key="lastModifiedDate", name="Last modified date",
        format=PropertyFormat.DATE,
    ),
)


def build_snapshot(properties: Iterable[Property]) -> PropertySnapshot:
    """Build an immutable snapshot keyed by each property's user-visible key."""
    return MappingProxyType({p.key: p for p in properties})


SPACE_SNAPSHOT: PropertySnapshot = build_snapshot(SPACE_PROPERTIES)


class PropertyService(Protocol):
    """Property lookups and value sanitization used by the filter validator."""

    async def get_cached_properties(self, space_id: str) -> PropertySnapshot:
        """Return the property snapshot for a space."""
        ...

    def resolve_property(self, snapshot: PropertySnapshot, key: str) -> Property | None:
        """Look up a property by user key or relation key."""
        ...

    def resolve_property_api_key(self, snapshot: PropertySnapshot, key: str) -> str:
        """Return the relation key for a user key, or "" if unknown."""
        ...

    async def sanitize_and_validate_property_value(
        self,
        space_id: str,
        key: str,
        property_format: PropertyFormat,
        value: Any,
        prop: Property,
        snapshot: PropertySnapshot,
    ) -> Any:
        """Coerce a raw value to the property format."""
        ...


def _invalid(key: str, reason: str) -> FilterInvalidValueError:
    return FilterInvalidValueError(f'invalid value for property "{key}": {reason}')


def sanitize_text(key: str, value: Any) -> str:
    """Text-like values are trimmed strings."""
    if not isinstance(value, str):
        raise _invalid(key, "must be a string")
    return value.strip()


def sanitize_number(key: str, value: Any) -> float:
    """Numbers accept int, float or numeric strings and return a finite float."""
    if isinstance(value, bool):
        raise _invalid(key, "invalid number format")
    if isinstance(value, int | float):
        try:
            number = float(value)
        except OverflowError:
            raise _invalid(key, "number out of range") from None
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            raise _invalid(key, f'invalid number format "{value}"') from None
    else:
        raise _invalid(key, "invalid number format")
    if not math.isfinite(number):
        raise _invalid(key, f'invalid number format "{value}"')
    return number


def sanitize_checkbox(key: str, value: Any) -> bool:
    """Checkboxes accept booleans or the strings true/false/1/0 (any case)."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        flag = _CHECKBOX_STRINGS.get(value.strip().lower())
        if flag is not None:
            return flag
    raise _invalid(key, "must be a boolean")


def sanitize_date(key: str, value: Any) -> float:
    """
    Parse an RFC3339 timestamp or a date-only string into Unix seconds.

    Date-only values are midnight UTC. Fractional seconds are truncated.
    """
    if not isinstance(value, str):
        raise _invalid(
            key,
            "must be a string containing a date in one of these formats: "
            "RFC3339 (2006-01-02T15:04:05Z) or date-only (2006-01-02)",
        )
    text = value.strip()
    try:
        if _DATE_ONLY_PATTERN.match(text):
            parsed = datetime.strptime(text, "%Y-%m-%d").replace(tzinfo=UTC)
        elif _RFC3339_PATTERN.match(text):
            parsed = datetime.fromisoformat(text.upper().replace("Z", "+00:00"))
        else:
            raise ValueError(text)
    except ValueError:
        raise _invalid(key, f'invalid date format "{text}"') from None
    return float(calendar.timegm(parsed.utctimetuple()))


def sanitize_identifier(key: str, value: Any, options: tuple[str, ...] | None = None) -> str:
    """Identifiers (tags, files, objects) are non-empty trimmed strings."""
    if not isinstance(value, str):
        raise _invalid(key, "must be a string identifier")
    identifier = value.strip()
    if not identifier:
        raise _invalid(key, "identifier must not be empty")
    if options is not None and identifier not in options:
        raise _invalid(key, f'invalid option "{identifier}"')
    return identifier


class SpacePropertyService:
    """
    Property service over static per-space definitions.

    Args:
        definitions: Property definitions keyed by space id.
        cache: Optional snapshot cache; when absent every call reads the definitions.
    """

    def __init__(
        self,
        definitions: Mapping[str, Iterable[Property]] | None = None,
        cache: "PropertyCache | None" = None,
    ) -> None:
        self._definitions = {
            space_id: tuple(props) for space_id, props in (definitions or {}).items()
        }
        self._cache = cache

    @classmethod
    def from_yaml(
        cls,
        path: str | Path,
        cache: "PropertyCache | None" = None,
    ) -> "SpacePropertyService":
        """
        Load definitions from a YAML file of the form::

            spaces:
              <space_id>:
                - {key: status, relation_key: status, format: text}

        Raises:
            ValueError: If the file is not shaped as above or a property is invalid.
        """
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        spaces = data.get("spaces") if isinstance(data, dict) else None
        if not isinstance(spaces, dict):
            raise ValueError(f"{path}: expected a top-level 'spaces' mapping")

        definitions = {}
        for space_id, entries in spaces.items():
            try:
                definitions[str(space_id)] = [Property.model_validate(e) for e in entries or []]
            except ValidationError as e:
                raise ValueError(f"{path}: invalid property in space {space_id}: {e}") from e
        logger.info("Loaded property definitions for %d space(s) from %s", len(definitions), path)
        return cls(definitions, cache=cache)

    async def get_cached_properties(self, space_id: str) -> PropertySnapshot:
        """
        Return the property snapshot for a space.

        Unknown spaces yield an empty snapshot, so every key fails to resolve.
        """
        if self._cache is not None:
            cached = await self._cache.get(space_id)
            if cached is not None:
                return build_snapshot(cached)

        properties = self._definitions.get(space_id, ())
        if self._cache is not None and properties:
            await self._cache.set(space_id, properties)
        return build_snapshot(properties)

    def resolve_property(self, snapshot: PropertySnapshot, key: str) -> Property | None:
        """Look up a property by user key first, then by relation key."""
        prop = snapshot.get(key)
        if prop is not None:
            return prop
        for candidate in snapshot.values():
            if candidate.relation_key == key:
                return candidate
        return None

    def resolve_property_api_key(self, snapshot: PropertySnapshot, key: str) -> str:
        """Return the relation key for a user key, or "" if unknown."""
        prop = snapshot.get(key)
        return prop.relation_key if prop is not None else ""

    async def sanitize_and_validate_property_value(
        self,
        space_id: str,
        key: str,
        property_format: PropertyFormat,
        value: Any,
        prop: Property,
        snapshot: PropertySnapshot,
    ) -> Any:
        """
        Coerce a raw value to the property format.

        Lists are sanitized element-wise. multi_select always returns a list.

        Raises:
            FilterInvalidValueError: If the value (or any element) does not fit the format.
            FilterInternalError: If the format is not recognized.
        """
        if property_format == PropertyFormat.MULTI_SELECT:
            items = value if isinstance(value, list) else [value]
            return [sanitize_identifier(key, v, prop.options) for v in items]

        if isinstance(value, list):
            return [
                self._sanitize_scalar(key, property_format, v, prop) for v in value
            ]
        return self._sanitize_scalar(key, property_format, value, prop)

    def _sanitize_scalar(
        self,
        key: str,
        property_format: PropertyFormat,
        value: Any,
        prop: Property,
    ) -> Any:
        if property_format in TEXT_FORMATS:
            return sanitize_text(key, value)
        if property_format == PropertyFormat.NUMBER:
            return sanitize_number(key, value)
        if property_format == PropertyFormat.CHECKBOX:
            return sanitize_checkbox(key, value)
        if property_format == PropertyFormat.DATE:
            return sanitize_date(key, value)
        if property_format == PropertyFormat.SELECT:
            return sanitize_identifier(key, value, prop.options)
        if property_format in (PropertyFormat.FILES, PropertyFormat.OBJECTS):
            return sanitize_identifier(key, value)
        raise FilterInternalError(f"unsupported property format: {property_format}")
