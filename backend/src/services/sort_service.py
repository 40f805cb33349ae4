"""Sort option validation and conversion to backend sort descriptors."""
from types import MappingProxyType
from typing import Any

from pydantic import ValidationError

from schemas.dataview import DataviewRelationFormat, DataviewSort, DataviewSortType
from schemas.sort import SortDirection, SortOptions, SortProperty
from services.exceptions import FilterBadInputError

SORT_RELATION_KEYS: MappingProxyType[SortProperty, str] = MappingProxyType({
    SortProperty.CREATED_DATE: "createdDate",
    SortProperty.LAST_MODIFIED_DATE: "lastModifiedDate",
    SortProperty.LAST_OPENED_DATE: "lastOpenedDate",
    SortProperty.NAME: "name",
})

SORT_FORMATS: MappingProxyType[SortProperty, DataviewRelationFormat] = MappingProxyType({
    SortProperty.CREATED_DATE: DataviewRelationFormat.DATE,
    SortProperty.LAST_MODIFIED_DATE: DataviewRelationFormat.DATE,
    SortProperty.LAST_OPENED_DATE: DataviewRelationFormat.DATE,
    SortProperty.NAME: DataviewRelationFormat.LONGTEXT,
})

SORT_TYPES: MappingProxyType[SortDirection, DataviewSortType] = MappingProxyType({
    SortDirection.ASC: DataviewSortType.ASC,
    SortDirection.DESC: DataviewSortType.DESC,
})


def build_sorts(options: SortOptions | None = None) -> list[DataviewSort]:
    """
    Convert sort options into backend sort descriptors.

    `last_opened_date` is often unset, so sorting on it adds a secondary
    `last_modified_date` sort in the same direction.
    """
    options = options or SortOptions()
    sort_type = SORT_TYPES[options.direction]
    sorts = [
        DataviewSort(
            relation_key=SORT_RELATION_KEYS[options.property_key],
            type=sort_type,
            format=SORT_FORMATS[options.property_key],
        ),
    ]
    if options.property_key == SortProperty.LAST_OPENED_DATE:
        sorts.append(
            DataviewSort(
                relation_key=SORT_RELATION_KEYS[SortProperty.LAST_MODIFIED_DATE],
                type=sort_type,
                format=DataviewRelationFormat.DATE,
            ),
        )
    return sorts


def parse_sort_options(payload: Any) -> SortOptions:
    """
    Validate a JSON sort object (`{"property_key": ..., "direction": ...}`).

    Raises:
        FilterBadInputError: If the object is malformed or uses unknown values.
    """
    if payload is None:
        return SortOptions()
    try:
        return SortOptions.model_validate(payload)
    except ValidationError as e:
        error = e.errors()[0]
        field = ".".join(str(p) for p in error["loc"]) or "sort"
        raise FilterBadInputError(f"invalid sort: {field}: {error['msg']}") from None


def parse_sort_params(sort: str | None, order: str | None) -> SortOptions:
    """
    Validate `sort` and `order` query values.

    Absent values use the defaults (`last_modified_date`, `desc`).

    Raises:
        FilterBadInputError: If either value is outside the vocabulary.
    """
    options = SortOptions()
    if sort is not None:
        try:
            options.property_key = SortProperty(sort.strip().lower())
        except ValueError:
            allowed = ", ".join(p.value for p in SortProperty)
            raise FilterBadInputError(
                f'invalid sort property "{sort}": must be one of {allowed}',
            ) from None
    if order is not None:
        try:
            options.direction = SortDirection(order.strip().lower())
        except ValueError:
            raise FilterBadInputError(
                f'invalid sort direction "{order}": must be asc or desc',
            ) from None
    return options
