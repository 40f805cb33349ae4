"""Shared exceptions for filter compilation."""
from enum import StrEnum


class FilterErrorKind(StrEnum):
    """Category of a filter compilation failure."""

    BAD_INPUT = "bad_input"
    NOT_FOUND = "not_found"
    UNSUPPORTED_FOR_TYPE = "unsupported_for_type"
    INVALID_VALUE = "invalid_value"
    CANCELLED = "cancelled"
    INTERNAL = "internal"


class FilterError(Exception):
    """
    Base exception for filter compilation errors.

    Every subclass carries a `kind`; the HTTP layer maps kinds to status codes.
    """

    kind: FilterErrorKind = FilterErrorKind.INTERNAL

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class FilterBadInputError(FilterError):
    """Raised when the request shape is malformed (syntax, unknown token, wrong type)."""

    kind = FilterErrorKind.BAD_INPUT


class FilterNotFoundError(FilterError):
    """Raised when a referenced property is not in the space's snapshot."""

    kind = FilterErrorKind.NOT_FOUND

    def __init__(self, property_key: str, message: str | None = None) -> None:
        self.property_key = property_key
        super().__init__(message or f'failed to resolve property "{property_key}"')


class FilterUnsupportedForTypeError(FilterError):
    """Raised when a condition is not legal for the resolved property format."""

    kind = FilterErrorKind.UNSUPPORTED_FOR_TYPE


class FilterInvalidValueError(FilterError):
    """Raised when a value cannot be sanitized to the property format."""

    kind = FilterErrorKind.INVALID_VALUE


class FilterCancelledError(FilterError):
    """Raised when a request is cancelled before compilation finishes."""

    kind = FilterErrorKind.CANCELLED


class FilterInternalError(FilterError):
    """Raised for unexpected failures of collaborators."""

    kind = FilterErrorKind.INTERNAL
