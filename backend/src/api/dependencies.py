"""FastAPI dependencies for injection."""
from core.config import get_settings
from services.filter_service import FilterService


# Global filter service state using a container to avoid global statement
class _FilterServiceState:
    """Container for the filter service built at startup."""

    service: FilterService | None = None


_state = _FilterServiceState()


def get_filter_service() -> FilterService:
    """
    Get the filter service built during app startup.

    Raises:
        RuntimeError: If the application has not started.
    """
    if _state.service is None:
        raise RuntimeError("Filter service is not initialized")
    return _state.service


def set_filter_service(service: FilterService | None) -> None:
    """Set the global filter service instance."""
    _state.service = service


__all__ = [
    "get_filter_service",
    "get_settings",
    "set_filter_service",
]
