"""Shared fixtures for API tests."""
from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient

from api.dependencies import get_filter_service
from api.main import app
from services.filter_service import FilterService


@pytest.fixture
async def client(filter_service: FilterService) -> AsyncGenerator[AsyncClient]:
    """
    Client for the app with the filter service built over the test properties.

    The lifespan does not run under ASGITransport, so the service is injected
    through a dependency override.
    """
    app.dependency_overrides[get_filter_service] = lambda: filter_service
    try:
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
        ) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()
