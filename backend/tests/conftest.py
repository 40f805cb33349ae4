"""Pytest fixtures for testing."""
import os

# Tests never talk to a real Redis; set before any import builds Settings
os.environ.setdefault("REDIS_ENABLED", "false")

from types import MappingProxyType
from typing import Any

import pytest

from core.config import Settings
from core.redis import RedisClient
from schemas.property import Property, PropertyFormat, PropertySnapshot
from services.filter_service import FilterService
from services.property_service import SpacePropertyService, build_snapshot

SPACE_ID = "space-1"


def make_properties() -> list[Property]:
    """Property definitions covering every format, with some custom relation keys."""
    return [
        Property(id="p1", key="name", relation_key="name", name="Name", format=PropertyFormat.TEXT),
        Property(id="p2", key="description", relation_key="description", format=PropertyFormat.TEXT),
        Property(id="p3", key="status", relation_key="status", format=PropertyFormat.TEXT),
        Property(id="p4", key="website", relation_key="source", format=PropertyFormat.URL),
        Property(id="p5", key="email", relation_key="email", format=PropertyFormat.EMAIL),
        Property(id="p6", key="phone", relation_key="phone", format=PropertyFormat.PHONE),
        Property(id="p7", key="age", relation_key="age", format=PropertyFormat.NUMBER),
        Property(id="p8", key="priority", relation_key="priority", format=PropertyFormat.NUMBER),
        Property(id="p9", key="due_date", relation_key="dueDate", format=PropertyFormat.DATE),
        Property(id="p10", key="done", relation_key="done", format=PropertyFormat.CHECKBOX),
        Property(id="p11", key="is_archived", relation_key="isArchived", format=PropertyFormat.CHECKBOX),
        Property(
            id="p12", key="stage", relation_key="stage", format=PropertyFormat.SELECT,
            options=("backlog", "doing", "done"),
        ),
        Property(id="p13", key="tags", relation_key="tag", format=PropertyFormat.MULTI_SELECT),
        Property(id="p14", key="attachments", relation_key="attachments", format=PropertyFormat.FILES),
        Property(id="p15", key="links", relation_key="links", format=PropertyFormat.OBJECTS),
        Property(
            id="p16", key="custom_priority", relation_key="a1b2c3", format=PropertyFormat.NUMBER,
        ),
    ]


class FakeRedis:
    """In-memory stand-in for the redis.asyncio client used behind RedisClient."""

    def __init__(self) -> None:
        self.store: dict[str, Any] = {}
        self.ttls: dict[str, int] = {}

    async def ping(self) -> bool:
        return True

    async def get(self, key: str) -> Any:
        return self.store.get(key)

    async def setex(self, key: str, seconds: int, value: Any) -> None:
        self.store[key] = value.encode() if isinstance(value, str) else value
        self.ttls[key] = seconds

    async def aclose(self) -> None:
        pass


@pytest.fixture
def properties() -> list[Property]:
    """Property definitions for SPACE_ID."""
    return make_properties()


@pytest.fixture
def snapshot(properties: list[Property]) -> PropertySnapshot:
    """Immutable snapshot of SPACE_ID's properties."""
    return build_snapshot(properties)


@pytest.fixture
def property_service(properties: list[Property]) -> SpacePropertyService:
    """Property service without caching."""
    return SpacePropertyService({SPACE_ID: properties})


@pytest.fixture
def test_settings() -> Settings:
    """Settings with default filter limits and Redis disabled."""
    return Settings(redis_enabled=False)


@pytest.fixture
def filter_service(
    property_service: SpacePropertyService, test_settings: Settings,
) -> FilterService:
    """Filter service over the test property definitions."""
    return FilterService(property_service, test_settings)


@pytest.fixture
def fake_redis() -> FakeRedis:
    """In-memory Redis backend."""
    return FakeRedis()


@pytest.fixture
def redis_client(fake_redis: FakeRedis) -> RedisClient:
    """RedisClient that looks connected, backed by FakeRedis."""
    client = RedisClient("redis://localhost:6379", enabled=True)
    client._client = fake_redis
    return client


@pytest.fixture
def empty_snapshot() -> PropertySnapshot:
    """Snapshot with no properties."""
    return MappingProxyType({})
