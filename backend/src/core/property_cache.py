"""Property snapshot caching for reduced load on the property source."""
import json
import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

from pydantic import ValidationError

from schemas.property import Property

if TYPE_CHECKING:
    from core.redis import RedisClient

logger = logging.getLogger(__name__)

# Cache schema version - included in all cache keys (e.g., "props:v1:space:...")
#
# Bump this version when Property fields are added, removed, or renamed so
# entries written with the previous schema are never read back.
CACHE_SCHEMA_VERSION = 1


class PropertyCache:
    """Cache for per-space property definitions."""

    CACHE_TTL = 300  # 5 minutes

    def __init__(self, redis_client: "RedisClient", ttl: int | None = None) -> None:
        """Initialize property cache with Redis client."""
        self._redis = redis_client
        self._ttl = ttl if ttl is not None else self.CACHE_TTL

    def _cache_key(self, space_id: str) -> str:
        """Generate cache key for a space's properties."""
        return f"props:v{CACHE_SCHEMA_VERSION}:space:{space_id}"

    async def get(self, space_id: str) -> list[Property] | None:
        """
        Get cached properties for a space.

        Args:
            space_id: The space identifier.

        Returns:
            The cached property list, None on cache miss or unreadable entry.
        """
        data = await self._redis.get(self._cache_key(space_id))
        if not data:
            logger.debug("property_cache_miss space_id=%s", space_id)
            return None
        try:
            properties = self._deserialize(data)
        except (TypeError, ValueError, ValidationError) as e:
            logger.warning("property_cache_corrupt space_id=%s error=%s", space_id, e)
            return None
        logger.debug("property_cache_hit space_id=%s", space_id)
        return properties

    async def set(self, space_id: str, properties: Iterable[Property]) -> None:
        """
        Cache a space's property definitions.

        Args:
            space_id: The space identifier.
            properties: The definitions to cache.
        """
        data = json.dumps([p.model_dump(mode="json") for p in properties])
        await self._redis.setex(self._cache_key(space_id), self._ttl, data)
        logger.debug("property_cache_set space_id=%s", space_id)

    def _deserialize(self, data: bytes | str) -> list[Property]:
        """Deserialize cached data to Property models."""
        return [Property.model_validate(d) for d in json.loads(data)]
