import json
import logging
from typing import Any, Optional

from redis.asyncio import Redis

logger = logging.getLogger(__name__)


class CacheService:
    """Best-effort JSON cache over an async Redis client.

    Used for the ordered rule list, the assignment config and the
    workload dashboard.  If *redis_client* is ``None`` or Redis errors,
    reads miss and writes are dropped; callers never see an exception.
    """

    def __init__(self, redis_client: Optional[Redis] = None) -> None:
        self._redis: Optional[Redis] = redis_client

    @property
    def is_available(self) -> bool:
        """Return ``True`` if a Redis client is configured."""
        return self._redis is not None

    async def get_json(self, key: str) -> Optional[Any]:
        """Return the decoded JSON value stored under *key*, or ``None``."""
        if self._redis is None:
            return None
        try:
            raw = await self._redis.get(key)
        except Exception:
            logger.warning("Redis GET failed for key %s", key)
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            logger.warning("Invalid JSON in cache key %s", key)
            return None

    async def set_json(self, key: str, data: Any, ttl: int | None = None) -> None:
        """Serialise *data* to JSON and store it, optionally with a TTL (seconds)."""
        if self._redis is None:
            return
        try:
            payload = json.dumps(data, default=str)
        except (TypeError, ValueError):
            logger.warning("Failed to serialise data for cache key %s", key)
            return
        try:
            if ttl:
                await self._redis.setex(key, ttl, payload)
            else:
                await self._redis.set(key, payload)
        except Exception:
            logger.warning("Redis SET failed for key %s", key)

    async def delete(self, *keys: str) -> None:
        """Remove *keys* from the cache."""
        if self._redis is None or not keys:
            return
        try:
            await self._redis.delete(*keys)
        except Exception:
            logger.warning("Redis DELETE failed for keys %s", ", ".join(keys))
