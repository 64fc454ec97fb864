# school_records/core/cache.py
"""Redis caching implementation."""
import json
import logging
from typing import Any, Optional, Union
from datetime import timedelta
import redis.asyncio as redis
from ..core.config import settings

logger = logging.getLogger(__name__)


class CacheManager:
    """Best-effort cache; every fault degrades to a miss."""

    def __init__(self, url: Optional[str] = None):
        self.url = url
        self.redis: Optional[redis.Redis] = None

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    async def connect(self):
        """Initialize Redis connection."""
        if self.enabled and not self.redis:
            self.redis = redis.from_url(
                self.url,
                encoding="utf-8",
                decode_responses=True
            )

    async def disconnect(self):
        """Close Redis connection."""
        if self.redis:
            await self.redis.aclose()
            self.redis = None

    async def get(self, key: str) -> Optional[Any]:
        """Get value from cache."""
        if not self.enabled:
            return None
        await self.connect()

        try:
            value = await self.redis.get(key)
            if value is not None:
                return json.loads(value)
        except (redis.RedisError, ValueError) as e:
            logger.warning(f"Cache read failed for {key}: {e}")
        return None

    async def set(
        self,
        key: str,
        value: Any,
        expire: Optional[Union[int, timedelta]] = None
    ) -> bool:
        """Set value in cache."""
        if not self.enabled:
            return False
        await self.connect()

        try:
            serialized = json.dumps(value)
            if expire:
                if isinstance(expire, timedelta):
                    expire = int(expire.total_seconds())
                return bool(await self.redis.setex(key, expire, serialized))
            return bool(await self.redis.set(key, serialized))
        except (redis.RedisError, TypeError) as e:
            logger.warning(f"Cache write failed for {key}: {e}")
            return False


# Global cache instance
cache_manager = CacheManager(settings.redis_url)
