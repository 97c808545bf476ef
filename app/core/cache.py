"""Redis caching layer.

Only slow-changing, non-personalized payloads are cached (featured animator,
glossary index). Trending scores are never cached: they are recomputed per
request. Every failure degrades to a cache miss.
"""

import json
import logging
from typing import Any

import redis.asyncio as redis

from app.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()


class CacheService:
    """Async Redis cache service."""

    def __init__(self):
        self._redis: redis.Redis | None = None

    async def _get_redis(self) -> redis.Redis:
        """Get or create Redis connection."""
        if self._redis is None:
            self._redis = redis.from_url(
                settings.redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
        return self._redis

    async def close(self):
        """Close Redis connection."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    async def get(self, key: str) -> Any | None:
        """Get value from cache."""
        try:
            client = await self._get_redis()
            value = await client.get(key)
            if value:
                return json.loads(value)
            return None
        except Exception as e:
            logger.warning(f"Cache get error for {key}: {e}")
            return None

    async def set(
        self,
        key: str,
        value: Any,
        ttl: int | None = None,
    ) -> bool:
        """Set value in cache with TTL (defaults to CACHE_TTL_SECONDS)."""
        try:
            client = await self._get_redis()
            serialized = json.dumps(value, default=str)
            await client.setex(key, ttl or settings.cache_ttl_seconds, serialized)
            return True
        except Exception as e:
            logger.warning(f"Cache set error for {key}: {e}")
            return False

    # Key patterns for different data types
    @staticmethod
    def featured_animator_key(year: int, week: int) -> str:
        return f"featured:animator:{year}:{week}"

    @staticmethod
    def glossary_index_key() -> str:
        return "glossary:index"


# Singleton cache instance
_cache: CacheService | None = None


def get_cache() -> CacheService:
    """Get the singleton cache service."""
    global _cache
    if _cache is None:
        _cache = CacheService()
    return _cache
