import json
import logging
import hashlib
import functools
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import redis.asyncio as redis

from ..config import DEFAULT_CACHE_TTL

logger = logging.getLogger(__name__)


@dataclass
class Cache:
    """JSON values in redis, or in a process-local dict when redis is absent."""
    client: Optional[redis.Redis] = None
    ttl: int = DEFAULT_CACHE_TTL
    fallback: Dict[str, Any] = field(default_factory=dict)

    async def get(self, key: str) -> Optional[Any]:
        try:
            if self.client:
                raw = await self.client.get(key)
                return json.loads(raw) if raw else None
            return self.fallback.get(key)
        except (redis.RedisError, ValueError) as e:
            logger.debug(f"Cache get error: {e}")
            return None

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        try:
            if self.client:
                await self.client.set(key, json.dumps(value), ex=(ttl or self.ttl))
            else:
                self.fallback[key] = value
        except (redis.RedisError, TypeError, ValueError) as e:
            logger.debug(f"Cache set error: {e}")


async def connect_redis(redis_url: Optional[str]) -> Optional[redis.Redis]:
    """Return a live client, or None so callers fall back to memory."""
    if not redis_url:
        return None
    try:
        client = redis.from_url(redis_url, decode_responses=True)
        await client.ping()
        logger.info("Connected to Redis.")
        return client
    except (redis.RedisError, OSError) as e:
        logger.warning(f"Redis unavailable ({e}); using in-memory store.")
        return None


TTL_MAP = {
    "languages": 7 * 24 * 3600,
    "tree": 24 * 3600,
    "blob": 24 * 3600,
    "readme": 24 * 3600,
    "commits": 6 * 3600,
}


# ---------- Helpers ----------
def cache_key(*parts: Any) -> str:
    """
    Short cache key from parts.
    Example: cache_key("readme", "octocat/hello", "2024-01-01T00:00:00Z")
    """
    joined = ":".join(map(str, parts))
    digest = hashlib.md5(joined.encode("utf-8")).hexdigest()
    return f"gpi:{digest}"


def cached(category: str):
    """
    Cache an async ``(self, repo, *args)`` fetch keyed by the repository's
    full name and ``updated_at``. ``None`` (absent) is never cached.
    """
    def decorator(func):
        @functools.wraps(func)
        async def wrapper(self, repo, *args):
            key = cache_key(category, repo.full_name, repo.updated_at, *args)

            hit = await self.cache.get(key)
            if hit is not None:
                return hit

            result = await func(self, repo, *args)
            if result is not None:
                await self.cache.set(key, result, ttl=TTL_MAP.get(category, self.cache.ttl))
            return result

        return wrapper
    return decorator
