"""Advisory Redis cache for read-mostly views (search results, queue stats).

The cache is never the source of truth. Entries are grouped into namespaces
and a namespace is invalidated by bumping its generation counter, which
orphans every key built with the old generation (they expire via TTL).
When Redis is unavailable every call degrades to a cache miss.
"""

import hashlib
import json
import logging
from functools import lru_cache
from typing import Any, Optional

from redis import Redis, RedisError

from ...config import get_settings

logger = logging.getLogger(__name__)

SEARCH_NAMESPACE = "search"
MODERATION_NAMESPACE = "moderation"

_KEY_PREFIX = "notehub:view"


def get_redis_client(url: str) -> Optional[Redis]:
    """Get a Redis client, or None if Redis is not reachable."""
    try:
        client = Redis.from_url(url, decode_responses=True, socket_connect_timeout=1, socket_timeout=1)
        client.ping()
        return client
    except (RedisError, OSError) as e:
        logger.warning(f"Redis unavailable, view cache disabled: {e}")
        return None


class ViewCache:
    """Namespace-versioned JSON cache on top of Redis.

    Example:
        cache = ViewCache(redis_client, ttl_seconds=60)
        hit = cache.get("search", {"kind": "notes"})
        if hit is None:
            hit = run_query()
            cache.set("search", {"kind": "notes"}, hit)
        cache.invalidate("search")
    """

    def __init__(self, redis_client: Optional[Redis], ttl_seconds: int = 60):
        self.redis = redis_client
        self.ttl_seconds = ttl_seconds

    @property
    def available(self) -> bool:
        return self.redis is not None

    def _generation_key(self, namespace: str) -> str:
        return f"{_KEY_PREFIX}:{namespace}:generation"

    def _entry_key(self, namespace: str, generation: str, key: Any) -> str:
        digest = hashlib.sha256(json.dumps(key, sort_keys=True, default=str).encode()).hexdigest()[:32]
        return f"{_KEY_PREFIX}:{namespace}:{generation}:{digest}"

    def get(self, namespace: str, key: Any) -> Optional[Any]:
        if not self.redis:
            return None
        try:
            generation = self.redis.get(self._generation_key(namespace)) or "0"
            raw = self.redis.get(self._entry_key(namespace, generation, key))
        except RedisError as e:
            logger.warning(f"View cache read failed: namespace={namespace}, error={e}")
            return None
        return json.loads(raw) if raw is not None else None

    def set(self, namespace: str, key: Any, value: Any) -> None:
        if not self.redis:
            return
        try:
            generation = self.redis.get(self._generation_key(namespace)) or "0"
            self.redis.setex(
                self._entry_key(namespace, generation, key),
                self.ttl_seconds,
                json.dumps(value, default=str),
            )
        except RedisError as e:
            logger.warning(f"View cache write failed: namespace={namespace}, error={e}")

    def invalidate(self, *namespaces: str) -> None:
        """Drop every cached entry in the given namespaces."""
        if not self.redis:
            return
        for namespace in namespaces:
            try:
                self.redis.incr(self._generation_key(namespace))
            except RedisError as e:
                # Stale entries still expire after ttl_seconds
                logger.warning(f"View cache invalidation failed: namespace={namespace}, error={e}")


@lru_cache()
def get_view_cache() -> ViewCache:
    """Process-wide view cache. Call get_view_cache.cache_clear() to reconnect."""
    settings = get_settings()
    return ViewCache(get_redis_client(settings.REDIS_URL), ttl_seconds=settings.VIEW_CACHE_TTL_SECONDS)
