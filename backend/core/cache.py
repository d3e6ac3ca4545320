"""
CatalogSync Cache

Redis cache-aside helpers for catalog reads. Redis is an optimization, never
a dependency: every Redis failure is logged and treated as a miss.
"""

import hashlib
import json
from typing import Any

import redis.asyncio as aioredis
import structlog
from redis.exceptions import RedisError

from core.config import get_settings

logger = structlog.get_logger()


def cache_key(domain: str, params: dict[str, Any] | None = None) -> str:
    """Deterministic key: parameter order never changes the key."""
    if not params:
        return domain
    joined = "&".join(f"{name}={params[name]}" for name in sorted(params))
    digest = hashlib.sha256(joined.encode()).hexdigest()[:16]
    return f"{domain}:{digest}"


class RedisCache:
    def __init__(self, url: str, default_ttl: int):
        self.client = aioredis.from_url(url, socket_connect_timeout=2, socket_timeout=2)
        self.default_ttl = default_ttl

    async def get_json(self, key: str) -> Any | None:
        try:
            raw = await self.client.get(key)
        except RedisError as exc:
            logger.warning("cache.get.failed", key=key, error=str(exc))
            return None
        if raw is None:
            return None
        return json.loads(raw)

    async def set_json(self, key: str, value: Any, ttl: int | None = None) -> None:
        try:
            await self.client.set(key, json.dumps(value, default=str), ex=ttl or self.default_ttl)
        except RedisError as exc:
            logger.warning("cache.set.failed", key=key, error=str(exc))

    async def delete(self, key: str) -> None:
        try:
            await self.client.delete(key)
        except RedisError as exc:
            logger.warning("cache.delete.failed", key=key, error=str(exc))

    async def aclose(self) -> None:
        await self.client.aclose()


_cache: RedisCache | None = None


def get_cache() -> RedisCache:
    """Process-wide cache client (connections are pooled lazily)."""
    global _cache
    if _cache is None:
        settings = get_settings()
        _cache = RedisCache(settings.redis_url, settings.cache_ttl_seconds)
    return _cache


async def close_cache() -> None:
    global _cache
    if _cache is not None:
        await _cache.aclose()
        _cache = None
