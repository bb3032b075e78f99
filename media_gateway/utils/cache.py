import json
from typing import Any, Awaitable, Callable, Optional
import redis.asyncio as redis
from loguru import logger


class CatalogCache:
    """
    Redis-backed JSON cache shared by the catalog clients.

    A cache built without a redis connection is a no-op, and redis errors
    are logged and treated as misses so a cache outage never fails a request.
    """

    def __init__(self, client: Optional[redis.Redis], ttl: int):
        self._redis = client
        self.ttl = ttl

    @classmethod
    def from_url(cls, url: str, ttl: int) -> "CatalogCache":
        """
        Connect lazily to ``url``; an empty url disables caching.

        :param url: Redis connection URL, e.g. redis://localhost:6379/0.
        :param ttl: Expiry in seconds applied to every stored entry.
        :return: CatalogCache instance.
        """
        if not url:
            return cls(None, ttl)
        client = redis.from_url(url, encoding="utf-8", decode_responses=True)
        return cls(client, ttl)

    @property
    def enabled(self) -> bool:
        return self._redis is not None

    async def get(self, key: str) -> Optional[Any]:
        if self._redis is None:
            return None
        try:
            cached = await self._redis.get(key)
        except redis.RedisError as e:
            logger.warning(f"Redis GET {key} failed: {e}")
            return None
        return json.loads(cached) if cached else None

    async def set(self, key: str, value: Any) -> None:
        if self._redis is None:
            return
        try:
            await self._redis.set(key, json.dumps(value), ex=self.ttl)
        except redis.RedisError as e:
            logger.warning(f"Redis SET {key} failed: {e}")

    async def get_or_fetch(
        self,
        key: str,
        fetch: Callable[[], Awaitable[Any]]
    ) -> Any:
        """
        Return the cached value for ``key``, or call ``fetch`` and store it.

        :param key: Cache key.
        :param fetch: Coroutine factory producing the value on a miss.
        :return: Cached or freshly fetched value.
        """
        cached = await self.get(key)
        if cached is not None:
            return cached
        value = await fetch()
        await self.set(key, value)
        return value

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
