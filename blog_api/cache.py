import json
import logging
from typing import Any, Awaitable, Callable

import redis.asyncio as redis

from blog_api.config import settings

logger = logging.getLogger(__name__)

# Every cached post read lives under this namespace, so one SCAN purges
# all feeds and detail views at once.
POSTS_NAMESPACE = "posts"


def feed_key(*parts: object) -> str:
    """``feed_key("category", "Weather")`` -> ``"posts:category:Weather"``."""
    return ":".join([POSTS_NAMESPACE, *(str(p) for p in parts)])


class PostCache:
    """
    Redis-backed cache for post feeds and post details.

    Redis is optional.  Without a connection, or when a command fails,
    lookups load from the database and writes to the cache are skipped;
    the cache never fails a request.
    """

    def __init__(self, url: str | None = None) -> None:
        self._url = url or settings.REDIS_URL
        self._redis: redis.Redis | None = None
        self._hits = 0
        self._misses = 0

    @property
    def enabled(self) -> bool:
        return self._redis is not None

    async def connect(self) -> None:
        self._redis = redis.from_url(
            self._url,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        try:
            await self._redis.ping()
            logger.info("Post cache connected to %s", self._url)
        except Exception as exc:  # pragma: no cover
            logger.warning("Post cache disabled, Redis unreachable: %s", exc)
            await self._redis.aclose()
            self._redis = None

    async def disconnect(self) -> None:
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    async def _read(self, key: str) -> Any | None:
        if not self._redis:
            return None
        try:
            raw = await self._redis.get(key)
        except Exception as exc:
            logger.debug("Post cache read failed for %r: %s", key, exc)
            return None
        return None if raw is None else json.loads(raw)

    async def _write(self, key: str, value: Any, ttl: int) -> None:
        if not self._redis:
            return
        try:
            await self._redis.set(key, json.dumps(value, default=str), ex=ttl)
        except Exception as exc:
            logger.debug("Post cache write failed for %r: %s", key, exc)

    async def get_or_load(self, key: str, loader: Callable[[], Awaitable[Any]], ttl: int) -> Any:
        """
        Return the cached value under *key*, or await *loader*, cache its
        result for *ttl* seconds and return it.  Exceptions raised by the
        loader propagate and nothing is cached.
        """
        cached = await self._read(key)
        if cached is not None:
            self._hits += 1
            return cached
        self._misses += 1
        value = await loader()
        await self._write(key, value, ttl)
        return value

    async def invalidate_posts(self) -> None:
        """
        Drop every cached post read.  Feeds embed the creator's name and
        email, so profile edits purge them too.
        """
        if not self._redis:
            return
        try:
            keys = [k async for k in self._redis.scan_iter(match=f"{POSTS_NAMESPACE}:*")]
            if keys:
                await self._redis.delete(*keys)
                logger.debug("Post cache purged %d key(s)", len(keys))
        except Exception as exc:
            logger.warning("Post cache purge failed: %s", exc)

    @property
    def stats(self) -> dict:
        lookups = self._hits + self._misses
        return {
            "enabled": self.enabled,
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": round(self._hits / lookups * 100, 1) if lookups else 0.0,
        }


cache = PostCache()
