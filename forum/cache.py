import json
import logging

import redis.asyncio as redis

from forum.config import settings

logger = logging.getLogger(__name__)

BANNERS_KEY = "banners:all"


def _pm_count_key(username: str) -> str:
    return f"pm:unread:{username}"


class CacheManager:
    """
    Cache-aside manager backed by Redis.

    Holds two kinds of derived data: the per-user unread private message
    counter and the banner map.  Both can be rebuilt from the database at
    any time, so every public method tolerates an unavailable Redis: reads
    return None and writes are skipped.
    """

    def __init__(self) -> None:
        self._redis: redis.Redis | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Open the connection pool.  Called once at application startup."""
        self._redis = redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        try:
            await self._redis.ping()
            logger.info("Redis connected: %s", settings.REDIS_URL)
        except Exception as exc:  # pragma: no cover
            logger.warning("Redis ping failed, cache disabled: %s", exc)

    async def disconnect(self) -> None:
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    # ------------------------------------------------------------------
    # Core cache operations
    # ------------------------------------------------------------------

    async def get(self, key: str) -> dict | list | int | None:
        if not self._redis:
            return None
        try:
            data = await self._redis.get(key)
            return json.loads(data) if data is not None else None
        except Exception as exc:
            logger.debug("Cache GET error for key=%r: %s", key, exc)
            return None

    async def set(self, key: str, value, ttl: int | None = None) -> None:
        if not self._redis:
            return
        try:
            await self._redis.set(key, json.dumps(value, default=str), ex=ttl)
        except Exception as exc:
            logger.debug("Cache SET error for key=%r: %s", key, exc)

    async def delete(self, key: str) -> None:
        if not self._redis:
            return
        try:
            await self._redis.delete(key)
        except Exception as exc:
            logger.debug("Cache DELETE error for key=%r: %s", key, exc)

    async def _adjust(self, key: str, delta: int) -> None:
        """
        Shift a cached integer by *delta* only when it is already cached.

        A missing key means the counter was never computed (or expired);
        the next read recomputes it from the database, so creating it here
        would seed a wrong value.
        """
        if not self._redis:
            return
        try:
            if not await self._redis.exists(key):
                return
            value = await self._redis.incrby(key, delta)
            if value < 0:
                await self._redis.set(key, 0, keepttl=True)
        except Exception as exc:
            logger.debug("Cache INCRBY error for key=%r: %s", key, exc)

    # ------------------------------------------------------------------
    # Unread private message counters
    # ------------------------------------------------------------------

    async def get_new_pm_count(self, username: str) -> int | None:
        value = await self.get(_pm_count_key(username))
        return int(value) if value is not None else None

    async def put_new_pm_count(self, username: str, count: int) -> None:
        await self.set(_pm_count_key(username), count, ttl=settings.CACHE_TTL_PM_COUNT)

    async def increment_new_pm_count(self, username: str) -> None:
        await self._adjust(_pm_count_key(username), 1)

    async def decrement_new_pm_count(self, username: str) -> None:
        await self._adjust(_pm_count_key(username), -1)

    # ------------------------------------------------------------------
    # Banners
    # ------------------------------------------------------------------

    async def get_banners(self) -> dict | None:
        return await self.get(BANNERS_KEY)

    async def put_banners(self, banners: dict) -> None:
        await self.set(BANNERS_KEY, banners, ttl=settings.CACHE_TTL_BANNERS)

    async def invalidate_banners(self) -> None:
        await self.delete(BANNERS_KEY)


# Module-level singleton shared across all request handlers.
cache = CacheManager()
