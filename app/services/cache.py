"""
Relay Cache
Redis-backed stale-while-revalidate store for the slow-moving upstream
lookups (category tags, static image domain)
"""
import asyncio
import logging
import random
import time
from collections import Counter
from typing import Any, Awaitable, Callable, Dict, Optional
import redis.asyncio as redis
from pydantic import BaseModel, ValidationError
from app.core.config import settings

logger = logging.getLogger(__name__)

SWR_COUNTERS = (
    "swr_fresh_hit",
    "swr_stale_served",
    "swr_miss_build",
    "swr_refresh_triggered",
    "swr_refresh_failed",
)


class CacheEntry(BaseModel):
    """Stored form of every cached value"""
    value: Any
    fresh_until: Optional[float] = None  # None: never goes stale

    @property
    def is_stale(self) -> bool:
        return self.fresh_until is not None and time.time() > self.fresh_until


class CacheManager:
    """Process-wide Redis cache (singleton)"""

    _instance = None
    _redis_client = None

    def __new__(cls):
        if cls._instance is None:
            instance = super().__new__(cls)
            instance._metrics = Counter({name: 0 for name in SWR_COUNTERS})
            instance._refreshes = set()
            instance._builds = {}
            cls._instance = instance
        return cls._instance

    def get_metrics_snapshot(self) -> Dict[str, int]:
        """Copy of the SWR counters"""
        return dict(self._metrics)

    async def get_client(self) -> redis.Redis:
        """Get or create Redis client"""
        if self._redis_client is None:
            self._redis_client = redis.from_url(
                settings.REDIS_URL,
                encoding="utf-8",
                decode_responses=True
            )
        return self._redis_client

    def use_client(self, client: Optional[redis.Redis]):
        """Swap the underlying client (fakeredis in tests)"""
        self._redis_client = client

    async def get_entry(self, key: str) -> Optional[CacheEntry]:
        """Stored entry with its freshness, None on miss or Redis error"""
        try:
            client = await self.get_client()
            raw = await client.get(key)
        except Exception as e:
            logger.error(f"Cache get error for key {key}: {e}")
            return None

        if not raw:
            return None
        try:
            return CacheEntry.model_validate_json(raw)
        except ValidationError:
            logger.warning("Ignoring unreadable cache entry %s", key)
            return None

    async def get(self, key: str) -> Optional[Any]:
        entry = await self.get_entry(key)
        return entry.value if entry else None

    async def set(
        self,
        key: str,
        value: Any,
        ttl: Optional[int] = None,
        stale_ttl: Optional[int] = None
    ) -> bool:
        """
        Store a value

        Args:
            key: Cache key
            value: JSON serialisable value
            ttl: Seconds the value counts as fresh; None keeps it fresh forever
            stale_ttl: Seconds the value stays readable at all (defaults to ttl)

        Returns:
            True if stored, False on Redis errors
        """
        entry = CacheEntry(value=value, fresh_until=time.time() + ttl if ttl else None)
        expires = stale_ttl or ttl
        try:
            client = await self.get_client()
            if expires:
                await client.setex(key, expires, entry.model_dump_json())
            else:
                await client.set(key, entry.model_dump_json())
            return True
        except Exception as e:
            logger.error(f"Cache set error for key {key}: {e}")
            return False

    async def delete(self, key: str) -> bool:
        try:
            client = await self.get_client()
            await client.delete(key)
            return True
        except Exception as e:
            logger.error(f"Cache delete error for key {key}: {e}")
            return False

    async def close(self):
        """Cancel pending refreshes and close the Redis connection"""
        for task in list(self._refreshes):
            task.cancel()
        if self._refreshes:
            await asyncio.gather(*self._refreshes, return_exceptions=True)
        if self._redis_client:
            await self._redis_client.aclose()
            self._redis_client = None

    async def stale_while_revalidate(
        self,
        key: str,
        build_fn: Callable[[], Awaitable[Any]],
        ttl: int,
        stale_ttl: Optional[int] = None,
    ) -> Any:
        """
        Serve the cached value, refreshing it in the background once stale

        Cold misses build synchronously; concurrent misses for the same key in
        this process share one build. A build returning None (upstream failure)
        is never stored.
        """
        entry = await self.get_entry(key)

        if entry is not None and entry.value is not None:
            if entry.is_stale:
                await self._schedule_refresh(key, build_fn, ttl, stale_ttl)
                self._metrics["swr_stale_served"] += 1
            else:
                self._metrics["swr_fresh_hit"] += 1
            return entry.value

        pending = self._builds.get(key)
        if pending is not None:
            return await asyncio.shield(pending)

        self._metrics["swr_miss_build"] += 1
        future = asyncio.get_running_loop().create_future()
        self._builds[key] = future
        try:
            value = await build_fn()
            if value is not None:
                await self.set(key, value, ttl, stale_ttl)
            future.set_result(value)
            return value
        except Exception as e:
            future.set_exception(e)
            # retrieved here so a build nobody else awaited is not reported as unhandled
            future.exception()
            raise
        finally:
            if not future.done():
                future.cancel()
            self._builds.pop(key, None)

    async def _schedule_refresh(self, key, build_fn, ttl, stale_ttl):
        lock_key = f"swr-lock:{key}"
        try:
            client = await self.get_client()
            acquired = await client.set(lock_key, "1", nx=True, ex=max(ttl, 30))
        except Exception:
            acquired = False

        if not acquired:
            # another worker is refreshing; jitter spreads retries after lock expiry
            await asyncio.sleep(random.uniform(0.01, 0.05))
            return

        self._metrics["swr_refresh_triggered"] += 1

        async def _revalidate():
            try:
                value = await build_fn()
                if value is not None:
                    await self.set(key, value, ttl, stale_ttl)
                logger.debug("SWR refresh complete for key=%s", key)
            except Exception as exc:
                self._metrics["swr_refresh_failed"] += 1
                logger.error(f"SWR refresh failed for {key}: {exc}", exc_info=True)
            finally:
                await self.delete(lock_key)

        task = asyncio.create_task(_revalidate())
        self._refreshes.add(task)
        task.add_done_callback(self._refreshes.discard)
