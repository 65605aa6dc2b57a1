"""
Search History
Most-recent-first list of distinct past queries, persisted in Redis
"""
import logging
from typing import List, Optional
import redis.asyncio as redis
from app.core.config import settings
from app.services.cache import CacheManager

logger = logging.getLogger(__name__)


class SearchHistory:
    """Capped, deduplicated search history under a well-known key"""

    def __init__(
        self,
        client: Optional[redis.Redis] = None,
        namespace: Optional[str] = None,
        limit: Optional[int] = None,
    ):
        self.client = client
        self.key = settings.SEARCH_HISTORY_KEY if not namespace else f"{settings.SEARCH_HISTORY_KEY}:{namespace}"
        self.limit = limit or settings.SEARCH_HISTORY_LIMIT

    async def get_client(self) -> redis.Redis:
        if self.client is None:
            self.client = await CacheManager().get_client()
        return self.client

    async def add(self, query: str) -> List[str]:
        """
        Record a submitted query

        An existing occurrence moves to the front; the list is trimmed to
        the configured limit.

        Returns:
            History after the update
        """
        query = query.strip()
        if not query:
            return await self.items()

        try:
            client = await self.get_client()
            async with client.pipeline(transaction=True) as pipe:
                pipe.lrem(self.key, 0, query)
                pipe.lpush(self.key, query)
                pipe.ltrim(self.key, 0, self.limit - 1)
                await pipe.execute()
        except Exception as e:
            logger.error(f"Search history write failed for {self.key}: {e}")
        return await self.items()

    async def items(self) -> List[str]:
        """History, most recent first"""
        try:
            client = await self.get_client()
            return list(await client.lrange(self.key, 0, self.limit - 1))
        except Exception as e:
            logger.error(f"Search history read failed for {self.key}: {e}")
            return []

    async def suggestions(self, text: str) -> List[str]:
        """History entries containing text (case-insensitive)"""
        needle = text.strip().casefold()
        entries = await self.items()
        if not needle:
            return entries
        return [entry for entry in entries if needle in entry.casefold()]

    async def clear(self):
        try:
            client = await self.get_client()
            await client.delete(self.key)
        except Exception as e:
            logger.error(f"Search history clear failed for {self.key}: {e}")
