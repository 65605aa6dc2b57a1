"""
Upstream Catalog API Client
Async client for the third-party movie catalog the relay forwards to
"""
import aiohttp
import asyncio
import logging
from typing import Dict, Optional, Any
from app.core.config import settings
from app.services.cache import CacheManager
from app.utils.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

STATIC_DOMAIN_CACHE_KEY = "relay:static_domain"
CATEGORIES_CACHE_KEY = "relay:categories"


class UpstreamClient:
    """Async client for the upstream catalog API"""

    _rate_limiter: Optional[RateLimiter] = None

    def __init__(self, base_url: Optional[str] = None):
        self.base_url = (base_url or settings.UPSTREAM_API_BASE).rstrip("/")
        self.cache = CacheManager()
        self.session: Optional[aiohttp.ClientSession] = None

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "User-Agent": settings.UPSTREAM_USER_AGENT,
            "X-Requested-With": settings.UPSTREAM_REQUESTED_WITH,
        }

    async def get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session"""
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(
                headers=self.headers,
                timeout=aiohttp.ClientTimeout(total=settings.UPSTREAM_TIMEOUT),
            )
        return self.session

    async def close(self):
        """Close aiohttp session"""
        if self.session and not self.session.closed:
            await self.session.close()

    async def _request(
        self,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None
    ) -> Optional[Dict[str, Any]]:
        """
        GET an upstream endpoint and return its JSON envelope.

        Returns None on transport errors, timeouts and non-200 responses.
        One retry is made on 5xx and timeouts.
        """
        if not settings.DISABLE_RATE_LIMITING:
            if UpstreamClient._rate_limiter is None:
                UpstreamClient._rate_limiter = await RateLimiter.get_limiter(
                    "upstream", settings.UPSTREAM_RATE_LIMIT
                )
            await UpstreamClient._rate_limiter.acquire()

        backoff = 0.2
        attempts = 2
        url = f"{self.base_url}{endpoint}"

        for attempt in range(attempts):
            try:
                session = await self.get_session()
                async with session.get(url, params=params) as response:
                    if response.status == 200:
                        return await response.json(content_type=None)
                    elif 500 <= response.status < 600 and attempt + 1 < attempts:
                        await asyncio.sleep(backoff * (attempt + 1))
                        continue
                    else:
                        logger.error(
                            "Upstream API error: %s for %s params=%s",
                            response.status,
                            endpoint,
                            params,
                        )
                        return None

            except asyncio.TimeoutError:
                if attempt + 1 < attempts:
                    await asyncio.sleep(backoff * (attempt + 1))
                    continue
                logger.error(f"Upstream request timeout: {endpoint}")
                return None
            except aiohttp.ClientError as e:
                logger.error(f"Upstream request error for {endpoint}: {e}")
                return None
            except ValueError as e:
                logger.error(f"Upstream returned invalid JSON for {endpoint}: {e}")
                return None
        return None

    async def _envelope(
        self,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None
    ) -> Optional[Dict[str, Any]]:
        """Request an endpoint and keep the envelope only when code == 1"""
        payload = await self._request(endpoint, params)
        if not isinstance(payload, dict):
            return None
        if payload.get("code") != 1:
            logger.warning(
                "Upstream rejected %s: code=%s msg=%s",
                endpoint,
                payload.get("code"),
                payload.get("msg"),
            )
            return None
        return payload

    async def get_static_domain(self) -> str:
        """
        Resolve the static resource domain used for relative image paths

        Falls back to the configured STATIC_BASE when the upstream cannot
        be reached.
        """
        async def build() -> Optional[str]:
            payload = await self._request("/resourceDomainConfig")
            if payload and isinstance(payload.get("data"), str) and payload["data"]:
                return payload["data"]
            return None

        domain = await self.cache.stale_while_revalidate(
            key=STATIC_DOMAIN_CACHE_KEY,
            build_fn=build,
            ttl=settings.CACHE_TTL_STATIC_DOMAIN,
            stale_ttl=settings.CACHE_TTL_STATIC_DOMAIN * 4,
        )
        if not domain:
            logger.info("Using default static domain %s", settings.STATIC_BASE)
            return settings.STATIC_BASE
        return domain

    async def refresh_static_domain(self) -> Optional[str]:
        """Force a fresh static domain lookup and store it"""
        payload = await self._request("/resourceDomainConfig")
        if payload and isinstance(payload.get("data"), str) and payload["data"]:
            await self.cache.set(
                STATIC_DOMAIN_CACHE_KEY,
                payload["data"],
                settings.CACHE_TTL_STATIC_DOMAIN,
                settings.CACHE_TTL_STATIC_DOMAIN * 4,
            )
            return payload["data"]
        return None

    async def get_categories(self) -> Optional[Dict[str, Any]]:
        """Category tag list for movies"""
        async def build() -> Optional[Dict[str, Any]]:
            return await self._envelope("/dyTag/list", {"category_id": 1})

        return await self.cache.stale_while_revalidate(
            key=CATEGORIES_CACHE_KEY,
            build_fn=build,
            ttl=settings.CACHE_TTL_CATEGORIES,
            stale_ttl=settings.CACHE_TTL_CATEGORIES * 3,
        )

    async def get_hot(self) -> Optional[Dict[str, Any]]:
        """Hot/featured movies keyed by bucket id"""
        return await self._envelope("/dyTag/hand_data", {"category_id": 1})

    async def get_category_page(self, category_id: int, page: int = 1) -> Optional[Dict[str, Any]]:
        """
        One page of a category listing

        Args:
            category_id: Upstream tag id
            page: 1-based page number
        """
        return await self._envelope("/dyTag/tpl2_data", {"id": category_id, "page": page})

    async def get_detail(self, movie_id: int) -> Optional[Dict[str, Any]]:
        """Full movie detail including play sources"""
        return await self._envelope("/video/detailv2", {"id": movie_id})

    async def search(
        self,
        query: str,
        page: int = 1,
        page_size: Optional[int] = None
    ) -> Optional[Dict[str, Any]]:
        """
        Search movies by keyword. Never cached.

        Args:
            query: Search keyword
            page: 1-based page number
            page_size: Results per page

        Returns:
            Upstream envelope or None on failure
        """
        params = {
            "keyword": query,
            "page": page,
            "pageSize": page_size or settings.SEARCH_PAGE_SIZE,
        }
        return await self._envelope(settings.UPSTREAM_SEARCH_PATH, params)
