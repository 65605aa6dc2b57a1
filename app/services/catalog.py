"""
Catalog Service
Reshapes upstream payloads at the relay boundary: absolute image URLs,
one canonical image per movie and parsed play sources
"""
import logging
from typing import Any, Dict, List, Optional
from pydantic import ValidationError
from app.core.config import settings
from app.models.catalog import Movie, PlaySourceGroup, SearchPage
from app.services.upstream import UpstreamClient
from app.utils.helpers import (
    DETAIL_IMAGE_FIELDS,
    deduplicate,
    normalize_image_url,
    normalize_movie_summary,
)

logger = logging.getLogger(__name__)


def parse_movie(data: Dict[str, Any], static_domain: str) -> Optional[Movie]:
    """
    Build a Movie from an upstream detail payload

    The distinguished priority group is read from PRIORITY_SOURCE_KEY when the
    upstream sends one.

    Args:
        data: The "data" member of the detail envelope
        static_domain: Domain used for relative image paths

    Returns:
        Movie, or None when the payload cannot be parsed
    """
    payload = dict(data)
    payload["image"] = normalize_image_url(data, static_domain, DETAIL_IMAGE_FIELDS)

    priority = data.get(settings.PRIORITY_SOURCE_KEY)
    payload["priority_source"] = None
    if isinstance(priority, dict) and priority.get("source_list"):
        try:
            payload["priority_source"] = PlaySourceGroup.model_validate(priority)
        except ValidationError:
            logger.warning("Ignoring malformed priority source for movie %s", data.get("id"))

    try:
        return Movie.model_validate(payload)
    except ValidationError as e:
        logger.error("Failed to parse movie detail %s: %s", data.get("id"), e)
        return None


def _pagination(data: Dict[str, Any], page: int, page_size: int, count: int) -> Dict[str, Any]:
    total = data.get("total")
    try:
        total = int(total)
    except (TypeError, ValueError):
        total = count

    if "hasNext" in data:
        has_next = bool(data["hasNext"])
    else:
        has_next = page * page_size < total
    return {
        "page": page,
        "page_size": page_size,
        "total": total,
        "hasNext": has_next,
        "hasPrev": page > 1,
    }


class CatalogService:
    """Relay operations backed by the upstream client"""

    def __init__(self, client: Optional[UpstreamClient] = None):
        self.client = client or UpstreamClient()

    async def close(self):
        await self.client.close()

    async def _normalize_rows(self, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        static_domain = await self.client.get_static_domain()
        rows = deduplicate([row for row in rows if isinstance(row, dict)], key="id")
        return [normalize_movie_summary(row, static_domain) for row in rows]

    async def categories(self) -> Optional[Dict[str, Any]]:
        return await self.client.get_categories()

    async def hot(self) -> Optional[Dict[str, Any]]:
        """Hot list envelope with the featured bucket normalised"""
        envelope = await self.client.get_hot()
        if envelope is None:
            return None

        data = envelope.get("data")
        bucket = settings.HOT_BUCKET_KEY
        if isinstance(data, dict) and isinstance(data.get(bucket), list):
            data[bucket] = await self._normalize_rows(data[bucket])
        return envelope

    async def category_page(self, category_id: int, page: int = 1) -> Optional[Dict[str, Any]]:
        """Category page envelope with normalised rows and pagination flags"""
        envelope = await self.client.get_category_page(category_id, page)
        if envelope is None:
            return None

        data = envelope.get("data")
        if isinstance(data, dict) and isinstance(data.get("list"), list):
            data["list"] = await self._normalize_rows(data["list"])
            data["hasNext"] = bool(data.get("hasNext", False))
            data["hasPrev"] = page > 1
        return envelope

    async def detail(self, movie_id: int) -> Optional[Movie]:
        """Parsed movie detail, None on upstream or parse failure"""
        envelope = await self.client.get_detail(movie_id)
        if envelope is None or not isinstance(envelope.get("data"), dict):
            return None

        static_domain = await self.client.get_static_domain()
        return parse_movie(envelope["data"], static_domain)

    async def detail_envelope(self, movie_id: int) -> Optional[Dict[str, Any]]:
        """
        Detail envelope whose data is the parsed movie

        The raw image fields are replaced by the canonical ``image``; play
        sources keep their upstream keys and gain ``priority_source``.
        """
        envelope = await self.client.get_detail(movie_id)
        if envelope is None or not isinstance(envelope.get("data"), dict):
            return None

        static_domain = await self.client.get_static_domain()
        movie = parse_movie(envelope["data"], static_domain)
        if movie is None:
            return None
        return {**envelope, "data": movie.model_dump(by_alias=True)}

    async def search(
        self,
        query: str,
        page: int = 1,
        page_size: Optional[int] = None
    ) -> Optional[SearchPage]:
        """
        Live search, one upstream call per invocation

        Returns:
            SearchPage with normalised rows, None on upstream failure
        """
        page_size = page_size or settings.SEARCH_PAGE_SIZE
        envelope = await self.client.search(query, page, page_size)
        if envelope is None:
            return None

        data = envelope.get("data") or {}
        if isinstance(data, list):
            data = {"list": data}
        rows = data.get("list") or []

        return SearchPage(
            query=query,
            list=await self._normalize_rows(rows),
            **_pagination(data, page, page_size, len(rows)),
        )
