"""
Browse Session
Category/page navigation over the relay, driven by an explicit ViewState
"""
import logging
from typing import Optional
from app.core.config import settings
from app.models.session import Listing, ViewState
from app.services.catalog import CatalogService

logger = logging.getLogger(__name__)

CATEGORY_IDS = {
    "action": 8,
    "comedy": 9,
    "drama": 10,
}
DEFAULT_CATEGORY_ID = 32  # recent releases

LOAD_FAILED_MESSAGE = "Failed to load movies, please check your connection"


def category_id(category: str) -> int:
    """Upstream tag id for a navigation category"""
    return CATEGORY_IDS.get(category, DEFAULT_CATEGORY_ID)


class BrowseSession:
    """
    Listing navigation for one view

    Every load bumps the state's generation; a response that comes back
    after a newer load started is discarded and load() returns None.
    """

    def __init__(self, catalog: CatalogService, state: Optional[ViewState] = None):
        self.catalog = catalog
        self.state = state or ViewState()

    async def load(self) -> Optional[Listing]:
        """Fetch the listing for the current category and page"""
        self.state.generation += 1
        generation = self.state.generation
        category = self.state.category
        page = self.state.page

        if category == "hot":
            envelope = await self.catalog.hot()
        else:
            envelope = await self.catalog.category_page(category_id(category), page)

        if generation != self.state.generation:
            logger.debug("Dropping stale listing for %s page %s", category, page)
            return None

        if envelope is None:
            return Listing(category=category, page=page, error=LOAD_FAILED_MESSAGE)

        data = envelope.get("data") or {}
        if category == "hot":
            self.state.has_next = False
            self.state.has_prev = False
            return Listing(
                category=category,
                page=page,
                movies=data.get(settings.HOT_BUCKET_KEY) or [],
            )

        self.state.has_next = bool(data.get("hasNext", False))
        self.state.has_prev = page > 1
        return Listing(
            category=category,
            page=page,
            movies=data.get("list") or [],
            paginated=self.state.has_next or self.state.has_prev,
            hasNext=self.state.has_next,
            hasPrev=self.state.has_prev,
        )

    async def switch_category(self, category: str) -> Optional[Listing]:
        """Show page 1 of another category; no-op when already selected"""
        if category == self.state.category:
            return None
        self.state.category = category
        self.state.page = 1
        return await self.load()

    async def next_page(self) -> Optional[Listing]:
        if self.state.category == "hot" or not self.state.has_next:
            return None
        self.state.page += 1
        return await self.load()

    async def prev_page(self) -> Optional[Listing]:
        if self.state.category == "hot" or self.state.page <= 1:
            return None
        self.state.page -= 1
        return await self.load()
