"""
Search Debouncer
Turns keystrokes into at most one upstream query per quiescent interval
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Set
from app.core.config import settings
from app.models.catalog import SearchPage
from app.models.session import SearchSession
from app.services.history import SearchHistory

logger = logging.getLogger(__name__)

SearchFn = Callable[[str, int, int], Awaitable[Optional[SearchPage]]]

SEARCH_FAILED_MESSAGE = "Search failed, please try again"


class SearchDebouncer:
    """
    Debounced incremental search for one client

    Events are pushed to ``events`` as dicts with a ``type`` of
    "suggestions", "history", "loading", "results", "exit_search" or "error".
    Each dispatch gets a generation number; responses from an older
    generation are dropped.
    """

    def __init__(
        self,
        search_fn: SearchFn,
        history: Optional[SearchHistory] = None,
        delay_ms: Optional[int] = None,
        min_length: Optional[int] = None,
        page_size: Optional[int] = None,
    ):
        self.search_fn = search_fn
        self.history = history or SearchHistory()
        self.delay = (settings.SEARCH_DEBOUNCE_MS if delay_ms is None else delay_ms) / 1000
        self.min_length = settings.SEARCH_MIN_LENGTH if min_length is None else min_length
        self.page_size = page_size or settings.SEARCH_PAGE_SIZE
        self.session = SearchSession()
        self.events: asyncio.Queue = asyncio.Queue()
        self._pending: Optional[asyncio.Task] = None
        self._inflight: Set[asyncio.Task] = set()

    @property
    def pending(self) -> bool:
        return self._pending is not None and not self._pending.done()

    async def on_input(self, text: str):
        """Handle one keystroke worth of input text"""
        self._cancel_pending()
        self.session.text = text
        query = text.strip()

        if not query:
            self._exit_search()
            return

        # timer starts at the keystroke, not after the history lookup
        if len(query) >= self.min_length:
            self._pending = asyncio.create_task(self._dispatch_later(query))

        self._emit({"type": "suggestions", "items": await self.history.suggestions(query)})

    async def on_submit(self, text: str) -> Optional[asyncio.Task]:
        """
        Handle an explicit submit (Enter or search button)

        Bypasses the delay and the minimum length, and records the query
        in the history.

        Returns:
            The dispatch task, or None when the submit exited search mode
        """
        self._cancel_pending()
        self.session.text = text
        query = text.strip()

        if not query:
            self._exit_search()
            return None

        self._emit({"type": "history", "items": await self.history.add(query)})
        return self._spawn(self._dispatch(query, 1))

    def goto_page(self, page: int) -> Optional[asyncio.Task]:
        """Explicit page navigation for the current query, never debounced"""
        if not self.session.search_mode or not self.session.last_query or page < 1:
            return None
        return self._spawn(self._dispatch(self.session.last_query, page))

    async def get_history(self):
        return await self.history.items()

    async def publish_history(self):
        self._emit({"type": "history", "items": await self.history.items()})

    async def close(self):
        """Cancel the pending timer and any request still in flight"""
        self._cancel_pending()
        tasks = list(self._inflight)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _dispatch_later(self, query: str):
        await asyncio.sleep(self.delay)
        self._pending = None
        self._spawn(self._dispatch(query, 1))

    async def _dispatch(self, query: str, page: int):
        self.session.generation += 1
        generation = self.session.generation
        self.session.last_query = query
        self.session.page = page
        self.session.search_mode = True
        self._emit({"type": "loading", "query": query, "page": page})

        try:
            result = await self.search_fn(query, page, self.page_size)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Search dispatch failed for {query!r}: {e}", exc_info=True)
            result = None

        if generation != self.session.generation:
            logger.debug("Dropping stale search response for %r (generation %s)", query, generation)
            return

        if result is None:
            self._emit({"type": "error", "query": query, "message": SEARCH_FAILED_MESSAGE})
            return

        self._emit({"type": "results", "query": query, "page": page, "data": result.model_dump()})

    def _exit_search(self):
        # newer generation makes any in-flight response stale
        self.session.generation += 1
        self.session.search_mode = False
        self.session.last_query = None
        self.session.page = 1
        self._emit({"type": "exit_search"})

    def _cancel_pending(self):
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        return task

    def _emit(self, event: Dict[str, Any]):
        self.events.put_nowait(event)
