"""
Search WebSocket
Incremental search-as-you-type and listing navigation, one view per connection
"""
import asyncio
import json
import logging
from typing import Any, Dict, Optional, Set
from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect
from app.services.browse import BrowseSession
from app.services.catalog import CatalogService
from app.services.history import SearchHistory
from app.services.search import SearchDebouncer

logger = logging.getLogger(__name__)
router = APIRouter()

MALFORMED_MESSAGE = "Messages must be JSON objects"


async def _pump_events(websocket: WebSocket, debouncer: SearchDebouncer):
    """Forward debouncer events to the client in order"""
    while True:
        event = await debouncer.events.get()
        await websocket.send_json(event)


async def _publish_listing(debouncer: SearchDebouncer, load):
    listing = await load
    # None: no-op navigation or a listing superseded by a newer load
    if listing is not None:
        debouncer.events.put_nowait({"type": "listing", **listing.model_dump()})


def _text(message: Dict[str, Any]) -> str:
    text = message.get("text")
    return text if isinstance(text, str) else ""


@router.websocket("/ws/search")
async def search_socket(
    websocket: WebSocket,
    client_id: Optional[str] = Query(None, description="Namespace for this client's history"),
):
    """
    Client messages:
        {"action": "input", "text": "..."}         every keystroke
        {"action": "submit", "text": "..."}        Enter / search button
        {"action": "page", "page": 2}              search result page
        {"action": "history"}                      current history list
        {"action": "browse"}                       reload the current listing
        {"action": "category", "category": "..."}  switch listing category
        {"action": "next_page"} / {"action": "prev_page"}
    """
    await websocket.accept()
    catalog = CatalogService()
    debouncer = SearchDebouncer(catalog.search, history=SearchHistory(namespace=client_id))
    browse = BrowseSession(catalog)
    loads: Set[asyncio.Task] = set()
    sender = asyncio.create_task(_pump_events(websocket, debouncer))

    def navigate(load):
        task = asyncio.create_task(_publish_listing(debouncer, load))
        loads.add(task)
        task.add_done_callback(loads.discard)

    try:
        await debouncer.publish_history()
        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
            except ValueError:
                message = None
            if not isinstance(message, dict):
                debouncer.events.put_nowait({"type": "error", "message": MALFORMED_MESSAGE})
                continue

            action = message.get("action")
            if action == "input":
                await debouncer.on_input(_text(message))
            elif action == "submit":
                await debouncer.on_submit(_text(message))
            elif action == "page":
                try:
                    page = int(message.get("page", 1))
                except (TypeError, ValueError):
                    page = 0
                debouncer.goto_page(page)
            elif action == "history":
                await debouncer.publish_history()
            elif action == "browse":
                navigate(browse.load())
            elif action == "category":
                navigate(browse.switch_category(str(message.get("category") or "hot")))
            elif action == "next_page":
                navigate(browse.next_page())
            elif action == "prev_page":
                navigate(browse.prev_page())
            else:
                debouncer.events.put_nowait({"type": "error", "message": f"Unknown action: {action}"})

    except WebSocketDisconnect:
        logger.debug("Search socket closed (client_id=%s)", client_id)
    finally:
        for task in [sender, *loads]:
            task.cancel()
        await asyncio.gather(sender, *loads, return_exceptions=True)
        await debouncer.close()
        await catalog.close()
