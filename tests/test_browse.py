"""
Tests for category/page navigation
"""
import asyncio
from unittest.mock import AsyncMock, MagicMock
import pytest
from app.models.session import ViewState
from app.services.browse import (
    DEFAULT_CATEGORY_ID,
    LOAD_FAILED_MESSAGE,
    BrowseSession,
    category_id,
)


def page_envelope(ids, has_next):
    return {"code": 1, "data": {"list": [{"id": i} for i in ids], "hasNext": has_next}}


@pytest.fixture
def catalog():
    catalog = MagicMock()
    catalog.hot = AsyncMock(return_value={"code": 1, "data": {"32": [{"id": 1}, {"id": 2}]}})
    catalog.category_page = AsyncMock(return_value=page_envelope([10, 11], True))
    return catalog


def test_category_ids():
    assert category_id("action") == 8
    assert category_id("comedy") == 9
    assert category_id("drama") == 10
    assert category_id("documentary") == DEFAULT_CATEGORY_ID


async def test_hot_has_no_pagination(catalog):
    session = BrowseSession(catalog)

    listing = await session.load()

    assert [movie["id"] for movie in listing.movies] == [1, 2]
    assert listing.paginated is False
    assert await session.next_page() is None
    catalog.category_page.assert_not_awaited()


async def test_switch_category_starts_at_page_one(catalog):
    session = BrowseSession(catalog, ViewState(category="hot", page=4))

    listing = await session.switch_category("action")

    catalog.category_page.assert_awaited_once_with(8, 1)
    assert listing.category == "action"
    assert listing.page == 1
    assert listing.hasNext is True
    assert listing.hasPrev is False
    assert listing.paginated is True


async def test_switch_to_same_category_is_noop(catalog):
    session = BrowseSession(catalog, ViewState(category="action"))

    assert await session.switch_category("action") is None
    catalog.category_page.assert_not_awaited()


async def test_next_and_prev_page(catalog):
    session = BrowseSession(catalog)
    await session.switch_category("drama")

    catalog.category_page.return_value = page_envelope([12], False)
    listing = await session.next_page()

    assert listing.page == 2
    assert listing.hasNext is False
    assert listing.hasPrev is True
    assert await session.next_page() is None

    catalog.category_page.return_value = page_envelope([10, 11], True)
    listing = await session.prev_page()

    assert listing.page == 1
    assert listing.hasPrev is False
    assert await session.prev_page() is None
    assert catalog.category_page.await_args_list[-1].args == (10, 1)


async def test_failed_load_reports_error(catalog):
    catalog.category_page.return_value = None
    session = BrowseSession(catalog)

    listing = await session.switch_category("comedy")

    assert listing.error == LOAD_FAILED_MESSAGE
    assert listing.movies == []


async def test_stale_listing_dropped(catalog):
    release = asyncio.Event()

    async def slow_hot():
        await release.wait()
        return {"code": 1, "data": {"32": [{"id": 1}]}}

    catalog.hot = slow_hot
    session = BrowseSession(catalog)

    slow = asyncio.create_task(session.load())
    await asyncio.sleep(0)
    fresh = await session.switch_category("action")
    release.set()

    assert await slow is None
    assert fresh.category == "action"
    assert session.state.category == "action"
