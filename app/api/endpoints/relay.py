"""
Relay Endpoints
Forward browser requests to the upstream catalog API
"""
import logging
from typing import Optional
from fastapi import APIRouter, HTTPException, Path, Query
from app.core.config import settings
from app.services.catalog import CatalogService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api")


@router.get("/categories")
async def get_categories():
    """Movie category tags (cached)"""
    catalog = CatalogService()
    try:
        envelope = await catalog.categories()
    finally:
        await catalog.close()

    if envelope is None:
        raise HTTPException(status_code=502, detail="Failed to fetch categories")
    return envelope


@router.get("/movies/hot")
async def get_hot_movies():
    """Hot/featured movies with absolute image URLs"""
    catalog = CatalogService()
    try:
        envelope = await catalog.hot()
    finally:
        await catalog.close()

    if envelope is None:
        raise HTTPException(status_code=502, detail="Failed to fetch hot movies")
    return envelope


@router.get("/movies/category/{category_id}")
async def get_category_movies(
    category_id: int = Path(..., description="Upstream category tag id"),
    page: int = Query(1, ge=1, description="Page number"),
):
    """One page of a category listing"""
    catalog = CatalogService()
    try:
        envelope = await catalog.category_page(category_id, page)
    finally:
        await catalog.close()

    if envelope is None:
        raise HTTPException(status_code=502, detail="Failed to fetch category movies")
    return envelope


@router.get("/movie/{movie_id}")
async def get_movie_detail(movie_id: int = Path(..., description="Movie id")):
    """Movie detail with play sources and a canonical image"""
    catalog = CatalogService()
    try:
        envelope = await catalog.detail_envelope(movie_id)
    finally:
        await catalog.close()

    if envelope is None:
        raise HTTPException(status_code=502, detail="Failed to fetch movie detail")
    return envelope


@router.get("/search")
async def search_movies(
    q: str = Query("", description="Search keyword"),
    page: int = Query(1, ge=1, description="Page number"),
    page_size: Optional[int] = Query(None, ge=1, le=100, description="Results per page"),
):
    """Live keyword search; every call reaches the upstream"""
    query = q.strip()
    if not query:
        raise HTTPException(status_code=400, detail="Search keyword must not be empty")

    catalog = CatalogService()
    try:
        result = await catalog.search(query, page, page_size or settings.SEARCH_PAGE_SIZE)
    finally:
        await catalog.close()

    if result is None:
        raise HTTPException(status_code=502, detail="Search failed")

    logger.info(f"Search {query!r} page {page} returned {len(result.list)} items")
    return {"code": 1, "msg": "ok", "data": result.model_dump()}
