"""
Play Endpoint
Resolves an episode's candidates and returns the first one that plays
"""
import logging
from typing import Optional
from fastapi import APIRouter, HTTPException, Path, Query
from app.core.config import settings
from app.models.playback import PlaybackCapabilities
from app.services.catalog import CatalogService
from app.services.playback import FallbackPlayerController
from app.services.resolver import fallback_candidates

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api")

NO_SOURCE_MESSAGE = "No playable source for this episode"


@router.get("/movie/{movie_id}/play")
async def play_episode(
    movie_id: int = Path(..., description="Movie id"),
    episode: int = Query(0, ge=0, description="0-based episode index"),
    line: Optional[str] = Query(None, description="Preferred line name"),
    secure: bool = Query(False, description="Player page is served over https"),
    hls: Optional[bool] = Query(None, description="Player has an adaptive streaming engine"),
    native_hls: Optional[bool] = Query(None, description="Player plays HLS natively"),
):
    """
    Pick a playable stream for one episode

    Candidates are tried best first; a fatal failure moves on to the next
    one. The response carries the final controller status: "playing" with
    the chosen candidate, or "failed" with a message the player can show
    next to a retry button.
    """
    catalog = CatalogService()
    try:
        movie = await catalog.detail(movie_id)
    finally:
        await catalog.close()

    if movie is None:
        raise HTTPException(status_code=502, detail="Failed to fetch movie detail")

    candidates = fallback_candidates(movie, episode)
    if not candidates:
        raise HTTPException(status_code=404, detail=NO_SOURCE_MESSAGE)

    if line:
        preferred = [c for c in candidates if c.line == line]
        candidates = preferred + [c for c in candidates if c.line != line]

    capabilities = PlaybackCapabilities(
        secure_context=secure,
        adaptive_streaming=settings.ADAPTIVE_STREAMING if hls is None else hls,
        native_hls=settings.NATIVE_HLS if native_hls is None else native_hls,
    )
    controller = FallbackPlayerController(capabilities=capabilities)
    try:
        status = await controller.play(candidates)
    finally:
        await controller.close()

    logger.info(
        "Play movie=%s episode=%s -> %s after %s attempt(s)",
        movie_id,
        episode,
        status.state.value,
        status.attempts,
    )
    return {
        "movie_id": movie_id,
        "episode": episode,
        "title": movie.title,
        "status": status.model_dump(mode="json"),
    }
