"""
FastAPI Application Factory
Creates and configures the FastAPI app instance
"""
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.staticfiles import StaticFiles
from fastapi.middleware.cors import CORSMiddleware
from app.api.endpoints import relay, play, search_ws, health
from app.core.config import settings
from app.services.background import get_task_manager
from app.services.cache import CacheManager
import logging

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)

CONTENT_SECURITY_POLICY = "; ".join([
    "default-src 'self'",
    "style-src 'self' 'unsafe-inline' https://cdnjs.cloudflare.com",
    "script-src 'self' 'unsafe-inline' https://cdnjs.cloudflare.com",
    "img-src 'self' data: https: http:",
    "media-src 'self' https: http: blob:",
    "connect-src 'self' https: http: ws: wss:",
    "frame-src 'self' https:",
    "object-src 'none'",
    "base-uri 'self'",
])


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan event handler for startup and shutdown"""
    logger.info("Starting movie relay")
    logger.info(f"Upstream: {settings.UPSTREAM_API_BASE}")

    task_manager = get_task_manager()
    task_manager.start(interval_hours=settings.STATIC_DOMAIN_REFRESH_HOURS)
    logger.info(f"Static domain refresh enabled (interval: {settings.STATIC_DOMAIN_REFRESH_HOURS}h)")

    yield

    logger.info("Shutting down movie relay")
    task_manager = get_task_manager()
    await task_manager.stop()
    await CacheManager().close()


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""

    app = FastAPI(
        title="Movie Relay",
        description="Catalog relay, stream fallback and debounced search for the movie player",
        version="1.0.0",
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers.setdefault("Content-Security-Policy", CONTENT_SECURITY_POLICY)
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "SAMEORIGIN")
        response.headers.setdefault("Referrer-Policy", "no-referrer")
        return response

    # Mount static files
    try:
        app.mount("/static", StaticFiles(directory="static"), name="static")
    except Exception as e:
        logger.warning(f"Could not mount static files: {e}")

    app.include_router(health.router)
    app.include_router(relay.router)
    app.include_router(play.router)
    app.include_router(search_ws.router)

    return app
