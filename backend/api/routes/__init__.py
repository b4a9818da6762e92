"""API Routes."""

from fastapi import APIRouter

from .cron import router as cron_router
from .health import router as health_router
from .posts import router as posts_router
from .taxonomy import router as taxonomy_router
from .versions import router as versions_router

# Create main API router
api_router = APIRouter()

# Include route modules
api_router.include_router(health_router, tags=["Health"])
api_router.include_router(posts_router)
api_router.include_router(versions_router)
api_router.include_router(taxonomy_router)
api_router.include_router(cron_router)

__all__ = ["api_router"]
