"""Health check endpoints."""

import asyncio
import logging
from datetime import UTC, datetime

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_clock
from core.clock import Clock
from core.domain.post import PostStatus
from infrastructure.config import get_settings
from infrastructure.database import get_db
from infrastructure.database.models import Post

logger = logging.getLogger(__name__)

router = APIRouter()
settings = get_settings()

DB_TIMEOUT_SECONDS = 5.0


async def _overdue_scheduled(db: AsyncSession, now: datetime) -> int | None:
    """
    Count SCHEDULED posts whose time has passed, or None if the database is down.

    A growing number means the cron trigger is not being called.
    """
    query = select(func.count()).select_from(Post).where(
        Post.status == PostStatus.SCHEDULED.value,
        Post.scheduled_at <= now,
    )
    try:
        result = await asyncio.wait_for(db.execute(query), timeout=DB_TIMEOUT_SECONDS)
    except TimeoutError:
        logger.error("Health check DB timeout after %.0fs", DB_TIMEOUT_SECONDS)
        return None
    except Exception as e:
        logger.error("Health check DB error: %s", type(e).__name__)
        return None
    return result.scalar() or 0


def _base_info() -> dict:
    return {
        "app": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
        "timestamp": datetime.now(UTC).isoformat(),
    }


@router.get("/health")
async def health_check():
    """Process is up; no dependencies checked."""
    return {"status": "healthy", **_base_info()}


@router.get("/health/db")
async def health_check_db(
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Database reachability plus the overdue scheduled-post backlog."""
    overdue = await _overdue_scheduled(db, clock())
    return {
        "status": "healthy" if overdue is not None else "degraded",
        "database": "connected" if overdue is not None else "unavailable",
        "overdue_scheduled_posts": overdue,
        **_base_info(),
    }


@router.get("/health/ready")
async def readiness_check(
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    overdue = await _overdue_scheduled(db, clock())
    return {"ready": overdue is not None}


@router.get("/health/live")
async def liveness_check():
    return {"alive": True}
