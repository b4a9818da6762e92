"""
Cron trigger routes, called by an external scheduler.
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps_admin import verify_cron_secret
from api.dependencies import get_clock
from api.middleware.rate_limit import get_rate_limit, limiter
from api.schemas.posts import PublishScheduledResponse
from core.clock import Clock
from infrastructure.database import get_db
from services.scheduled_publish import publish_due_posts

router = APIRouter(prefix="/cron", tags=["Cron"])


@router.get(
    "/publish-scheduled",
    response_model=PublishScheduledResponse,
    dependencies=[Depends(verify_cron_secret)],
)
@limiter.limit(get_rate_limit("cron"))
async def publish_scheduled(
    request: Request,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Publish every scheduled post whose time has come."""
    published = await publish_due_posts(db, clock=clock)
    return PublishScheduledResponse(published=published)
