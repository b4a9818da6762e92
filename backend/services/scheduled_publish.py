"""
Scheduled publish sweep.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from core.clock import Clock, utc_now
from infrastructure.database.repositories import SqlPostRepository

logger = logging.getLogger(__name__)


async def publish_due_posts(db: AsyncSession, clock: Clock = utc_now) -> int:
    """
    Publish every SCHEDULED post whose scheduled_at has passed.

    Called by an external cron trigger; running it again with nothing newly
    due publishes nothing.

    Args:
        db: Database session
        clock: Time source

    Returns:
        Number of posts published
    """
    now = clock()
    posts = SqlPostRepository(db)

    due_ids = await posts.due_scheduled_ids(now)
    if not due_ids:
        # Release the row locks taken by the scan
        await db.commit()
        logger.debug("No scheduled posts due at %s", now.isoformat())
        return 0

    published_count = await posts.publish_scheduled(due_ids, now)
    await db.commit()
    logger.info(
        "Published %d scheduled posts", published_count, extra={"count": published_count}
    )

    return published_count
