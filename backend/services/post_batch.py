"""
Batch post operations: delete, publish and archive many posts at once.
"""

import logging
from typing import Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from core.clock import Clock, utc_now
from core.domain.post import PostStatus, sources_for
from core.exceptions import BatchLimitExceededError
from infrastructure.config.settings import Settings, get_settings
from infrastructure.database.repositories import SqlPostRepository
from services.post_service import commit_or_conflict

logger = logging.getLogger(__name__)


class PostBatchService:
    """Bulk lifecycle operations, one transaction per call."""

    def __init__(
        self,
        db: AsyncSession,
        clock: Clock = utc_now,
        settings: Optional[Settings] = None,
    ):
        self.db = db
        self.clock = clock
        self.settings = settings or get_settings()
        self.posts = SqlPostRepository(db)

    def _checked_ids(self, post_ids: Sequence[str]) -> list[str]:
        limit = self.settings.batch_max_size
        if len(post_ids) > limit:
            raise BatchLimitExceededError(len(post_ids), limit)
        return list(dict.fromkeys(post_ids))

    async def batch_delete_posts(self, post_ids: Sequence[str]) -> int:
        """Delete posts by id. Unknown ids are skipped."""
        ids = self._checked_ids(post_ids)
        if not ids:
            return 0

        async with commit_or_conflict(self.db, "batch delete"):
            count = await self.posts.bulk_delete(ids)

        logger.info(
            "Batch deleted %d of %d posts",
            count,
            len(ids),
            extra={"action": "delete", "count": count},
        )
        return count

    async def _batch_transition(self, post_ids: Sequence[str], target: PostStatus) -> int:
        ids = self._checked_ids(post_ids)
        if not ids:
            return 0

        now = self.clock()
        async with commit_or_conflict(self.db, f"batch {target.value.lower()}"):
            eligible = await self.posts.ids_with_status(ids, sources_for(target))
            if not eligible:
                count = 0
            elif target == PostStatus.PUBLISHED:
                count = await self.posts.bulk_publish(eligible, now)
            else:
                count = await self.posts.bulk_archive(eligible, now)

        skipped = len(ids) - count
        if skipped:
            logger.debug("Batch %s skipped %d posts in an ineligible status", target.value, skipped)
        logger.info(
            "Batch moved %d posts to %s",
            count,
            target.value,
            extra={"action": target.value.lower(), "count": count},
        )
        return count

    async def batch_publish_posts(self, post_ids: Sequence[str]) -> int:
        """Publish DRAFT and SCHEDULED posts; others are left unchanged."""
        return await self._batch_transition(post_ids, PostStatus.PUBLISHED)

    async def batch_archive_posts(self, post_ids: Sequence[str]) -> int:
        """Archive DRAFT, PUBLISHED and SCHEDULED posts; others are left unchanged."""
        return await self._batch_transition(post_ids, PostStatus.ARCHIVED)
