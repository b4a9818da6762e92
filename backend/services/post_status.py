"""
Post status transitions.

Applies the lifecycle table in ``core.domain.post`` to stored posts under a
row lock. Status changes never create versions.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from core.clock import Clock, utc_now
from core.domain.post import PostStatus, apply_status, validate_transition
from core.exceptions import NotFoundError
from infrastructure.database.models import Post
from infrastructure.database.repositories import SqlPostRepository
from services.post_service import commit_or_conflict

logger = logging.getLogger(__name__)


class PostStatusService:
    """Moves a single post between lifecycle statuses."""

    def __init__(self, db: AsyncSession, clock: Clock = utc_now):
        self.db = db
        self.clock = clock
        self.posts = SqlPostRepository(db)

    async def update_post_status(
        self,
        post_id: str,
        status: PostStatus,
        scheduled_at: Optional[datetime] = None,
    ) -> Post:
        """
        Transition a post to ``status``.

        Args:
            post_id: Post to change
            status: Target status
            scheduled_at: Publication time, required when scheduling

        Raises:
            NotFoundError: Post does not exist
            InvalidTransitionError: Pair not in the transition table
            InvalidScheduledAtError: Scheduling without a future time
        """
        status = PostStatus(status)

        async with commit_or_conflict(self.db, f"post {post_id}"):
            post = await self.posts.get_for_update(post_id)
            if not post:
                raise NotFoundError("Post", post_id)

            previous = post.status
            validate_transition(previous, status)

            change = apply_status(
                status,
                published_at=post.published_at,
                scheduled_at=scheduled_at,
                now=self.clock(),
            )
            post.status = change.status.value
            post.published_at = change.published_at
            post.scheduled_at = change.scheduled_at

        await self.db.refresh(post)
        logger.info(
            "Post %s moved from %s to %s",
            post.id,
            previous,
            post.status,
            extra={"post_id": post.id, "from_status": previous, "to_status": post.status},
        )
        return post
