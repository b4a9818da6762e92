"""
Post version history: listing, comparison, pruning and restore.
"""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from core.clock import Clock, utc_now
from core.domain.diff import VersionDiff, compare_snapshots
from core.domain.post import CONTENT_FIELDS
from core.exceptions import NotFoundError, ValidationFailedError
from infrastructure.config.settings import Settings, get_settings
from infrastructure.database.models import Post, PostVersion
from infrastructure.database.repositories import SqlPostRepository, SqlPostVersionRepository
from services.post_service import PostService, commit_or_conflict

logger = logging.getLogger(__name__)

DEFAULT_KEEP = 10


def _snapshot(version: PostVersion) -> dict:
    return {field: getattr(version, field) for field in CONTENT_FIELDS}


class PostVersionService:
    """Operations over the immutable version snapshots of a post."""

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
        self.versions = SqlPostVersionRepository(db)

    async def create_version(
        self,
        post_id: str,
        title: str,
        content: str,
        excerpt: Optional[str] = None,
        cover_image: Optional[str] = None,
    ) -> PostVersion:
        """Append a snapshot numbered one past the current highest."""
        async with commit_or_conflict(self.db, f"versions of post {post_id}"):
            post = await self.posts.get_for_update(post_id)
            if not post:
                raise NotFoundError("Post", post_id)
            version = await self.versions.append(
                post.id,
                title=title,
                content=content,
                excerpt=excerpt,
                cover_image=cover_image,
            )

        logger.debug("Created version %d of post %s", version.version, post_id)
        return version

    async def get_versions(self, post_id: str) -> list[PostVersion]:
        """Versions of a post, newest first. Unknown posts have none."""
        return await self.versions.list_for_post(post_id)

    async def get_version_by_id(self, post_id: str, version_id: str) -> PostVersion:
        version = await self.versions.get(post_id, version_id)
        if not version:
            raise NotFoundError("Version", version_id)
        return version

    async def compare_versions(
        self, post_id: str, from_version_id: str, to_version_id: str
    ) -> VersionDiff:
        """Describe what changed going from one version to another."""
        old = await self.get_version_by_id(post_id, from_version_id)
        new = await self.get_version_by_id(post_id, to_version_id)
        return compare_snapshots(_snapshot(old), _snapshot(new))

    async def clean_old_versions(self, post_id: str, keep: int = DEFAULT_KEEP) -> int:
        """
        Delete all but the ``keep`` newest versions.

        Returns:
            Number of versions deleted
        """
        if keep < 1:
            raise ValidationFailedError("keep must be at least 1")

        async with commit_or_conflict(self.db, f"versions of post {post_id}"):
            # Lock the owner so pruning cannot interleave with an append
            await self.posts.get_for_update(post_id)
            deleted = await self.versions.prune(post_id, keep)

        if deleted:
            logger.info("Deleted %d old versions of post %s", deleted, post_id)
        return deleted

    async def restore_version(self, post_id: str, version_id: str) -> Post:
        """
        Write a version's content back onto the post.

        Goes through the normal update path, so the pre-restore state is
        itself kept as a new version.
        """
        version = await self.get_version_by_id(post_id, version_id)
        post = await PostService(self.db, clock=self.clock, settings=self.settings).update_post(
            post_id, _snapshot(version)
        )
        logger.info("Restored post %s to version %d", post_id, version.version)
        return post
