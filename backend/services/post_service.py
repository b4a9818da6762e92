"""
Post mutation service.

Creates, edits, deletes and lists posts. Every edit that touches a content
field snapshots the pre-edit state as a new version in the same transaction.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Optional, Sequence

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.clock import Clock, ensure_utc, utc_now
from core.domain.post import (
    CONTENT_FIELDS,
    SLUG_MAX_LENGTH,
    SLUG_PATTERN,
    PostStatus,
    apply_status,
    content_changed,
    slug_stem,
    slugify,
    unique_slug,
)
from core.exceptions import (
    AlreadyExistsError,
    ConflictError,
    NotFoundError,
    ValidationFailedError,
)
from core.interfaces.repositories import PostFilters
from infrastructure.config.settings import Settings, get_settings
from infrastructure.database.models import Post
from infrastructure.database.repositories import (
    SqlPostRepository,
    SqlPostVersionRepository,
    SqlTaxonomyRepository,
)

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = frozenset(CONTENT_FIELDS) | {"slug", "category_id", "tag_ids"}


@asynccontextmanager
async def commit_or_conflict(db: AsyncSession, subject: str) -> AsyncIterator[None]:
    """
    Commit the enclosed writes; a unique-constraint race becomes ConflictError.

    Only IntegrityError triggers a rollback. Domain errors raised inside the
    block propagate untouched and the request-scoped session discards the
    transaction.
    """
    try:
        yield
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        logger.warning("Concurrent write lost on %s: %s", subject, e.orig)
        raise ConflictError(f"{subject} was modified concurrently, retry the request") from e


def _validate_text(field: str, value: Optional[str], max_length: Optional[int] = None) -> str:
    if value is None or not value.strip():
        raise ValidationFailedError(f"{field} is required")
    if max_length is not None and len(value) > max_length:
        raise ValidationFailedError(f"{field} must be at most {max_length} characters")
    return value


def _validate_slug(slug: str) -> str:
    if not slug or len(slug) > SLUG_MAX_LENGTH or not SLUG_PATTERN.match(slug):
        raise ValidationFailedError(
            "slug may only contain lowercase letters, digits and hyphens (max 200 characters)"
        )
    return slug


def _validate_excerpt(excerpt: Optional[str]) -> Optional[str]:
    if excerpt is not None and len(excerpt) > 500:
        raise ValidationFailedError("excerpt must be at most 500 characters")
    return excerpt


class PostService:
    """Post create/update/delete/read operations."""

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
        self.taxonomy = SqlTaxonomyRepository(db)

    async def available_slug(self, base: str) -> str:
        """``base``, or ``base`` suffixed with -2, -3... when taken."""
        taken = await self.posts.slugs_with_prefix(slug_stem(base))
        return unique_slug(base, taken)

    async def generate_slug(self, title: str) -> str:
        """Unused slug derived from ``title``."""
        return await self.available_slug(slugify(title))

    async def _check_references(
        self,
        category_id: Optional[str],
        tag_ids: Optional[Sequence[str]],
    ) -> None:
        if category_id is not None and await self.taxonomy.get_category(category_id) is None:
            raise NotFoundError("Category", category_id)
        if tag_ids:
            missing = await self.taxonomy.missing_tag_ids(tag_ids)
            if missing:
                raise NotFoundError("Tag", ", ".join(missing))

    async def create_post(
        self,
        *,
        title: str,
        content: str,
        slug: Optional[str] = None,
        excerpt: Optional[str] = None,
        cover_image: Optional[str] = None,
        status: PostStatus = PostStatus.DRAFT,
        scheduled_at: Optional[datetime] = None,
        published_at: Optional[datetime] = None,
        category_id: Optional[str] = None,
        tag_ids: Optional[Sequence[str]] = None,
        author_id: Optional[str] = None,
    ) -> Post:
        """
        Create a post together with its first version.

        ``published_at`` carries an original publication time (imports); when
        omitted, publishing stamps the current time.

        Raises:
            ValidationFailedError: Missing title/content or malformed slug
            AlreadyExistsError: Slug already used by another post
            NotFoundError: Unknown category or tag
            InvalidScheduledAtError: SCHEDULED without a future scheduled_at
        """
        _validate_text("title", title, max_length=200)
        _validate_text("content", content)
        _validate_excerpt(excerpt)

        if slug is None:
            slug = await self.generate_slug(title)
        else:
            _validate_slug(slug)
            if await self.posts.slug_exists(slug):
                raise AlreadyExistsError("slug", slug)

        await self._check_references(category_id, tag_ids)

        change = apply_status(
            status,
            published_at=ensure_utc(published_at) if published_at else None,
            scheduled_at=scheduled_at,
            now=self.clock(),
        )

        async with commit_or_conflict(self.db, f"post slug '{slug}'"):
            post = await self.posts.add(
                Post(
                    slug=slug,
                    title=title,
                    content=content,
                    excerpt=excerpt,
                    cover_image=cover_image,
                    status=change.status.value,
                    published_at=change.published_at,
                    scheduled_at=change.scheduled_at,
                    category_id=category_id,
                    author_id=author_id,
                )
            )
            await self.versions.append(
                post.id,
                title=title,
                content=content,
                excerpt=excerpt,
                cover_image=cover_image,
            )
            if tag_ids:
                await self.posts.replace_tags(post.id, tag_ids)

        await self.db.refresh(post)
        logger.info(
            "Created post %s (%s) as %s", post.id, post.slug, post.status, extra={"post_id": post.id}
        )
        return post

    async def update_post(self, post_id: str, changes: dict) -> Post:
        """
        Apply a partial update.

        If any content field differs from the stored value, the stored state is
        appended as a new version before the change lands. Slug, category and
        tag edits alone create no version.
        """
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationFailedError(f"Unknown fields: {', '.join(sorted(unknown))}")

        if "title" in changes:
            _validate_text("title", changes["title"], max_length=200)
        if "content" in changes:
            _validate_text("content", changes["content"])
        if "excerpt" in changes:
            _validate_excerpt(changes["excerpt"])
        if "slug" in changes:
            _validate_slug(changes["slug"])

        async with commit_or_conflict(self.db, f"post {post_id}"):
            post = await self.posts.get_for_update(post_id)
            if not post:
                raise NotFoundError("Post", post_id)

            if "slug" in changes and changes["slug"] != post.slug:
                if await self.posts.slug_exists(changes["slug"], exclude_id=post.id):
                    raise AlreadyExistsError("slug", changes["slug"])

            await self._check_references(changes.get("category_id"), changes.get("tag_ids"))

            current = {field: getattr(post, field) for field in CONTENT_FIELDS}
            snapshot_taken = content_changed(current, changes)
            if snapshot_taken:
                await self.versions.append(post.id, **current)

            for field, value in changes.items():
                if field != "tag_ids":
                    setattr(post, field, value)

            if "tag_ids" in changes:
                await self.posts.replace_tags(post.id, changes["tag_ids"] or [])

            retention = self.settings.version_retention
            if snapshot_taken and retention:
                pruned = await self.versions.prune(post.id, retention)
                if pruned:
                    logger.debug("Pruned %d old versions of post %s", pruned, post.id)

        await self.db.refresh(post)
        if snapshot_taken:
            logger.info("Updated post %s; previous content saved as a version", post.id)
        return post

    async def delete_post(self, post_id: str) -> None:
        """Delete a post with its versions and tag associations."""
        async with commit_or_conflict(self.db, f"post {post_id}"):
            post = await self.posts.get_for_update(post_id)
            if not post:
                raise NotFoundError("Post", post_id)
            await self.posts.delete(post)

        logger.info("Deleted post %s", post_id)

    async def get_post_by_id(self, post_id: str) -> Post:
        post = await self.posts.get_by_id(post_id)
        if not post:
            raise NotFoundError("Post", post_id)
        return post

    async def get_posts(self, filters: PostFilters) -> tuple[list[Post], int]:
        """Return one page of posts matching ``filters`` and the total count."""
        if filters.page < 1:
            raise ValidationFailedError("page must be at least 1")
        if not 1 <= filters.limit <= self.settings.posts_page_size_max:
            raise ValidationFailedError(
                f"limit must be between 1 and {self.settings.posts_page_size_max}"
            )
        return await self.posts.list_posts(filters)
