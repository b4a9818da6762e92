"""
Markdown export and import of posts.

Each post travels as one Markdown file whose YAML front matter carries the
metadata (title, slug, dates, excerpt, cover image, category, tags, status).
Batch export packs one ``<slug>.md`` per post into a ZIP archive.
"""

import io
import logging
import zipfile
from datetime import date, datetime, time, timezone
from typing import Any, Literal, Optional, Sequence
from urllib.parse import urlparse

from sqlalchemy.ext.asyncio import AsyncSession

from core.clock import Clock, ensure_utc, utc_now
from core.domain.front_matter import parse_markdown, render_markdown
from core.domain.post import (
    SLUG_MAX_LENGTH,
    SLUG_PATTERN,
    PostStatus,
    slugify,
    validate_scheduled_at,
)
from core.exceptions import (
    BatchLimitExceededError,
    BlogError,
    NotFoundError,
    ValidationFailedError,
)
from infrastructure.config.settings import Settings, get_settings
from infrastructure.database.models import Post
from infrastructure.database.repositories import SqlPostRepository, SqlTaxonomyRepository
from services.post_service import PostService

logger = logging.getLogger(__name__)

TAXONOMY_NAME_MAX_LENGTH = 100


def post_to_markdown(post: Post) -> str:
    """Render a post (with its category and tags loaded) as front matter Markdown."""
    metadata: dict[str, Any] = {"title": post.title, "slug": post.slug}
    if post.published_at:
        metadata["date"] = ensure_utc(post.published_at).isoformat()
    if post.scheduled_at:
        metadata["scheduled_at"] = ensure_utc(post.scheduled_at).isoformat()
    if post.excerpt:
        metadata["excerpt"] = post.excerpt
    if post.cover_image:
        metadata["cover_image"] = post.cover_image
    if post.category:
        metadata["category"] = post.category.name
    if post.tags:
        metadata["tags"] = [tag.name for tag in post.tags]
    metadata["status"] = post.status
    return render_markdown(metadata, post.content)


def _parse_datetime(field: str, value: Any) -> Optional[datetime]:
    # YAML turns unquoted timestamps into datetime/date objects
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    message = f"{field} must be an ISO 8601 date or datetime"
    if not isinstance(value, str):
        raise ValidationFailedError(message)
    try:
        return ensure_utc(datetime.fromisoformat(value.strip()))
    except ValueError as e:
        raise ValidationFailedError(message) from e


def _parse_status(value: Any) -> PostStatus:
    if value is None or value == "":
        return PostStatus.DRAFT
    try:
        return PostStatus(str(value).strip().upper())
    except ValueError:
        allowed = ", ".join(s.value for s in PostStatus)
        raise ValidationFailedError(f"status must be one of {allowed}") from None


def _optional_text(field: str, value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ValidationFailedError(f"{field} must be a string")
    return value


def _names(value: Any) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValidationFailedError("tags must be a list")
    return [str(item).strip() for item in value if item is not None and str(item).strip()]


class PostTransferService:
    """Export posts to Markdown and import Markdown files as new posts."""

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
        self.taxonomy = SqlTaxonomyRepository(db)
        self.post_service = PostService(db, clock=clock, settings=self.settings)

    async def export_post(self, post_id: str) -> tuple[str, str]:
        """
        Export one post.

        Returns:
            ``(filename, markdown)`` where filename is ``<slug>.md``

        Raises:
            NotFoundError: Unknown post
        """
        post = await self.posts.get_by_id(post_id)
        if post is None:
            raise NotFoundError("Post", post_id)
        return f"{post.slug}.md", post_to_markdown(post)

    async def export_posts_batch(self, post_ids: Sequence[str]) -> bytes:
        """
        Export posts as a ZIP archive with one ``<slug>.md`` entry each.

        Unknown IDs are skipped; an empty selection yields an empty archive.

        Raises:
            BatchLimitExceededError: More IDs than the configured batch maximum
        """
        limit = self.settings.batch_max_size
        if len(post_ids) > limit:
            raise BatchLimitExceededError(len(post_ids), limit)

        posts = await self.posts.get_many(list(dict.fromkeys(post_ids)))

        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
            for post in posts:
                archive.writestr(f"{post.slug}.md", post_to_markdown(post))

        logger.info("Exported %d of %d posts", len(posts), len(post_ids))
        return buffer.getvalue()

    async def _find_or_create(self, kind: Literal["category", "tag"], name: str) -> str:
        if len(name) > TAXONOMY_NAME_MAX_LENGTH:
            raise ValidationFailedError(
                f"{kind} name must be at most {TAXONOMY_NAME_MAX_LENGTH} characters"
            )
        slug = slugify(name)[:TAXONOMY_NAME_MAX_LENGTH].strip("-")
        existing = await self.taxonomy.find_by_name_or_slug(kind, name, slug)
        if existing is not None:
            return existing.id

        if kind == "category":
            created = await self.taxonomy.add_category(name, slug)
        else:
            created = await self.taxonomy.add_tag(name, slug)
        logger.info("Import created %s %s (%s)", kind, created.id, slug)
        return created.id

    async def _import_slug(self, requested: Any, title: str) -> str:
        base = str(requested).strip() if requested else ""
        if not (base and len(base) <= SLUG_MAX_LENGTH and SLUG_PATTERN.match(base)):
            base = slugify(base or title)
        return await self.post_service.available_slug(base)

    async def import_post(self, markdown: str, author_id: Optional[str] = None) -> Post:
        """
        Create a post from a Markdown document with front matter.

        The post goes through ``PostService.create_post`` so version 1 and
        the tag associations are recorded in the same transaction. Categories
        and tags are matched by name or slug and created when missing. A slug
        that is already taken gets a numeric suffix.

        Raises:
            ValidationFailedError: Missing title or content, malformed front matter
            InvalidScheduledAtError: SCHEDULED without a future scheduled_at
        """
        metadata, body = parse_markdown(markdown)

        title = metadata.get("title")
        if title is None or not str(title).strip():
            raise ValidationFailedError("Missing required field: title")
        title = str(title).strip()

        content = body.strip()
        if not content:
            raise ValidationFailedError("content is required")

        status = _parse_status(metadata.get("status"))
        published_at = _parse_datetime("date", metadata.get("date"))
        scheduled_at = _parse_datetime("scheduled_at", metadata.get("scheduled_at"))
        if status == PostStatus.SCHEDULED:
            scheduled_at = validate_scheduled_at(scheduled_at, self.clock())

        excerpt = _optional_text("excerpt", metadata.get("excerpt"))
        cover_image = _optional_text(
            "cover_image", metadata.get("cover_image", metadata.get("coverImage"))
        )
        if cover_image is not None:
            parsed = urlparse(cover_image)
            if parsed.scheme not in ("http", "https") or not parsed.netloc:
                raise ValidationFailedError("cover_image must be an http(s) URL")

        category_name = _optional_text("category", metadata.get("category"))
        tag_names = list(dict.fromkeys(_names(metadata.get("tags"))))

        slug = await self._import_slug(metadata.get("slug"), title)

        try:
            category_id = (
                await self._find_or_create("category", category_name.strip())
                if category_name and category_name.strip()
                else None
            )
            tag_ids = [await self._find_or_create("tag", name) for name in tag_names]

            post = await self.post_service.create_post(
                title=title,
                content=content,
                slug=slug,
                excerpt=excerpt,
                cover_image=cover_image,
                status=status,
                scheduled_at=scheduled_at,
                published_at=published_at,
                category_id=category_id,
                tag_ids=list(dict.fromkeys(tag_ids)),
                author_id=author_id,
            )
        except BlogError:
            # Drop taxonomy rows flushed for this import
            await self.db.rollback()
            raise

        logger.info("Imported post %s (%s)", post.id, post.slug, extra={"post_id": post.id})
        return post
