"""
SQLAlchemy implementations of the repository interfaces.

All methods run inside the caller's session and transaction; none of them
commit. Services decide the transaction boundary.
"""

from datetime import datetime
from typing import Literal, Optional, Sequence

from sqlalchemy import and_, delete, desc, exists, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.domain.post import PostStatus
from core.interfaces.repositories import (
    PostFilters,
    PostRepository,
    PostVersionRepository,
    TaxonomyRepository,
)

from .models import Category, Post, PostTag, PostVersion, Tag

_SORT_COLUMNS = {
    "created_at": Post.created_at,
    "updated_at": Post.updated_at,
    "published_at": Post.published_at,
}


def escape_like(value: str) -> str:
    """Escape LIKE wildcards for safe use in SQL LIKE/ILIKE patterns."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class SqlPostRepository(PostRepository):
    """Post storage backed by an AsyncSession."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def add(self, post: Post) -> Post:
        self.db.add(post)
        await self.db.flush()
        return post

    async def get_by_id(self, post_id: str) -> Optional[Post]:
        result = await self.db.execute(
            select(Post)
            .where(Post.id == post_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_many(self, post_ids: Sequence[str]) -> list[Post]:
        if not post_ids:
            return []
        result = await self.db.execute(
            select(Post).where(Post.id.in_(post_ids)).order_by(Post.slug)
        )
        return list(result.scalars().all())

    async def get_for_update(self, post_id: str) -> Optional[Post]:
        # SELECT ... FOR UPDATE OF posts; a no-op on SQLite
        result = await self.db.execute(
            select(Post)
            .where(Post.id == post_id)
            .with_for_update(of=Post)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def slug_exists(self, slug: str, exclude_id: Optional[str] = None) -> bool:
        query = select(Post.id).where(Post.slug == slug)
        if exclude_id:
            query = query.where(Post.id != exclude_id)
        result = await self.db.execute(query.limit(1))
        return result.scalar_one_or_none() is not None

    async def slugs_with_prefix(self, prefix: str) -> list[str]:
        result = await self.db.execute(
            select(Post.slug).where(Post.slug.like(f"{escape_like(prefix)}%", escape="\\"))
        )
        return list(result.scalars().all())

    async def replace_tags(self, post_id: str, tag_ids: Sequence[str]) -> None:
        await self.db.execute(delete(PostTag).where(PostTag.post_id == post_id))
        # Duplicates keep their first position
        ordered = list(dict.fromkeys(tag_ids))
        for position, tag_id in enumerate(ordered):
            self.db.add(PostTag(post_id=post_id, tag_id=tag_id, position=position))
        await self.db.flush()

    async def delete(self, post: Post) -> None:
        await self.db.execute(delete(PostVersion).where(PostVersion.post_id == post.id))
        await self.db.execute(delete(PostTag).where(PostTag.post_id == post.id))
        await self.db.delete(post)
        await self.db.flush()

    def _apply_filters(self, query, filters: PostFilters):
        if filters.status:
            query = query.where(Post.status == PostStatus(filters.status).value)
        if filters.category_id:
            query = query.where(Post.category_id == filters.category_id)
        if filters.author_id:
            query = query.where(Post.author_id == filters.author_id)
        if filters.tag_id:
            query = query.where(
                exists().where(
                    and_(PostTag.post_id == Post.id, PostTag.tag_id == filters.tag_id)
                )
            )
        if filters.search:
            search_pattern = f"%{escape_like(filters.search)}%"
            query = query.where(
                or_(
                    Post.title.ilike(search_pattern, escape="\\"),
                    Post.content.ilike(search_pattern, escape="\\"),
                )
            )
        return query

    async def list_posts(self, filters: PostFilters) -> tuple[list[Post], int]:
        query = self._apply_filters(select(Post), filters)

        sort_column = _SORT_COLUMNS.get(filters.sort_by, Post.created_at)
        if filters.sort_order == "desc":
            query = query.order_by(desc(sort_column), desc(Post.id))
        else:
            query = query.order_by(sort_column, Post.id)

        offset = (filters.page - 1) * filters.limit
        result = await self.db.execute(query.offset(offset).limit(filters.limit))
        posts = list(result.scalars().all())

        count_query = self._apply_filters(select(func.count()).select_from(Post), filters)
        total = (await self.db.execute(count_query)).scalar() or 0

        return posts, total

    async def ids_with_status(
        self, post_ids: Sequence[str], statuses: Sequence[PostStatus]
    ) -> list[str]:
        result = await self.db.execute(
            select(Post.id)
            .where(
                Post.id.in_(list(post_ids)),
                Post.status.in_([PostStatus(s).value for s in statuses]),
            )
            .with_for_update(of=Post)
        )
        return list(result.scalars().all())

    async def bulk_delete(self, post_ids: Sequence[str]) -> int:
        ids = list(post_ids)
        await self.db.execute(delete(PostVersion).where(PostVersion.post_id.in_(ids)))
        await self.db.execute(delete(PostTag).where(PostTag.post_id.in_(ids)))
        result = await self.db.execute(
            delete(Post)
            .where(Post.id.in_(ids))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def bulk_publish(self, post_ids: Sequence[str], now: datetime) -> int:
        # First publication time wins over a re-publish
        result = await self.db.execute(
            update(Post)
            .where(Post.id.in_(list(post_ids)))
            .values(
                status=PostStatus.PUBLISHED.value,
                published_at=func.coalesce(Post.published_at, now),
                scheduled_at=None,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def bulk_archive(self, post_ids: Sequence[str], now: datetime) -> int:
        result = await self.db.execute(
            update(Post)
            .where(Post.id.in_(list(post_ids)))
            .values(
                status=PostStatus.ARCHIVED.value,
                scheduled_at=None,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def due_scheduled_ids(self, now: datetime) -> list[str]:
        result = await self.db.execute(
            select(Post.id)
            .where(
                Post.status == PostStatus.SCHEDULED.value,
                Post.scheduled_at <= now,
            )
            .with_for_update(of=Post, skip_locked=True)
        )
        return list(result.scalars().all())

    async def publish_scheduled(self, post_ids: Sequence[str], now: datetime) -> int:
        # Status re-checked so a post unscheduled meanwhile is left alone
        result = await self.db.execute(
            update(Post)
            .where(
                Post.id.in_(list(post_ids)),
                Post.status == PostStatus.SCHEDULED.value,
            )
            .values(
                status=PostStatus.PUBLISHED.value,
                published_at=now,
                scheduled_at=None,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount


class SqlPostVersionRepository(PostVersionRepository):
    """Version snapshot storage backed by an AsyncSession."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _latest_number(self, post_id: str) -> int:
        result = await self.db.execute(
            select(func.max(PostVersion.version)).where(PostVersion.post_id == post_id)
        )
        return result.scalar() or 0

    async def append(
        self,
        post_id: str,
        title: str,
        content: str,
        excerpt: Optional[str] = None,
        cover_image: Optional[str] = None,
    ) -> PostVersion:
        version = PostVersion(
            post_id=post_id,
            version=await self._latest_number(post_id) + 1,
            title=title,
            content=content,
            excerpt=excerpt,
            cover_image=cover_image,
        )
        self.db.add(version)
        await self.db.flush()
        return version

    async def list_for_post(self, post_id: str) -> list[PostVersion]:
        result = await self.db.execute(
            select(PostVersion)
            .where(PostVersion.post_id == post_id)
            .order_by(PostVersion.version.desc())
        )
        return list(result.scalars().all())

    async def get(self, post_id: str, version_id: str) -> Optional[PostVersion]:
        result = await self.db.execute(
            select(PostVersion).where(
                PostVersion.id == version_id,
                PostVersion.post_id == post_id,
            )
        )
        return result.scalar_one_or_none()

    async def prune(self, post_id: str, keep: int) -> int:
        stale = await self.db.execute(
            select(PostVersion.id)
            .where(PostVersion.post_id == post_id)
            .order_by(PostVersion.version.desc())
            .offset(keep)
        )
        stale_ids = list(stale.scalars().all())
        if not stale_ids:
            return 0

        result = await self.db.execute(
            delete(PostVersion)
            .where(PostVersion.id.in_(stale_ids))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount


class SqlTaxonomyRepository(TaxonomyRepository):
    """Category and tag storage backed by an AsyncSession."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_category(self, category_id: str) -> Optional[Category]:
        return await self.db.get(Category, category_id)

    async def missing_tag_ids(self, tag_ids: Sequence[str]) -> list[str]:
        wanted = list(dict.fromkeys(tag_ids))
        if not wanted:
            return []
        result = await self.db.execute(select(Tag.id).where(Tag.id.in_(wanted)))
        found = set(result.scalars().all())
        return [tag_id for tag_id in wanted if tag_id not in found]

    async def add_category(self, name: str, slug: str) -> Category:
        category = Category(name=name, slug=slug)
        self.db.add(category)
        await self.db.flush()
        return category

    async def add_tag(self, name: str, slug: str) -> Tag:
        tag = Tag(name=name, slug=slug)
        self.db.add(tag)
        await self.db.flush()
        return tag

    async def list_categories(self) -> list[Category]:
        result = await self.db.execute(select(Category).order_by(Category.name))
        return list(result.scalars().all())

    async def list_tags(self) -> list[Tag]:
        result = await self.db.execute(select(Tag).order_by(Tag.name))
        return list(result.scalars().all())

    async def delete_category(self, category_id: str) -> bool:
        category = await self.db.get(Category, category_id)
        if category is None:
            return False
        # SQLite does not enforce ON DELETE SET NULL without the FK pragma
        await self.db.execute(
            update(Post)
            .where(Post.category_id == category_id)
            .values(category_id=None)
            .execution_options(synchronize_session=False)
        )
        await self.db.delete(category)
        await self.db.flush()
        return True

    async def delete_tag(self, tag_id: str) -> bool:
        tag = await self.db.get(Tag, tag_id)
        if tag is None:
            return False
        await self.db.execute(delete(PostTag).where(PostTag.tag_id == tag_id))
        await self.db.delete(tag)
        await self.db.flush()
        return True

    async def slug_taken(self, kind: Literal["category", "tag"], slug: str) -> bool:
        model = Category if kind == "category" else Tag
        result = await self.db.execute(select(model.id).where(model.slug == slug).limit(1))
        return result.scalar_one_or_none() is not None

    async def find_by_name_or_slug(
        self, kind: Literal["category", "tag"], name: str, slug: str
    ) -> Optional[Category | Tag]:
        model = Category if kind == "category" else Tag
        result = await self.db.execute(
            select(model)
            .where(or_(func.lower(model.name) == name.lower(), model.slug == slug))
            .order_by(model.created_at)
            .limit(1)
        )
        return result.scalar_one_or_none()
