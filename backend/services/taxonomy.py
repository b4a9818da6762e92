"""
Category and tag reference data.
"""

import logging
from typing import Literal, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from core.domain.post import SLUG_PATTERN, slugify
from core.exceptions import AlreadyExistsError, NotFoundError, ValidationFailedError
from infrastructure.database.models import Category, Tag
from infrastructure.database.repositories import SqlTaxonomyRepository
from services.post_service import commit_or_conflict

logger = logging.getLogger(__name__)


class TaxonomyService:
    """Create, list and delete categories and tags."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.taxonomy = SqlTaxonomyRepository(db)

    async def _resolve_slug(
        self, kind: Literal["category", "tag"], name: str, slug: Optional[str]
    ) -> str:
        if not name or not name.strip():
            raise ValidationFailedError("name is required")
        slug = slug or slugify(name)
        if len(slug) > 100 or not SLUG_PATTERN.match(slug):
            raise ValidationFailedError(
                "slug may only contain lowercase letters, digits and hyphens (max 100 characters)"
            )
        if await self.taxonomy.slug_taken(kind, slug):
            raise AlreadyExistsError("slug", slug)
        return slug

    async def create_category(self, name: str, slug: Optional[str] = None) -> Category:
        slug = await self._resolve_slug("category", name, slug)
        async with commit_or_conflict(self.db, f"category slug '{slug}'"):
            category = await self.taxonomy.add_category(name.strip(), slug)
        logger.info("Created category %s (%s)", category.id, slug)
        return category

    async def create_tag(self, name: str, slug: Optional[str] = None) -> Tag:
        slug = await self._resolve_slug("tag", name, slug)
        async with commit_or_conflict(self.db, f"tag slug '{slug}'"):
            tag = await self.taxonomy.add_tag(name.strip(), slug)
        logger.info("Created tag %s (%s)", tag.id, slug)
        return tag

    async def list_categories(self) -> list[Category]:
        return await self.taxonomy.list_categories()

    async def list_tags(self) -> list[Tag]:
        return await self.taxonomy.list_tags()

    async def delete_category(self, category_id: str) -> None:
        """Delete a category. Its posts keep existing without a category."""
        async with commit_or_conflict(self.db, f"category {category_id}"):
            if not await self.taxonomy.delete_category(category_id):
                raise NotFoundError("Category", category_id)
        logger.info("Deleted category %s", category_id)

    async def delete_tag(self, tag_id: str) -> None:
        """Delete a tag and remove it from every post."""
        async with commit_or_conflict(self.db, f"tag {tag_id}"):
            if not await self.taxonomy.delete_tag(tag_id):
                raise NotFoundError("Tag", tag_id)
        logger.info("Deleted tag %s", tag_id)
