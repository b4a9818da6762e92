"""Repository interfaces for data access."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Literal, Optional, Sequence

from ..domain.post import PostStatus

if TYPE_CHECKING:
    from infrastructure.database.models import Category, Post, PostVersion, Tag


@dataclass
class PostFilters:
    """Listing criteria for posts."""

    status: Optional[PostStatus] = None
    category_id: Optional[str] = None
    tag_id: Optional[str] = None
    author_id: Optional[str] = None
    search: Optional[str] = None
    sort_by: Literal["created_at", "updated_at", "published_at"] = "created_at"
    sort_order: Literal["asc", "desc"] = "desc"
    page: int = 1
    limit: int = 20


class PostRepository(ABC):
    """Abstract repository for Post entities."""

    @abstractmethod
    async def add(self, post: "Post") -> "Post":
        """Stage a new post and flush it."""
        ...

    @abstractmethod
    async def get_by_id(self, post_id: str) -> "Post | None":
        """Get post by ID."""
        ...

    @abstractmethod
    async def get_many(self, post_ids: Sequence[str]) -> list["Post"]:
        """Posts among ``post_ids``, ordered by slug; unknown IDs are skipped."""
        ...

    @abstractmethod
    async def get_for_update(self, post_id: str) -> "Post | None":
        """Get post by ID holding a row lock until the transaction ends."""
        ...

    @abstractmethod
    async def slug_exists(self, slug: str, exclude_id: Optional[str] = None) -> bool:
        ...

    @abstractmethod
    async def slugs_with_prefix(self, prefix: str) -> list[str]:
        ...

    @abstractmethod
    async def replace_tags(self, post_id: str, tag_ids: Sequence[str]) -> None:
        """Replace the ordered tag set of a post."""
        ...

    @abstractmethod
    async def delete(self, post: "Post") -> None:
        """Delete a post with its versions and tag associations."""
        ...

    @abstractmethod
    async def list_posts(self, filters: PostFilters) -> tuple[list["Post"], int]:
        """Return one page of posts and the total matching count."""
        ...

    @abstractmethod
    async def ids_with_status(
        self, post_ids: Sequence[str], statuses: Sequence[PostStatus]
    ) -> list[str]:
        """Subset of ``post_ids`` currently in one of ``statuses``, locked."""
        ...

    @abstractmethod
    async def bulk_delete(self, post_ids: Sequence[str]) -> int:
        ...

    @abstractmethod
    async def bulk_publish(self, post_ids: Sequence[str], now: datetime) -> int:
        """Publish posts, keeping any existing publication time."""
        ...

    @abstractmethod
    async def bulk_archive(self, post_ids: Sequence[str], now: datetime) -> int:
        ...

    @abstractmethod
    async def due_scheduled_ids(self, now: datetime) -> list[str]:
        """IDs of SCHEDULED posts whose scheduled_at is at or before ``now``."""
        ...

    @abstractmethod
    async def publish_scheduled(self, post_ids: Sequence[str], now: datetime) -> int:
        """Publish due scheduled posts with ``published_at = now``."""
        ...


class PostVersionRepository(ABC):
    """Abstract repository for PostVersion snapshots."""

    @abstractmethod
    async def append(
        self,
        post_id: str,
        title: str,
        content: str,
        excerpt: Optional[str] = None,
        cover_image: Optional[str] = None,
    ) -> "PostVersion":
        """Insert the next numbered version. Caller holds the post row lock."""
        ...

    @abstractmethod
    async def list_for_post(self, post_id: str) -> list["PostVersion"]:
        """Versions of a post, newest first."""
        ...

    @abstractmethod
    async def get(self, post_id: str, version_id: str) -> "PostVersion | None":
        ...

    @abstractmethod
    async def prune(self, post_id: str, keep: int) -> int:
        """Delete all but the ``keep`` highest numbered versions."""
        ...


class TaxonomyRepository(ABC):
    """Abstract repository for categories and tags."""

    @abstractmethod
    async def get_category(self, category_id: str) -> "Category | None":
        ...

    @abstractmethod
    async def missing_tag_ids(self, tag_ids: Sequence[str]) -> list[str]:
        """IDs from ``tag_ids`` with no matching tag."""
        ...

    @abstractmethod
    async def add_category(self, name: str, slug: str) -> "Category":
        ...

    @abstractmethod
    async def add_tag(self, name: str, slug: str) -> "Tag":
        ...

    @abstractmethod
    async def list_categories(self) -> list["Category"]:
        ...

    @abstractmethod
    async def list_tags(self) -> list["Tag"]:
        ...

    @abstractmethod
    async def delete_category(self, category_id: str) -> bool:
        """Delete a category and detach it from its posts."""
        ...

    @abstractmethod
    async def delete_tag(self, tag_id: str) -> bool:
        """Delete a tag and its post associations."""
        ...

    @abstractmethod
    async def slug_taken(self, kind: Literal["category", "tag"], slug: str) -> bool:
        ...

    @abstractmethod
    async def find_by_name_or_slug(
        self, kind: Literal["category", "tag"], name: str, slug: str
    ) -> "Category | Tag | None":
        ...
