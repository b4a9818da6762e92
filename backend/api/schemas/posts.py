"""
Post, version and taxonomy API schemas.
"""

from datetime import datetime
from typing import Annotated, Literal
from urllib.parse import urlparse

from pydantic import AfterValidator, BaseModel, ConfigDict, Field

from core.domain.post import PostStatus

SLUG_REGEX = r"^[a-z0-9-]+$"


def _check_url(value: str) -> str:
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError("cover_image must be an http(s) URL")
    return value


CoverImageUrl = Annotated[str, Field(max_length=2048), AfterValidator(_check_url)] | None


# ============================================================================
# Taxonomy Schemas
# ============================================================================


class CategoryCreateRequest(BaseModel):
    """Request to create a category."""

    name: str = Field(..., min_length=1, max_length=100)
    slug: str | None = Field(None, max_length=100, pattern=SLUG_REGEX)


class TagCreateRequest(BaseModel):
    """Request to create a tag."""

    name: str = Field(..., min_length=1, max_length=100)
    slug: str | None = Field(None, max_length=100, pattern=SLUG_REGEX)


class CategoryResponse(BaseModel):
    id: str
    name: str
    slug: str

    model_config = ConfigDict(from_attributes=True)


class TagResponse(BaseModel):
    id: str
    name: str
    slug: str

    model_config = ConfigDict(from_attributes=True)


# ============================================================================
# Post Schemas
# ============================================================================


class PostCreateRequest(BaseModel):
    """Request to create a post. Slug is derived from the title when omitted."""

    title: str = Field(..., min_length=1, max_length=200)
    content: str = Field(..., min_length=1)
    slug: str | None = Field(None, max_length=200, pattern=SLUG_REGEX)
    excerpt: str | None = Field(None, max_length=500)
    cover_image: CoverImageUrl = None
    status: PostStatus = PostStatus.DRAFT
    scheduled_at: datetime | None = None
    category_id: str | None = None
    tag_ids: list[str] = Field(default_factory=list)


class PostUpdateRequest(BaseModel):
    """Partial post update. Only fields present in the body are applied."""

    title: str | None = Field(None, min_length=1, max_length=200)
    content: str | None = Field(None, min_length=1)
    slug: str | None = Field(None, max_length=200, pattern=SLUG_REGEX)
    excerpt: str | None = Field(None, max_length=500)
    cover_image: CoverImageUrl = None
    category_id: str | None = None
    tag_ids: list[str] | None = None


class PostStatusUpdateRequest(BaseModel):
    """Request to move a post to another status."""

    status: PostStatus
    scheduled_at: datetime | None = Field(
        None, description="Required when status is SCHEDULED; must be in the future"
    )


class PostResponse(BaseModel):
    """Post representation."""

    id: str
    slug: str
    title: str
    content: str
    excerpt: str | None = None
    cover_image: str | None = None
    status: str
    published_at: datetime | None = None
    scheduled_at: datetime | None = None
    category_id: str | None = None
    category: CategoryResponse | None = None
    tags: list[TagResponse] = Field(default_factory=list)
    author_id: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PaginationMeta(BaseModel):
    total: int
    page: int
    limit: int
    total_pages: int
    has_next: bool
    has_prev: bool

    @classmethod
    def build(cls, total: int, page: int, limit: int) -> "PaginationMeta":
        total_pages = (total + limit - 1) // limit if total else 0
        return cls(
            total=total,
            page=page,
            limit=limit,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_prev=page > 1,
        )


class PostListResponse(BaseModel):
    """Paginated post list response."""

    items: list[PostResponse]
    meta: PaginationMeta


# ============================================================================
# Batch Schemas
# ============================================================================


class BatchRequest(BaseModel):
    """Batch delete/publish/archive request."""

    action: Literal["delete", "publish", "archive"]
    ids: list[str] = Field(default_factory=list)


class BatchResponse(BaseModel):
    success: bool = True
    count: int


# ============================================================================
# Export Schemas
# ============================================================================


class ExportRequest(BaseModel):
    """Single post Markdown export."""

    post_id: str = Field(..., min_length=1)


class BatchExportRequest(BaseModel):
    """ZIP export of several posts."""

    ids: list[str] = Field(default_factory=list)


# ============================================================================
# Version Schemas
# ============================================================================


class PostVersionResponse(BaseModel):
    """Version snapshot."""

    id: str
    post_id: str
    version: int
    title: str
    content: str
    excerpt: str | None = None
    cover_image: str | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class DiffSpanResponse(BaseModel):
    kind: Literal["equal", "insert", "delete"]
    lines: list[str]

    model_config = ConfigDict(from_attributes=True)


class ContentDiffResponse(BaseModel):
    added: int
    removed: int
    spans: list[DiffSpanResponse]

    model_config = ConfigDict(from_attributes=True)


class VersionDiffResponse(BaseModel):
    """Comparison between two versions."""

    changed_fields: list[str]
    title_changed: bool
    content: ContentDiffResponse
    summary: str

    model_config = ConfigDict(from_attributes=True)


class CleanVersionsResponse(BaseModel):
    success: bool = True
    deleted: int


# ============================================================================
# Cron Schemas
# ============================================================================


class PublishScheduledResponse(BaseModel):
    success: bool = True
    published: int
