"""
API request and response schemas.
"""

from .posts import (
    BatchRequest,
    BatchResponse,
    BatchExportRequest,
    CategoryCreateRequest,
    CategoryResponse,
    CleanVersionsResponse,
    ExportRequest,
    PaginationMeta,
    PostCreateRequest,
    PostListResponse,
    PostResponse,
    PostStatusUpdateRequest,
    PostUpdateRequest,
    PostVersionResponse,
    PublishScheduledResponse,
    TagCreateRequest,
    TagResponse,
    VersionDiffResponse,
)

__all__ = [
    "BatchRequest",
    "BatchResponse",
    "BatchExportRequest",
    "CategoryCreateRequest",
    "CategoryResponse",
    "CleanVersionsResponse",
    "ExportRequest",
    "PaginationMeta",
    "PostCreateRequest",
    "PostListResponse",
    "PostResponse",
    "PostStatusUpdateRequest",
    "PostUpdateRequest",
    "PostVersionResponse",
    "PublishScheduledResponse",
    "TagCreateRequest",
    "TagResponse",
    "VersionDiffResponse",
]
