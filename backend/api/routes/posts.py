"""
Admin post API routes.
"""

import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, File, Query, Request, UploadFile, status
from fastapi.responses import StreamingResponse

from api.deps_admin import get_current_admin
from api.dependencies import (
    get_batch_service,
    get_post_service,
    get_post_status_service,
    get_transfer_service,
)
from api.middleware.rate_limit import get_rate_limit, limiter
from api.schemas.posts import (
    BatchExportRequest,
    BatchRequest,
    BatchResponse,
    ExportRequest,
    PaginationMeta,
    PostCreateRequest,
    PostListResponse,
    PostResponse,
    PostStatusUpdateRequest,
    PostUpdateRequest,
)
from core.domain.post import PostStatus
from core.exceptions import ValidationFailedError
from core.interfaces.repositories import PostFilters
from core.security.tokens import TokenPayload
from infrastructure.config.settings import settings
from services.post_batch import PostBatchService
from services.post_service import PostService
from services.post_status import PostStatusService
from services.post_transfer import PostTransferService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/posts", tags=["Admin - Posts"])

MAX_IMPORT_BYTES = 1024 * 1024


@router.get("", response_model=PostListResponse)
async def list_posts(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.posts_page_size_default, ge=1, le=settings.posts_page_size_max),
    status: Optional[PostStatus] = None,
    category_id: Optional[str] = None,
    tag_id: Optional[str] = None,
    author_id: Optional[str] = None,
    search: Optional[str] = Query(None, max_length=200),
    sort_by: Literal["created_at", "updated_at", "published_at"] = "created_at",
    sort_order: Literal["asc", "desc"] = "desc",
    admin: TokenPayload = Depends(get_current_admin),
    service: PostService = Depends(get_post_service),
):
    """
    List posts with filtering, search and pagination.
    """
    filters = PostFilters(
        status=status,
        category_id=category_id,
        tag_id=tag_id,
        author_id=author_id,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
    )
    posts, total = await service.get_posts(filters)
    return PostListResponse(
        items=posts,
        meta=PaginationMeta.build(total=total, page=page, limit=limit),
    )


@router.post("", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def create_post(
    body: PostCreateRequest,
    admin: TokenPayload = Depends(get_current_admin),
    service: PostService = Depends(get_post_service),
):
    """Create a post. Its first version is recorded automatically."""
    return await service.create_post(**body.model_dump(), author_id=admin.sub)


@router.post("/batch", response_model=BatchResponse)
@limiter.limit(get_rate_limit("batch"))
async def batch_posts(
    request: Request,
    body: BatchRequest,
    admin: TokenPayload = Depends(get_current_admin),
    service: PostBatchService = Depends(get_batch_service),
):
    """
    Delete, publish or archive many posts at once.

    Posts whose current status does not allow the action are skipped; the
    returned count covers only the posts actually changed.
    """
    if body.action == "delete":
        count = await service.batch_delete_posts(body.ids)
    elif body.action == "publish":
        count = await service.batch_publish_posts(body.ids)
    else:
        count = await service.batch_archive_posts(body.ids)

    logger.info("Admin %s ran batch %s on %d ids", admin.sub, body.action, len(body.ids))
    return BatchResponse(count=count)


@router.post("/export")
async def export_post(
    body: ExportRequest,
    admin: TokenPayload = Depends(get_current_admin),
    service: PostTransferService = Depends(get_transfer_service),
):
    """Download one post as Markdown with YAML front matter."""
    filename, markdown = await service.export_post(body.post_id)
    return StreamingResponse(
        iter([markdown]),
        media_type="text/markdown",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/export/batch")
@limiter.limit(get_rate_limit("batch"))
async def export_posts_batch(
    request: Request,
    body: BatchExportRequest,
    admin: TokenPayload = Depends(get_current_admin),
    service: PostTransferService = Depends(get_transfer_service),
):
    """Download several posts as a ZIP of Markdown files named by slug."""
    archive = await service.export_posts_batch(body.ids)
    return StreamingResponse(
        iter([archive]),
        media_type="application/zip",
        headers={"Content-Disposition": 'attachment; filename="posts.zip"'},
    )


@router.post("/import", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def import_post(
    file: UploadFile = File(...),
    admin: TokenPayload = Depends(get_current_admin),
    service: PostTransferService = Depends(get_transfer_service),
):
    """
    Create a post from an uploaded Markdown file.

    Category and tag names in the front matter are matched or created, and
    a taken slug gets a numeric suffix.
    """
    raw = await file.read()
    if not raw:
        raise ValidationFailedError("File is empty")
    if len(raw) > MAX_IMPORT_BYTES:
        raise ValidationFailedError("File too large. Maximum size: 1 MB")
    try:
        markdown = raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ValidationFailedError("File must be UTF-8 encoded text") from e

    post = await service.import_post(markdown, author_id=admin.sub)
    logger.info("Admin %s imported post %s from %s", admin.sub, post.id, file.filename)
    return post

@router.get("/{post_id}", response_model=PostResponse)
async def get_post(
    post_id: str,
    admin: TokenPayload = Depends(get_current_admin),
    service: PostService = Depends(get_post_service),
):
    return await service.get_post_by_id(post_id)


@router.put("/{post_id}", response_model=PostResponse)
async def update_post(
    post_id: str,
    body: PostUpdateRequest,
    admin: TokenPayload = Depends(get_current_admin),
    service: PostService = Depends(get_post_service),
):
    """
    Update post fields. Only fields sent in the body change.

    Content edits save the previous content as a new version.
    """
    return await service.update_post(post_id, body.model_dump(exclude_unset=True))


@router.delete("/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_post(
    post_id: str,
    admin: TokenPayload = Depends(get_current_admin),
    service: PostService = Depends(get_post_service),
):
    await service.delete_post(post_id)


@router.patch("/{post_id}/status", response_model=PostResponse)
async def update_post_status(
    post_id: str,
    body: PostStatusUpdateRequest,
    admin: TokenPayload = Depends(get_current_admin),
    service: PostStatusService = Depends(get_post_status_service),
):
    """Move a post to another lifecycle status."""
    return await service.update_post_status(post_id, body.status, body.scheduled_at)
