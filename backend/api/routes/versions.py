"""
Admin post version history routes.
"""

from fastapi import APIRouter, Depends, Query

from api.deps_admin import get_current_admin
from api.dependencies import get_version_service
from api.schemas.posts import (
    CleanVersionsResponse,
    PostResponse,
    PostVersionResponse,
    VersionDiffResponse,
)
from core.security.tokens import TokenPayload
from services.version_service import DEFAULT_KEEP, PostVersionService

router = APIRouter(prefix="/admin/posts/{post_id}/versions", tags=["Admin - Post Versions"])


@router.get("", response_model=list[PostVersionResponse])
async def list_versions(
    post_id: str,
    admin: TokenPayload = Depends(get_current_admin),
    service: PostVersionService = Depends(get_version_service),
):
    """List versions of a post, newest first."""
    return await service.get_versions(post_id)


@router.delete("", response_model=CleanVersionsResponse)
async def clean_versions(
    post_id: str,
    keep: int = Query(DEFAULT_KEEP, ge=1),
    admin: TokenPayload = Depends(get_current_admin),
    service: PostVersionService = Depends(get_version_service),
):
    """Delete all but the ``keep`` newest versions."""
    deleted = await service.clean_old_versions(post_id, keep)
    return CleanVersionsResponse(deleted=deleted)


# Registered before /{version_id} so "compare" is not taken as an id
@router.get("/compare", response_model=VersionDiffResponse)
async def compare_versions(
    post_id: str,
    from_version_id: str = Query(...),
    to_version_id: str = Query(...),
    admin: TokenPayload = Depends(get_current_admin),
    service: PostVersionService = Depends(get_version_service),
):
    diff = await service.compare_versions(post_id, from_version_id, to_version_id)
    return VersionDiffResponse.model_validate(diff, from_attributes=True)


@router.get("/{version_id}", response_model=PostVersionResponse)
async def get_version(
    post_id: str,
    version_id: str,
    admin: TokenPayload = Depends(get_current_admin),
    service: PostVersionService = Depends(get_version_service),
):
    return await service.get_version_by_id(post_id, version_id)


@router.post("/{version_id}/restore", response_model=PostResponse)
async def restore_version(
    post_id: str,
    version_id: str,
    admin: TokenPayload = Depends(get_current_admin),
    service: PostVersionService = Depends(get_version_service),
):
    """Restore a version's content; the current content is kept as a new version."""
    return await service.restore_version(post_id, version_id)
