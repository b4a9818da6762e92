"""
Admin category and tag routes.
"""

from fastapi import APIRouter, Depends, status

from api.deps_admin import get_current_admin
from api.dependencies import get_taxonomy_service
from api.schemas.posts import (
    CategoryCreateRequest,
    CategoryResponse,
    TagCreateRequest,
    TagResponse,
)
from core.security.tokens import TokenPayload
from services.taxonomy import TaxonomyService

router = APIRouter(prefix="/admin", tags=["Admin - Taxonomy"])


@router.get("/categories", response_model=list[CategoryResponse])
async def list_categories(
    admin: TokenPayload = Depends(get_current_admin),
    service: TaxonomyService = Depends(get_taxonomy_service),
):
    return await service.list_categories()


@router.post("/categories", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
async def create_category(
    body: CategoryCreateRequest,
    admin: TokenPayload = Depends(get_current_admin),
    service: TaxonomyService = Depends(get_taxonomy_service),
):
    return await service.create_category(body.name, body.slug)


@router.delete("/categories/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_category(
    category_id: str,
    admin: TokenPayload = Depends(get_current_admin),
    service: TaxonomyService = Depends(get_taxonomy_service),
):
    """Delete a category; its posts are kept without a category."""
    await service.delete_category(category_id)


@router.get("/tags", response_model=list[TagResponse])
async def list_tags(
    admin: TokenPayload = Depends(get_current_admin),
    service: TaxonomyService = Depends(get_taxonomy_service),
):
    return await service.list_tags()


@router.post("/tags", response_model=TagResponse, status_code=status.HTTP_201_CREATED)
async def create_tag(
    body: TagCreateRequest,
    admin: TokenPayload = Depends(get_current_admin),
    service: TaxonomyService = Depends(get_taxonomy_service),
):
    return await service.create_tag(body.name, body.slug)


@router.delete("/tags/{tag_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_tag(
    tag_id: str,
    admin: TokenPayload = Depends(get_current_admin),
    service: TaxonomyService = Depends(get_taxonomy_service),
):
    """Delete a tag and detach it from every post."""
    await service.delete_tag(tag_id)
