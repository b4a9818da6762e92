"""
API dependencies that build services for a request.

Tests override ``get_clock`` to pin "now".
"""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from core.clock import Clock, utc_now
from infrastructure.config.settings import Settings, get_settings
from infrastructure.database import get_db
from services.post_batch import PostBatchService
from services.post_service import PostService
from services.post_status import PostStatusService
from services.post_transfer import PostTransferService
from services.taxonomy import TaxonomyService
from services.version_service import PostVersionService


def get_clock() -> Clock:
    return utc_now


def get_post_service(
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    settings: Settings = Depends(get_settings),
) -> PostService:
    return PostService(db, clock=clock, settings=settings)


def get_post_status_service(
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> PostStatusService:
    return PostStatusService(db, clock=clock)


def get_version_service(
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    settings: Settings = Depends(get_settings),
) -> PostVersionService:
    return PostVersionService(db, clock=clock, settings=settings)


def get_batch_service(
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    settings: Settings = Depends(get_settings),
) -> PostBatchService:
    return PostBatchService(db, clock=clock, settings=settings)


def get_transfer_service(
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    settings: Settings = Depends(get_settings),
) -> PostTransferService:
    return PostTransferService(db, clock=clock, settings=settings)


def get_taxonomy_service(db: AsyncSession = Depends(get_db)) -> TaxonomyService:
    return TaxonomyService(db)
