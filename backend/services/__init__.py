"""
Service layer for business logic.
"""

from services.post_batch import PostBatchService
from services.post_service import PostService
from services.post_status import PostStatusService
from services.post_transfer import PostTransferService
from services.scheduled_publish import publish_due_posts
from services.taxonomy import TaxonomyService
from services.version_service import PostVersionService

__all__ = [
    "PostService",
    "PostStatusService",
    "PostVersionService",
    "PostBatchService",
    "PostTransferService",
    "TaxonomyService",
    "publish_due_posts",
]
