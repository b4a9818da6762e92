# Interfaces (Abstract Contracts)
# Storage adapters implement these interfaces
from .repositories import PostFilters, PostRepository, PostVersionRepository, TaxonomyRepository

__all__ = [
    "PostFilters",
    "PostRepository",
    "PostVersionRepository",
    "TaxonomyRepository",
]
