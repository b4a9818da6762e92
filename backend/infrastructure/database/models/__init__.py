"""
SQLAlchemy database models.
"""

from .base import Base, TimestampMixin
from .content import Post, PostTag, PostVersion
from .taxonomy import Category, Tag

__all__ = [
    "Base",
    "TimestampMixin",
    "Post",
    "PostTag",
    "PostVersion",
    "Category",
    "Tag",
]
