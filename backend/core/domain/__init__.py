# Domain rules
# Pure business logic with no storage or framework dependencies
from .diff import ContentDiff, DiffSpan, VersionDiff, compare_snapshots, diff_lines
from .post import (
    ALLOWED_TRANSITIONS,
    CONTENT_FIELDS,
    PostStatus,
    StatusChange,
    apply_status,
    can_transition,
    sources_for,
    validate_transition,
)

__all__ = [
    "ALLOWED_TRANSITIONS",
    "CONTENT_FIELDS",
    "PostStatus",
    "StatusChange",
    "apply_status",
    "can_transition",
    "sources_for",
    "validate_transition",
    "ContentDiff",
    "DiffSpan",
    "VersionDiff",
    "compare_snapshots",
    "diff_lines",
]
