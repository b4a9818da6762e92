"""Post lifecycle rules: statuses, allowed transitions and their side effects."""
import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Iterable, Optional

from ..clock import ensure_utc
from ..exceptions import InvalidScheduledAtError, InvalidTransitionError


class PostStatus(str, Enum):
    """Post lifecycle status."""
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    SCHEDULED = "SCHEDULED"
    ARCHIVED = "ARCHIVED"


# (from, to) pairs; anything absent, including self transitions, is rejected
ALLOWED_TRANSITIONS: frozenset[tuple[PostStatus, PostStatus]] = frozenset({
    (PostStatus.DRAFT, PostStatus.PUBLISHED),
    (PostStatus.DRAFT, PostStatus.SCHEDULED),
    (PostStatus.DRAFT, PostStatus.ARCHIVED),
    (PostStatus.PUBLISHED, PostStatus.DRAFT),
    (PostStatus.PUBLISHED, PostStatus.ARCHIVED),
    (PostStatus.SCHEDULED, PostStatus.DRAFT),
    (PostStatus.SCHEDULED, PostStatus.PUBLISHED),
    (PostStatus.SCHEDULED, PostStatus.ARCHIVED),
    (PostStatus.ARCHIVED, PostStatus.DRAFT),
})

# Fields whose change produces a version snapshot
CONTENT_FIELDS = ("title", "content", "excerpt", "cover_image")

SLUG_PATTERN = re.compile(r"^[a-z0-9-]+$")
SLUG_MAX_LENGTH = 200


def can_transition(current: PostStatus | str, target: PostStatus | str) -> bool:
    """Check whether ``current -> target`` is in the transition table."""
    return (PostStatus(current), PostStatus(target)) in ALLOWED_TRANSITIONS


def sources_for(target: PostStatus | str) -> tuple[PostStatus, ...]:
    """Statuses from which ``target`` may be reached, in declaration order."""
    target = PostStatus(target)
    return tuple(
        status for status in PostStatus
        if (status, target) in ALLOWED_TRANSITIONS
    )


def validate_transition(current: PostStatus | str, target: PostStatus | str) -> None:
    """Raise InvalidTransitionError unless ``current -> target`` is allowed."""
    if not can_transition(current, target):
        raise InvalidTransitionError(PostStatus(current).value, PostStatus(target).value)


def validate_scheduled_at(scheduled_at: Optional[datetime], now: datetime) -> datetime:
    """Scheduling needs a publication time strictly after ``now``."""
    if scheduled_at is None:
        raise InvalidScheduledAtError("scheduled_at is required when scheduling a post")
    scheduled_at = ensure_utc(scheduled_at)
    if scheduled_at <= now:
        raise InvalidScheduledAtError("scheduled_at must be in the future")
    return scheduled_at


@dataclass(frozen=True)
class StatusChange:
    """Column values to write when a post enters a status."""
    status: PostStatus
    published_at: Optional[datetime]
    scheduled_at: Optional[datetime]


def apply_status(
    target: PostStatus | str,
    *,
    published_at: Optional[datetime],
    scheduled_at: Optional[datetime],
    now: datetime,
) -> StatusChange:
    """
    Compute the timestamps a post carries after entering ``target``.

    ``published_at`` is the value currently stored on the post and
    ``scheduled_at`` the caller-supplied time (only read for SCHEDULED).
    The first publication time is never overwritten.
    """
    target = PostStatus(target)

    if target == PostStatus.PUBLISHED:
        return StatusChange(target, published_at or now, None)

    if target == PostStatus.SCHEDULED:
        return StatusChange(target, published_at, validate_scheduled_at(scheduled_at, now))

    # DRAFT and ARCHIVED
    return StatusChange(target, published_at, None)


def content_changed(current: dict, changes: dict) -> bool:
    """True when any content field in ``changes`` differs from ``current``."""
    return any(
        field in changes and changes[field] != current.get(field)
        for field in CONTENT_FIELDS
    )


def slugify(text: str) -> str:
    """Convert text to URL-safe slug."""
    text = text.lower().strip()
    text = re.sub(r"[^a-z0-9\s_-]", "", text)
    text = re.sub(r"[\s_-]+", "-", text)
    text = re.sub(r"^-+|-+$", "", text)
    return text[:SLUG_MAX_LENGTH] or "post"


# Longest suffix unique_slug appends ("-" plus up to nine digits)
SLUG_SUFFIX_MAX_LENGTH = 10


def slug_stem(base: str) -> str:
    """Prefix shared by ``base`` and every candidate ``unique_slug`` can return for it."""
    return base[:SLUG_MAX_LENGTH - SLUG_SUFFIX_MAX_LENGTH]


def unique_slug(base: str, taken: Iterable[str]) -> str:
    """
    Append ``-2``, ``-3``... to ``base`` until it no longer collides.

    A long base is cut to make room for the suffix, so ``taken`` must cover
    every slug starting with ``slug_stem(base)``, not just ``base``.
    """
    taken = set(taken)
    if base not in taken:
        return base
    n = 2
    while True:
        suffix = f"-{n}"
        candidate = f"{base[:SLUG_MAX_LENGTH - len(suffix)]}{suffix}"
        if candidate not in taken:
            return candidate
        n += 1
