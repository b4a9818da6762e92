"""Line-level comparison of post version snapshots."""
import difflib
from dataclasses import dataclass, field
from typing import Literal, Mapping

from .post import CONTENT_FIELDS

SpanKind = Literal["equal", "insert", "delete"]


@dataclass(frozen=True)
class DiffSpan:
    """A run of lines that are unchanged, added or removed."""
    kind: SpanKind
    lines: tuple[str, ...]


@dataclass(frozen=True)
class ContentDiff:
    added: int
    removed: int
    spans: tuple[DiffSpan, ...] = ()


@dataclass(frozen=True)
class VersionDiff:
    """Comparison between two snapshots of the same post."""
    changed_fields: tuple[str, ...]
    title_changed: bool
    content: ContentDiff
    summary: str = field(default="")


def diff_lines(old: str, new: str) -> ContentDiff:
    """Diff two texts line by line with difflib.SequenceMatcher."""
    a = old.split("\n")
    b = new.split("\n")
    sm = difflib.SequenceMatcher(None, a, b, autojunk=False)

    spans: list[DiffSpan] = []
    added = removed = 0
    for tag, i1, i2, j1, j2 in sm.get_opcodes():
        if tag == "equal":
            spans.append(DiffSpan("equal", tuple(a[i1:i2])))
            continue
        if tag in ("delete", "replace") and i1 != i2:
            spans.append(DiffSpan("delete", tuple(a[i1:i2])))
            removed += i2 - i1
        if tag in ("insert", "replace") and j1 != j2:
            spans.append(DiffSpan("insert", tuple(b[j1:j2])))
            added += j2 - j1

    return ContentDiff(added=added, removed=removed, spans=tuple(spans))


def summarize(title_changed: bool, content: ContentDiff, changed_fields: tuple[str, ...]) -> str:
    parts = []
    if title_changed:
        parts.append("Title changed")
    if content.added or content.removed:
        parts.append(f"Content changed: +{content.added} lines / -{content.removed} lines")
    others = [f for f in changed_fields if f not in ("title", "content")]
    if others:
        parts.append(f"Also changed: {', '.join(others)}")
    return "; ".join(parts) if parts else "No changes"


def compare_snapshots(old: Mapping[str, object], new: Mapping[str, object]) -> VersionDiff:
    """Compare two snapshots holding the content fields of a post."""
    changed = tuple(f for f in CONTENT_FIELDS if old.get(f) != new.get(f))
    content = diff_lines(str(old.get("content") or ""), str(new.get("content") or ""))
    title_changed = "title" in changed
    return VersionDiff(
        changed_fields=changed,
        title_changed=title_changed,
        content=content,
        summary=summarize(title_changed, content, changed),
    )
