"""
Markdown documents with a YAML front matter block.

    ---
    title: Hello
    tags:
    - python
    ---

    Body text
"""

import re
from typing import Any

import yaml

from ..exceptions import ValidationFailedError

_FRONT_MATTER = re.compile(
    r"\A\ufeff?---[ \t]*\r?\n(.*?)^---[ \t]*(?:\r?\n|\Z)(.*)\Z",
    re.DOTALL | re.MULTILINE,
)


def render_markdown(metadata: dict[str, Any], body: str) -> str:
    """Serialize ``metadata`` as front matter followed by ``body``."""
    header = yaml.safe_dump(
        metadata,
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
    )
    return f"---\n{header}---\n\n{body}\n"


def parse_markdown(text: str) -> tuple[dict[str, Any], str]:
    """
    Split a document into its front matter mapping and body.

    A document without a front matter block yields an empty mapping.

    Raises:
        ValidationFailedError: The block is not valid YAML or not a mapping
    """
    match = _FRONT_MATTER.match(text)
    if not match:
        return {}, text

    raw, body = match.groups()
    try:
        metadata = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ValidationFailedError(f"Invalid front matter: {e}") from e

    if metadata is None:
        metadata = {}
    if not isinstance(metadata, dict):
        raise ValidationFailedError("Front matter must be a mapping")
    return metadata, body
