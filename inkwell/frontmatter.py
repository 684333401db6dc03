"""Front-matter extraction for Inkwell.

Post files start with a YAML block between ``---`` markers followed by the
Markdown body. This module splits the two and maps the YAML onto the fields
the blog knows about.

Key names:
- FrontMatter: Dataclass holding the known metadata fields.
- ParseError: Raised when the metadata block is not a YAML mapping.
- split_frontmatter: Split raw file text into a mapping and the body.
- parse_frontmatter: Split raw file text into a FrontMatter and the body.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .utils import normalize_date

FRONTMATTER_RE = re.compile(
    r"\A---[ \t]*\n(?:(?P<meta>.*?)\n)?---[ \t]*(?:\n|\Z)", re.DOTALL
)

# Front-matter keys mapped to FrontMatter attribute names
KNOWN_KEYS = {
    "title": "title",
    "date": "date",
    "summary": "summary",
    "tags": "tags",
    "headerImage": "header_image",
}


class ParseError(Exception):
    """Front matter could not be parsed as a key/value mapping.

    Attributes:
        source_path: File the front matter came from, if known.
        message: Human-readable error message.
    """

    def __init__(self, message: str, source_path: Path | None = None):
        self.source_path = source_path
        self.message = message
        prefix = f"{source_path}: " if source_path else ""
        super().__init__(f"{prefix}{message}")


@dataclass(frozen=True)
class FrontMatter:
    """Known metadata fields of a post.

    Every field is optional; templates and the feed must cope with None.

    Attributes:
        title: Post title.
        date: Publication date as an ISO-8601 string.
        summary: Short description used in listings and the feed.
        tags: Comma-separated tag string.
        header_image: URL of the listing card image.
        extra: Any other keys found in the block.
    """

    title: str | None = None
    date: str | None = None
    summary: str | None = None
    tags: str | None = None
    header_image: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> FrontMatter:
        """Build a FrontMatter from a parsed YAML mapping.

        Args:
            data: Mapping loaded from the front-matter block.

        Returns:
            FrontMatter with known keys normalized to strings.
        """
        values: dict[str, Any] = {}
        extra: dict[str, Any] = {}
        for key, value in data.items():
            name = KNOWN_KEYS.get(str(key))
            if name is None:
                extra[str(key)] = value
            elif name == "date":
                values[name] = normalize_date(value)
            elif name == "tags":
                values[name] = _normalize_tags(value)
            else:
                values[name] = None if value is None else str(value)
        return cls(extra=extra, **values)


def _normalize_tags(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        return ",".join(str(item) for item in value)
    return str(value)


def split_frontmatter(
    text: str, source_path: Path | None = None
) -> tuple[dict[str, Any], str]:
    """Split YAML front matter from the body.

    Text without a leading ``---`` block has empty metadata. An empty block
    is an empty mapping.

    Args:
        text: Raw file content.
        source_path: Optional path, used in error messages.

    Returns:
        Tuple of (metadata mapping, remaining body).

    Raises:
        ParseError: If the block is not valid YAML or not a mapping.
    """
    text = text.lstrip("\ufeff").replace("\r\n", "\n")
    match = FRONTMATTER_RE.match(text)
    if not match:
        return {}, text
    try:
        data = yaml.safe_load(match.group("meta") or "")
    except yaml.YAMLError as exc:
        raise ParseError(f"Invalid YAML front matter: {exc}", source_path) from exc
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ParseError(
            f"Front matter must be a mapping, got {type(data).__name__}", source_path
        )
    return data, text[match.end() :]


def parse_frontmatter(
    text: str, source_path: Path | None = None
) -> tuple[FrontMatter, str]:
    """Parse front matter into a FrontMatter and return the body.

    Args:
        text: Raw file content.
        source_path: Optional path, used in error messages.

    Returns:
        Tuple of (FrontMatter, body).

    Raises:
        ParseError: If the block is not valid YAML or not a mapping.
    """
    data, body = split_frontmatter(text, source_path)
    return FrontMatter.from_mapping(data), body
