"""Utility functions for Inkwell.

This module contains small helpers shared by the content pipeline and the
build: dates, tags, slugs and output directory handling.

Key functions:
    parse_date: Parse a front-matter date string into an aware datetime.
    normalize_date: Turn a YAML date value into its ISO-8601 string form.
    format_rfc2822: Format a datetime as an RFC-2822 (HTTP-date) string.
    split_tags: Split a comma-separated tag string into a list.
    slugify: Convert a title into a post id suitable for a filename.
    ensure_clean_dir: Ensure a directory exists and is empty.
"""

from __future__ import annotations

import re
import shutil
from datetime import date, datetime, timezone
from email.utils import format_datetime
from pathlib import Path
from typing import Any


def parse_date(value: str | None) -> datetime | None:
    """Parse an ISO-8601 date or datetime string.

    Date-only values become midnight UTC, naive datetimes are taken as UTC
    and a trailing ``Z`` is accepted.

    Args:
        value: Date string from front matter.

    Returns:
        Timezone-aware datetime, or None if the value cannot be parsed.

    Examples:
        >>> parse_date("2024-01-01")
        datetime.datetime(2024, 1, 1, 0, 0, tzinfo=datetime.timezone.utc)

        >>> parse_date("January 1st") is None
        True
    """
    if not value:
        return None
    text = str(value).strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def normalize_date(value: Any) -> str | None:
    """Convert a front-matter date value to a string.

    PyYAML turns unquoted dates into ``date``/``datetime`` objects; those are
    rendered back to ISO-8601 so that every post carries its date as text.

    Args:
        value: Raw value from the parsed front matter.

    Returns:
        ISO-8601 string, the value as a string, or None when absent.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def format_rfc2822(value: datetime) -> str:
    """Format a datetime as an RFC-2822 string in GMT.

    Args:
        value: Timezone-aware datetime.

    Returns:
        String such as ``Mon, 01 Jan 2024 00:00:00 GMT``.
    """
    return format_datetime(value.astimezone(timezone.utc), usegmt=True)


def split_tags(tags: str | None) -> list[str]:
    """Split a comma-separated tag string.

    Args:
        tags: Tag string such as ``"python, web"``.

    Returns:
        List of stripped, non-empty tags in source order.

    Examples:
        >>> split_tags("python, web,,  blog ")
        ['python', 'web', 'blog']
    """
    if not tags:
        return []
    return [tag.strip() for tag in tags.split(",") if tag.strip()]


def slugify(text: str) -> str:
    """Convert a title to a lowercase, hyphenated post id.

    Args:
        text: Title or filename stem.

    Returns:
        URL-friendly slug, or "post" if nothing usable remains.
    """
    cleaned = re.sub(r"[^a-zA-Z0-9]+", "-", text)
    cleaned = cleaned.strip("-").lower()
    return cleaned or "post"


def ensure_clean_dir(path: Path) -> None:
    """Ensure a directory exists and is empty.

    Args:
        path: Directory path to clean or create.
    """
    if path.exists():
        shutil.rmtree(path)
    path.mkdir(parents=True, exist_ok=True)
