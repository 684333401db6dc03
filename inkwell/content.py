"""Post loading for Inkwell.

This module reads post source files from the posts directory. It exposes a
two-phase API: listing and summaries (front matter only) for index views,
and full sources (front matter plus body) for a single post.

Key classes:
- PostSource: One Markdown file, split into front matter and body.
- PostSummary: Body-less projection of a post used by listings and feeds.
- Post: A post with its rendered HTML.
- PostLoader: Enumerates and reads post files for a single build.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

from .frontmatter import FrontMatter, ParseError, parse_frontmatter
from .utils import parse_date, split_tags

if TYPE_CHECKING:
    from .renderers import MarkdownTransformer

__all__ = [
    "NotFoundError",
    "ParseError",
    "Post",
    "PostLoader",
    "PostSource",
    "PostSummary",
    "render_post",
    "sort_summaries",
]

logger = logging.getLogger(__name__)

POST_SUFFIX = ".md"


class NotFoundError(Exception):
    """No post source file matches the requested id.

    Attributes:
        post_id: The id that was requested.
    """

    def __init__(self, post_id: str):
        self.post_id = post_id
        super().__init__(f"No post found with id {post_id!r}")


@dataclass(frozen=True)
class PostSource:
    """A post file read from disk.

    Attributes:
        id: Filename without extension; the public slug.
        raw_body: Markdown after the front matter has been removed.
        front_matter: Parsed metadata.
        path: Path to the source file.
    """

    id: str
    raw_body: str
    front_matter: FrontMatter
    path: Path


@dataclass(frozen=True)
class PostSummary:
    """Front-matter projection of a post, without its body.

    Attributes:
        id: Post id.
        title: Post title, if set.
        date: Date string as written in the front matter.
        summary: Short description.
        tags: Comma-separated tag string.
        header_image: Listing card image URL.
    """

    id: str
    title: str | None = None
    date: str | None = None
    summary: str | None = None
    tags: str | None = None
    header_image: str | None = None

    @classmethod
    def from_source(cls, source: PostSource) -> PostSummary:
        meta = source.front_matter
        return cls(
            id=source.id,
            title=meta.title,
            date=meta.date,
            summary=meta.summary,
            tags=meta.tags,
            header_image=meta.header_image,
        )

    @property
    def tag_list(self) -> list[str]:
        """Tags split into a list."""
        return split_tags(self.tags)

    @property
    def published(self) -> datetime | None:
        """The date parsed as an aware datetime, or None if unparseable."""
        return parse_date(self.date)

    @property
    def url(self) -> str:
        """Site-relative URL of the post page."""
        return f"/posts/{self.id}"


@dataclass(frozen=True)
class Post(PostSummary):
    """A post with its rendered body.

    Attributes:
        html_content: HTML produced by the Markdown transformer.
    """

    html_content: str = ""


def _date_sort_key(summary: PostSummary) -> tuple:
    published = summary.published
    if published is None:
        return (0, 0.0)
    return (1, published.timestamp())


def sort_summaries(summaries: Iterable[PostSummary]) -> list[PostSummary]:
    """Sort summaries newest first.

    Dates are compared chronologically. Summaries with equal dates keep
    their input order, and summaries without a parseable date come last.

    Args:
        summaries: Summaries in any order.

    Returns:
        New list sorted by date, descending.
    """
    # sorted() stays stable with reverse=True
    return sorted(summaries, key=_date_sort_key, reverse=True)


class PostLoader:
    """Reads post files from a directory.

    The directory listing is cached on the instance, so a loader should live
    for one build or request. Call refresh() to re-scan.

    Attributes:
        posts_dir: Directory containing the post Markdown files.
    """

    def __init__(self, posts_dir: Path):
        """Initialize the loader.

        Args:
            posts_dir: Path to the posts directory.
        """
        self.posts_dir = posts_dir
        self._paths: dict[str, Path] | None = None

    def _scan(self) -> dict[str, Path]:
        if self._paths is None:
            paths: dict[str, Path] = {}
            if self.posts_dir.is_dir():
                for path in sorted(self.posts_dir.iterdir()):
                    if not path.is_file() or path.name.startswith("."):
                        continue
                    if path.suffix.lower() != POST_SUFFIX:
                        continue
                    paths[path.stem] = path
            else:
                logger.warning("Posts directory %s does not exist", self.posts_dir)
            logger.debug("Found %d posts in %s", len(paths), self.posts_dir)
            self._paths = paths
        return self._paths

    def refresh(self) -> None:
        """Forget the cached directory listing."""
        self._paths = None

    def list_post_ids(self) -> list[str]:
        """Return the id of every post file.

        Returns:
            Post ids; ordering is not part of the contract.
        """
        return list(self._scan())

    def source_path(self, post_id: str) -> Path:
        """Return the file backing a post id.

        Raises:
            NotFoundError: If no post has that id.
        """
        path = self._scan().get(post_id)
        if path is None:
            raise NotFoundError(post_id)
        return path

    def load_source(self, post_id: str) -> PostSource:
        """Read one post file.

        Args:
            post_id: Id of the post (filename without extension).

        Returns:
            The parsed PostSource.

        Raises:
            NotFoundError: If no post has that id.
            ParseError: If the file is not UTF-8 or its front matter is malformed.
        """
        path = self.source_path(post_id)
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise NotFoundError(post_id) from exc
        except UnicodeDecodeError as exc:
            raise ParseError("File is not valid UTF-8", path) from exc
        front_matter, body = parse_frontmatter(text, path)
        return PostSource(id=post_id, raw_body=body, front_matter=front_matter, path=path)

    def load_summaries(self) -> list[PostSummary]:
        """Read the front matter of every post.

        Returns:
            Summaries sorted newest first (see sort_summaries).

        Raises:
            ParseError: If any post's front matter is malformed.
        """
        summaries = [
            PostSummary.from_source(self.load_source(post_id))
            for post_id in self.list_post_ids()
        ]
        return sort_summaries(summaries)

    def load_post(self, post_id: str, transformer: MarkdownTransformer) -> Post:
        """Read one post and render its body.

        Args:
            post_id: Id of the post.
            transformer: Markdown transformer used for the body.

        Returns:
            The rendered Post.
        """
        source = self.load_source(post_id)
        return render_post(source, transformer)


def render_post(source: PostSource, transformer: MarkdownTransformer) -> Post:
    """Render a PostSource into a Post.

    Args:
        source: Post read by the loader.
        transformer: Markdown transformer used for the body.

    Returns:
        Post carrying the front-matter fields and the rendered HTML.
    """
    meta = source.front_matter
    return Post(
        id=source.id,
        title=meta.title,
        date=meta.date,
        summary=meta.summary,
        tags=meta.tags,
        header_image=meta.header_image,
        html_content=transformer.render(source.raw_body),
    )
