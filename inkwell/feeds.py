"""Feed generation for Inkwell.

This module serializes the RSS 2.0 feed and the XML sitemap. The document
builders are plain functions; the generator classes wrap them so a build
can write every registered feed into its output directory.

Functions:
    build_feed: Build the RSS document for an ordered sequence of posts.
    build_sitemap: Build the sitemap for a sequence of post ids.

Classes:
    FeedGenerator: Base class for feed generators.
    RSSGenerator: Writes rss.xml.
    SitemapGenerator: Writes sitemap.xml.
    FeedRegistry: Ordered collection of feed generators.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator, Mapping, Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Any

from .html_utils import escape_html, join_root_url, wrap_cdata
from .utils import format_rfc2822

if TYPE_CHECKING:
    from .content import Post

RSS_NAMESPACES = (
    'xmlns:dc="http://purl.org/dc/elements/1.1/" '
    'xmlns:content="http://purl.org/rss/1.0/modules/content/" '
    'xmlns:atom="http://www.w3.org/2005/Atom" '
    'xmlns:media="http://search.yahoo.com/mrss/"'
)
SITEMAP_CHANGEFREQ = "daily"
SITEMAP_PRIORITY = "0.9"


class EmptyFeedError(ValueError):
    """A feed was requested for an empty sequence of posts."""


def post_url(base_url: str, post_id: str) -> str:
    """Return the absolute URL of a post page.

    Args:
        base_url: Site base URL.
        post_id: Post id.

    Returns:
        URL ending in ``/posts/{post_id}``.
    """
    return join_root_url(base_url, f"/posts/{post_id}")


def _feed_item(post: Post, base_url: str) -> str:
    link = escape_html(post_url(base_url, post.id))
    lines = [
        "<item>",
        f"<guid>{link}</guid>",
        f"<title>{escape_html(post.title or '')}</title>",
        # summaries are trusted to be XML-safe already
        f"<description>{post.summary or ''}</description>",
        f"<link>{link}</link>",
    ]
    published = post.published
    if published is not None:
        lines.append(f"<pubDate>{format_rfc2822(published)}</pubDate>")
    lines.append(f"<content:encoded>{wrap_cdata(post.html_content)}</content:encoded>")
    lines.append("</item>")
    return "\n".join(lines)


def build_feed(posts: Sequence[Post], site: Mapping[str, Any]) -> str:
    """Build an RSS 2.0 document.

    ``lastBuildDate`` is the date of the first post, so ``posts`` must
    already be sorted newest first; this function does not re-sort.

    Args:
        posts: Rendered posts, newest first.
        site: Site configuration with ``url``, ``title``, ``description``
            and ``language``.

    Returns:
        RSS XML content.

    Raises:
        EmptyFeedError: If ``posts`` is empty.
    """
    posts = list(posts)
    if not posts:
        raise EmptyFeedError("Cannot build a feed without posts")

    base_url = str(site.get("url", "")).rstrip("/")
    link = escape_html(base_url)
    rss = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        f'<rss {RSS_NAMESPACES} version="2.0">',
        "<channel>",
        f"<title>{escape_html(str(site.get('title', '')))}</title>",
        f"<link>{link}</link>",
        f"<description>{escape_html(str(site.get('description', '')))}</description>",
        f"<language>{escape_html(str(site.get('language', 'en')))}</language>",
    ]
    last_build = posts[0].published
    if last_build is not None:
        rss.append(f"<lastBuildDate>{format_rfc2822(last_build)}</lastBuildDate>")
    rss.append(f'<atom:link href="{link}" rel="self" type="application/rss+xml"/>')
    rss.extend(_feed_item(post, base_url) for post in posts)
    rss.append("</channel>")
    rss.append("</rss>")
    return "\n".join(rss)


def build_sitemap(ids: Iterable[str], site: Mapping[str, Any]) -> str:
    """Build an XML sitemap listing every post page.

    Args:
        ids: Post ids.
        site: Site configuration with ``url``.

    Returns:
        Sitemap XML content.
    """
    base_url = str(site.get("url", "")).rstrip("/")
    lines = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">',
    ]
    for post_id in ids:
        loc = escape_html(post_url(base_url, post_id))
        lines.append(
            f"  <url><loc>{loc}</loc><changefreq>{SITEMAP_CHANGEFREQ}</changefreq>"
            f"<priority>{SITEMAP_PRIORITY}</priority></url>"
        )
    lines.append("</urlset>")
    return "\n".join(lines)


class FeedGenerator(ABC):
    """A file written alongside the pages, such as ``rss.xml``.

    Subclasses name an output file and build its content from the site's
    rendered posts.
    """

    @property
    @abstractmethod
    def filename(self) -> str:
        """Return the output filename for this feed."""
        ...

    @abstractmethod
    def generate(self, posts: Sequence[Post], site: Mapping[str, Any]) -> str:
        """Generate feed content.

        Args:
            posts: Rendered posts, newest first.
            site: Site configuration.

        Returns:
            Feed content as a string.
        """
        ...

    def write(self, output_dir: Path, posts: Sequence[Post], site: Mapping[str, Any]) -> Path:
        """Generate and write the feed to the output directory.

        Args:
            output_dir: Directory to write the feed file to.
            posts: Rendered posts, newest first.
            site: Site configuration.

        Returns:
            Path of the written file.
        """
        content = self.generate(posts, site)
        output_path = output_dir / self.filename
        output_path.write_text(content, encoding="utf-8")
        return output_path


class SitemapGenerator(FeedGenerator):
    """Writes sitemap.xml with one entry per post."""

    @property
    def filename(self) -> str:
        return "sitemap.xml"

    def generate(self, posts: Sequence[Post], site: Mapping[str, Any]) -> str:
        return build_sitemap((post.id for post in posts), site)


class RSSGenerator(FeedGenerator):
    """Writes rss.xml.

    Raises EmptyFeedError from generate() when there are no posts.
    """

    @property
    def filename(self) -> str:
        return "rss.xml"

    def generate(self, posts: Sequence[Post], site: Mapping[str, Any]) -> str:
        return build_feed(posts, site)


class FeedRegistry:
    """Ordered collection of feed generators."""

    def __init__(self) -> None:
        self._generators: list[FeedGenerator] = []

    def register(self, generator: FeedGenerator) -> None:
        """Add a generator; generators run in registration order.

        Args:
            generator: Feed generator to register.
        """
        self._generators.append(generator)

    def __iter__(self) -> Iterator[FeedGenerator]:
        return iter(self._generators)

    def __len__(self) -> int:
        return len(self._generators)


def create_default_feed_registry() -> FeedRegistry:
    """Create a registry with the sitemap and RSS generators.

    Returns:
        Registry holding the sitemap generator followed by the RSS generator.
    """
    registry = FeedRegistry()
    registry.register(SitemapGenerator())
    registry.register(RSSGenerator())
    return registry
