"""Page templates for Inkwell.

This module uses Jinja2 to turn posts and listings into HTML pages. The
packaged theme lives in ``inkwell/theme``; a project can override any of
its templates by placing a file with the same name in ``templates/``.

Key class:
- TemplateEngine: Renders the index, post, about and 404 pages.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, select_autoescape
from markupsafe import Markup

from .collections import PostIndex
from .content import Post
from .html_utils import join_root_url
from .utils import parse_date

__all__ = ["THEME_DIR", "TemplateEngine", "format_date"]

THEME_DIR = Path(__file__).parent / "theme"


def format_date(value: str | None) -> str:
    """Format a front-matter date for display.

    Args:
        value: Date string from front matter.

    Returns:
        Text such as ``January 1, 2024``, or the raw value if it cannot be
        parsed.
    """
    parsed = parse_date(value)
    if parsed is None:
        return value or ""
    return f"{parsed:%B} {parsed.day}, {parsed.year}"


class TemplateEngine:
    """Renders blog pages from the project templates and packaged theme.

    Attributes:
        project_root: Project directory; its ``templates/`` folder overrides
            the theme.
        site: Site configuration exposed to templates as ``site``.
        env: Jinja2 environment.
    """

    def __init__(self, project_root: Path, site: Mapping[str, Any]):
        """Build the Jinja2 environment.

        Args:
            project_root: Project directory.
            site: Site configuration.
        """
        self.project_root = project_root
        self.site = site
        self.env = Environment(
            loader=FileSystemLoader([project_root / "templates", THEME_DIR]),
            autoescape=select_autoescape(["html", "xml"]),
            enable_async=False,
        )
        self._install_globals()

    def _install_globals(self) -> None:
        """Install global variables, functions and filters."""
        self.env.globals["site"] = self.site
        self.env.globals["url_for"] = self._url_for
        self.env.filters["format_date"] = format_date

    def _url_for(self, path: str) -> str:
        """Return an absolute URL for a site path.

        Args:
            path: Site-relative path.

        Returns:
            Path joined onto the configured ``url``.
        """
        if path.startswith(("http://", "https://", "//")):
            return path
        return join_root_url(str(self.site.get("url", "")), path)

    def render(self, name: str, **context: Any) -> str:
        """Render a named template.

        Args:
            name: Template filename, e.g. ``post.html``.
            **context: Template variables.

        Returns:
            Rendered HTML string.
        """
        return self.env.get_template(name).render(**context)

    def render_index(self, posts: PostIndex) -> str:
        return self.render("index.html", posts=posts, tags=posts.tags())

    def render_post(self, post: Post) -> str:
        return self.render("post.html", post=post, content=Markup(post.html_content))

    def render_about(self, title: str, html_content: str) -> str:
        return self.render("about.html", title=title, content=Markup(html_content))

    def render_not_found(self) -> str:
        return self.render("404.html")
