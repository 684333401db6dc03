"""Site building functionality for Inkwell.

This module turns a project directory into a static blog. Posts are read
and rendered, pages are rendered through the templates, and only once every
page has rendered successfully is the output directory written.

Key functions:
- build_site: Builds the pages, feeds and sitemap for a project.
- load_config: Loads site configuration from inkwell.yaml.
- render_posts: Renders posts, in parallel when configured.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from jinja2 import TemplateError, TemplateSyntaxError

from .collections import PostIndex
from .content import NotFoundError, Post, PostLoader, render_post
from .feeds import EmptyFeedError, create_default_feed_registry
from .frontmatter import ParseError, parse_frontmatter
from .highlight import CodeHighlighter
from .protocols import PostSourceLoader
from .renderers import MarkdownTransformer
from .templates import TemplateEngine
from .utils import ensure_clean_dir

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "inkwell.yaml"
ABOUT_FILENAME = "about.md"


class BuildError(Exception):
    """A post, template or config file that stopped the build.

    Attributes:
        source_path: File the failure is attributed to.
        message: Explanation shown to the author.
        original_error: Underlying exception, if any.
    """

    def __init__(
        self,
        source_path: Path,
        message: str,
        original_error: Exception | None = None,
    ):
        self.source_path = source_path
        self.message = message
        self.original_error = original_error
        super().__init__(f"{source_path}: {message}")


_INT_SETTINGS = ("port", "workers")

DEFAULT_CONFIG = {
    "title": "Inkwell Blog",
    "description": "",
    "url": "http://localhost:4000",
    "language": "en",
    "posts_dir": "posts",
    "output_dir": "public",
    "port": 4000,
    "workers": 4,
    "pygments_style": "default",
}


@dataclass
class BuildResult:
    """What a finished build produced.

    Attributes:
        posts: Rendered posts, newest first.
        output_dir: Directory the site was written to.
        config: Site configuration used for the build.
    """

    posts: list[Post]
    output_dir: Path
    config: dict[str, Any]


def load_config(project_root: Path) -> dict[str, Any]:
    """Load site configuration from inkwell.yaml.

    Args:
        project_root: Root directory of the project.

    Returns:
        ``DEFAULT_CONFIG`` updated with the values from the file.

    Raises:
        BuildError: If the file is not a YAML mapping or a numeric setting
            is not an integer.
    """
    config_path = project_root / CONFIG_FILENAME
    config = DEFAULT_CONFIG.copy()
    if not config_path.exists():
        return config
    try:
        with open(config_path, encoding="utf-8") as f:
            loaded = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise BuildError(config_path, f"Invalid YAML: {exc}", exc) from exc
    except UnicodeDecodeError as exc:
        raise BuildError(config_path, "File is not valid UTF-8", exc) from exc
    if not isinstance(loaded, dict):
        raise BuildError(config_path, "Configuration must be a mapping of settings")
    config.update(loaded)
    for key in _INT_SETTINGS:
        try:
            config[key] = int(config[key])
        except (TypeError, ValueError) as exc:
            raise BuildError(
                config_path, f"Setting {key!r} must be an integer, got {config[key]!r}", exc
            ) from exc
    return config


def render_posts(
    loader: PostSourceLoader,
    post_ids: Sequence[str],
    transformer: MarkdownTransformer,
    workers: int = 1,
) -> list[Post]:
    """Render posts, keeping the order of ``post_ids``.

    Args:
        loader: Source of post files.
        post_ids: Ids to render, in output order.
        transformer: Markdown transformer shared by every worker.
        workers: Thread count; 1 renders serially.

    Returns:
        Rendered posts in the same order as ``post_ids``.
    """

    def render_one(post_id: str) -> Post:
        return render_post(loader.load_source(post_id), transformer)

    if workers <= 1 or len(post_ids) < 2:
        return [render_one(post_id) for post_id in post_ids]
    with ThreadPoolExecutor(max_workers=workers) as executor:
        return list(executor.map(render_one, post_ids))


def build_site(
    project_root: Path,
    root_url: str | None = None,
    clean_output: bool = True,
    output_dir_override: Path | None = None,
) -> BuildResult:
    """Render every page of the blog and write it to the output directory.

    Args:
        project_root: Root directory of the project.
        root_url: Optional base URL, overriding ``url`` from the config.
        clean_output: Whether to wipe the output directory before writing.
        output_dir_override: Optional path to write the build output instead
            of config output_dir.

    Returns:
        BuildResult containing the rendered posts, output directory and config.

    Raises:
        BuildError: If a post or template fails; nothing is written.
    """
    config = load_config(project_root)
    if root_url is not None:
        config["url"] = root_url
    output_dir = output_dir_override or (project_root / config.get("output_dir", "public"))

    loader = PostLoader(project_root / config["posts_dir"])
    highlighter = CodeHighlighter(style=str(config.get("pygments_style", "default")))
    transformer = MarkdownTransformer(highlighter)

    posts = _load_posts(loader, transformer, config["workers"])
    index = PostIndex(posts, presorted=True)
    engine = TemplateEngine(project_root, config)

    pages = {"index.html": _render_template(engine.render_index, index)}
    for post in posts:
        pages[f"posts/{post.id}/index.html"] = _render_template(
            engine.render_post, post, source_path=loader.source_path(post.id)
        )
    about = _render_about(project_root, engine, transformer)
    if about is not None:
        pages["about/index.html"] = about
    pages["404.html"] = _render_template(engine.render_not_found)
    pages["pygments.css"] = highlighter.stylesheet()

    if clean_output:
        ensure_clean_dir(output_dir)
    else:
        output_dir.mkdir(parents=True, exist_ok=True)
    for rel_path, content in pages.items():
        _write_page(output_dir, rel_path, content)
    _write_feeds(output_dir, posts, config)

    logger.info("Built %d posts into %s", len(posts), output_dir)
    return BuildResult(posts=posts, output_dir=output_dir, config=config)


def _load_posts(
    loader: PostLoader, transformer: MarkdownTransformer, workers: int
) -> list[Post]:
    """Read and render every post, wrapping failures in BuildError."""
    try:
        summaries = loader.load_summaries()
        return render_posts(loader, [s.id for s in summaries], transformer, workers)
    except ParseError as exc:
        raise BuildError(
            exc.source_path or loader.posts_dir, exc.message, exc
        ) from exc
    except NotFoundError as exc:
        raise BuildError(
            loader.posts_dir / exc.post_id, "Post disappeared during the build", exc
        ) from exc


def _render_about(
    project_root: Path, engine: TemplateEngine, transformer: MarkdownTransformer
) -> str | None:
    """Render about.md into the about page, if the project has one."""
    about_path = project_root / ABOUT_FILENAME
    if not about_path.exists():
        return None
    try:
        front_matter, body = parse_frontmatter(about_path.read_text(encoding="utf-8"), about_path)
    except ParseError as exc:
        raise BuildError(about_path, exc.message, exc) from exc
    except UnicodeDecodeError as exc:
        raise BuildError(about_path, "File is not valid UTF-8", exc) from exc
    title = front_matter.title or "About"
    return _render_template(
        engine.render_about, title, transformer.render(body), source_path=about_path
    )


def _render_template(render, *args: Any, source_path: Path | None = None) -> str:
    """Call a TemplateEngine render method, wrapping failures in BuildError."""
    try:
        return render(*args)
    except TemplateSyntaxError as exc:
        raise BuildError(
            Path(exc.filename or exc.name or "<template>"),
            f"Template syntax error on line {exc.lineno}: {exc.message}",
            exc,
        ) from exc
    except (TemplateError, TypeError, AttributeError) as exc:
        raise BuildError(
            source_path or Path("<template>"),
            _format_error_message(exc),
            exc,
        ) from exc


_ERROR_PREFIXES = {
    "UndefinedError": "Undefined variable",
    "TemplateNotFound": "Template not found",
    "TypeError": "Type error",
    "AttributeError": "Attribute error",
}


def _format_error_message(exc: Exception) -> str:
    """Describe a rendering failure as ``<kind>: <detail>``."""
    kind = type(exc).__name__
    return f"{_ERROR_PREFIXES.get(kind, kind)}: {exc}"


def _write_page(output_dir: Path, rel_path: str, content: str) -> None:
    """Write one rendered file below the output directory.

    Args:
        output_dir: Base output directory.
        rel_path: Path relative to the output directory.
        content: File content.
    """
    target = output_dir / rel_path
    target.parent.mkdir(parents=True, exist_ok=True)
    with open(target, "w", encoding="utf-8") as f:
        f.write(content)


def _write_feeds(output_dir: Path, posts: list[Post], config: dict[str, Any]) -> None:
    """Write every registered feed; an empty blog gets no RSS feed."""
    for generator in create_default_feed_registry():
        try:
            generator.write(output_dir, posts, config)
        except EmptyFeedError:
            logger.warning("No posts found; skipping %s", generator.filename)
