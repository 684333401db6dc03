"""Command-line interface for Inkwell.

The ``inkwell`` command is a Click group. ``new`` and ``post`` write project
files; ``build`` and ``serve`` drive the build pipeline.

Commands:
- new: Scaffold a new Inkwell project.
- build: Render the blog into its output directory.
- serve: Run development server that rebuilds on change.
- post: Create a new post file interactively.
"""

from __future__ import annotations

import logging
import shutil
from datetime import date
from pathlib import Path
from typing import NoReturn

import click
import questionary
import yaml

from . import __version__
from .utils import slugify

# Path to the project skeleton copied by `inkwell new`
_SCAFFOLD_DIR = Path(__file__).parent / "scaffold"


@click.group()
@click.version_option(version=__version__, prog_name="inkwell")
@click.option("-v", "--verbose", is_flag=True, help="Show debug logging")
def cli(verbose: bool):
    """Inkwell blog generator."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@click.argument("name")
def new(name: str):
    """Scaffold a new Inkwell project."""
    target = Path(name).resolve()
    if target.exists() and any(target.iterdir()):
        raise click.ClickException(
            f"Refusing to initialize into non-empty directory: {target}"
        )
    _scaffold(target)
    click.echo(f"New Inkwell blog created at {target}")


@cli.command()
@click.option(
    "--output",
    type=click.Path(file_okay=False, path_type=Path),
    required=False,
    help="Directory to write the site to (overrides inkwell.yaml)",
)
@click.option("--url", required=False, help="Base URL of the site (overrides inkwell.yaml)")
def build(output: Path | None, url: str | None):
    """Render the blog into its output directory."""
    project_root = Path.cwd()
    from .build import BuildError, build_site

    try:
        result = build_site(project_root, root_url=url, output_dir_override=output)
    except BuildError as exc:
        _fail_build(exc, project_root)
    click.echo(f"Built {len(result.posts)} posts into {result.output_dir}")


@cli.command()
@click.option(
    "--port",
    type=int,
    required=False,
    help="Port to run the dev server (overrides inkwell.yaml)",
)
def serve(port: int | None):
    """Run dev server that rebuilds on change."""
    project_root = Path.cwd()
    from .build import BuildError
    from .server import DevServer

    try:
        server = DevServer(project_root, http_port=port)
        server.start()
    except BuildError as exc:
        _fail_build(exc, project_root)


@cli.command()
def post():
    """Create a new post interactively."""
    project_root = Path.cwd()
    from .build import BuildError, load_config

    try:
        config = load_config(project_root)
    except BuildError as exc:
        _fail_build(exc, project_root)
    posts_dir = project_root / config["posts_dir"]
    if not posts_dir.exists():
        raise click.ClickException(
            "No posts directory found. Run this command from an Inkwell project root."
        )

    title = questionary.text(
        "Title:",
        validate=lambda x: len(x.strip()) > 0 or "Title cannot be empty",
        style=_questionary_style(),
    ).ask()
    if title is None:
        raise click.Abort()
    title = title.strip()

    summary = questionary.text("Summary:", style=_questionary_style()).ask()
    if summary is None:
        raise click.Abort()

    tags = questionary.text(
        "Tags (comma separated):", style=_questionary_style()
    ).ask()
    if tags is None:
        raise click.Abort()

    slug = questionary.text(
        "Post id:",
        default=slugify(title),
        validate=lambda x: slugify(x) == x or "Use lowercase letters, digits and hyphens",
        style=_questionary_style(),
    ).ask()
    if slug is None:
        raise click.Abort()

    target_path = posts_dir / f"{slug}.md"
    if target_path.exists():
        raise click.ClickException(
            f"File already exists: {target_path.relative_to(project_root)}"
        )

    front_matter = {
        "title": title,
        "date": date.today().isoformat(),
        "summary": summary.strip(),
        "tags": tags.strip(),
    }
    header = yaml.safe_dump(front_matter, sort_keys=False, allow_unicode=True)
    target_path.write_text(f"---\n{header}---\n\n", encoding="utf-8")

    click.echo(f"Created {target_path.relative_to(project_root)}")


def _questionary_style():
    """Prompt colours shared by the interactive commands."""
    return questionary.Style(
        [
            ("qmark", "fg:cyan bold"),
            ("question", "bold"),
            ("answer", "fg:cyan"),
            ("pointer", "fg:cyan bold"),
            ("highlighted", "fg:cyan bold"),
            ("selected", "fg:cyan"),
        ]
    )


def main():
    """Console-script entry point."""
    cli()


def _scaffold(root: Path) -> None:
    """Copy the project skeleton into ``root`` and title the blog after it."""
    shutil.copytree(_SCAFFOLD_DIR, root, dirs_exist_ok=True)

    config_path = root / "inkwell.yaml"
    config = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    config["title"] = root.name
    config_path.write_text(yaml.safe_dump(config, sort_keys=False), encoding="utf-8")


def _fail_build(exc, project_root: Path) -> NoReturn:
    """Print a BuildError for the author and exit with status 1."""
    source = exc.source_path
    if source.is_absolute() and source.is_relative_to(project_root):
        source = source.relative_to(project_root)
    click.echo(click.style("Build failed:", fg="red", bold=True), err=True)
    click.echo(click.style(f"  File: {source}", fg="yellow"), err=True)
    click.echo(click.style(f"  Error: {exc.message}", fg="white"), err=True)
    raise SystemExit(1) from None
