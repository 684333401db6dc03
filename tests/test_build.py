import logging
from pathlib import Path

import pytest

from inkwell.build import (
    DEFAULT_CONFIG,
    BuildError,
    build_site,
    load_config,
    render_posts,
)
from inkwell.content import PostLoader
from inkwell.renderers import MarkdownTransformer


def create_project(tmp_path: Path) -> Path:
    root = tmp_path / "blog"
    posts = root / "posts"
    posts.mkdir(parents=True)
    (root / "inkwell.yaml").write_text(
        "title: Test Blog\nurl: https://example.com\nworkers: 2\n", encoding="utf-8"
    )
    (posts / "hello-world.md").write_text(
        "---\ntitle: Hello\ndate: 2024-01-01\nsummary: Hi\ntags: meta\n---\n"
        ":::note{.tip}\nRead me.\n:::\n\n```python\nprint('hi')\n```\n",
        encoding="utf-8",
    )
    (posts / "older.md").write_text(
        "---\ntitle: Older\ndate: 2023-05-05\n---\nOld news.\n", encoding="utf-8"
    )
    (root / "about.md").write_text("---\ntitle: About Me\n---\nI write.\n", encoding="utf-8")
    return root


def test_load_config_defaults(tmp_path):
    assert load_config(tmp_path) == DEFAULT_CONFIG
    (tmp_path / "inkwell.yaml").write_text("title: Mine\nport: 5000\n", encoding="utf-8")
    config = load_config(tmp_path)
    assert config["title"] == "Mine"
    assert config["port"] == 5000
    assert config["output_dir"] == "public"


def test_build_site_writes_everything(tmp_path):
    root = create_project(tmp_path)
    result = build_site(root)
    out = root / "public"
    assert result.output_dir == out
    assert [p.id for p in result.posts] == ["hello-world", "older"]
    for rel in [
        "index.html",
        "posts/hello-world/index.html",
        "posts/older/index.html",
        "about/index.html",
        "404.html",
        "rss.xml",
        "sitemap.xml",
        "pygments.css",
    ]:
        assert (out / rel).exists(), rel

    index = (out / "index.html").read_text(encoding="utf-8")
    assert index.index("/posts/hello-world") < index.index("/posts/older")

    post = (out / "posts/hello-world/index.html").read_text(encoding="utf-8")
    assert '<div class="tip"><p>Read me.</p>' in post
    assert '<div class="highlight">' in post

    rss = (out / "rss.xml").read_text(encoding="utf-8")
    assert "<guid>https://example.com/posts/hello-world</guid>" in rss
    assert "<lastBuildDate>Mon, 01 Jan 2024 00:00:00 GMT</lastBuildDate>" in rss

    about = (out / "about/index.html").read_text(encoding="utf-8")
    assert "<h1>About Me</h1>" in about
    assert "<p>I write.</p>" in about
    assert ".highlight" in (out / "pygments.css").read_text(encoding="utf-8")


def test_build_site_overrides(tmp_path):
    root = create_project(tmp_path)
    target = tmp_path / "elsewhere"
    result = build_site(root, root_url="https://blog.test", output_dir_override=target)
    assert result.output_dir == target
    assert result.config["url"] == "https://blog.test"
    sitemap = (target / "sitemap.xml").read_text(encoding="utf-8")
    assert "<loc>https://blog.test/posts/older</loc>" in sitemap
    assert not (root / "public").exists()


def test_build_without_posts_skips_feed(tmp_path, caplog):
    root = tmp_path / "empty"
    (root / "posts").mkdir(parents=True)
    with caplog.at_level(logging.WARNING, logger="inkwell.build"):
        result = build_site(root)
    assert result.posts == []
    assert not (result.output_dir / "rss.xml").exists()
    assert (result.output_dir / "sitemap.xml").exists()
    assert (result.output_dir / "index.html").exists()
    assert not (result.output_dir / "about").exists()
    assert "skipping rss.xml" in caplog.text


def test_malformed_post_aborts_before_writing(tmp_path):
    root = create_project(tmp_path)
    out = root / "public"
    out.mkdir()
    (out / "keep.txt").write_text("previous build", encoding="utf-8")
    bad = root / "posts" / "bad.md"
    bad.write_text("---\ntitle: [oops\n---\nBody\n", encoding="utf-8")

    with pytest.raises(BuildError) as excinfo:
        build_site(root)
    assert excinfo.value.source_path == bad
    assert "Invalid YAML" in excinfo.value.message
    assert (out / "keep.txt").exists()


def test_invalid_utf8_post_becomes_build_error(tmp_path):
    root = create_project(tmp_path)
    bad = root / "posts" / "bad.md"
    bad.write_bytes(b"---\ntitle: Bad\n---\n\xff\xfe\n")
    with pytest.raises(BuildError) as excinfo:
        build_site(root)
    assert excinfo.value.source_path == bad
    assert "UTF-8" in excinfo.value.message


@pytest.mark.parametrize(
    ("config", "expected"),
    [
        ("title: [oops\n", "Invalid YAML"),
        ("- just\n- a list\n", "mapping"),
        ("workers: many\n", "'workers' must be an integer"),
        ("port: null\n", "'port' must be an integer"),
    ],
)
def test_bad_config_aborts_before_writing(tmp_path, config, expected):
    root = create_project(tmp_path)
    out = root / "public"
    out.mkdir()
    (out / "keep.txt").write_text("previous build", encoding="utf-8")
    config_path = root / "inkwell.yaml"
    config_path.write_text(config, encoding="utf-8")

    with pytest.raises(BuildError) as excinfo:
        build_site(root)
    assert excinfo.value.source_path == config_path
    assert expected in excinfo.value.message
    assert (out / "keep.txt").exists()


def test_load_config_coerces_numeric_strings(tmp_path):
    (tmp_path / "inkwell.yaml").write_text('workers: "2"\n', encoding="utf-8")
    assert load_config(tmp_path)["workers"] == 2


def test_template_error_becomes_build_error(tmp_path):
    root = create_project(tmp_path)
    (root / "templates").mkdir()
    (root / "templates" / "post.html").write_text("{% if %}", encoding="utf-8")
    with pytest.raises(BuildError) as excinfo:
        build_site(root)
    assert "Template syntax error" in excinfo.value.message


def test_undefined_template_value_becomes_build_error(tmp_path):
    root = create_project(tmp_path)
    (root / "templates").mkdir()
    (root / "templates" / "404.html").write_text("{{ missing.attr }}", encoding="utf-8")
    with pytest.raises(BuildError) as excinfo:
        build_site(root)
    assert excinfo.value.message.startswith("Undefined variable")


def test_render_posts_keeps_order(tmp_path):
    posts = tmp_path / "posts"
    posts.mkdir()
    ids = [f"post-{i}" for i in range(8)]
    for post_id in ids:
        (posts / f"{post_id}.md").write_text(f"---\ntitle: {post_id}\n---\n{post_id}\n", encoding="utf-8")
    loader = PostLoader(posts)
    order = list(reversed(ids))
    rendered = render_posts(loader, order, MarkdownTransformer(), workers=4)
    assert [p.id for p in rendered] == order
    serial = render_posts(loader, order, MarkdownTransformer(), workers=1)
    assert [p.html_content for p in serial] == [p.html_content for p in rendered]
