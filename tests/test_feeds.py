import pytest

from inkwell.content import Post
from inkwell.feeds import (
    EmptyFeedError,
    FeedRegistry,
    RSSGenerator,
    SitemapGenerator,
    build_feed,
    build_sitemap,
    create_default_feed_registry,
)

SITE = {
    "title": "Test Blog",
    "description": "Posts & notes",
    "url": "https://example.com/",
    "language": "en",
}


def hello_post(**overrides) -> Post:
    values = dict(
        id="hello-world",
        title="Hello",
        date="2024-01-01",
        summary="A first post",
        tags="",
        html_content="<p>Hi</p>",
    )
    values.update(overrides)
    return Post(**values)


def test_feed_for_single_post():
    rss = build_feed([hello_post()], SITE)
    assert rss.startswith('<?xml version="1.0" encoding="UTF-8"?>')
    assert "<guid>https://example.com/posts/hello-world</guid>" in rss
    assert "<link>https://example.com/posts/hello-world</link>" in rss
    assert "<pubDate>Mon, 01 Jan 2024 00:00:00 GMT</pubDate>" in rss
    assert "<content:encoded><![CDATA[<p>Hi</p>]]></content:encoded>" in rss
    assert "<title>Hello</title>" in rss
    assert "<description>A first post</description>" in rss
    assert rss.count("<item>") == 1


def test_channel_elements():
    rss = build_feed([hello_post()], SITE)
    assert 'xmlns:content="http://purl.org/rss/1.0/modules/content/"' in rss
    assert 'xmlns:dc="http://purl.org/dc/elements/1.1/"' in rss
    assert "<title>Test Blog</title>" in rss
    assert "<link>https://example.com</link>" in rss
    assert "<description>Posts &amp; notes</description>" in rss
    assert "<language>en</language>" in rss
    assert '<atom:link href="https://example.com" rel="self" type="application/rss+xml"/>' in rss


def test_empty_feed_raises():
    with pytest.raises(EmptyFeedError):
        build_feed([], SITE)


def test_last_build_date_comes_from_first_post():
    posts = [
        hello_post(id="a", date="2023-05-05"),
        hello_post(id="b", date="2024-01-01"),
    ]
    rss = build_feed(posts, SITE)
    assert "<lastBuildDate>Fri, 05 May 2023 00:00:00 GMT</lastBuildDate>" in rss
    # items keep the given order
    assert rss.index("/posts/a</guid>") < rss.index("/posts/b</guid>")


def test_summary_is_inserted_unescaped():
    rss = build_feed([hello_post(summary="Fish & <b>Chips</b>")], SITE)
    assert "<description>Fish & <b>Chips</b></description>" in rss


def test_title_is_escaped():
    rss = build_feed([hello_post(title="Q&A")], SITE)
    assert "<title>Q&amp;A</title>" in rss


def test_unparseable_date_omits_pub_date():
    rss = build_feed([hello_post(date="sometime")], SITE)
    assert "<pubDate>" not in rss
    assert "<lastBuildDate>" not in rss


def test_pub_date_is_converted_to_gmt():
    rss = build_feed([hello_post(date="2024-01-01T02:30:00+02:00")], SITE)
    assert "<pubDate>Mon, 01 Jan 2024 00:30:00 GMT</pubDate>" in rss


def test_cdata_terminator_in_content_is_split():
    rss = build_feed([hello_post(html_content="<p>a]]>b</p>")], SITE)
    assert "<![CDATA[<p>a]]]]><![CDATA[>b</p>]]>" in rss


def test_sitemap_lists_each_post():
    sitemap = build_sitemap(["a", "b"], SITE)
    assert '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">' in sitemap
    assert (
        "<url><loc>https://example.com/posts/a</loc><changefreq>daily</changefreq>"
        "<priority>0.9</priority></url>"
    ) in sitemap
    assert sitemap.count("<url>") == 2


def test_empty_sitemap_is_valid():
    sitemap = build_sitemap([], SITE)
    assert "<url>" not in sitemap
    assert sitemap.endswith("</urlset>")


def test_generators_write_files(tmp_path):
    posts = [hello_post()]
    rss_path = RSSGenerator().write(tmp_path, posts, SITE)
    sitemap_path = SitemapGenerator().write(tmp_path, posts, SITE)
    assert rss_path == tmp_path / "rss.xml"
    assert "<item>" in rss_path.read_text(encoding="utf-8")
    assert "/posts/hello-world" in sitemap_path.read_text(encoding="utf-8")


def test_rss_generator_refuses_empty(tmp_path):
    with pytest.raises(EmptyFeedError):
        RSSGenerator().write(tmp_path, [], SITE)
    assert not (tmp_path / "rss.xml").exists()


def test_default_registry():
    registry = create_default_feed_registry()
    assert [g.filename for g in registry] == ["sitemap.xml", "rss.xml"]
    assert len(FeedRegistry()) == 0
