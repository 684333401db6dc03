"""Inkwell blog generator.

This package turns a directory of Markdown posts into a small static blog:
a home listing, one page per post, an about page, an RSS feed and a sitemap.

The content pipeline has three stages:
- Source Loader (content): reads post files and their front matter.
- Markdown Transformer (renderers, directives, highlight): renders post bodies.
- Feed/Index Assembler (feeds, collections): builds the index, RSS and sitemap.

The CLI module is the main entry point for building and serving a site.
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
