"""HTML and XML string helpers for Inkwell.

Functions:
    escape_html: Escape special HTML/XML characters in a string.
    render_attributes: Serialize an attribute mapping for an HTML start tag.
    wrap_cdata: Wrap text in a CDATA section.
    join_root_url: Join a base URL with a path.
"""

from __future__ import annotations

from collections.abc import Mapping


def escape_html(text: str) -> str:
    """Escape text for use in HTML or XML markup.

    Converts ``&``, ``<``, ``>`` and ``"`` to their entity equivalents. The
    result is also safe inside XML text and double-quoted attributes.

    Args:
        text: Raw text.

    Returns:
        The escaped string.

    Examples:
        >>> escape_html('Tom & "Jerry"')
        'Tom &amp; &quot;Jerry&quot;'
    """
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )


def render_attributes(attributes: Mapping[str, str]) -> str:
    """Serialize attributes for an HTML start tag.

    Args:
        attributes: Attribute names to values, in output order.

    Returns:
        String starting with a space for each attribute, e.g. ``' id="x"'``.
    """
    return "".join(
        f' {name}="{escape_html(value)}"' for name, value in attributes.items()
    )


def wrap_cdata(text: str) -> str:
    """Wrap text in a CDATA section.

    A ``]]>`` inside the text would end the section early, so it is split
    across two adjacent sections.

    Args:
        text: Markup to embed.

    Returns:
        CDATA-wrapped text.

    Examples:
        >>> wrap_cdata("<p>Hi</p>")
        '<![CDATA[<p>Hi</p>]]>'
    """
    return "<![CDATA[" + text.replace("]]>", "]]]]><![CDATA[>") + "]]>"


def join_root_url(root_url: str, path: str) -> str:
    """Join ``path`` onto ``root_url`` with exactly one slash between them.

    Args:
        root_url: Site URL, e.g. ``https://example.com/blog``.
        path: Site path, with or without a leading slash.

    Returns:
        The joined URL.

    Examples:
        >>> join_root_url('https://example.com/', 'posts/hello')
        'https://example.com/posts/hello'
    """
    if not root_url:
        return path if path.startswith("/") else f"/{path}"
    base = root_url.rstrip("/")
    suffix = path if path.startswith("/") else f"/{path}"
    return f"{base}{suffix}"
