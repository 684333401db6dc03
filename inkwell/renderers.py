"""Markdown rendering for Inkwell posts.

The transformer runs a post body through mistune with GitHub-flavoured
extensions and the directive plugin, rewrites directives, highlights fenced
code and serializes HTML. Raw HTML in the Markdown is passed through
unescaped: posts are written by the site's single author.

Key classes:
- PostRenderer: mistune HTML renderer with highlighting and directive elements.
- MarkdownTransformer: Renders a raw post body to HTML.
"""

from __future__ import annotations

from typing import Any

import mistune
from mistune.core import BlockState

from .directives import directives, rewrite_directives
from .highlight import CodeHighlighter
from .html_utils import escape_html, render_attributes
from .protocols import Highlighter

PLUGINS = ("strikethrough", "table", "url", "footnotes", "task_lists")


class PostRenderer(mistune.HTMLRenderer):
    """HTML renderer used for post bodies.

    Attributes:
        highlighter: Highlighter for fenced code, or None to disable.
    """

    def __init__(self, highlighter: Highlighter | None = None):
        """Initialize the renderer.

        Args:
            highlighter: Highlighter for fenced code blocks.
        """
        super().__init__(escape=False, allow_harmful_protocols=True)
        self.highlighter = highlighter

    def __call__(self, tokens, state: BlockState) -> str:
        return self.render_tokens(rewrite_directives(list(tokens)), state)

    def block_code(self, code: str, info: str | None = None) -> str:
        """Render a fenced or indented code block.

        Args:
            code: The code content.
            info: Fence info string; its first word is the language.

        Returns:
            Highlighted HTML when the language is known, otherwise a plain
            ``<pre><code>`` block.
        """
        language = info.split(None, 1)[0] if info and info.strip() else None
        if self.highlighter is not None:
            highlighted = self.highlighter.highlight(code, language)
            if highlighted is not None:
                return highlighted
        lang_class = f' class="language-{escape_html(language)}"' if language else ""
        return f"<pre><code{lang_class}>{mistune.escape(code)}</code></pre>\n"

    def directive_element(
        self, text: str, tag: str, attributes: dict[str, str], block: bool = True
    ) -> str:
        """Render a directive that maps to an HTML element.

        Args:
            text: Rendered children.
            tag: Element name, ``div`` or ``span``.
            attributes: Attributes from the directive's ``{...}`` list.
            block: Whether the element is block-level.

        Returns:
            HTML element string.
        """
        html = f"<{tag}{render_attributes(attributes)}>{text}</{tag}>"
        return html + "\n" if block else html


class MarkdownTransformer:
    """Renders raw Markdown post bodies to HTML.

    ``render`` is a pure function of its input: no filesystem or network
    access happens while rendering.

    Attributes:
        highlighter: Highlighter injected into every renderer.
    """

    def __init__(self, highlighter: Highlighter | None = None):
        """Initialize the transformer.

        Args:
            highlighter: Code highlighter; a default CodeHighlighter if None.
        """
        self.highlighter = highlighter if highlighter is not None else CodeHighlighter()

    def _create_markdown(self, renderer: Any) -> mistune.Markdown:
        return mistune.create_markdown(
            renderer=renderer, plugins=[*PLUGINS, directives]
        )

    def parse(self, raw_body: str) -> list[dict[str, Any]]:
        """Parse a body into a token tree with directives already rewritten.

        Args:
            raw_body: Markdown source.

        Returns:
            List of mistune tokens.
        """
        tokens = self._create_markdown(None)(raw_body)
        return rewrite_directives(tokens)

    def render(self, raw_body: str) -> str:
        """Render a post body to HTML.

        Args:
            raw_body: Markdown source, without front matter.

        Returns:
            HTML string.
        """
        markdown = self._create_markdown(PostRenderer(self.highlighter))
        return markdown(raw_body)
