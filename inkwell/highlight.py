"""Syntax highlighting for fenced code blocks.

The highlighter is a plain object handed to the Markdown transformer, so a
build can choose its style and tests can swap it for a fake.
"""

from __future__ import annotations

from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexer import Lexer
from pygments.lexers import get_lexer_by_name, guess_lexer
from pygments.util import ClassNotFound


class CodeHighlighter:
    """Highlights code with Pygments.

    Attributes:
        style: Pygments style name used for the stylesheet.
        cssclass: CSS class of the wrapping ``div``.
        guess: Whether to guess the language of untagged code.
        formatter: The Pygments HTML formatter.
    """

    def __init__(self, style: str = "default", cssclass: str = "highlight", guess: bool = False):
        """Initialize the highlighter.

        Args:
            style: Pygments style name.
            cssclass: CSS class for highlighted blocks.
            guess: Guess the language when a fence has no tag.
        """
        self.style = style
        self.cssclass = cssclass
        self.guess = guess
        self.formatter = HtmlFormatter(style=style, cssclass=cssclass, nowrap=False)

    def lexer_for(self, code: str, language: str | None) -> Lexer | None:
        """Find a lexer for a code block.

        Args:
            code: The code content.
            language: Language tag from the fence, if any.

        Returns:
            A lexer, or None when the language is unknown.
        """
        try:
            if language:
                return get_lexer_by_name(language, stripall=True)
            if self.guess:
                return guess_lexer(code, stripall=True)
        except ClassNotFound:
            return None
        return None

    def highlight(self, code: str, language: str | None) -> str | None:
        """Highlight a code block.

        Args:
            code: The code content.
            language: Language tag from the fence, if any.

        Returns:
            Highlighted HTML, or None if no lexer applies.
        """
        lexer = self.lexer_for(code, language)
        if lexer is None:
            return None
        return highlight(code, lexer, self.formatter)

    def stylesheet(self) -> str:
        """Return the CSS rules for highlighted blocks."""
        return self.formatter.get_style_defs(f".{self.cssclass}")
