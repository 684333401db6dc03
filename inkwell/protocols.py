"""Protocol definitions for Inkwell.

These protocols describe the seams where components are passed in rather
than created internally: the code highlighter used by the Markdown
transformer and the source of posts used by the build.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .content import PostSource, PostSummary


@runtime_checkable
class Highlighter(Protocol):
    """Protocol for highlighting fenced code blocks."""

    @abstractmethod
    def highlight(self, code: str, language: str | None) -> str | None:
        """Highlight a code block.

        Args:
            code: The code content.
            language: Language tag from the fence, if any.

        Returns:
            HTML for the block, or None to fall back to plain ``<pre><code>``.
        """
        ...


@runtime_checkable
class PostSourceLoader(Protocol):
    """Protocol for reading post sources.

    The build only depends on this interface, so posts can come from
    somewhere other than a directory in tests.
    """

    @abstractmethod
    def list_post_ids(self) -> list[str]:
        """Return the id of every post."""
        ...

    @abstractmethod
    def load_summaries(self) -> list[PostSummary]:
        """Return post summaries, newest first."""
        ...

    @abstractmethod
    def load_source(self, post_id: str) -> PostSource:
        """Return one post source.

        Raises:
            NotFoundError: If no post has that id.
            ParseError: If the front matter is malformed.
        """
        ...
