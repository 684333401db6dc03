from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, Sequence

from .content import PostSummary, sort_summaries


class PostIndex(Sequence[PostSummary]):
    """Newest-first list of post summaries for templates and feeds."""

    def __init__(self, summaries: Iterable[PostSummary], presorted: bool = False):
        items = list(summaries)
        self._posts = items if presorted else sort_summaries(items)

    def __iter__(self) -> Iterator[PostSummary]:
        return iter(self._posts)

    def __len__(self) -> int:
        return len(self._posts)

    def __getitem__(self, item):
        return self._posts[item]

    def latest(self, count: int = 5) -> PostIndex:
        return PostIndex(self._posts[:count], presorted=True)

    def with_tag(self, tag: str) -> PostIndex:
        return PostIndex((p for p in self._posts if tag in p.tag_list), presorted=True)

    def tags(self) -> TagIndex:
        """Group posts by tag, keeping first-seen tag order."""
        mapping: dict[str, list[PostSummary]] = {}
        for post in self._posts:
            for tag in post.tag_list:
                mapping.setdefault(tag, []).append(post)
        return TagIndex(mapping)

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"PostIndex({len(self._posts)} posts)"


class TagIndex(Mapping[str, PostIndex]):
    """Mapping of tag name to the posts carrying it."""

    def __init__(self, mapping: Mapping[str, Iterable[PostSummary]]):
        self._mapping = {k: PostIndex(v, presorted=True) for k, v in mapping.items()}

    def __getitem__(self, key: str) -> PostIndex:
        return self._mapping[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._mapping)

    def __len__(self) -> int:
        return len(self._mapping)

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"TagIndex({len(self._mapping)} tags)"
