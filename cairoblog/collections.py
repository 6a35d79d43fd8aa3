from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, Sequence

from .posts import Post


class PostCollection(Sequence[Post]):
    """Ordered, read-only list of Posts for templates and code."""

    def __init__(self, posts: Iterable[Post]):
        self._posts = tuple(posts)

    def __iter__(self) -> Iterator[Post]:
        return iter(self._posts)

    def __len__(self) -> int:
        return len(self._posts)

    def __getitem__(self, item):
        if isinstance(item, slice):
            return PostCollection(self._posts[item])
        return self._posts[item]

    def with_tag(self, tag: str) -> PostCollection:
        return PostCollection(p for p in self._posts if tag in p.tags)

    def sorted(self, reverse: bool = True) -> PostCollection:
        """Sort posts by date, newest first by default.

        Posts sharing a date are always ordered by filename ascending so the
        result does not depend on the order the posts were loaded in.

        Args:
            reverse: If True (default), newest first. If False, oldest first.

        Returns:
            A new PostCollection with sorted posts.
        """
        by_name = sorted(self._posts, key=lambda p: p.filename)
        return PostCollection(sorted(by_name, key=lambda p: p.date, reverse=reverse))

    def latest(self, count: int = 5) -> PostCollection:
        return self.sorted()[:count]

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"PostCollection({len(self._posts)} posts)"


class TagCollection(Mapping[str, PostCollection]):
    """Mapping of tag name to PostCollection."""

    def __init__(self, mapping: Mapping[str, Iterable[Post]]):
        self._mapping = {k: PostCollection(v) for k, v in mapping.items()}

    def __getitem__(self, key: str) -> PostCollection:
        return self._mapping[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._mapping)

    def __len__(self) -> int:
        return len(self._mapping)

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"TagCollection({len(self._mapping)} tags)"


def build_tags_index(posts: Iterable[Post]) -> TagCollection:
    """Build an index mapping tags to the posts carrying them.

    Tags appear in the order they are first seen in ``posts``.
    """
    tags: dict[str, list[Post]] = {}
    for post in posts:
        for tag in dict.fromkeys(post.tags):
            tags.setdefault(tag, []).append(post)
    return TagCollection(tags)
