from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, Sequence

from .content import SitePage


class PostCollection(Sequence[SitePage]):
    """Ordered list of posts as seen by templates (``site.posts``)."""

    def __init__(self, posts: Iterable[SitePage]):
        self._posts = list(posts)

    def __iter__(self) -> Iterator[SitePage]:
        return iter(self._posts)

    def __len__(self) -> int:
        return len(self._posts)

    def __getitem__(self, item):
        return self._posts[item]

    def in_category(self, name: str) -> PostCollection:
        return PostCollection(p for p in self._posts if name in p.categories)

    def drafts(self) -> PostCollection:
        return PostCollection(p for p in self._posts if p.draft)

    def published(self) -> PostCollection:
        return PostCollection(p for p in self._posts if not p.draft)

    def sorted(self, reverse: bool = True) -> PostCollection:
        """Sort posts by date, then source path; newest first by default."""
        return PostCollection(
            sorted(
                self._posts,
                key=lambda p: (p.date, p.source_path.as_posix()),
                reverse=reverse,
            )
        )

    def latest(self, count: int = 5) -> PostCollection:
        return PostCollection(self.sorted()[:count])

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"PostCollection({len(self._posts)} posts)"


class CategoryCollection(Mapping[str, PostCollection]):
    """Mapping of category name to its posts (``site.categories``)."""

    def __init__(self, posts: Iterable[SitePage]):
        mapping: dict[str, list[SitePage]] = {}
        for post in posts:
            for name in post.categories:
                mapping.setdefault(name, []).append(post)
        self._mapping = {k: PostCollection(v) for k, v in sorted(mapping.items())}

    def __getitem__(self, key: str) -> PostCollection:
        return self._mapping[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._mapping)

    def __len__(self) -> int:
        return len(self._mapping)

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"CategoryCollection({len(self._mapping)} categories)"
