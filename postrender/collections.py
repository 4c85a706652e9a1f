from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass

from .content import Post, PostSummary


def index_page_name(number: int) -> str:
    """Output path of an index page; page 1 is the site root index."""
    if number <= 1:
        return "index.html"
    return f"page{number}/index.html"


@dataclass(frozen=True)
class IndexPage:
    """One page of the site index.

    Attributes:
        number: 1-based page number.
        total_pages: Number of index pages in the build.
        posts: Summaries listed on this page, newest first.
    """

    number: int
    total_pages: int
    posts: tuple[PostSummary, ...]

    @property
    def output_name(self) -> str:
        return index_page_name(self.number)

    @property
    def depth(self) -> int:
        """Directory depth of the page below the output root."""
        return self.output_name.count("/")

    @property
    def previous_name(self) -> str | None:
        return index_page_name(self.number - 1) if self.number > 1 else None

    @property
    def next_name(self) -> str | None:
        return index_page_name(self.number + 1) if self.number < self.total_pages else None


class SiteIndex(Sequence[PostSummary]):
    """Post summaries ordered newest first.

    Posts with the same date are ordered by slug so the listing is stable
    across runs.
    """

    def __init__(self, posts: Iterable[Post | PostSummary]):
        summaries = [p.summary() if isinstance(p, Post) else p for p in posts]
        by_slug = sorted(summaries, key=lambda s: s.slug)
        self._summaries = sorted(by_slug, key=lambda s: s.sort_key[0], reverse=True)

    def __iter__(self) -> Iterator[PostSummary]:
        return iter(self._summaries)

    def __len__(self) -> int:
        return len(self._summaries)

    def __getitem__(self, item):
        return self._summaries[item]

    def single_page(self) -> IndexPage:
        """Return the whole index as one page."""
        return IndexPage(number=1, total_pages=1, posts=tuple(self._summaries))

    def paginate(self, per_page: int) -> list[IndexPage]:
        """Split the index into pages of at most ``per_page`` posts.

        An empty index still yields one (empty) page.

        Args:
            per_page: Maximum posts per page; must be positive.

        Returns:
            List of IndexPage objects, first page first.
        """
        if per_page < 1:
            raise ValueError("per_page must be a positive integer")
        chunks = [
            tuple(self._summaries[start : start + per_page])
            for start in range(0, len(self._summaries), per_page)
        ] or [()]
        total = len(chunks)
        return [
            IndexPage(number=number, total_pages=total, posts=chunk)
            for number, chunk in enumerate(chunks, start=1)
        ]

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"SiteIndex({len(self._summaries)} posts)"
