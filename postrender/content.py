"""Content processing for postrender.

This module discovers post source files, turns each one into an immutable
Post record, and collects per-file failures without stopping the run.

Key classes:
- Post: Dataclass representing one rendered post.
- PostSummary: The subset of a post listed on index pages.
- PostError: Per-file failure with source context.
- PostBuilder: Builds a Post from a single source file.
- PostLoader: Discovers files, builds posts, enforces slug uniqueness.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .extractors import CompositeMetadataExtractor, MetadataError, default_metadata_extractor
from .protocols import BodyRenderer
from .renderers import Heading, MarkdownRenderer
from .utils import is_ignored_path, is_markdown, slugify, split_date_prefix


class PostError(Exception):
    """A single post could not be rendered.

    Attributes:
        source_path: Path to the source file that caused the error.
        message: Human-readable error message.
        original_error: The original exception that was caught.
    """

    def __init__(
        self,
        source_path: Path,
        message: str,
        original_error: Exception | None = None,
    ):
        self.source_path = source_path
        self.message = message
        self.original_error = original_error
        super().__init__(f"{source_path}: {message}")


@dataclass(frozen=True)
class PostSummary:
    """A post as listed on an index page."""

    title: str
    date: datetime
    slug: str
    output_name: str
    excerpt: str = ""
    categories: tuple[str, ...] = ()

    @property
    def sort_key(self) -> tuple[datetime, str]:
        return (_utc(self.date), self.slug)


@dataclass(frozen=True)
class Post:
    """Represents a post with its metadata and rendered content.

    Attributes:
        title: Human-readable title of the post.
        date: Publication date.
        categories: Categories (and tags), unique, in header order.
        body: Raw Markdown body from the source file.
        content: Rendered HTML body.
        slug: URL-safe identifier used in the output filename.
        excerpt: Plain-text summary shown on the index.
        layout: Template name used for the post page.
        published: False for posts marked ``published: false``.
        source_path: Path to the source file.
        metadata: The full parsed metadata header.
        toc: Headings collected while rendering the body.
    """

    title: str
    date: datetime
    categories: tuple[str, ...]
    body: str
    content: str
    slug: str
    excerpt: str
    layout: str
    published: bool
    source_path: Path
    metadata: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)
    toc: tuple[Heading, ...] = ()

    @property
    def output_name(self) -> str:
        """Output filename following the YYYY-MM-DD-slug.html convention."""
        return f"{self.date:%Y-%m-%d}-{self.slug}.html"

    @property
    def sort_key(self) -> tuple[datetime, str]:
        return (_utc(self.date), self.slug)

    def summary(self) -> PostSummary:
        return PostSummary(
            title=self.title,
            date=self.date,
            slug=self.slug,
            output_name=self.output_name,
            excerpt=self.excerpt,
            categories=self.categories,
        )


def _utc(value: datetime) -> datetime:
    # Naive dates are read as UTC so they compare with offset-aware ones.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def derive_slug(explicit: str | None, path: Path, title: str) -> str:
    """Derive a post slug.

    Uses, in order: an explicit ``slug`` header, the filename stem after a
    ``YYYY-MM-DD-`` prefix, and finally the title. A prefixed filename stem
    wins over the title, following the Jekyll naming convention.

    Args:
        explicit: Slug from the metadata header, if any.
        path: Source file path.
        title: Post title.

    Returns:
        Slug, possibly empty when nothing usable remains.
    """
    if explicit is not None:
        return slugify(explicit)
    date, rest = split_date_prefix(path.stem)
    if date is not None:
        return slugify(rest)
    return slugify(title)


class PostBuilder:
    """Builds Post objects from source files.

    Attributes:
        renderer: Converter for the Markdown body.
        metadata_extractor: Composite metadata extractor.
    """

    def __init__(
        self,
        renderer: BodyRenderer | None = None,
        metadata_extractor: CompositeMetadataExtractor | None = None,
    ):
        self.renderer = renderer or MarkdownRenderer()
        self.metadata_extractor = metadata_extractor or default_metadata_extractor

    def build(self, path: Path) -> Post:
        """Build a Post from a source file.

        Args:
            path: Path to the source file.

        Returns:
            Post object.

        Raises:
            PostError: If the file cannot be read, its header is invalid, or
                its body cannot be converted.
        """
        try:
            raw = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise PostError(path, f"cannot read file: {exc}", exc) from exc

        try:
            metadata = self.metadata_extractor.extract(raw, path)
        except MetadataError as exc:
            raise PostError(path, str(exc), exc) from exc

        try:
            content, toc = self.renderer.render(metadata["body"])
        except Exception as exc:
            raise PostError(
                path, f"Markdown conversion failed: {type(exc).__name__}: {exc}", exc
            ) from exc

        slug = derive_slug(metadata.get("slug"), path, metadata["title"])
        if not slug:
            raise PostError(path, "could not derive a slug from the filename or title")

        return Post(
            title=metadata["title"],
            date=metadata["date"],
            categories=tuple(metadata["categories"]),
            body=metadata["body"],
            content=content,
            slug=slug,
            excerpt=metadata["excerpt"],
            layout=metadata["layout"],
            published=metadata["published"],
            source_path=path,
            metadata=metadata["metadata"],
            toc=tuple(toc),
        )


@dataclass
class LoadResult:
    """Outcome of loading an input directory.

    Attributes:
        posts: Accepted posts, in source file order.
        errors: Per-file failures.
        skipped: Unpublished posts that were left out.
    """

    posts: list[Post] = field(default_factory=list)
    errors: list[PostError] = field(default_factory=list)
    skipped: list[Path] = field(default_factory=list)


class PostLoader:
    """Discovers post files and builds Post objects from them.

    Attributes:
        input_dir: Directory containing post sources.
    """

    def __init__(self, input_dir: Path, builder: PostBuilder | None = None):
        self.input_dir = input_dir
        self._builder = builder or PostBuilder()

    def iter_files(self) -> list[Path]:
        """List Markdown sources in a stable order.

        Files and directories whose names start with ``_`` or ``.`` are
        ignored.

        Returns:
            List of paths sorted by their path relative to the input directory.
        """
        files: list[Path] = []
        for path in self.input_dir.rglob("*"):
            if not path.is_file() or not is_markdown(path):
                continue
            if is_ignored_path(path.relative_to(self.input_dir)):
                continue
            files.append(path)
        return sorted(files, key=lambda p: p.relative_to(self.input_dir).as_posix())

    def load(self, include_unpublished: bool = False) -> LoadResult:
        """Build every post, collecting failures instead of raising.

        The first post to claim a slug keeps it; later posts with the same
        slug are reported as collisions.

        Args:
            include_unpublished: Whether to keep posts marked
                ``published: false``.

        Returns:
            LoadResult with accepted posts, errors and skipped files.
        """
        result = LoadResult()
        owners: dict[str, Post] = {}
        for path in self.iter_files():
            try:
                post = self._builder.build(path)
            except PostError as exc:
                result.errors.append(exc)
                continue
            if not post.published and not include_unpublished:
                result.skipped.append(path)
                continue
            first = owners.get(post.slug)
            if first is not None:
                result.errors.append(
                    PostError(
                        path,
                        f"slug collision: '{post.slug}' is already used by "
                        f"{first.source_path.relative_to(self.input_dir).as_posix()}",
                    )
                )
                continue
            owners[post.slug] = post
            result.posts.append(post)
        return result
