"""Metadata extractors for postrender.

This module splits a post source file into its metadata header and Markdown
body and turns the header into typed fields. Each extractor handles a single
field, and CompositeMetadataExtractor runs them in order.

Two header forms are accepted:

- Jekyll front matter: a ``---`` line, YAML, and a closing ``---`` line.
- A bare header: ``key: value`` lines at the top of the file, ended by the
  first blank line.

Key classes:
- FrontmatterExtractor: Splits header from body and parses the YAML.
- TitleExtractor: Requires a non-empty title.
- DateExtractor: Reads the date from the header or the filename prefix.
- CategoryExtractor: Normalizes categories and tags.
- ExcerptExtractor: Header excerpt or first paragraph of the body.
- OptionsExtractor: Layout, slug and published flag.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from pathlib import Path
from typing import Any

import yaml

from .utils import extract_date_from_name, first_paragraph

FRONTMATTER_RE = re.compile(
    r"\A---[ \t]*\r?\n(.*?)^---[ \t]*(?:\r?\n|\Z)", re.DOTALL | re.MULTILINE
)
HEADER_LINE_RE = re.compile(r"^[A-Za-z_][\w-]*[ \t]*:")

DATE_FORMATS = (
    "%Y-%m-%d %H:%M:%S %z",
    "%Y-%m-%d %H:%M %z",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d",
)


class MetadataError(ValueError):
    """Raised when a post's metadata header is missing or malformed."""


def split_header(text: str) -> tuple[str, str]:
    """Split raw file content into header text and body.

    Args:
        text: Raw file content.

    Returns:
        Tuple of (header text, body).

    Raises:
        MetadataError: If the file does not start with a header.
    """
    text = text.lstrip("\ufeff")
    match = FRONTMATTER_RE.match(text)
    if match:
        return match.group(1), text[match.end() :]

    lines = text.splitlines(keepends=True)
    if not lines or not HEADER_LINE_RE.match(lines[0]):
        raise MetadataError("no metadata header found")
    header: list[str] = []
    for index, line in enumerate(lines):
        if not line.strip():
            return "".join(header), "".join(lines[index + 1 :])
        header.append(line)
    return "".join(header), ""


def parse_header(header_text: str) -> dict[str, Any]:
    """Parse header text as a YAML mapping.

    Args:
        header_text: Text between the header delimiters.

    Returns:
        Parsed header mapping (empty for an empty header).

    Raises:
        MetadataError: If the YAML is invalid or not a mapping.
    """
    try:
        data = yaml.safe_load(header_text)
    except yaml.YAMLError as exc:
        mark = getattr(exc, "problem_mark", None)
        where = f" on line {mark.line + 1}" if mark is not None else ""
        raise MetadataError(f"invalid metadata header{where}") from exc
    except ValueError as exc:
        # YAML timestamps such as 2020-02-30 match the resolver but fail to construct
        raise MetadataError(f"invalid metadata header: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise MetadataError("metadata header must be a set of key: value pairs")
    return data


def parse_date(value: Any) -> datetime:
    """Coerce a header date value to a datetime.

    Args:
        value: A date, datetime, or date string.

    Returns:
        datetime; plain dates become midnight.

    Raises:
        MetadataError: If the value cannot be read as a date.
    """
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        text = value.strip()
        for fmt in DATE_FORMATS:
            try:
                return datetime.strptime(text, fmt)
            except ValueError:
                continue
        try:
            return datetime.fromisoformat(text)
        except ValueError:
            pass
    raise MetadataError(f"invalid date: {value!r}")


def parse_categories(value: Any) -> list[str]:
    """Normalize a categories value to a list of unique strings.

    Strings are split on commas when one is present, otherwise on whitespace.

    Args:
        value: None, a string, or a list of values.

    Returns:
        List of categories in their original order without duplicates.
    """
    if value is None:
        return []
    if isinstance(value, str):
        raw = value.split(",") if "," in value else value.split()
    elif isinstance(value, (list, tuple, set)):
        raw = [str(item) for item in value if item is not None]
    else:
        raw = [str(value)]
    seen: list[str] = []
    for item in raw:
        cleaned = item.strip()
        if cleaned and cleaned not in seen:
            seen.append(cleaned)
    return seen


class FrontmatterExtractor:
    """Splits the header from the body and parses it."""

    def extract(self, metadata: dict[str, Any], path: Path) -> dict[str, Any]:
        header_text, body = split_header(metadata["raw"])
        return {"metadata": parse_header(header_text), "body": body}


class TitleExtractor:
    """Reads the required title field."""

    def extract(self, metadata: dict[str, Any], path: Path) -> dict[str, Any]:
        title = metadata["metadata"].get("title")
        if isinstance(title, (dict, list)):
            raise MetadataError("field 'title' must be plain text")
        if title is None or not str(title).strip():
            raise MetadataError("missing required field 'title'")
        return {"title": str(title).strip()}


class DateExtractor:
    """Reads the date from the header, falling back to the filename prefix.

    Jekyll names posts ``YYYY-MM-DD-title.md``; such a prefix is enough when
    the header carries no date.
    """

    def extract(self, metadata: dict[str, Any], path: Path) -> dict[str, Any]:
        value = metadata["metadata"].get("date")
        if value is not None:
            return {"date": parse_date(value)}
        from_name = extract_date_from_name(path.stem)
        if from_name is None:
            raise MetadataError("missing required field 'date'")
        return {"date": from_name}


class CategoryExtractor:
    """Collects categories (or a single category) followed by tags."""

    def extract(self, metadata: dict[str, Any], path: Path) -> dict[str, Any]:
        header = metadata["metadata"]
        categories = parse_categories(header.get("categories", header.get("category")))
        for tag in parse_categories(header.get("tags")):
            if tag not in categories:
                categories.append(tag)
        return {"categories": categories}


class ExcerptExtractor:
    """Uses the header excerpt or the first paragraph of the body."""

    def extract(self, metadata: dict[str, Any], path: Path) -> dict[str, Any]:
        excerpt = metadata["metadata"].get("excerpt")
        if excerpt:
            return {"excerpt": " ".join(str(excerpt).split())}
        return {"excerpt": first_paragraph(metadata["body"])}


class OptionsExtractor:
    """Reads optional layout, slug and published fields."""

    def extract(self, metadata: dict[str, Any], path: Path) -> dict[str, Any]:
        header = metadata["metadata"]
        slug = header.get("slug")
        return {
            "layout": str(header.get("layout") or "post"),
            "slug": str(slug) if slug is not None else None,
            "published": header.get("published", True) is not False,
        }


class CompositeMetadataExtractor:
    """Combines multiple metadata extractors.

    Extractors run in order over a shared mapping, so later extractors can
    read what earlier ones produced (the body, the parsed header).
    """

    def __init__(self, extractors: list | None = None):
        if extractors is None:
            self._extractors = [
                FrontmatterExtractor(),
                TitleExtractor(),
                DateExtractor(),
                CategoryExtractor(),
                ExcerptExtractor(),
                OptionsExtractor(),
            ]
        else:
            self._extractors = list(extractors)

    def extract(self, text: str, path: Path) -> dict[str, Any]:
        """Extract all metadata from a post source.

        Args:
            text: Raw file content.
            path: Path to the source file.

        Returns:
            Dictionary with header fields plus ``metadata`` and ``body``.

        Raises:
            MetadataError: If the header is missing, malformed or incomplete.
        """
        result: dict[str, Any] = {"raw": text}
        for extractor in self._extractors:
            result.update(extractor.extract(result, path))
        result.pop("raw")
        return result


# Default composite extractor instance
default_metadata_extractor = CompositeMetadataExtractor()
