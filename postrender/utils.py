"""Utility functions for postrender.

This module contains the small string and path helpers used throughout the
renderer: slug generation, date prefixes, excerpts and output directory
handling.

Key functions:
    slugify: Convert a title or filename stem to a URL-safe slug.
    split_date_prefix: Split a YYYY-MM-DD- prefix off a filename stem.
    extract_date_from_name: Extract date from filename prefix.
    first_paragraph: Extract a plain-text excerpt from Markdown.
    is_markdown: Check if a path is a Markdown file.
    ensure_clean_dir: Ensure a directory exists and is empty.
    join_root_url: Join a base URL with a path.
"""

from __future__ import annotations

import re
import shutil
from datetime import datetime
from pathlib import Path

MARKDOWN_SUFFIXES = (".md", ".markdown")

# Characters that carry meaning in technical titles ("C++", "C#") and would
# otherwise collapse into a bare separator.
_SLUG_REPLACEMENTS = {
    "+": "p",
    "#": "sharp",
    "&": "and",
}


def slugify(text: str) -> str:
    """Convert text to a lower-case, hyphen separated slug.

    Args:
        text: Title or filename stem.

    Returns:
        URL-safe slug. May be empty if the text has no usable characters.

    Examples:
        >>> slugify("C++ Simple Binary Serialization")
        'cpp-simple-binary-serialization'

        >>> slugify("Docker & CLion")
        'docker-and-clion'
    """
    cleaned = text.lower()
    for char, replacement in _SLUG_REPLACEMENTS.items():
        cleaned = cleaned.replace(char, replacement)
    cleaned = re.sub(r"[^a-z0-9]+", "-", cleaned)
    return cleaned.strip("-")


def split_date_prefix(name: str) -> tuple[datetime | None, str]:
    """Split a YYYY-MM-DD- prefix off a filename stem.

    Args:
        name: Filename stem (without extension).

    Returns:
        Tuple of (date or None, remainder). When there is no valid prefix the
        remainder is the name unchanged.

    Examples:
        >>> split_date_prefix("2020-03-22-cpp-serialization")
        (datetime(2020, 3, 22, 0, 0), 'cpp-serialization')
    """
    parts = name.split("-")
    if len(parts) >= 4 and all(p.isdigit() for p in parts[:3]):
        date = extract_date_from_name(name)
        if date is not None:
            return date, "-".join(parts[3:])
    return None, name


def extract_date_from_name(name: str) -> datetime | None:
    """Extract a date from a filename with YYYY-MM-DD prefix.

    Args:
        name: Filename stem (without extension).

    Returns:
        datetime object if a valid date prefix is found, None otherwise.
    """
    parts = name.split("-")
    if len(parts) >= 3 and all(p.isdigit() for p in parts[:3]):
        try:
            return datetime(int(parts[0]), int(parts[1]), int(parts[2]))
        except ValueError:
            return None
    return None


def first_paragraph(text: str, limit: int = 200) -> str:
    """Extract and clean the first prose paragraph from Markdown text.

    Headings, images, code fences and horizontal rules are skipped. HTML tags
    and Markdown emphasis markers are stripped and whitespace collapsed.

    Args:
        text: Markdown body.
        limit: Maximum character length of the result.

    Returns:
        Cleaned first paragraph, truncated to limit characters.
    """
    paragraphs = [p.strip() for p in text.split("\n\n") if p.strip()]
    for para in paragraphs:
        if para.startswith(("#", "![", "```", "~~~", "---", "<")):
            continue
        para = re.sub(r"<[^>]+>", "", para)
        para = re.sub(r"\[([^\]]*)\]\([^)]*\)", r"\1", para)
        para = re.sub(r"[*_`]+", "", para)
        collapsed = " ".join(para.split())
        if len(collapsed) > limit:
            return collapsed[:limit].rstrip() + "..."
        return collapsed
    return ""


def is_markdown(path: Path) -> bool:
    """Check if a path is a Markdown file.

    Args:
        path: Path to check.

    Returns:
        True if the file has a Markdown extension (case-insensitive).
    """
    return path.suffix.lower() in MARKDOWN_SUFFIXES


def is_ignored_path(path: Path) -> bool:
    """Check if any component of a relative path is hidden or internal.

    Args:
        path: Path relative to the input directory.

    Returns:
        True if any component starts with an underscore or a dot.
    """
    return any(part.startswith(("_", ".")) for part in path.parts)


def ensure_clean_dir(path: Path) -> None:
    """Ensure a directory exists and is empty.

    Args:
        path: Directory path to clean or create.
    """
    if path.exists():
        shutil.rmtree(path)
    path.mkdir(parents=True, exist_ok=True)


def join_root_url(root_url: str, path: str) -> str:
    """Safely join a root URL and a path, avoiding double slashes.

    Args:
        root_url: Base URL (e.g., https://example.com/blog).
        path: Path beginning with or without a leading slash.

    Returns:
        Combined URL with proper slash handling.

    Examples:
        >>> join_root_url('https://example.com/', 'index.html')
        'https://example.com/index.html'
    """
    if not root_url:
        return path
    base = root_url.rstrip("/")
    suffix = path if path.startswith("/") else f"/{path}"
    return f"{base}{suffix}"
