"""Protocol definitions for postrender.

The body renderer is the pluggable seam of the pipeline: ``PostBuilder``
accepts any object with the same shape as the Markdown converter, so tests
and callers can substitute their own. Output extensions are subclasses of
``postrender.extensions.Extension`` instead.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .renderers import Heading


@runtime_checkable
class BodyRenderer(Protocol):
    """Protocol for converting a post body to HTML."""

    @abstractmethod
    def render(self, content: str) -> tuple[str, list[Heading]]:
        """Render body text to HTML.

        Args:
            content: Source body text.

        Returns:
            Tuple of (rendered HTML, list of headings for TOC).
        """
        ...
