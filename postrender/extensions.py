"""Optional output extensions for postrender.

Extensions are extra build artifacts that the ``extensions`` list in the
configuration switches on by name. Each one is either enabled or not; they
never change how individual posts are rendered.

Classes:
    Extension: Abstract base class for output extensions.
    SitemapExtension: Writes sitemap.xml (needs ``url`` in the config).
    PaginationExtension: Splits the index into pages of ``paginate`` posts.
    ExtensionRegistry: Registry of known extensions by name.

Functions:
    create_default_registry: Create a registry with the built-in extensions.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Any

from .utils import join_root_url

if TYPE_CHECKING:
    from .collections import IndexPage, SiteIndex
    from .templates import TemplateEngine


def write_output(output_dir: Path, name: str, content: str) -> Path:
    """Write a file below the output directory, creating parents as needed.

    Args:
        output_dir: Build output directory.
        name: Path relative to the output directory.
        content: Text to write.

    Returns:
        Path of the written file.
    """
    target = output_dir / name
    target.parent.mkdir(parents=True, exist_ok=True)
    with open(target, "w", encoding="utf-8", newline="\n") as f:
        f.write(content)
    return target


class Extension(ABC):
    """Abstract base class for output extensions.

    Attributes:
        provides_index: True when the extension writes the index pages itself,
            replacing the single-page index.
    """

    provides_index: bool = False

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the name used in the ``extensions`` config list."""
        ...

    def validate(self, config: dict[str, Any]) -> str | None:
        """Check the configuration this extension depends on.

        Args:
            config: Site configuration.

        Returns:
            An error message, or None when the configuration is usable.
        """
        return None

    @abstractmethod
    def write(
        self,
        output_dir: Path,
        index: SiteIndex,
        config: dict[str, Any],
        engine: TemplateEngine,
    ) -> list[Path]:
        """Generate and write the extension's artifacts.

        Args:
            output_dir: Directory to write into.
            index: Index of successfully rendered posts.
            config: Site configuration.
            engine: Template engine.

        Returns:
            Paths of the files written.
        """
        ...


class SitemapExtension(Extension):
    """Generates sitemap.xml listing the site index and every post.

    Requires 'url' in the configuration to build absolute URLs.
    """

    @property
    def name(self) -> str:
        return "sitemap"

    def validate(self, config: dict[str, Any]) -> str | None:
        if not str(config.get("url") or "").strip():
            return "the sitemap extension requires 'url' to be set"
        return None

    def write(
        self,
        output_dir: Path,
        index: SiteIndex,
        config: dict[str, Any],
        engine: TemplateEngine,
    ) -> list[Path]:
        base_url = str(config["url"]).strip()
        entries = [{"loc": join_root_url(base_url, "/"), "lastmod": None}]
        for post in index:
            entries.append(
                {
                    "loc": join_root_url(base_url, post.output_name),
                    "lastmod": post.date.strftime("%Y-%m-%d"),
                }
            )
        content = engine.render_template("sitemap.xml.jinja", entries=entries)
        return [write_output(output_dir, "sitemap.xml", content)]


class PaginationExtension(Extension):
    """Splits the index into pages of ``paginate`` posts each.

    Page 1 stays at index.html; later pages go to page2/index.html,
    page3/index.html and so on.
    """

    provides_index = True

    @property
    def name(self) -> str:
        return "pagination"

    def pages(self, index: SiteIndex, config: dict[str, Any]) -> list[IndexPage]:
        return index.paginate(int(config["paginate"]))

    def write(
        self,
        output_dir: Path,
        index: SiteIndex,
        config: dict[str, Any],
        engine: TemplateEngine,
    ) -> list[Path]:
        written = []
        for page in self.pages(index, config):
            written.append(
                write_output(output_dir, page.output_name, engine.render_index(page))
            )
        return written


class ExtensionRegistry:
    """Registry of output extensions, looked up by name."""

    def __init__(self) -> None:
        self._extensions: dict[str, Extension] = {}

    def register(self, extension: Extension) -> None:
        """Register an extension under its name.

        Args:
            extension: Extension to register.
        """
        self._extensions[extension.name] = extension

    @property
    def names(self) -> list[str]:
        return sorted(self._extensions)

    def get(self, name: str) -> Extension | None:
        return self._extensions.get(name)

    def enabled(self, names: list[str]) -> list[Extension]:
        """Return the registered extensions for the given names, in order.

        Args:
            names: Extension names from the configuration.

        Returns:
            List of extensions.

        Raises:
            KeyError: If a name is not registered.
        """
        return [self._extensions[name] for name in names]


def create_default_registry() -> ExtensionRegistry:
    """Create a registry with the built-in extensions.

    Returns:
        ExtensionRegistry with sitemap and pagination registered.
    """
    registry = ExtensionRegistry()
    registry.register(SitemapExtension())
    registry.register(PaginationExtension())
    return registry
