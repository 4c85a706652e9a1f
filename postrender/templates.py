"""Template rendering engine for postrender.

This module uses Jinja2 to render post pages and index pages. Templates are
looked up first in an optional user directory and then in the templates
shipped with the package.

Key class:
- TemplateEngine: Handles template rendering and provides context to templates.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from pathlib import Path
from typing import Any

from jinja2 import (
    ChoiceLoader,
    Environment,
    FileSystemLoader,
    PackageLoader,
    StrictUndefined,
    TemplateNotFound,
    select_autoescape,
)
from markupsafe import Markup, escape

from .collections import IndexPage
from .content import Post
from .renderers import Heading, pygments_css

__all__ = ["TemplateEngine", "render_toc"]

DEFAULT_POST_TEMPLATE = "post.html.jinja"
INDEX_TEMPLATE = "index.html.jinja"


def render_toc(post: Post) -> Markup:
    """Render a table of contents as nested HTML from post headings.

    Args:
        post: Post containing the toc (sequence of Heading objects).

    Returns:
        Markup-safe HTML string of the nested TOC, or empty Markup if no headings.
    """
    return _render_toc_from_headings(post.toc)


def _render_toc_from_headings(headings: Iterable[Heading]) -> Markup:
    html_parts: list[str] = []
    level_stack: list[int] = []

    for heading in headings:
        level = heading.level

        # Close nested lists if going to a shallower level
        while level_stack and level_stack[-1] > level:
            level_stack.pop()
            html_parts.append("</li></ul>")

        if level_stack and level_stack[-1] == level:
            html_parts.append("</li>")
        elif not level_stack or level > level_stack[-1]:  # pragma: no branch
            html_parts.append("<ul>")
            level_stack.append(level)

        text = escape(Markup(heading.text).striptags())
        html_parts.append(f'<li><a href="#{escape(heading.id)}">{text}</a>')

    while level_stack:
        level_stack.pop()
        html_parts.append("</li></ul>")

    return Markup("".join(html_parts))


def url_for(name: str, depth: int = 0) -> str:
    """Return a link to an output file relative to a page ``depth`` levels deep.

    Args:
        name: Output path relative to the output root, e.g. ``index.html``.
        depth: Directory depth of the page containing the link.

    Returns:
        Relative URL.
    """
    if name.startswith(("http://", "https://", "//")):
        return name
    return "../" * depth + name.lstrip("/")


class TemplateEngine:
    """Template rendering engine using Jinja2.

    Attributes:
        config: Site configuration, exposed to templates as ``site``.
        env: Jinja2 environment.
    """

    def __init__(self, config: dict[str, Any], templates_dir: Path | None = None):
        """Initialize the template engine.

        Args:
            config: Site configuration.
            templates_dir: Optional directory whose templates override the
                packaged ones.
        """
        self.config = config
        loaders = []
        if templates_dir is not None:
            loaders.append(FileSystemLoader(str(templates_dir)))
        loaders.append(PackageLoader("postrender", "templates"))
        self.env = Environment(
            loader=ChoiceLoader(loaders),
            autoescape=select_autoescape(["html", "xml", "jinja"]),
            undefined=StrictUndefined,
            keep_trailing_newline=True,
        )
        self._install_globals()

    def _install_globals(self) -> None:
        """Install global variables, functions and filters in the environment."""
        self.env.globals["site"] = self.config
        self.env.globals["url_for"] = url_for
        self.env.globals["pygments_css"] = pygments_css
        self.env.globals["render_toc"] = render_toc
        self.env.filters["datefmt"] = self._format_date

    def _format_date(self, value: datetime, fmt: str | None = None) -> str:
        return value.strftime(fmt or self.config.get("date_format") or "%b %d, %Y")

    def render_post(self, post: Post) -> str:
        """Render a post page with its layout.

        Args:
            post: Post to render.

        Returns:
            Rendered HTML string.
        """
        template = self._resolve_layout_template(post.layout)
        return template.render(post=post, depth=0)

    def render_index(self, page: IndexPage) -> str:
        """Render one index page.

        Args:
            page: IndexPage listing the posts to show.

        Returns:
            Rendered HTML string.
        """
        template = self.env.get_template(INDEX_TEMPLATE)
        return template.render(page=page, posts=page.posts, depth=page.depth)

    def _resolve_layout_template(self, layout: str):
        """Resolve the template for a post layout, falling back to the post template."""
        candidates = [f"{layout}.html.jinja", f"{layout}.jinja", f"{layout}.html"]
        if f"{layout}.html.jinja" != DEFAULT_POST_TEMPLATE:
            candidates.append(DEFAULT_POST_TEMPLATE)
        for name in candidates:
            try:
                return self.env.get_template(name)
            except TemplateNotFound:
                continue
        return self.env.get_template(DEFAULT_POST_TEMPLATE)

    def render_template(self, name: str, **context: Any) -> str:
        """Render a named template with the given context."""
        return self.env.get_template(name).render(**context)
