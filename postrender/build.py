"""Site building functionality for postrender.

This module contains the core logic for building a blog from a directory of
posts. It loads configuration, processes posts, renders templates, and writes
output files.

Key functions:
- build_site: Main function to build the entire site.
- load_config: Loads site configuration from a YAML file.
- normalize_config: Applies defaults to a configuration mapping and validates it.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from jinja2 import TemplateSyntaxError

from .collections import SiteIndex
from .content import Post, PostError, PostLoader
from .extensions import ExtensionRegistry, create_default_registry, write_output
from .templates import TemplateEngine
from .utils import ensure_clean_dir

CONFIG_FILENAME = "postrender.yaml"

DEFAULT_CONFIG: dict[str, Any] = {
    "title": "Blog",
    "description": "",
    "url": "",
    "extensions": [],
    "paginate": 10,
    "date_format": "%b %d, %Y",
    "templates_dir": None,
}


class BuildError(Exception):
    """Fatal error that stops the whole build.

    Attributes:
        message: Human-readable error message.
        path: Path involved in the failure, if any.
        original_error: The original exception that was caught.
    """

    def __init__(
        self,
        message: str,
        path: Path | None = None,
        original_error: Exception | None = None,
    ):
        self.message = message
        self.path = path
        self.original_error = original_error
        super().__init__(f"{path}: {message}" if path is not None else message)


class ConfigError(BuildError):
    """The site configuration is missing, unreadable or invalid."""


@dataclass
class BuildResult:
    """Result of a site build operation.

    Attributes:
        posts: Posts that were rendered and written.
        errors: Per-file errors for posts that were skipped.
        skipped: Unpublished posts left out of the build.
        output_dir: Directory where the site was built.
        written: Every file written, in write order.
    """

    posts: list[Post]
    errors: list[PostError]
    skipped: list[Path]
    output_dir: Path
    written: list[Path] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def load_config(
    config_path: Path | None = None, project_root: Path | None = None
) -> dict[str, Any]:
    """Load site configuration from a YAML file.

    Args:
        config_path: Explicit configuration file; it must exist.
        project_root: Directory searched for postrender.yaml when no explicit
            file is given. Defaults to the current directory.

    Returns:
        Dictionary containing configuration values, with defaults applied.

    Raises:
        ConfigError: If the file is missing (when explicit) or invalid.
    """
    if config_path is None:
        candidate = (project_root or Path.cwd()) / CONFIG_FILENAME
        if not candidate.exists():
            return normalize_config({})
        config_path = candidate
    elif not config_path.is_file():
        raise ConfigError("configuration file not found", config_path)

    try:
        with open(config_path, encoding="utf-8") as f:
            loaded = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"invalid YAML: {exc}", config_path, exc) from exc
    except OSError as exc:
        raise ConfigError(f"cannot read configuration: {exc}", config_path, exc) from exc
    if not isinstance(loaded, dict):
        raise ConfigError("configuration must be a mapping of keys to values", config_path)

    templates_dir = loaded.get("templates_dir")
    if templates_dir:
        loaded["templates_dir"] = str((config_path.parent / str(templates_dir)).resolve())
    return normalize_config(loaded, source=config_path)


def normalize_config(
    raw: dict[str, Any],
    registry: ExtensionRegistry | None = None,
    source: Path | None = None,
) -> dict[str, Any]:
    """Apply defaults to a configuration mapping and validate it.

    Args:
        raw: Configuration values, possibly partial.
        registry: Extension registry used to check extension names.
        source: Configuration file, used in error messages.

    Returns:
        A new, complete configuration dictionary.

    Raises:
        ConfigError: If a value is invalid.
    """
    registry = registry or create_default_registry()
    config = DEFAULT_CONFIG.copy()
    config.update(raw)

    extensions = config.get("extensions") or []
    if isinstance(extensions, str):
        extensions = [extensions]
    if not isinstance(extensions, list):
        raise ConfigError("'extensions' must be a list of names", source)
    names: list[str] = []
    for name in extensions:
        name = str(name).strip()
        if name and name not in names:
            names.append(name)
    unknown = [name for name in names if registry.get(name) is None]
    if unknown:
        raise ConfigError(
            f"unknown extension(s): {', '.join(unknown)} "
            f"(available: {', '.join(registry.names)})",
            source,
        )
    config["extensions"] = names

    paginate = config.get("paginate")
    if isinstance(paginate, bool) or not isinstance(paginate, int) or paginate < 1:
        raise ConfigError("'paginate' must be a positive integer", source)

    for name in names:
        problem = registry.get(name).validate(config)
        if problem:
            raise ConfigError(problem, source)
    return config


def build_site(
    input_dir: Path,
    output_dir: Path,
    config: dict[str, Any] | None = None,
    include_unpublished: bool = False,
    clean_output: bool = False,
    registry: ExtensionRegistry | None = None,
) -> BuildResult:
    """Build the blog from a directory of posts.

    Args:
        input_dir: Directory containing post sources.
        output_dir: Directory to write the site into.
        config: Site configuration; defaults are applied to missing keys.
        include_unpublished: Whether to render posts marked ``published: false``.
        clean_output: Whether to wipe the output directory before building.
        registry: Extension registry; the built-in one by default.

    Returns:
        BuildResult with rendered posts, per-file errors and written files.

    Raises:
        BuildError: If the input directory is missing or the output directory
            cannot be written.
        ConfigError: If the configuration is invalid.
    """
    input_dir = Path(input_dir)
    output_dir = Path(output_dir)
    if not input_dir.is_dir():
        raise BuildError("input directory not found", input_dir)

    registry = registry or create_default_registry()
    config = normalize_config(config or {}, registry)
    extensions = registry.enabled(config["extensions"])
    templates_dir = config.get("templates_dir")
    engine = TemplateEngine(config, Path(templates_dir) if templates_dir else None)

    _prepare_output_dir(input_dir, output_dir, clean_output)

    loaded = PostLoader(input_dir).load(include_unpublished=include_unpublished)
    errors = list(loaded.errors)
    rendered: list[Post] = []
    written: list[Path] = []
    for post in loaded.posts:
        try:
            html = engine.render_post(post)
        except Exception as exc:
            errors.append(PostError(post.source_path, _format_error_message(exc), exc))
            continue
        written.append(_write(output_dir, post.output_name, html))
        rendered.append(post)

    index = SiteIndex(rendered)
    try:
        if not any(ext.provides_index for ext in extensions):
            written.append(
                _write(output_dir, "index.html", engine.render_index(index.single_page()))
            )
        for ext in extensions:
            written.extend(ext.write(output_dir, index, config, engine))
    except OSError as exc:
        raise BuildError(f"cannot write output: {exc}", output_dir, exc) from exc
    except BuildError:
        raise
    except Exception as exc:
        raise BuildError(_format_error_message(exc), output_dir, exc) from exc

    errors.sort(key=lambda e: str(e.source_path))
    return BuildResult(
        posts=rendered,
        errors=errors,
        skipped=loaded.skipped,
        output_dir=output_dir,
        written=written,
    )


def _prepare_output_dir(input_dir: Path, output_dir: Path, clean_output: bool) -> None:
    """Create (and optionally empty) the output directory.

    Raises:
        BuildError: If the directory cannot be created or written, or if
            cleaning it would delete the input directory.
    """
    if clean_output:
        resolved_in = input_dir.resolve()
        resolved_out = output_dir.resolve()
        if resolved_in == resolved_out or resolved_out in resolved_in.parents:
            raise BuildError(
                "refusing to clean an output directory that contains the input",
                output_dir,
            )
    try:
        if clean_output:
            ensure_clean_dir(output_dir)
        else:
            output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise BuildError(f"cannot create output directory: {exc}", output_dir, exc) from exc
    if not output_dir.is_dir() or not os.access(output_dir, os.W_OK):
        raise BuildError("output directory is not writable", output_dir)


def _write(output_dir: Path, name: str, content: str) -> Path:
    try:
        return write_output(output_dir, name, content)
    except OSError as exc:
        raise BuildError(f"cannot write {name}: {exc}", output_dir, exc) from exc


def _format_error_message(exc: Exception) -> str:
    """Format an exception into a user-friendly error message.

    Args:
        exc: The exception to format.

    Returns:
        A human-readable error message.
    """
    if isinstance(exc, TemplateSyntaxError):
        return f"Template syntax error on line {exc.lineno}: {exc.message}"

    error_type = type(exc).__name__
    error_msg = str(exc)
    if error_type == "UndefinedError":
        return f"Undefined variable: {error_msg}"
    if error_type == "TemplateNotFound":
        return f"Template not found: {error_msg}"
    return f"{error_type}: {error_msg}"
