"""Command-line interface for postrender.

This module defines the CLI commands using Click framework.

Commands:
- build: Render a directory of posts into a static site.
"""

from __future__ import annotations

from pathlib import Path

import click

from . import __version__


@click.group()
@click.version_option(version=__version__, prog_name="postrender")
def cli():
    """Render a directory of Markdown posts into a static blog."""


@cli.command()
@click.argument("input_dir", type=click.Path(path_type=Path))
@click.argument("output_dir", type=click.Path(path_type=Path))
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path),
    default=None,
    help="Configuration file (defaults to ./postrender.yaml if present)",
)
@click.option("--unpublished", is_flag=True, help="Render posts marked published: false")
@click.option("--clean", is_flag=True, help="Empty the output directory before building")
@click.option("--strict", is_flag=True, help="Exit non-zero if any post fails")
@click.option("--verbose", "-v", is_flag=True, help="List every file written")
def build(
    input_dir: Path,
    output_dir: Path,
    config_path: Path | None,
    unpublished: bool,
    clean: bool,
    strict: bool,
    verbose: bool,
):
    """Build the site from INPUT_DIR into OUTPUT_DIR."""
    from .build import BuildError, build_site, load_config

    try:
        config = load_config(config_path)
        result = build_site(
            input_dir,
            output_dir,
            config=config,
            include_unpublished=unpublished,
            clean_output=clean,
        )
    except BuildError as exc:
        click.echo(click.style("Build failed:", fg="red", bold=True), err=True)
        if exc.path is not None:
            click.echo(click.style(f"  Path: {exc.path}", fg="yellow"), err=True)
        click.echo(click.style(f"  Error: {exc.message}", fg="white"), err=True)
        raise SystemExit(1) from None

    if verbose:
        for path in result.written:
            click.echo(f"  wrote {path.relative_to(result.output_dir).as_posix()}")
        for path in result.skipped:
            click.echo(f"  skipped unpublished {_display_path(path, input_dir)}")

    if not result.ok:
        click.echo(
            click.style(
                f"{len(result.errors)} post(s) skipped due to errors:",
                fg="yellow",
                bold=True,
            ),
            err=True,
        )
        for error in result.errors:
            click.echo(
                click.style(f"  {_display_path(error.source_path, input_dir)}", fg="yellow")
                + f": {error.message}",
                err=True,
            )

    click.echo(f"Built {len(result.posts)} posts into {result.output_dir}")
    if strict and not result.ok:
        raise SystemExit(1)


def _display_path(path: Path, root: Path) -> str:
    """Show a path relative to the input directory when possible."""
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return str(path)


def main():
    """Entry point for the CLI application."""
    cli()
