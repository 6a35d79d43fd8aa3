"""Command-line interface for Cairo.

This module defines the CLI commands using Click framework.

Commands:
- init: Scaffold a new Cairo project.
- make: Compile the posts of a project into a static website.
- post: Create a new post file interactively.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

import click
import questionary

from . import __version__
from .build import POSTS_DIRNAME
from .errors import CairoError, FilesystemError
from .posts import Post


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="cairo")
@click.pass_context
def cli(ctx: click.Context):
    """Minimalistic static blog site generator."""
    if ctx.invoked_subcommand is None:
        click.echo("subcommand not found")
        click.echo(ctx.get_help())
        ctx.exit(2)


@cli.command()
@click.option("-t", "--tags", is_flag=True, help="Create the tag index")
@click.option(
    "-p",
    "--path",
    default=".",
    type=click.Path(file_okay=False, path_type=Path),
    help="Specify a folder to create base structure in",
)
@click.argument("name")
def init(tags: bool, path: Path, name: str):
    """Generate a basic Cairo project."""
    from .scaffold import scaffold_project

    try:
        scaffold_project(path, name, with_tags=tags)
    except CairoError as exc:
        _fail(exc)
    click.echo(f"{click.style('SUCCESS!', fg='green')} created project {name}")


@cli.command()
@click.option(
    "-b",
    "--build-dir",
    default="./build",
    show_default=True,
    type=click.Path(file_okay=False, path_type=Path),
    help="Specify build output folder",
)
@click.option(
    "--clean/--no-clean",
    default=None,
    help="Empty the build folder before publishing (overrides cairo.yaml)",
)
@click.argument(
    "source",
    default=".",
    required=False,
    type=click.Path(file_okay=False, path_type=Path),
)
def make(build_dir: Path, clean: bool | None, source: Path):
    """Compile posts into a static website."""
    from .build import build_site

    try:
        result = build_site(source, build_dir, clean_output=clean)
    except CairoError as exc:
        _fail(exc)
    click.echo(f"Built {len(result.posts)} posts into {result.output_dir}")


@cli.command()
@click.argument(
    "source",
    default=".",
    required=False,
    type=click.Path(file_okay=False, path_type=Path),
)
def post(source: Path):
    """Create a new post file interactively."""
    from .utils import is_hidden, slugify

    posts_dir = source / POSTS_DIRNAME
    if not posts_dir.is_dir():
        raise click.ClickException(
            "No posts/ directory found. Run this command from a Cairo project root."
        )

    title = questionary.text(
        "Title:",
        validate=lambda x: len(x.strip()) > 0 or "Title cannot be empty",
        style=_questionary_style(),
    ).ask()
    if title is None:
        raise click.Abort()

    tags = questionary.text(
        "Tags (space separated):",
        style=_questionary_style(),
    ).ask()
    if tags is None:
        raise click.Abort()

    filename = questionary.text(
        "Filename:",
        default=f"{slugify(title)}.txt",
        validate=lambda x: len(x.strip()) > 0 or "Filename cannot be empty",
        style=_questionary_style(),
    ).ask()
    if filename is None:
        raise click.Abort()
    filename = filename.strip()
    if Path(filename).name != filename or is_hidden(filename):
        raise click.ClickException(
            f"Invalid filename '{filename}': use a plain, non-hidden file name inside posts/"
        )

    target = posts_dir / filename
    if target.exists():
        raise click.ClickException(f"File already exists: {target}")

    # Output pages are named after the stem, so stems must stay unique
    stem = Path(filename).stem
    if stem.casefold() == "index":
        raise click.ClickException("A post cannot be named 'index'")
    clashing = [
        p
        for p in posts_dir.iterdir()
        if p.is_file() and p.stem.casefold() == stem.casefold()
    ]
    if clashing:
        raise click.ClickException(
            f"A post named '{stem}' already exists: {clashing[0].name}"
        )

    new_post = Post(
        path=target,
        filename=filename,
        title=title.strip(),
        date=datetime.now().replace(microsecond=0),
        tags=tuple(tags.split()),
        source="\n",
    )
    try:
        target.write_text(new_post.serialize(), encoding="utf-8")
    except OSError as exc:
        _fail(FilesystemError(exc, target))
    click.echo(f"Created {target}")


def _fail(exc: CairoError):
    """Report an error on stderr and exit with status 1."""
    click.echo(click.style(f"Error: {exc}", fg="red"), err=True)
    raise SystemExit(1) from None


def _questionary_style():
    """Return consistent questionary style."""
    return questionary.Style(
        [
            ("qmark", "fg:cyan bold"),
            ("question", "bold"),
            ("answer", "fg:cyan"),
            ("pointer", "fg:cyan bold"),
            ("highlighted", "fg:cyan bold"),
            ("selected", "fg:cyan"),
        ]
    )


def main():
    """Entry point for the CLI application."""
    cli()
