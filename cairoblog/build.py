"""Site building functionality for Cairo.

This module contains the core logic for building a static blog from a
project directory. It checks the required templates, parses every post,
renders the post pages and the index page, and publishes the result.

A build is all-or-nothing: every post is parsed and every page is rendered
in memory before anything is written, and the files are written to a
staging directory before being moved into the build directory.

Key functions:
- build_site: Main function to build the entire site.
- load_config: Loads project configuration from cairo.yaml.
- iter_post_files: Lists the post files of a project.
"""

from __future__ import annotations

import errno
import os
import shutil
import tempfile
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .collections import PostCollection, build_tags_index
from .errors import ConfigError, FilesystemError, OutputNameConflict, UnsafeCleanError
from .posts import load_post
from .templates import INDEX_TEMPLATE, TEMPLATES_DIRNAME, TemplateEngine, check_templates
from .utils import is_hidden, is_relative_to, parse_bool

CONFIG_FILENAME = "cairo.yaml"
POSTS_DIRNAME = "posts"
INDEX_OUTPUT = "index.html"

DEFAULT_CONFIG = {
    "create_build_dir": True,
    "clean_build_dir": False,
    "site": {},
}

# Environment variable -> config key
ENV_OVERRIDES = {
    "CAIRO_CREATE_BUILD_DIR": "create_build_dir",
    "CAIRO_CLEAN_BUILD_DIR": "clean_build_dir",
}
BOOL_KEYS = ("create_build_dir", "clean_build_dir")


@dataclass
class BuildResult:
    """Result of a site build operation.

    Attributes:
        posts: All posts of the site, in index order.
        output_dir: Directory where the site was built.
        files: Paths of the files written, index page last.
    """

    posts: PostCollection
    output_dir: Path
    files: list[Path]


def load_config(
    source_dir: Path, environ: Mapping[str, str] | None = None
) -> dict[str, Any]:
    """Load project configuration from cairo.yaml.

    Values come from ``DEFAULT_CONFIG``, then ``cairo.yaml`` in the project
    root, then ``CAIRO_*`` environment variables.

    Args:
        source_dir: Root directory of the project.
        environ: Environment to read overrides from, ``os.environ`` if None.

    Returns:
        Dictionary containing configuration values, with defaults applied.

    Raises:
        ConfigError: If cairo.yaml is not valid YAML or not a mapping.
        BoolParseError: If a boolean setting has a non-boolean value.
    """
    environ = os.environ if environ is None else environ
    config_path = source_dir / CONFIG_FILENAME
    config = dict(DEFAULT_CONFIG)
    if config_path.exists():
        try:
            with open(config_path, encoding="utf-8") as f:
                loaded = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(config_path, f"invalid YAML: {exc}") from exc
        except OSError as exc:
            raise FilesystemError(exc, config_path) from exc
        if not isinstance(loaded, dict):
            raise ConfigError(config_path, "expected a mapping at the top level")
        config.update(loaded)

    for variable, key in ENV_OVERRIDES.items():
        if variable in environ:
            config[key] = environ[variable]

    for key in BOOL_KEYS:
        config[key] = parse_bool(config[key], key)
    if not isinstance(config["site"], dict):
        raise ConfigError(config_path, "'site' must be a mapping")
    config["site"] = dict(config["site"])
    return config


def iter_post_files(posts_dir: Path) -> list[Path]:
    """List the post files in a posts directory, sorted by name.

    Sub-directories and hidden entries are ignored. Entries whose type
    cannot be determined are skipped rather than failing the build.

    Raises:
        FilesystemError: If the directory itself cannot be read.
    """
    files: list[Path] = []
    try:
        with os.scandir(posts_dir) as it:
            entries = sorted(it, key=lambda e: e.name)
    except OSError as exc:
        raise FilesystemError(exc, posts_dir) from exc
    for entry in entries:
        if is_hidden(entry.name):
            continue
        try:
            if not entry.is_file():
                continue
        except OSError:
            continue
        files.append(Path(entry.path))
    return files


def load_posts(source_dir: Path) -> PostCollection:
    """Parse every post of a project.

    The first post that fails to parse, in name order, aborts the load.

    Returns:
        The posts sorted newest first.
    """
    posts = [load_post(path) for path in iter_post_files(source_dir / POSTS_DIRNAME)]
    return PostCollection(posts).sorted()


def build_site(
    source_dir: Path,
    build_dir: Path,
    clean_output: bool | None = None,
    environ: Mapping[str, str] | None = None,
) -> BuildResult:
    """Build the entire static site.

    Args:
        source_dir: Root directory of the project.
        build_dir: Directory to publish the rendered site into.
        clean_output: Whether to empty the build directory before publishing,
            overriding the ``clean_build_dir`` setting when not None.
        environ: Environment for configuration overrides.

    Returns:
        BuildResult describing the published site.

    Raises:
        CantFindIndexTemplate: If the index template is missing.
        CantFindPostTemplate: If the post template is missing.
        PostParseError: If any post fails to parse.
        OutputNameConflict: If two posts map to the same output file.
        RenderError: If a template fails to render.
        FilesystemError: If reading sources or writing output fails.
    """
    check_templates(source_dir)
    config = load_config(source_dir, environ)
    if clean_output is None:
        clean_output = config["clean_build_dir"]

    posts = load_posts(source_dir)
    _check_output_names(posts, source_dir)

    engine = TemplateEngine(source_dir / TEMPLATES_DIRNAME, site=config["site"])
    outputs: dict[str, str] = {}
    for post in posts:
        outputs[post.output_filename] = engine.render_post(post)
    outputs[INDEX_OUTPUT] = engine.render_index(posts, build_tags_index(posts))

    _prepare_build_dir(build_dir, config["create_build_dir"])
    if clean_output and is_relative_to(source_dir, build_dir):
        raise UnsafeCleanError(build_dir, source_dir)
    files = _publish(build_dir, outputs, clean_output)
    return BuildResult(posts=posts, output_dir=build_dir, files=files)


def _check_output_names(posts: PostCollection, source_dir: Path) -> None:
    """Reject posts whose output files would overwrite each other."""
    # Keyed case-insensitively: Hello.html and hello.html clash on some filesystems
    claimed: dict[str, tuple[str, list[Path]]] = {
        INDEX_OUTPUT: (INDEX_OUTPUT, [source_dir / TEMPLATES_DIRNAME / INDEX_TEMPLATE])
    }
    for post in sorted(posts, key=lambda p: p.filename):
        name = post.output_filename
        claimed.setdefault(name.casefold(), (name, []))[1].append(post.path)
    for name, paths in claimed.values():
        if len(paths) > 1:
            raise OutputNameConflict(name, paths)


def _prepare_build_dir(build_dir: Path, create: bool) -> None:
    if build_dir.is_dir():
        return
    if not create:
        raise FilesystemError(
            FileNotFoundError(errno.ENOENT, "build directory does not exist", str(build_dir)),
            build_dir,
        )
    try:
        build_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise FilesystemError(exc, build_dir) from exc


def _publish(build_dir: Path, outputs: dict[str, str], clean: bool) -> list[Path]:
    """Write rendered pages to a staging directory, then move them into place.

    Files the new pages replace (every entry of the build directory when
    ``clean`` is set) are first moved aside. If publishing fails they are
    moved back and the new files removed, so the build directory ends up
    either fully updated or as it was.

    Args:
        build_dir: Existing build directory.
        outputs: Mapping of output filename to rendered HTML.
        clean: Whether to empty the build directory before moving files in.

    Returns:
        Paths of the published files, in ``outputs`` order.

    Raises:
        FilesystemError: If an output path is a directory or any write or
            move fails.
    """
    targets = [build_dir / filename for filename in outputs]
    if not clean:
        for target in targets:
            if target.is_dir():
                raise FilesystemError(
                    IsADirectoryError(errno.EISDIR, "output path is a directory", str(target)),
                    target,
                )

    parent = build_dir.resolve().parent
    staging: Path | None = None
    previous: Path | None = None
    published: list[Path] = []
    try:
        staging = Path(tempfile.mkdtemp(prefix=".cairo-staging-", dir=parent))
        for filename, rendered in outputs.items():
            (staging / filename).write_text(rendered, encoding="utf-8")

        replaced = list(build_dir.iterdir()) if clean else [t for t in targets if t.exists()]
        previous = Path(tempfile.mkdtemp(prefix=".cairo-previous-", dir=parent))
        for path in replaced:
            shutil.move(str(path), str(previous / path.name))

        for filename, target in zip(outputs, targets):
            shutil.move(str(staging / filename), str(target))
            published.append(target)
    except OSError as exc:
        if previous is not None:
            try:
                _restore(build_dir, previous, published)
            except OSError as restore_exc:
                raise FilesystemError(restore_exc, previous) from exc
        raise FilesystemError(exc) from exc
    finally:
        if staging is not None:
            shutil.rmtree(staging, ignore_errors=True)
    shutil.rmtree(previous, ignore_errors=True)
    return published


def _restore(build_dir: Path, previous: Path, published: list[Path]) -> None:
    """Undo a partial publish; ``previous`` is kept if anything is left in it."""
    for target in published:
        target.unlink(missing_ok=True)
    for path in previous.iterdir():
        shutil.move(str(path), str(build_dir / path.name))
    previous.rmdir()
