"""Project scaffolding for Cairo."""

from __future__ import annotations

from pathlib import Path

from .build import POSTS_DIRNAME
from .errors import FilesystemError
from .templates import INDEX_TEMPLATE, POST_TEMPLATE, TEMPLATES_DIRNAME

TAGS_FILENAME = "tags"

__all__ = ["scaffold_project"]


def scaffold_project(parent_dir: Path, name: str, with_tags: bool = False) -> Path:
    """Create the directory skeleton for a new Cairo project.

    Creates ``<parent_dir>/<name>/`` containing an empty ``posts/``
    directory, empty ``templates/index.jinja`` and ``templates/post.jinja``
    placeholders and, when ``with_tags`` is set, an empty ``tags`` file.

    Nothing is overwritten: the first step that fails raises, and whatever
    was created up to that point is left in place.

    Args:
        parent_dir: Directory to create the project in.
        name: Name of the project directory.
        with_tags: Whether to create the tag index file.

    Returns:
        Path of the new project directory.

    Raises:
        FilesystemError: If any directory or file cannot be created,
            including when the project directory already exists.
    """
    root = parent_dir / name
    templates = root / TEMPLATES_DIRNAME
    try:
        root.mkdir()
        if with_tags:
            (root / TAGS_FILENAME).touch(exist_ok=False)
        (root / POSTS_DIRNAME).mkdir()
        templates.mkdir()
        (templates / INDEX_TEMPLATE).touch(exist_ok=False)
        (templates / POST_TEMPLATE).touch(exist_ok=False)
    except OSError as exc:
        raise FilesystemError(exc) from exc
    return root
