"""Utility functions for Cairo.

Key functions:
    parse_bool: Parse a strict ``true``/``false`` setting value.
    slugify: Convert a title to a filename-friendly slug.
    is_hidden: Check if a path names a hidden entry.
    is_relative_to: Check if a path lives inside another.
"""

from __future__ import annotations

import re
from pathlib import Path

from .errors import BoolParseError


def parse_bool(value: object, setting: str | None = None) -> bool:
    """Parse a boolean setting.

    Real booleans pass through. Strings must be exactly ``true`` or
    ``false``; anything else is rejected rather than guessed at.

    Args:
        value: Value from a config file or environment variable.
        setting: Name of the setting, used in the error message.

    Returns:
        The parsed boolean.

    Raises:
        BoolParseError: If the value is not a boolean or a boolean string.
    """
    if isinstance(value, bool):
        return value
    if value == "true":
        return True
    if value == "false":
        return False
    raise BoolParseError(value, setting)


def slugify(name: str) -> str:
    """Convert a title to a lowercase, hyphen-separated slug.

    Args:
        name: Free-form title.

    Returns:
        URL and filename friendly slug, ``"untitled"`` if nothing remains.

    Examples:
        >>> slugify("Hello, World!")
        'hello-world'
    """
    cleaned = re.sub(r"[^a-zA-Z0-9]+", "-", name)
    cleaned = cleaned.strip("-").lower()
    return cleaned or "untitled"


def is_hidden(name: str) -> bool:
    """Check if a directory entry name is hidden (dotfile)."""
    return name.startswith(".")


def is_relative_to(path: Path, other: Path) -> bool:
    """Return True if ``path`` equals ``other`` or lives inside it."""
    try:
        path.resolve().relative_to(other.resolve())
    except ValueError:
        return False
    return True
