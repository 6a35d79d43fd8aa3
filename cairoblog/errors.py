"""Error types raised by Cairo.

Every failure the CLI reports is a ``CairoError``. Each subclass knows how to
describe itself in a single human-readable line, so the CLI can print
``str(exc)`` and exit.
"""

from __future__ import annotations

from pathlib import Path


class CairoError(Exception):
    """Base class for all Cairo errors."""


class FilesystemError(CairoError):
    """An underlying filesystem operation failed.

    Attributes:
        path: Path involved in the failed operation, if known.
        original_error: The ``OSError`` that was raised.
    """

    def __init__(self, original_error: OSError, path: Path | None = None):
        self.original_error = original_error
        self.path = path
        super().__init__(f"io: {_describe_os_error(original_error, path)}")


class BoolParseError(CairoError):
    """A boolean setting was given a value other than ``true`` or ``false``."""

    def __init__(self, value: object, setting: str | None = None):
        self.value = value
        self.setting = setting
        where = f" for {setting}" if setting else ""
        super().__init__(
            "cli parse error: provided string was not `true` or `false`"
            f"{where}: {value!r}"
        )


class PostParseError(CairoError):
    """A post file could not be parsed.

    Attributes:
        field: Which part of the post is missing or invalid
            (``title``, ``date``, ``tags`` or ``body``).
        message: Human-readable description of the problem.
        path: Source file of the post, if known.
    """

    def __init__(self, field: str, message: str, path: Path | None = None):
        self.field = field
        self.message = message
        self.path = path
        location = f"{path}: " if path is not None else ""
        super().__init__(f"post parse error: {location}{message}")


class CantFindIndexTemplate(CairoError):
    def __init__(self, path: Path):
        self.path = path
        super().__init__(f"could not find index template ({path})")


class CantFindPostTemplate(CairoError):
    def __init__(self, path: Path):
        self.path = path
        super().__init__(f"could not find post template ({path})")


class RenderError(CairoError):
    """A template failed to render.

    Attributes:
        template: Name of the template that failed.
        message: Human-readable error message.
        original_error: The exception raised by the template engine.
    """

    def __init__(
        self,
        template: str,
        message: str,
        original_error: Exception | None = None,
    ):
        self.template = template
        self.message = message
        self.original_error = original_error
        super().__init__(f"render error in {template}: {message}")


class OutputNameConflict(CairoError):
    """Two sources would be written to the same output file."""

    def __init__(self, output_name: str, paths: list[Path]):
        self.output_name = output_name
        self.paths = paths
        sources = ", ".join(str(p) for p in paths)
        super().__init__(f"output file {output_name} would be written by: {sources}")


class UnsafeCleanError(CairoError):
    """Cleaning the build directory would delete the project sources."""

    def __init__(self, build_dir: Path, source_dir: Path):
        self.build_dir = build_dir
        self.source_dir = source_dir
        super().__init__(
            f"refusing to clean {build_dir}: it contains the source directory {source_dir}"
        )


class ConfigError(CairoError):
    """The project configuration file is malformed."""

    def __init__(self, path: Path, message: str):
        self.path = path
        self.message = message
        super().__init__(f"config error: {path}: {message}")


def _describe_os_error(exc: OSError, path: Path | None) -> str:
    reason = exc.strerror or str(exc)
    target = exc.filename if exc.filename is not None else path
    if target is not None:
        return f"{reason}: {target}"
    return reason
