"""Post parsing for Cairo.

A post file is a three line header followed by a delimiter line and a body::

    Hello
    Mon Jan 1 10:00:00 2024
    rust systems
    ---
    Body text

Line one is the title, line two the date in a fixed format and line three a
space separated list of tags (the line may be empty but must exist). The body
is everything after the first ``---`` line and is handed to the templates
untouched.

Key objects:
- Post: Immutable record for one parsed post.
- parse_post: Parse raw file contents into a Post.
- load_post: Read a file from disk and parse it.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

from .errors import FilesystemError, PostParseError

DELIMITER = "\n---\n"
DATE_FORMAT = "%a %b %d %H:%M:%S %Y"
MISSING_FILENAME = "missing-filename"


@dataclass(frozen=True)
class Post:
    """One blog post.

    Attributes:
        path: Location of the source file.
        filename: Base name of the source file.
        title: First header line.
        date: Publication timestamp from the second header line.
        tags: Tags from the third header line, in file order.
        source: Raw body text following the delimiter.
    """

    path: Path
    filename: str
    title: str
    date: datetime
    tags: tuple[str, ...]
    source: str

    @property
    def name(self) -> str:
        """Output stem; the post is written to ``<name>.html``."""
        return Path(self.filename).stem or self.filename

    @property
    def output_filename(self) -> str:
        return f"{self.name}.html"

    @property
    def date_string(self) -> str:
        return format_date(self.date)

    def to_context(self) -> dict[str, Any]:
        """Return the post's fields as a template context."""
        return {
            "path": str(self.path),
            "filename": self.filename,
            "name": self.name,
            "title": self.title,
            "date": self.date,
            "date_string": self.date_string,
            "tags": list(self.tags),
            "source": self.source,
        }

    def serialize(self) -> str:
        """Render the post back into the post file format."""
        return (
            f"{self.title}\n{self.date_string}\n{' '.join(self.tags)}"
            f"{DELIMITER}{self.source}"
        )


def format_date(date: datetime) -> str:
    """Format a datetime the way post headers write it.

    Examples:
        >>> format_date(datetime(2024, 1, 2, 15, 4, 5))
        'Tue Jan 2 15:04:05 2024'
    """
    return f"{date:%a %b} {date.day} {date:%H:%M:%S %Y}"


def parse_date(text: str) -> datetime:
    """Parse a header date such as ``Mon Jan 2 15:04:05 2024``.

    The day may be unpadded, zero padded or space padded. The weekday must
    agree with the calendar date.

    Raises:
        ValueError: If the text does not match the format.
    """
    stripped = text.strip()
    parsed = datetime.strptime(stripped, DATE_FORMAT)
    weekday = stripped.split()[0]
    if weekday.lower() != parsed.strftime("%a").lower():
        raise ValueError(
            f"weekday {weekday!r} does not match {parsed:%Y-%m-%d}"
            f" (a {parsed:%A})"
        )
    return parsed


def filename_for(path: Path) -> str:
    return path.name or MISSING_FILENAME


def parse_post(text: str, path: Path) -> Post:
    """Parse the contents of a post file.

    Args:
        text: Raw file contents.
        path: Path the contents came from.

    Returns:
        The parsed Post.

    Raises:
        PostParseError: If the delimiter or any header line is missing, the
            title is blank, or the date does not match the fixed format.
    """
    text = text.replace("\r\n", "\n")
    pieces = text.split(DELIMITER, 1)
    if len(pieces) != 2:
        raise PostParseError("body", "Failed to parse post body", path)
    header, body = pieces
    meta = header.split("\n")

    title = meta[0]
    if not title.strip():
        raise PostParseError("title", "Failed to parse title string", path)

    if len(meta) < 2:
        raise PostParseError("date", "Failed to parse date string", path)
    try:
        date = parse_date(meta[1])
    except ValueError as exc:
        raise PostParseError("date", f"time parse: {exc}", path) from exc

    if len(meta) < 3:
        raise PostParseError("tags", "Failed to parse tags", path)
    tags = tuple(tag for tag in meta[2].split(" ") if tag)

    return Post(
        path=path,
        filename=filename_for(path),
        title=title,
        date=date,
        tags=tags,
        source=body,
    )


def load_post(path: Path) -> Post:
    """Read and parse a post file.

    Raises:
        FilesystemError: If the file cannot be read.
        PostParseError: If the file is not valid UTF-8 or fails to parse.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise PostParseError("body", f"Failed to decode post as UTF-8: {exc}", path) from exc
    except OSError as exc:
        raise FilesystemError(exc, path) from exc
    return parse_post(text, path)
