"""Cairo static blog generator.

This package provides a minimal static blog generator that renders plain-text
posts through Jinja2 templates. A post is a small header (title, date, tags)
followed by a ``---`` delimiter line and a body that is handed to the
templates verbatim.

The main entry point is the CLI module, which provides commands for
scaffolding new projects, building sites, and creating new posts.
"""

__all__ = ["__version__"]
__version__ = "0.2.0"
