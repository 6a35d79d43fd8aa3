"""Template handling for Cairo.

This module uses Jinja2 to render the two templates every project needs:
``templates/index.jinja`` (rendered once with all posts) and
``templates/post.jinja`` (rendered once per post).

Key objects:
- check_templates: Precondition gate run before any build work.
- TemplateEngine: Renders posts and the index page.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

from jinja2 import (
    Environment,
    FileSystemLoader,
    TemplateSyntaxError,
    UndefinedError,
    select_autoescape,
)

from .collections import PostCollection, TagCollection
from .errors import CantFindIndexTemplate, CantFindPostTemplate, RenderError
from .posts import Post

TEMPLATES_DIRNAME = "templates"
TEMPLATE_SUFFIX = ".jinja"
INDEX_TEMPLATE = f"index{TEMPLATE_SUFFIX}"
POST_TEMPLATE = f"post{TEMPLATE_SUFFIX}"

__all__ = [
    "INDEX_TEMPLATE",
    "POST_TEMPLATE",
    "TEMPLATE_SUFFIX",
    "TemplateEngine",
    "check_templates",
]


def check_templates(source_dir: Path) -> None:
    """Verify the index and post templates exist.

    Args:
        source_dir: Project root containing ``templates/``.

    Raises:
        CantFindIndexTemplate: If ``templates/index.jinja`` is missing.
        CantFindPostTemplate: If ``templates/post.jinja`` is missing.
    """
    templates_dir = source_dir / TEMPLATES_DIRNAME
    index_path = templates_dir / INDEX_TEMPLATE
    if not index_path.is_file():
        raise CantFindIndexTemplate(index_path)
    post_path = templates_dir / POST_TEMPLATE
    if not post_path.is_file():
        raise CantFindPostTemplate(post_path)


class TemplateEngine:
    """Template rendering engine using Jinja2.

    Attributes:
        templates_dir: Directory templates are loaded from.
        site: Global site data, available to every template as ``site``.
        env: Jinja2 environment.
    """

    def __init__(self, templates_dir: Path, site: Mapping[str, Any] | None = None):
        self.templates_dir = templates_dir
        self.site = dict(site or {})
        self.env = Environment(
            loader=FileSystemLoader(str(templates_dir)),
            autoescape=select_autoescape(["html", "xml", "jinja"]),
            keep_trailing_newline=True,
        )
        self.env.globals["site"] = self.site

    def render_post(self, post: Post) -> str:
        """Render a post through ``post.jinja``.

        The post's fields are available at the top level (``{{ title }}``)
        and as ``post``.
        """
        context = post.to_context()
        context["post"] = post
        return self.render(POST_TEMPLATE, context)

    def render_index(self, posts: PostCollection, tags: TagCollection) -> str:
        """Render ``index.jinja`` with every post of the site."""
        return self.render(INDEX_TEMPLATE, {"posts": posts, "tags": tags})

    def render(self, template_name: str, context: Mapping[str, Any]) -> str:
        """Render a named template.

        Raises:
            RenderError: If the template cannot be loaded or rendering fails.
        """
        try:
            template = self.env.get_template(template_name)
            return template.render(**context)
        except TemplateSyntaxError as exc:
            raise RenderError(
                template_name,
                f"Template syntax error on line {exc.lineno}: {exc.message}",
                exc,
            ) from exc
        except Exception as exc:
            raise RenderError(template_name, _format_error_message(exc), exc) from exc


def _format_error_message(exc: Exception) -> str:
    """Format an exception into a user-friendly error message."""
    if isinstance(exc, UndefinedError):
        return f"Undefined variable: {exc}"
    if isinstance(exc, TypeError):
        return f"Type error: {exc}"
    return f"{type(exc).__name__}: {exc}"
