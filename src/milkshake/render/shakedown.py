"""Shakedown: expand ``% attribute %`` tokens in page content and render HTML.

A token is a percent sign, optional spaces, a bare word and optional spaces,
closed either by another percent sign or by the end of the line::

    Welcome to % title %, you are % level % levels deep.
    Last touched % updated_at

Only names in :data:`TOKENS` are expanded; anything else is left exactly as
written. After substitution the text goes through an optional
embedded-expression renderer supplied by the caller and finally through the
Markdown converter.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Callable, Mapping, Optional

from milkshake.pages.models import Page
from milkshake.pages.navigation import TreeNavigator

from .converters import ContentConverter


TOKEN_RE = re.compile(r"%[ \t]*(\w+)[ \t]*(?:%|(?=\r?\n)|\Z)")

Accessor = Callable[[Page], object]
ExpressionRenderer = Callable[[str, Page], str]


TOKENS: Mapping[str, Accessor] = {
    "id": lambda page: page.id,
    "title": lambda page: page.title,
    "permalink": lambda page: page.permalink,
    "slug": lambda page: page.slug,
    "path": lambda page: page.path,
    "summary": lambda page: page.summary,
    "position": lambda page: page.position,
    "created_at": lambda page: page.created_at,
    "updated_at": lambda page: page.updated_at,
    "published_at": lambda page: page.published_at,
    "edit_path": lambda page: page.edit_path,
    "new_child_path": lambda page: page.new_child_path,
    "new_sibling_path": lambda page: page.new_sibling_path,
}


def _stringify(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def _passthrough(text: str, page: Page) -> str:
    return text


class Shakedown:
    """Expand page tokens, run embedded expressions and render Markdown."""

    def __init__(
        self,
        *,
        converter: Optional[ContentConverter] = None,
        navigator: Optional[TreeNavigator] = None,
        expression_renderer: Optional[ExpressionRenderer] = None,
        tokens: Mapping[str, Accessor] = TOKENS,
    ) -> None:
        self.converter = converter or ContentConverter()
        self.navigator = navigator
        self.expression_renderer = expression_renderer or _passthrough
        self.tokens = dict(tokens)
        if navigator is not None:
            # Depth needs the tree, so it is only offered with a navigator.
            self.tokens.setdefault("level", navigator.level)

    def substitute(self, text: str, page: Optional[Page]) -> str:
        """Replace known tokens with the page's values; leave the rest alone."""

        if page is None:
            return text

        def _replace(match: re.Match[str]) -> str:
            accessor = self.tokens.get(match.group(1))
            if accessor is None:
                return match.group(0)
            return _stringify(accessor(page))

        return TOKEN_RE.sub(_replace, text)

    def expand(self, text: str, page: Optional[Page] = None) -> str:
        """Return the HTML for ``text`` rendered in the context of ``page``."""

        text = self.substitute(text, page)
        if page is not None:
            text = self.expression_renderer(text, page)
        return self.converter.markdown_to_html(text)


def expand(text: str, page: Optional[Page] = None, *, navigator: Optional[TreeNavigator] = None) -> str:
    """Render ``text`` with a default :class:`Shakedown`."""

    return Shakedown(navigator=navigator).expand(text, page)
