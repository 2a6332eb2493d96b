"""Conversion helpers between page Markdown and HTML."""

from __future__ import annotations

import re

from markdownify import markdownify as to_markdown
from markdown_it import MarkdownIt


# Extensions on top of CommonMark that page authors can rely on.
PAGE_EXTENSIONS = ("table", "strikethrough")

_BLANK_RUN_RE = re.compile(r"\n{3,}")


class ContentConverter:
    """Render page Markdown to HTML and import HTML as Markdown.

    Raw HTML inside page content is passed through by default, since page
    bodies are written by admins. Pass ``allow_html=False`` to escape it.
    """

    def __init__(self, *, allow_html: bool = True) -> None:
        self.allow_html = allow_html
        self._markdown = MarkdownIt("commonmark", {"html": allow_html}).enable(
            list(PAGE_EXTENSIONS)
        )

    def markdown_to_html(self, markdown: str) -> str:
        return self._markdown.render(markdown)

    def html_to_markdown(self, html: str) -> str:
        """Return Markdown for an imported HTML fragment.

        Runs of blank lines are collapsed so the stored page body stays tidy.
        """

        markdown = to_markdown(
            html,
            heading_style="ATX",
            strong_em_symbol="**",
            bullets="-",
        )
        return _BLANK_RUN_RE.sub("\n\n", markdown).strip()
