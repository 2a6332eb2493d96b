"""Small HTML helpers used by layouts around rendered pages."""

from __future__ import annotations

from html import escape
from typing import Callable, Iterable, Mapping, Optional

from milkshake.pages.models import Page
from milkshake.pages.navigation import TreeNavigator


# Collections ``list_of_links`` may draw from, relative to the current page.
LINK_COLLECTIONS: Mapping[str, Callable[[TreeNavigator, Page], list[Page]]] = {
    "children": lambda navigator, page: navigator.children(page),
    "siblings": lambda navigator, page: navigator.siblings(page),
    "self_and_siblings": lambda navigator, page: navigator.self_and_siblings(page),
    "ancestors": lambda navigator, page: navigator.ancestors(page),
}


def _attributes(attrs: Mapping[str, str]) -> str:
    return "".join(f' {key}="{escape(str(value))}"' for key, value in attrs.items())


def page_title(site_name: str, *, title: Optional[str] = None, page: Optional[Page] = None) -> str:
    """Return the document title: the site name, then the page's if any."""

    if title:
        return f"{site_name} * {title}"
    if page is not None:
        return f"{site_name} * {page.title}"
    return site_name


def link_to(url: str, text: str, **attrs: str) -> str:
    return f'<a href="{escape(url)}"{_attributes(attrs)}>{escape(text)}</a>'


def breadcrumbs(navigator: TreeNavigator, page: Page, separator: str = ">>") -> str:
    """Return links from the root down to ``page`` wrapped in a div."""

    trail = list(reversed(navigator.ancestors(page))) + [page]
    joiner = f" {escape(separator)} "
    links = joiner.join(link_to(crumb.path, crumb.title) for crumb in trail)
    return f'<div class="breadcrumbs">{links}</div>'


def list_of_links(
    navigator: TreeNavigator,
    page: Optional[Page] = None,
    collection: str = "roots",
    **attrs: str,
) -> str:
    """Render published pages of ``collection`` as an unordered list.

    Unknown collection names, or no current page, fall back to the published
    root pages.
    """

    lookup = LINK_COLLECTIONS.get(collection)
    if page is not None and lookup is not None:
        pages: Iterable[Page] = (item for item in lookup(navigator, page) if item.is_published)
    else:
        pages = navigator.store.roots(published=True)
    items = "".join(f"\n<li>{link_to(item.path, item.title)}</li>" for item in pages)
    return f"<ul{_attributes(attrs)}>{items}\n</ul>"
