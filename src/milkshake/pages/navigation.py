"""Read-only traversal of the page tree."""

from __future__ import annotations

from typing import Iterator, Optional

from milkshake.errors import TreeCycleError

from .models import BY_POSITION, OrderBy, Page
from .store import PageStore


class TreeNavigator:
    """Follow ``parent_id`` links through a :class:`PageStore`.

    A ``parent_id`` that names a missing page counts as "no parent", so pages
    orphaned by a non-cascading delete behave like roots. Walks are iterative
    and raise :class:`TreeCycleError` if a parent chain loops.
    """

    def __init__(self, store: PageStore) -> None:
        self.store = store

    def parent(self, page: Page) -> Optional[Page]:
        return self.store.find(page.parent_id)

    def iter_ancestors(self, page: Page) -> Iterator[Page]:
        """Yield ancestors nearest first."""

        seen = {page.id}
        current = self.parent(page)
        while current is not None:
            if current.id in seen:
                raise TreeCycleError(page.id)
            seen.add(current.id)
            yield current
            current = self.parent(current)

    def ancestors(self, page: Page) -> list[Page]:
        return list(self.iter_ancestors(page))

    def level(self, page: Page) -> int:
        """Return 1 for a root, otherwise one more than the parent's level."""

        return 1 + sum(1 for _ in self.iter_ancestors(page))

    def root(self, page: Page) -> Page:
        top = page
        for ancestor in self.iter_ancestors(page):
            top = ancestor
        return top

    def children(self, page: Page, *, order_by: OrderBy = BY_POSITION) -> list[Page]:
        return self.store.all_children_of(page.id, order_by=order_by)

    def has_children(self, page: Page) -> bool:
        return bool(self.store.all_children_of(page.id))

    def siblings(self, page: Page, *, order_by: OrderBy = BY_POSITION) -> list[Page]:
        return self.store.siblings_of(page, order_by=order_by)

    def self_and_siblings(self, page: Page, *, order_by: OrderBy = BY_POSITION) -> list[Page]:
        return self.store.all_children_of(page.parent_id, order_by=order_by)

    def descendants(self, page: Page, *, order_by: OrderBy = BY_POSITION) -> list[Page]:
        """Return the subtree below ``page`` in depth-first order."""

        result: list[Page] = []
        seen = {page.id}
        stack = list(reversed(self.children(page, order_by=order_by)))
        while stack:
            current = stack.pop()
            if current.id in seen:
                raise TreeCycleError(current.id)
            seen.add(current.id)
            result.append(current)
            stack.extend(reversed(self.children(current, order_by=order_by)))
        return result
