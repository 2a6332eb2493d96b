"""Permalink derivation and the cascade that keeps descendants in step."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

from milkshake.errors import MilkshakeError

from .models import BY_POSITION, Page, PermalinkChanged, SaveResult

if TYPE_CHECKING:  # pragma: no cover - type checking only
    from .store import PageStore


logger = logging.getLogger(__name__)


def compute_permalink(page: Page, parent: Optional[Page]) -> str:
    """Return the permalink ``page`` should hold under ``parent``."""

    if parent is None:
        return page.slug
    return f"{parent.permalink}/{page.slug}"


@dataclass(slots=True)
class CascadeFailure:
    """The descendant save that stopped a cascade."""

    page_id: int
    error: MilkshakeError


@dataclass(slots=True)
class CascadeReport:
    """Everything that happened during a save and its cascade."""

    page: Page
    changes: list[PermalinkChanged] = field(default_factory=list)
    failure: Optional[CascadeFailure] = None

    @property
    def complete(self) -> bool:
        return self.failure is None


class PermalinkPropagator:
    """Run the second phase of a save: re-save the children of changed pages.

    Each descendant save is an independent write. When one fails the walk
    stops there and the descendants already saved keep their new permalinks.
    """

    def __init__(self, store: "PageStore") -> None:
        self.store = store

    def save(self, page: Page) -> CascadeReport:
        """Save ``page`` and cascade any permalink change through its subtree."""

        result = self.store.save(page)
        report = CascadeReport(page=result.page, changes=list(result.changes))
        self.cascade(result, report=report)
        return report

    def cascade(self, result: SaveResult, *, report: Optional[CascadeReport] = None) -> CascadeReport:
        if report is None:
            report = CascadeReport(page=result.page, changes=list(result.changes))
        if not result.changed:
            return report

        # Depth-first, children in position order, without recursion.
        stack = list(reversed(self._children(result.page.id)))
        while stack:
            child = stack.pop()
            try:
                child_result = self.store.save(child)
            except MilkshakeError as exc:
                logger.error(
                    "Permalink cascade from page %s stopped at page %s: %s",
                    result.page.id,
                    child.id,
                    exc,
                )
                report.failure = CascadeFailure(page_id=child.id, error=exc)
                break
            logger.debug(
                "Cascaded permalink for page %s to %r", child.id, child_result.page.permalink
            )
            if child_result.changed:
                report.changes.extend(child_result.changes)
                stack.extend(reversed(self._children(child.id)))
        return report

    def _children(self, page_id: int) -> list[Page]:
        return self.store.all_children_of(page_id, order_by=BY_POSITION)
