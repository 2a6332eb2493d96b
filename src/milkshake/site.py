"""Request-level page workflows shared by every front end."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from milkshake.errors import AccessDenied, NotFound
from milkshake.pages.models import Page
from milkshake.pages.navigation import TreeNavigator
from milkshake.pages.store import PageStore
from milkshake.render.shakedown import Shakedown


logger = logging.getLogger(__name__)


@dataclass(slots=True)
class PageForm:
    """Values submitted when creating or editing a page."""

    title: str
    content: str
    parent_id: Optional[int] = None
    position: Optional[int] = None
    show_title: bool = True
    publish: bool = False


class SiteService:
    """Coordinate the store, navigator and renderer for admin and guest views.

    ``is_admin`` is supplied by the caller's authentication layer; drafts and
    every mutating action are only available when it returns ``True``.
    """

    def __init__(
        self,
        store: PageStore,
        *,
        is_admin: Callable[[], bool],
        shakedown: Optional[Shakedown] = None,
    ) -> None:
        self.store = store
        self.is_admin = is_admin
        self.navigator = TreeNavigator(store)
        self.shakedown = shakedown or Shakedown(navigator=self.navigator)

    # ------------------------------------------------------------------
    # Public views
    # ------------------------------------------------------------------
    def home_page(self) -> Optional[Page]:
        """Return the first published root page, if there is one."""

        pages = self.store.roots(published=True)
        return pages[0] if pages else None

    def index(self) -> list[Page]:
        if self.is_admin():
            return self.store.roots()
        return self.store.roots(published=True)

    def show(self, permalink: str) -> Page:
        """Look up a page by permalink, hiding drafts from guests."""

        page = self.store.find_by_permalink(permalink.strip("/"))
        if page.is_draft and not self.is_admin():
            raise AccessDenied(f"Page {page.id} is a draft", page_id=page.id)
        return page

    def render(self, page: Page) -> str:
        return self.shakedown.expand(page.content, page)

    # ------------------------------------------------------------------
    # Admin actions
    # ------------------------------------------------------------------
    def new_page(self, section: Optional[int] = None) -> Page:
        """Return an unsaved page placed under ``section``."""

        self._require_admin()
        if section is not None and self.store.find(section) is None:
            raise NotFound(page_id=section)
        return Page(parent_id=section)

    def create_page(self, form: PageForm) -> Page:
        self._require_admin()
        fields = {
            "title": form.title,
            "content": form.content,
            "parent_id": form.parent_id,
            "show_title": form.show_title,
            "published_at": self.store.clock() if form.publish else None,
        }
        if form.position is not None:
            fields["position"] = form.position
        page = self.store.create(**fields)
        logger.info("Created page %s at %r", page.id, page.permalink)
        return page

    def update_page(self, page_id: int, form: PageForm) -> Page:
        self._require_admin()
        page = self.store.get(page_id)
        if not form.publish:
            published_at = None
        else:
            # Keep the original publication time when re-saving a published page.
            published_at = page.published_at or self.store.clock()
        fields = {
            "title": form.title,
            "content": form.content,
            "parent_id": form.parent_id,
            "show_title": form.show_title,
            "published_at": published_at,
        }
        if form.position is not None:
            fields["position"] = form.position
        return self.store.update(page, **fields)

    def delete_page(self, page_id: int) -> list[int]:
        """Delete a page together with its whole subtree."""

        self._require_admin()
        page = self.store.get(page_id)
        removed = self.store.delete_subtree(page)
        logger.info("Deleted page %s and %d descendants", page_id, len(removed) - 1)
        return removed

    def _require_admin(self) -> None:
        if not self.is_admin():
            raise AccessDenied("This action requires an admin")
