"""Dataclasses representing pages and the events produced when saving them."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from .naming import slugify


DEFAULT_TITLE = "Title"
DEFAULT_CONTENT = "Enter some content here"
SUMMARY_LENGTH = 400

# Fields a caller may set through ``PageStore.create`` / ``PageStore.update``.
EDITABLE_FIELDS = frozenset(
    {"title", "content", "published_at", "position", "parent_id", "show_title"}
)


@dataclass(slots=True)
class Page:
    """A node in the page tree.

    Relationships are plain id references; the store resolves them at read
    time so pages never hold each other.
    """

    id: Optional[int] = None
    title: str = DEFAULT_TITLE
    permalink: Optional[str] = None
    content: str = DEFAULT_CONTENT
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    published_at: Optional[datetime] = None
    position: Optional[int] = None
    parent_id: Optional[int] = None
    show_title: bool = True

    @property
    def slug(self) -> str:
        return slugify(self.title)

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    @property
    def is_published(self) -> bool:
        return self.published_at is not None

    @property
    def is_draft(self) -> bool:
        return self.published_at is None

    @property
    def summary(self) -> str:
        return self.content[:SUMMARY_LENGTH]

    # ------------------------------------------------------------------
    # Paths used by the admin and public routes
    # ------------------------------------------------------------------
    @property
    def path(self) -> str:
        return "/" + (self.permalink or "")

    @property
    def edit_path(self) -> str:
        return f"/page/{self.id}"

    @property
    def delete_path(self) -> str:
        return f"/page/{self.id}/delete"

    @property
    def new_path(self) -> str:
        return "/new/page"

    @property
    def new_child_path(self) -> str:
        return f"/new/page?section={self.id}"

    @property
    def new_sibling_path(self) -> str:
        section = "" if self.parent_id is None else str(self.parent_id)
        return f"/new/page?section={section}"


@dataclass(frozen=True, slots=True)
class OrderBy:
    """Sort key for page collections; ties fall back to ascending id."""

    field: str
    descending: bool = False

    def sort(self, pages: list[Page]) -> list[Page]:
        # Stable sorts keep the id tie-break ascending in both directions.
        ordered = sorted(pages, key=lambda page: page.id or 0)
        present = [page for page in ordered if getattr(page, self.field) is not None]
        missing = [page for page in ordered if getattr(page, self.field) is None]
        present.sort(key=lambda page: getattr(page, self.field), reverse=self.descending)
        # Pages without a value come last whatever the direction.
        return present + missing


BY_POSITION = OrderBy("position")
NEWEST_FIRST = OrderBy("created_at", descending=True)


@dataclass(frozen=True, slots=True)
class PermalinkChanged:
    """Emitted by a save whose permalink differs from the stored one."""

    page_id: int
    old: Optional[str]
    new: str


@dataclass(slots=True)
class SaveResult:
    """Outcome of the first phase of a save: the stored page and its events."""

    page: Page
    changes: list[PermalinkChanged] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.changes)
