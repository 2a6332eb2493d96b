"""Arena-style page store persisted as Markdown files with YAML front matter."""

from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Iterator, Optional

import frontmatter
import yaml

from milkshake.errors import NotFound, StoreError, UniquenessError, ValidationError

from .models import (
    BY_POSITION,
    EDITABLE_FIELDS,
    NEWEST_FIRST,
    OrderBy,
    Page,
    PermalinkChanged,
    SaveResult,
)
from .propagation import PermalinkPropagator, compute_permalink


logger = logging.getLogger(__name__)

PAGES_DIRNAME = "pages"
META_FILENAME = "store.yml"

# Sentinel for "do not filter on parent" in ``PageStore.query``.
ANY_PARENT = object()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PageStore:
    """Own every page record and guard the global permalink invariant.

    Pages are kept in memory keyed by id and, when ``root`` is given, mirrored
    to ``<root>/pages/<id>.md``. Callers always receive copies, so a page only
    changes in the store through :meth:`save` (directly or via
    :meth:`create` / :meth:`update`).
    """

    def __init__(
        self,
        root: Optional[Path] = None,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.root = root
        self.clock = clock
        self.propagator = PermalinkPropagator(self)
        self._pages: dict[int, Page] = {}
        self._by_permalink: dict[str, int] = {}
        self._last_id = 0
        if self.root is not None:
            self.reload()

    def __len__(self) -> int:
        return len(self._pages)

    def __iter__(self) -> Iterator[Page]:
        return iter(self.query())

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------
    def find(self, page_id: Optional[int]) -> Optional[Page]:
        """Return a copy of the page with ``page_id`` or ``None``."""

        record = self._pages.get(page_id) if page_id is not None else None
        return replace(record) if record is not None else None

    def get(self, page_id: int) -> Page:
        page = self.find(page_id)
        if page is None:
            raise NotFound(page_id=page_id)
        return page

    def find_by_permalink(self, permalink: str) -> Page:
        page_id = self._by_permalink.get(permalink)
        if page_id is None:
            raise NotFound(permalink=permalink)
        return self.get(page_id)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def create(self, **fields: object) -> Page:
        """Create, save and return a new page built from ``fields``."""

        _check_fields(fields)
        page = Page(**fields)
        return self.propagator.save(page).page

    def update(self, page: Page, **fields: object) -> Page:
        """Apply ``fields`` to ``page``, save it and cascade its permalink.

        The changes are applied to a copy, so on failure neither the caller's
        object nor the stored record is modified.
        """

        _check_fields(fields)
        if page.id is None:
            raise ValidationError("cannot update a page that was never saved", field="id")
        record = replace(page, **fields)
        return self.propagator.save(record).page

    def save(self, page: Page) -> SaveResult:
        """Validate and persist a single page without touching its children.

        The returned result lists a :class:`PermalinkChanged` event when the
        permalink moved; :class:`PermalinkPropagator` turns those events into
        descendant saves.
        """

        record = replace(page)
        stored = None
        if record.id is not None:
            stored = self._pages.get(record.id)
            if stored is None:
                raise NotFound(page_id=record.id)

        if not record.slug:
            raise ValidationError(
                f"{record.title!r} does not contain any word characters", field="title"
            )
        parent = self._resolve_parent(record, stored)
        permalink = compute_permalink(record, parent)
        holder = self._by_permalink.get(permalink)
        if holder is not None and holder != record.id:
            raise UniquenessError(permalink, holder_id=holder)

        now = self.clock()
        if record.id is None:
            record.id = self._last_id + 1
            record.created_at = now
            self._write_meta(record.id)
        elif stored is not None:
            record.created_at = stored.created_at
        if record.position is None:
            record.position = len(self._sibling_records(record)) + 1
        record.updated_at = now

        old_permalink = stored.permalink if stored is not None else None
        record.permalink = permalink
        changes = []
        if permalink != old_permalink:
            changes.append(PermalinkChanged(page_id=record.id, old=old_permalink, new=permalink))

        self._write(record)
        self._last_id = max(self._last_id, record.id)
        self._pages[record.id] = record
        if old_permalink is not None and old_permalink != permalink:
            self._by_permalink.pop(old_permalink, None)
        self._by_permalink[permalink] = record.id
        logger.info("Saved page %s at %r", record.id, permalink)
        return SaveResult(page=replace(record), changes=changes)

    def delete(self, page: Page) -> None:
        """Remove ``page`` only; its children keep pointing at the removed id.

        The id is never handed out again, so orphans cannot be adopted by a
        later page. They are treated as roots until they are moved.
        """

        record = self._pages.get(page.id)
        if record is None:
            raise NotFound(page_id=page.id)
        if self.root is not None:
            try:
                self._page_file(record.id).unlink(missing_ok=True)
            except OSError as exc:
                raise StoreError(str(self._page_file(record.id)), "delete", str(exc)) from exc
        del self._pages[record.id]
        if self._by_permalink.get(record.permalink) == record.id:
            del self._by_permalink[record.permalink]
        logger.info("Deleted page %s (%r)", record.id, record.permalink)

    def delete_subtree(self, page: Page) -> list[int]:
        """Delete ``page`` and every descendant, deepest first.

        Returns the ids removed, in deletion order.
        """

        if page.id not in self._pages:
            raise NotFound(page_id=page.id)
        ordered: list[Page] = []
        stack = [self._pages[page.id]]
        while stack:
            current = stack.pop()
            ordered.append(current)
            stack.extend(self._child_records(current.id))
        removed = []
        for record in reversed(ordered):
            self.delete(record)
            removed.append(record.id)
        return removed

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def query(
        self,
        *,
        parent_id: object = ANY_PARENT,
        published: Optional[bool] = None,
        exclude_id: Optional[int] = None,
        order_by: OrderBy = BY_POSITION,
        limit: Optional[int] = None,
    ) -> list[Page]:
        """Return copies of matching pages sorted by ``order_by``."""

        if limit is not None and limit < 0:
            raise ValidationError(f"must not be negative, got {limit}", field="limit")
        matches = []
        for record in self._pages.values():
            if parent_id is not ANY_PARENT and record.parent_id != parent_id:
                continue
            if published is not None and record.is_published != published:
                continue
            if exclude_id is not None and record.id == exclude_id:
                continue
            matches.append(record)
        ordered = order_by.sort(matches)
        if limit is not None:
            ordered = ordered[:limit]
        return [replace(record) for record in ordered]

    def roots(self, *, published: Optional[bool] = None, order_by: OrderBy = BY_POSITION) -> list[Page]:
        return self.query(parent_id=None, published=published, order_by=order_by)

    def published(self, *, order_by: OrderBy = BY_POSITION) -> list[Page]:
        return self.query(published=True, order_by=order_by)

    def recent(self, number: int = 1, *, order_by: OrderBy = NEWEST_FIRST) -> list[Page]:
        return self.query(order_by=order_by, limit=number)

    def all_children_of(
        self,
        parent_id: Optional[int],
        *,
        published: Optional[bool] = None,
        order_by: OrderBy = BY_POSITION,
    ) -> list[Page]:
        return self.query(parent_id=parent_id, published=published, order_by=order_by)

    def siblings_of(
        self,
        page: Page,
        *,
        published: Optional[bool] = None,
        order_by: OrderBy = BY_POSITION,
    ) -> list[Page]:
        return self.query(
            parent_id=page.parent_id,
            published=published,
            exclude_id=page.id,
            order_by=order_by,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _resolve_parent(self, record: Page, stored: Optional[Page]) -> Optional[Page]:
        if record.parent_id is None:
            return None
        parent = self._pages.get(record.parent_id)
        if parent is None:
            if stored is not None and stored.parent_id == record.parent_id:
                # An orphan that is not being moved is saved as a root.
                return None
            raise ValidationError(f"page {record.parent_id} does not exist", field="parent_id")
        # Walk up from the parent; meeting the page itself means a cycle.
        seen: set[int] = set()
        current: Optional[Page] = parent
        while current is not None and current.id not in seen:
            if record.id is not None and current.id == record.id:
                raise ValidationError(
                    f"page {record.id} cannot be moved under its own descendant",
                    field="parent_id",
                )
            seen.add(current.id)
            current = self._pages.get(current.parent_id) if current.parent_id is not None else None
        return parent

    def _child_records(self, page_id: int) -> list[Page]:
        return [record for record in self._pages.values() if record.parent_id == page_id]

    def _sibling_records(self, record: Page) -> list[Page]:
        return [
            other
            for other in self._pages.values()
            if other.parent_id == record.parent_id and other.id != record.id
        ]

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------
    def reload(self) -> None:
        """Re-read every page file below ``root`` into memory."""

        self._pages.clear()
        self._by_permalink.clear()
        self._last_id = 0
        if self.root is None:
            return
        self._last_id = self._read_meta()
        directory = self.root / PAGES_DIRNAME
        if not directory.exists():
            return
        for page_file in sorted(directory.glob("*.md")):
            record = self._read(page_file)
            self._pages[record.id] = record
            self._by_permalink[record.permalink] = record.id
            self._last_id = max(self._last_id, record.id)
        logger.debug("Loaded %d pages from %s", len(self._pages), directory)

    def _page_file(self, page_id: int) -> Path:
        return self.root / PAGES_DIRNAME / f"{page_id}.md"

    def _meta_file(self) -> Path:
        return self.root / META_FILENAME

    def _read_meta(self) -> int:
        """Return the highest id ever issued by this store, or 0."""

        meta_file = self._meta_file()
        if not meta_file.exists():
            return 0
        try:
            data = yaml.safe_load(meta_file.read_text(encoding="utf-8")) or {}
            if not isinstance(data, dict):
                raise ValueError("expected a mapping")
            return int(data.get("last_id", 0))
        except (OSError, ValueError, TypeError, yaml.YAMLError) as exc:
            raise StoreError(str(meta_file), "read", str(exc)) from exc

    def _write_meta(self, last_id: int) -> None:
        if self.root is None:
            return
        _atomic_write(self._meta_file(), yaml.safe_dump({"last_id": last_id}))

    def _write(self, record: Page) -> None:
        if self.root is None:
            return
        post = frontmatter.Post(record.content)
        post.metadata.update(
            {
                "id": record.id,
                "title": record.title,
                "permalink": record.permalink,
                "created_at": _format_datetime(record.created_at),
                "updated_at": _format_datetime(record.updated_at),
                "published_at": _format_datetime(record.published_at),
                "position": record.position,
                "parent_id": record.parent_id,
                "show_title": record.show_title,
            }
        )
        _atomic_write(self._page_file(record.id), frontmatter.dumps(post) + "\n")

    def _read(self, page_file: Path) -> Page:
        try:
            post = frontmatter.loads(page_file.read_text(encoding="utf-8"))
            metadata = post.metadata
            if "id" not in metadata or not metadata.get("permalink"):
                raise ValueError("missing id or permalink")
            return Page(
                id=int(metadata["id"]),
                title=str(metadata.get("title", "")),
                permalink=str(metadata["permalink"]),
                content=post.content,
                created_at=_parse_datetime(metadata.get("created_at")),
                updated_at=_parse_datetime(metadata.get("updated_at")),
                published_at=_parse_datetime(metadata.get("published_at")),
                position=_as_optional_int(metadata.get("position")),
                parent_id=_as_optional_int(metadata.get("parent_id")),
                show_title=bool(metadata.get("show_title", True)),
            )
        except (OSError, ValueError, TypeError, yaml.YAMLError) as exc:
            raise StoreError(str(page_file), "read", str(exc)) from exc


def _atomic_write(target: Path, text: str) -> None:
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            "w", encoding="utf-8", dir=target.parent, suffix=".tmp", delete=False
        ) as handle:
            handle.write(text)
        os.replace(handle.name, target)
    except OSError as exc:
        raise StoreError(str(target), "write", str(exc)) from exc


def _check_fields(fields: dict[str, object]) -> None:
    for name in fields:
        if name not in EDITABLE_FIELDS:
            raise ValidationError("is not an editable page field", field=name)


def _format_datetime(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat()


def _parse_datetime(value: object) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _as_optional_int(value: object) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None
