"""Typed exception hierarchy for the page tree and its collaborators."""

from __future__ import annotations

from typing import Optional


class MilkshakeError(Exception):
    """Base exception for every application-level error."""


class ValidationError(MilkshakeError):
    """Raised when a page fails an invariant before it is persisted."""

    def __init__(self, message: str, *, field: Optional[str] = None) -> None:
        if field:
            message = f"{field}: {message}"
        super().__init__(message)
        self.field = field


class UniquenessError(ValidationError):
    """Raised when a computed permalink is already held by another page."""

    def __init__(self, permalink: str, *, holder_id: Optional[int] = None) -> None:
        super().__init__(f"permalink {permalink!r} is already taken", field="permalink")
        self.permalink = permalink
        self.holder_id = holder_id


class NotFound(MilkshakeError):
    """Raised when a page lookup has no match."""

    def __init__(self, *, page_id: Optional[int] = None, permalink: Optional[str] = None) -> None:
        if permalink is not None:
            message = f"No page with permalink {permalink!r}"
        else:
            message = f"No page with id {page_id}"
        super().__init__(message)
        self.page_id = page_id
        self.permalink = permalink


class AccessDenied(MilkshakeError):
    """Raised when a guest asks for a draft page or an admin-only action."""

    def __init__(self, message: str, *, page_id: Optional[int] = None) -> None:
        super().__init__(message)
        self.page_id = page_id


class TreeCycleError(MilkshakeError):
    """Raised when walking parent links revisits a page."""

    def __init__(self, page_id: int) -> None:
        super().__init__(f"Parent chain of page {page_id} contains a cycle")
        self.page_id = page_id


class StoreError(MilkshakeError):
    """Raised when a page file cannot be read or written."""

    def __init__(self, path: str, operation: str, reason: Optional[str] = None) -> None:
        message = f"Store operation '{operation}' failed for {path}"
        if reason:
            message += f": {reason}"
        super().__init__(message)
        self.path = path
        self.operation = operation
        self.reason = reason


class ConfigError(MilkshakeError):
    """Raised when configuration cannot be resolved or validated."""
