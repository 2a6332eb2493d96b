"""Utilities for mapping page titles to URL-safe slugs."""

from __future__ import annotations

import re


_NON_WORD_RE = re.compile(r"\W+", re.ASCII)


def slugify(value: str) -> str:
    """Return the permalink segment derived from ``value``.

    The title is lowercased, every run of characters outside ASCII letters,
    digits and underscore becomes a single hyphen, and hyphens at either end
    are removed. Titles without any word characters produce an empty string;
    callers decide whether that is valid.
    """

    value = value.lower()
    value = _NON_WORD_RE.sub("-", value)
    return value.strip("-")
