"""Filesystem-friendly identifiers for log file names."""

from __future__ import annotations

import hashlib
import re

_UNSAFE = re.compile(r"[^a-z0-9_.-]+")
_HYPHEN_COLLAPSE = re.compile(r"-{2,}")


def slugify(value: str | None, *, fallback: str = "item", max_length: int = 80) -> str:
    """Lowercase ``value`` and replace unsafe runs with single hyphens.

    Slugs longer than ``max_length`` keep a prefix plus a short digest so that
    distinct long inputs stay distinct.
    """
    slug = _HYPHEN_COLLAPSE.sub("-", _UNSAFE.sub("-", (value or "").strip().lower())).strip("-")
    if not slug:
        slug = fallback
    if len(slug) <= max_length:
        return slug
    digest = hashlib.sha256(slug.encode("utf-8")).hexdigest()[:8]
    prefix = slug[: max(max_length - len(digest) - 1, 1)].rstrip("-") or slug[:1]
    return f"{prefix}-{digest}"
