"""Filesystem-safe names for notes and notebooks."""

from __future__ import annotations

from pathvalidate import sanitize_filename as _pathvalidate_sanitize

FALLBACK_NAME = "untitled"


def sanitize_filename(name: str | None, replacement: str = "-") -> str:
    """Map an arbitrary title to a single safe path segment.

    Path separators and reserved characters are replaced with ``replacement``.
    Input that sanitizes to nothing yields ``"untitled"``.
    """
    cleaned = _pathvalidate_sanitize(name or "", replacement_text=replacement).strip()
    if cleaned in ("", ".", ".."):
        return FALLBACK_NAME
    return cleaned
