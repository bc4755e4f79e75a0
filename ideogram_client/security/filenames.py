"""Traversal-safe output filenames."""

import re
from datetime import datetime, timezone
from typing import Optional

DEFAULT_EXTENSION = "png"
MAX_EXTENSION_LENGTH = 10

_SLUG_STRIP = re.compile(r"[^a-z0-9\s]")
_WHITESPACE = re.compile(r"\s+")
_LEADING_DOTS = re.compile(r"^\.+")
_EXTENSION_STRIP = re.compile(r"[^a-z0-9]")


def make_filename(
    text: str,
    extension: Optional[str] = DEFAULT_EXTENSION,
    max_length: int = 50,
    *,
    now: Optional[datetime] = None,
) -> str:
    """Build ``{YYYYMMDD_HHMMSS}_{slug}.{ext}`` from free text.

    Never fails: text that sanitizes to nothing yields an empty slug, and an
    unusable extension falls back to ``png``. The result never contains a
    path separator.

    Example:
        make_filename("A beautiful sunset over mountains")
        # '20250119_143022_a-beautiful-sunset-over-mountains.png'
    """
    timestamp = (now or datetime.now(timezone.utc)).strftime("%Y%m%d_%H%M%S")

    slug = _SLUG_STRIP.sub("", (text or "").lower()).strip()
    slug = _WHITESPACE.sub("-", slug)[: max(max_length, 0)]

    ext = _LEADING_DOTS.sub("", (extension or "").lower())
    ext = _EXTENSION_STRIP.sub("", ext)[:MAX_EXTENSION_LENGTH] or DEFAULT_EXTENSION

    return f"{timestamp}_{slug}.{ext}"
