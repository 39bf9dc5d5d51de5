"""Tag stripping for matched HTML fragments."""

from __future__ import annotations

import re

_TAG_RE = re.compile(r"<[^>]*>")


def strip_markup(html: str) -> str:
    """Remove every ``<...>`` span from *html*.

    Text between tags and HTML entities are left untouched.
    """
    return _TAG_RE.sub("", html)


def normalize_fragment(html: str) -> str:
    """Strip markup from *html* and trim surrounding whitespace."""
    return strip_markup(html).strip()
