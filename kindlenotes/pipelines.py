"""File publisher: write each book as ``<slug>.json`` and ``<slug>.md``."""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path

from kindlenotes.items import BookRecord
from kindlenotes.markdown import format_markdown_book

logger = logging.getLogger(__name__)

_MULTI_DASH_RE = re.compile(r"-{2,}")
_NON_SLUG_RE = re.compile(r"[^\w\-]")


def slugify(title: str, max_length: int = 100) -> str:
    """Generate a filesystem-safe slug from a book *title*."""
    slug = _NON_SLUG_RE.sub("-", title.strip().lower())
    slug = _MULTI_DASH_RE.sub("-", slug).strip("-")
    return slug[:max_length].strip("-") or "book"


def _unique_slug(slug: str, seen: set[str]) -> str:
    """Append -2, -3, … until *slug* is not in *seen*."""
    candidate = slug
    counter = 2
    while candidate in seen:
        candidate = f"{slug}-{counter}"
        counter += 1
    seen.add(candidate)
    return candidate


def _write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


class BookWriterPipeline:
    """Write records under ``<out_dir>/books``."""

    name = "files"

    def __init__(self, out_dir: str | Path) -> None:
        self.books_dir = Path(out_dir) / "books"
        self._seen_slugs: set[str] = set()
        self._count = 0

    def publish(self, record: BookRecord) -> str | None:
        if not record.has_highlights:
            logger.info("Nothing to write for %r: no highlights", record.title)
            return None

        slug = _unique_slug(slugify(record.title), self._seen_slugs)
        _write_text(
            self.books_dir / f"{slug}.json",
            json.dumps(record.to_dict(), indent=2, ensure_ascii=False),
        )
        _write_text(self.books_dir / f"{slug}.md", format_markdown_book(record))

        self._count += 1
        logger.info("Wrote book [%d]: %r → %s", self._count, record.title, slug)
        return slug

    @property
    def count(self) -> int:
        return self._count
