"""kindlenotes.ingest - process exported clippings from an inbox directory.

For each export:

  1. reject it if it is larger than ``max_html_size`` characters
  2. extract a :class:`~kindlenotes.items.BookRecord`
  3. no highlights → save a truncated sample of the HTML for debugging
  4. otherwise hand the record to every publisher in order
  5. move the file to ``processed_dir`` once it has been published

One failing document never stops the run; its outcome records the error.
"""

from __future__ import annotations

import logging
import re
import shutil
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path

from kindlenotes import settings
from kindlenotes.extractors.clippings import extract
from kindlenotes.plugins import Publisher

logger = logging.getLogger(__name__)

_UNSAFE_NAME_RE = re.compile(r"[^\w.\-]")


class IngestStatus(StrEnum):
    PUBLISHED = "published"
    EMPTY     = "empty"
    TOO_LARGE = "too_large"
    SKIPPED   = "skipped"
    ERROR     = "error"


@dataclass
class IngestOutcome:
    """What happened to one export."""
    source: str
    status: IngestStatus
    title: str | None = None
    highlight_count: int = 0
    published_to: dict[str, str | None] = field(default_factory=dict)
    sample_path: Path | None = None
    error: str | None = None


# ---------------------------------------------------------------------------
# Debug samples
# ---------------------------------------------------------------------------

def save_sample(
    html: str,
    source: str,
    sample_dir: str | Path,
    max_sample_size: int = settings.MAX_SAMPLE_SIZE,
) -> Path:
    """Write the head of *html* to ``<sample_dir>/<source>.sample.html``."""
    sample = html if len(html) <= max_sample_size else html[:max_sample_size] + "..."
    name = _UNSAFE_NAME_RE.sub("_", source) or "export"
    path = Path(sample_dir) / f"{name}.sample.html"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(sample, encoding="utf-8")
    logger.info("Saved HTML sample for %s → %s", source, path)
    return path


# ---------------------------------------------------------------------------
# Single document
# ---------------------------------------------------------------------------

def process_document(
    html: str,
    *,
    source: str,
    publishers: Sequence[Publisher] = (),
    sample_dir: str | Path | None = None,
    max_html_size: int = settings.MAX_HTML_SIZE,
    max_sample_size: int = settings.MAX_SAMPLE_SIZE,
) -> IngestOutcome:
    """Extract *html* and publish the result."""
    if len(html) > max_html_size:
        logger.warning(
            "Skipping %s: %d characters exceeds the %d character limit",
            source, len(html), max_html_size,
        )
        return IngestOutcome(source=source, status=IngestStatus.TOO_LARGE)

    record = extract(html)
    outcome = IngestOutcome(
        source=source,
        status=IngestStatus.EMPTY,
        title=record.title,
        highlight_count=len(record.highlights),
    )

    if not record.has_highlights:
        logger.warning("No highlights extracted from %s", source)
        if sample_dir is not None:
            try:
                outcome.sample_path = save_sample(html, source, sample_dir, max_sample_size)
            except OSError as exc:
                logger.error("Could not save HTML sample for %s: %s", source, exc)
        return outcome

    for publisher in publishers:
        try:
            outcome.published_to[publisher.name] = publisher.publish(record)
        except Exception as exc:
            logger.exception("Publisher %s failed for %s", publisher.name, source)
            outcome.status = IngestStatus.ERROR
            outcome.error = f"{publisher.name}: {exc}"
            return outcome

    outcome.status = IngestStatus.PUBLISHED
    logger.info("Processed %s: %r (%d highlights)", source, record.title, outcome.highlight_count)
    return outcome


# ---------------------------------------------------------------------------
# Files and directories
# ---------------------------------------------------------------------------

def _move_to(path: Path, target_dir: Path) -> Path:
    target_dir.mkdir(parents=True, exist_ok=True)
    target = target_dir / path.name
    counter = 2
    while target.exists():
        target = target_dir / f"{path.stem}-{counter}{path.suffix}"
        counter += 1
    shutil.move(str(path), str(target))
    return target


def process_file(
    path: str | Path,
    *,
    publishers: Sequence[Publisher] = (),
    processed_dir: str | Path | None = None,
    sample_dir: str | Path | None = None,
    max_html_size: int = settings.MAX_HTML_SIZE,
    max_sample_size: int = settings.MAX_SAMPLE_SIZE,
) -> IngestOutcome:
    """Process one export file; only ``.html`` files are considered."""
    path = Path(path)
    source = path.stem
    if path.suffix.lower() not in settings.HTML_SUFFIXES:
        logger.debug("Ignoring non-HTML file %s", path)
        return IngestOutcome(source=source, status=IngestStatus.SKIPPED)

    try:
        html = path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        logger.error("Could not read %s: %s", path, exc)
        return IngestOutcome(source=source, status=IngestStatus.ERROR, error=str(exc))

    outcome = process_document(
        html,
        source=source,
        publishers=publishers,
        sample_dir=sample_dir,
        max_html_size=max_html_size,
        max_sample_size=max_sample_size,
    )

    if outcome.status is IngestStatus.PUBLISHED and processed_dir is not None:
        try:
            moved = _move_to(path, Path(processed_dir))
            logger.info("Moved %s → %s", path, moved)
        except OSError as exc:
            logger.error("Could not move %s to %s: %s", path, processed_dir, exc)
    return outcome


def process_inbox(
    inbox_dir: str | Path,
    *,
    publishers: Sequence[Publisher] = (),
    processed_dir: str | Path | None = None,
    sample_dir: str | Path | None = None,
    max_html_size: int = settings.MAX_HTML_SIZE,
    max_sample_size: int = settings.MAX_SAMPLE_SIZE,
    max_files: int | None = None,
    time_budget: float | None = None,
) -> list[IngestOutcome]:
    """Process every export in *inbox_dir* (sorted by name).

    Stops early after *max_files* exports or once *time_budget* seconds have
    elapsed.  Non-HTML files are ignored and do not count towards the cap.
    """
    inbox = Path(inbox_dir)
    if not inbox.is_dir():
        logger.warning("Inbox %s does not exist", inbox)
        return []

    candidates = sorted(
        p for p in inbox.iterdir()
        if p.is_file() and p.suffix.lower() in settings.HTML_SUFFIXES
    )
    logger.info("Found %d exports in %s", len(candidates), inbox)

    started = time.monotonic()
    outcomes: list[IngestOutcome] = []
    for path in candidates:
        if max_files is not None and len(outcomes) >= max_files:
            logger.info("Reached the limit of %d exports for this run", max_files)
            break
        if time_budget is not None and time.monotonic() - started > time_budget:
            logger.info("Time budget of %.0fs exhausted; stopping", time_budget)
            break
        try:
            outcomes.append(
                process_file(
                    path,
                    publishers=publishers,
                    processed_dir=processed_dir,
                    sample_dir=sample_dir,
                    max_html_size=max_html_size,
                    max_sample_size=max_sample_size,
                ),
            )
        except Exception as exc:
            logger.exception("Failed to process %s", path)
            outcomes.append(
                IngestOutcome(source=path.stem, status=IngestStatus.ERROR, error=str(exc)),
            )
    return outcomes
