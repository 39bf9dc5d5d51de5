"""kindlenotes.extractors.clippings - Kindle notebook export → BookRecord.

Title and authors come from ordered pattern cascades (first match wins).
Highlights come from a strategy chain; each tier is only consulted when every
earlier tier found nothing:

  1. sections        - split on section headings, then per section:
                        a. split on note headings and look for the note text
                        b. heading/text pair regex over the section body
  2. direct_pairs    - heading/text pair regex over the whole document
  3. adjacent_blocks - consecutive ``<div>`` texts that look like a pair
  4. registered strategy plugins

``extract()`` never raises.  A tier that fails is logged and counted as a
miss; a failure outside every tier produces a record titled
:data:`~kindlenotes.items.PARSE_ERROR_TITLE` with no highlights.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from kindlenotes.extractors.text import normalize_fragment
from kindlenotes.items import (
    DEFAULT_COLOR,
    PARSE_ERROR_TITLE,
    UNKNOWN_TITLE,
    BookRecord,
    Highlight,
)

logger = logging.getLogger(__name__)

Matcher = Callable[[str], str | None]
Strategy = Callable[[str], list[Highlight]]

# ---------------------------------------------------------------------------
# Markers
# ---------------------------------------------------------------------------

SECTION_MARKER = '<div class="sectionHeading">'
NOTE_HEADING_MARKER = '<div class="noteHeading">'
CLOSE_DIV = "</div>"

_NOTE_TEXT_RE = re.compile(r'<div class="noteText">(.*?)</div>', re.DOTALL)
_SECTION_PAIR_RE = re.compile(
    r'<div class="noteHeading">(.*?)</div>\s*<div class="noteText">(.*?)</div>',
    re.DOTALL,
)
_LOOSE_PAIR_RE = re.compile(
    r'<div[^>]*class="noteHeading"[^>]*>(.*?)</div>\s*'
    r'<div[^>]*class="noteText"[^>]*>(.*?)</div>',
    re.DOTALL,
)
_BLOCK_RE = re.compile(r"<div[^>]*>(.*?)</div>", re.DOTALL)

# Adjacent-block acceptance thresholds (strictly greater than)
_MIN_BLOCK_HEADING_CHARS = 5
_MIN_BLOCK_TEXT_CHARS = 10


# ---------------------------------------------------------------------------
# Matcher cascades
# ---------------------------------------------------------------------------

def pattern_matcher(pattern: re.Pattern[str]) -> Matcher:
    """Return a matcher yielding the trimmed first group of *pattern*, or None."""

    def _match(text: str) -> str | None:
        m = pattern.search(text)
        if m is None:
            return None
        return m.group(1).strip()

    return _match


def first_match(matchers: Sequence[Matcher], text: str) -> str | None:
    """Try *matchers* in order and return the first non-None result."""
    for matcher in matchers:
        value = matcher(text)
        if value is not None:
            return value
    return None


TITLE_MATCHERS: tuple[Matcher, ...] = (
    pattern_matcher(re.compile(r'<div class="bookTitle">\s*(.*?)\s*</div>', re.DOTALL)),
    pattern_matcher(re.compile(r'<h2 class="bookTitle">\s*(.*?)\s*</h2>', re.DOTALL)),
    pattern_matcher(re.compile(r"<h1>\s*(.*?)\s*</h1>", re.DOTALL)),
)

AUTHOR_MATCHERS: tuple[Matcher, ...] = (
    pattern_matcher(re.compile(r'<div class="authors">\s*(.*?)\s*</div>', re.DOTALL)),
    pattern_matcher(re.compile(r'<h3 class="authors">\s*(.*?)\s*</h3>', re.DOTALL)),
    pattern_matcher(re.compile(r'<div class="author">\s*(.*?)\s*</div>', re.DOTALL)),
)

# Color markers only ever span a single line of the heading
COLOR_MATCHERS: tuple[Matcher, ...] = (
    pattern_matcher(re.compile(r'<span class="highlight_(.*?)">.*?</span>')),
)


def extract_title(html: str) -> str:
    return first_match(TITLE_MATCHERS, html) or UNKNOWN_TITLE


def extract_authors(html: str) -> str | None:
    return first_match(AUTHOR_MATCHERS, html)


def extract_color(heading_html: str) -> str:
    """Color name from a ``highlight_<color>`` span in *heading_html*."""
    color = first_match(COLOR_MATCHERS, heading_html)
    return DEFAULT_COLOR if color is None else color


# ---------------------------------------------------------------------------
# Tier results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TierResult:
    """Outcome of running one highlight strategy."""
    name: str
    highlights: tuple[Highlight, ...] = ()
    error: str | None = None

    @property
    def hit(self) -> bool:
        return bool(self.highlights)


@dataclass(frozen=True)
class ExtractionReport:
    """A record plus which tier produced its highlights."""
    record: BookRecord
    method: str                 # tier name | "none" | "error"
    tiers: tuple[TierResult, ...] = field(default_factory=tuple)


# ---------------------------------------------------------------------------
# Tier 1: section-scoped extraction
# ---------------------------------------------------------------------------

def _section_highlight(section: str, heading: str, text: str) -> Highlight:
    return Highlight(
        section=section,
        heading=normalize_fragment(heading),
        text=text,
        highlight_color=extract_color(heading),
    )


def split_sections(html: str) -> list[tuple[str, str]]:
    """Split *html* into ``(name, body)`` pairs on section-heading markers.

    Without any marker the whole document is one unnamed section.
    """
    fragments = html.split(SECTION_MARKER)
    if len(fragments) <= 1:
        return [("", html)]
    sections: list[tuple[str, str]] = []
    for fragment in fragments[1:]:
        name, _, body = fragment.partition(CLOSE_DIV)
        sections.append((name.strip(), body))
    return sections


def split_note_headings(section: str, body: str) -> list[Highlight]:
    """Sub-strategy 1a: split on note headings, then find each note text."""
    highlights: list[Highlight] = []
    for fragment in body.split(NOTE_HEADING_MARKER)[1:]:
        if CLOSE_DIV not in fragment:
            continue
        heading, _, rest = fragment.partition(CLOSE_DIV)
        m = _NOTE_TEXT_RE.search(rest)
        if m and m.group(1):
            highlights.append(_section_highlight(section, heading.strip(), m.group(1).strip()))
    return highlights


def match_note_pairs(section: str, body: str) -> list[Highlight]:
    """Sub-strategy 1b: adjacent heading/text pairs matched directly."""
    return [
        _section_highlight(section, m.group(1).strip(), m.group(2).strip())
        for m in _SECTION_PAIR_RE.finditer(body)
    ]


_SECTION_STRATEGIES: tuple[Callable[[str, str], list[Highlight]], ...] = (
    split_note_headings,
    match_note_pairs,
)


def extract_section_highlights(html: str) -> list[Highlight]:
    highlights: list[Highlight] = []
    for name, body in split_sections(html):
        try:
            for strategy in _SECTION_STRATEGIES:
                found = strategy(name, body)
                if found:
                    highlights.extend(found)
                    break
        except Exception as exc:
            logger.warning("Skipping section %r: %s", name, exc)
    return highlights


# ---------------------------------------------------------------------------
# Tier 2: document-wide heading/text pairs
# ---------------------------------------------------------------------------

def extract_direct_pairs(html: str) -> list[Highlight]:
    # No section attribution and no color detection in this tier
    return [
        Highlight(
            section="",
            heading=normalize_fragment(m.group(1).strip()),
            text=m.group(2).strip(),
            highlight_color=DEFAULT_COLOR,
        )
        for m in _LOOSE_PAIR_RE.finditer(html)
    ]


# ---------------------------------------------------------------------------
# Tier 3: adjacent generic blocks
# ---------------------------------------------------------------------------

def _is_block_pair(heading: str, text: str) -> bool:
    return (
        len(heading) > _MIN_BLOCK_HEADING_CHARS
        and len(text) > _MIN_BLOCK_TEXT_CHARS
        and "<" not in heading
        and "<" not in text
    )


def extract_adjacent_blocks(html: str) -> list[Highlight]:
    """Pair up consecutive ``<div>`` texts.

    An accepted pair consumes both blocks; a rejected one slides by one.
    Pairing is greedy: a rejected block followed by two valid ones can
    shift which blocks end up paired.
    """
    blocks = [m.group(1).strip() for m in _BLOCK_RE.finditer(html)]
    highlights: list[Highlight] = []
    i = 0
    while i < len(blocks) - 1:
        heading, text = blocks[i], blocks[i + 1]
        if _is_block_pair(heading, text):
            highlights.append(
                Highlight(section="", heading=heading, text=text, highlight_color=DEFAULT_COLOR),
            )
            i += 2
        else:
            i += 1
    return highlights


# ---------------------------------------------------------------------------
# Strategy chain
# ---------------------------------------------------------------------------

BUILTIN_TIERS: tuple[tuple[str, Strategy], ...] = (
    ("sections", extract_section_highlights),
    ("direct_pairs", extract_direct_pairs),
    ("adjacent_blocks", extract_adjacent_blocks),
)


def run_tier(name: str, strategy: Strategy, html: str) -> TierResult:
    """Run one strategy, converting an unexpected failure into a miss."""
    try:
        found = tuple(strategy(html))
        for item in found:
            if not isinstance(item, Highlight):
                raise TypeError(f"expected Highlight, got {type(item).__name__}")
    except Exception as exc:
        logger.warning("Highlight tier %s failed: %s", name, exc)
        return TierResult(name=name, error=str(exc) or type(exc).__name__)
    logger.debug("Highlight tier %s found %d highlights", name, len(found))
    return TierResult(name=name, highlights=found)


def _all_tiers() -> list[tuple[str, Strategy]]:
    from kindlenotes.plugins import get_strategies

    tiers = list(BUILTIN_TIERS)
    tiers.extend((plugin.name, plugin.extract) for plugin in get_strategies())
    return tiers


def run_tiers(
    html: str,
    tiers: Sequence[tuple[str, Strategy]],
) -> tuple[str, list[TierResult]]:
    """Run *tiers* in order until one returns highlights.

    Returns the winning tier name (``"none"`` if all missed) and every
    result produced along the way.
    """
    results: list[TierResult] = []
    for name, strategy in tiers:
        result = run_tier(name, strategy, html)
        results.append(result)
        if result.hit:
            return name, results
    return "none", results


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def _build_report(html: str | bytes) -> ExtractionReport:
    if isinstance(html, bytes):
        html = html.decode("utf-8", errors="replace")
    if not isinstance(html, str):
        raise TypeError(f"expected HTML text, got {type(html).__name__}")

    logger.info("Parsing clippings export: %d characters", len(html))

    title = extract_title(html)
    authors = extract_authors(html)
    method, tiers = run_tiers(html, _all_tiers())
    highlights = list(tiers[-1].highlights) if method != "none" else []

    logger.info("Extracted %d highlights from %r via %s", len(highlights), title, method)
    return ExtractionReport(
        record=BookRecord(title=title, authors=authors, highlights=highlights),
        method=method,
        tiers=tuple(tiers),
    )


def extract_with_details(html: str | bytes) -> ExtractionReport:
    """Like :func:`extract` but also reports which tier matched."""
    try:
        return _build_report(html)
    except Exception:
        logger.exception("Failed to parse clippings export")
        return ExtractionReport(
            record=BookRecord(title=PARSE_ERROR_TITLE, highlights=[]),
            method="error",
        )


def extract(html: str | bytes) -> BookRecord:
    """Extract a :class:`~kindlenotes.items.BookRecord` from *html*.

    Never raises; see the module docstring for the fallback order.
    """
    return extract_with_details(html).record
