"""Render a BookRecord as a Markdown document."""

from __future__ import annotations

import re

from kindlenotes.items import DEFAULT_COLOR, BookRecord, group_by_section

_EXCESSIVE_BLANK_LINES_RE = re.compile(r"\n{3,}")
_TRAILING_WHITESPACE_RE = re.compile(r"[ \t]+$", re.MULTILINE)


def _blockquote(text: str) -> str:
    return "\n".join(f"> {line}".rstrip() for line in text.splitlines() or [""])


def format_markdown_book(record: BookRecord) -> str:
    """Title, authors, then highlights grouped by section."""
    lines: list[str] = [f"# {record.title}", ""]

    if record.authors:
        lines.append(f"**Authors:** {record.authors}")
    lines.append(f"**Highlights:** {len(record.highlights)}")
    lines.append("")
    lines.append("---")

    for section, highlights in group_by_section(record.highlights).items():
        lines.append("")
        lines.append(f"## {section}")
        for highlight in highlights:
            lines.append("")
            lines.append(f"### {highlight.heading}")
            lines.append("")
            lines.append(_blockquote(highlight.text))
            if highlight.highlight_color and highlight.highlight_color != DEFAULT_COLOR:
                lines.append("")
                lines.append(f"*Color: {highlight.highlight_color}*")

    md = "\n".join(lines)
    md = _TRAILING_WHITESPACE_RE.sub("", md)
    md = _EXCESSIVE_BLANK_LINES_RE.sub("\n\n", md)
    return md.strip() + "\n"
