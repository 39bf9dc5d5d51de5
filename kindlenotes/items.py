"""Pydantic models for extracted books and their highlights."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

UNKNOWN_TITLE = "unknown title"
PARSE_ERROR_TITLE = "parse error"
DEFAULT_COLOR = "default"
UNCATEGORIZED_SECTION = "Uncategorized"


# ---------------------------------------------------------------------------
# Highlight
# ---------------------------------------------------------------------------

class Highlight(BaseModel):
    """One highlighted passage.

    ``highlight_color`` serializes as ``highlightColor`` and accepts either
    name on input.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    section: str = ""
    heading: str = ""
    text: str = ""
    highlight_color: str | None = Field(default=DEFAULT_COLOR, alias="highlightColor")


# ---------------------------------------------------------------------------
# BookRecord
# ---------------------------------------------------------------------------

class BookRecord(BaseModel):
    """Canonical output of the extractor: one book and its highlights."""

    model_config = ConfigDict(frozen=True)

    title: str = UNKNOWN_TITLE
    authors: str | None = None
    highlights: list[Highlight] = Field(default_factory=list)

    @field_validator("title", mode="before")
    @classmethod
    def placeholder_title(cls, v: Any) -> Any:
        if v is None:
            return UNKNOWN_TITLE
        if isinstance(v, str):
            v = v.strip()
            return v or UNKNOWN_TITLE
        return v

    @field_validator("highlights", mode="before")
    @classmethod
    def never_null(cls, v: Any) -> Any:
        return [] if v is None else v

    @property
    def has_highlights(self) -> bool:
        return bool(self.highlights)

    def to_dict(self) -> dict[str, Any]:
        """Serializable form using the external field names."""
        return self.model_dump(by_alias=True)


def group_by_section(highlights: list[Highlight]) -> dict[str, list[Highlight]]:
    """Group *highlights* by section name, preserving first-seen order."""
    sections: dict[str, list[Highlight]] = {}
    for highlight in highlights:
        sections.setdefault(highlight.section or UNCATEGORIZED_SECTION, []).append(highlight)
    return sections
