"""Tests for kindlenotes.pipelines - JSON + Markdown file writer."""

from __future__ import annotations

import json

from kindlenotes.items import BookRecord, Highlight
from kindlenotes.pipelines import BookWriterPipeline, slugify


def _record(title: str = "Effective DevOps") -> BookRecord:
    return BookRecord(
        title=title,
        authors="Jennifer Davis",
        highlights=[Highlight(section="Ch 1", heading="Location 1", text="Passage",
                              highlight_color="pink")],
    )


class TestSlugify:
    def test_basic(self):
        assert slugify("Effective DevOps") == "effective-devops"

    def test_punctuation_collapsed(self):
        assert slugify("C++: The Good Parts!") == "c-the-good-parts"

    def test_unicode_word_characters_kept(self):
        assert slugify("第1章 入門") == "第1章-入門"

    def test_fallback(self):
        assert slugify("!!!") == "book"

    def test_max_length(self):
        assert len(slugify("a" * 300)) == 100


class TestBookWriterPipeline:
    def test_writes_json_and_markdown(self, tmp_path):
        writer = BookWriterPipeline(tmp_path)
        slug = writer.publish(_record())

        assert slug == "effective-devops"
        data = json.loads((tmp_path / "books" / "effective-devops.json").read_text(encoding="utf-8"))
        assert data["title"] == "Effective DevOps"
        assert data["highlights"][0]["highlightColor"] == "pink"
        md = (tmp_path / "books" / "effective-devops.md").read_text(encoding="utf-8")
        assert md.startswith("# Effective DevOps")

    def test_json_keeps_non_ascii(self, tmp_path):
        BookWriterPipeline(tmp_path).publish(_record("入門"))
        assert "入門" in (tmp_path / "books" / "入門.json").read_text(encoding="utf-8")

    def test_duplicate_titles_get_suffix(self, tmp_path):
        writer = BookWriterPipeline(tmp_path)
        assert writer.publish(_record()) == "effective-devops"
        assert writer.publish(_record()) == "effective-devops-2"
        assert writer.count == 2

    def test_empty_record_not_written(self, tmp_path):
        writer = BookWriterPipeline(tmp_path)
        assert writer.publish(BookRecord(title="Empty")) is None
        assert not (tmp_path / "books").exists()
        assert writer.count == 0
