"""Tests for kindlenotes.ingest - inbox processing."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

from kindlenotes.ingest import (
    IngestStatus,
    process_document,
    process_file,
    process_inbox,
    save_sample,
)


def _publisher(name: str = "fake", result: str | None = "ref-1") -> MagicMock:
    publisher = MagicMock()
    publisher.name = name
    publisher.publish.return_value = result
    return publisher


# ---------------------------------------------------------------------------
# save_sample
# ---------------------------------------------------------------------------

class TestSaveSample:
    def test_short_html_kept_whole(self, tmp_path):
        path = save_sample("<html></html>", "export", tmp_path)
        assert path.read_text(encoding="utf-8") == "<html></html>"

    def test_truncated_with_ellipsis(self, tmp_path):
        path = save_sample("x" * 100, "export", tmp_path, max_sample_size=10)
        assert path.read_text(encoding="utf-8") == "x" * 10 + "..."

    def test_unsafe_source_name(self, tmp_path):
        path = save_sample("<p/>", "My Clippings/2024", tmp_path)
        assert path.name == "My_Clippings_2024.sample.html"
        assert path.parent == tmp_path


# ---------------------------------------------------------------------------
# process_document
# ---------------------------------------------------------------------------

class TestProcessDocument:
    def test_published(self, devops_html):
        publisher = _publisher()
        outcome = process_document(devops_html, source="devops", publishers=[publisher])

        assert outcome.status is IngestStatus.PUBLISHED
        assert outcome.title == "Effective DevOps"
        assert outcome.highlight_count == 2
        assert outcome.published_to == {"fake": "ref-1"}
        publisher.publish.assert_called_once()

    def test_publishers_called_in_order(self, devops_html):
        calls: list[str] = []
        first, second = _publisher("first"), _publisher("second")
        first.publish.side_effect = lambda record: calls.append("first")
        second.publish.side_effect = lambda record: calls.append("second")
        process_document(devops_html, source="devops", publishers=[first, second])
        assert calls == ["first", "second"]

    def test_too_large(self, devops_html):
        publisher = _publisher()
        outcome = process_document(devops_html, source="big", publishers=[publisher],
                                   max_html_size=100)
        assert outcome.status is IngestStatus.TOO_LARGE
        publisher.publish.assert_not_called()

    def test_empty_saves_sample(self, no_highlights_html, tmp_path):
        publisher = _publisher()
        outcome = process_document(
            no_highlights_html,
            source="empty",
            publishers=[publisher],
            sample_dir=tmp_path,
            max_sample_size=50,
        )
        assert outcome.status is IngestStatus.EMPTY
        assert outcome.title == "Effective DevOps"
        assert outcome.sample_path == tmp_path / "empty.sample.html"
        assert len(outcome.sample_path.read_text(encoding="utf-8")) == 53
        publisher.publish.assert_not_called()

    def test_empty_without_sample_dir(self, no_highlights_html):
        outcome = process_document(no_highlights_html, source="empty")
        assert outcome.status is IngestStatus.EMPTY
        assert outcome.sample_path is None

    def test_publisher_failure(self, devops_html):
        failing = _publisher("notion")
        failing.publish.side_effect = RuntimeError("unauthorized")
        after = _publisher("after")
        outcome = process_document(devops_html, source="devops", publishers=[failing, after])

        assert outcome.status is IngestStatus.ERROR
        assert outcome.error == "notion: unauthorized"
        after.publish.assert_not_called()

    def test_parse_error_is_empty(self):
        outcome = process_document("", source="blank")
        assert outcome.status is IngestStatus.EMPTY
        assert outcome.highlight_count == 0


# ---------------------------------------------------------------------------
# process_file / process_inbox
# ---------------------------------------------------------------------------

class TestProcessFile:
    def test_non_html_skipped(self, tmp_path):
        path = tmp_path / "notes.txt"
        path.write_text("hello", encoding="utf-8")
        assert process_file(path).status is IngestStatus.SKIPPED

    def test_missing_file_error(self, tmp_path):
        outcome = process_file(tmp_path / "gone.html")
        assert outcome.status is IngestStatus.ERROR
        assert outcome.source == "gone"

    def test_published_file_moved(self, tmp_path, devops_html):
        path = tmp_path / "devops.html"
        path.write_text(devops_html, encoding="utf-8")
        done = tmp_path / "done"

        outcome = process_file(path, publishers=[_publisher()], processed_dir=done)
        assert outcome.status is IngestStatus.PUBLISHED
        assert not path.exists()
        assert (done / "devops.html").exists()

    def test_name_clash_in_processed_dir(self, tmp_path, devops_html):
        done = tmp_path / "done"
        done.mkdir()
        (done / "devops.html").write_text("old", encoding="utf-8")
        path = tmp_path / "devops.html"
        path.write_text(devops_html, encoding="utf-8")

        process_file(path, processed_dir=done)
        assert (done / "devops-2.html").exists()
        assert (done / "devops.html").read_text(encoding="utf-8") == "old"

    def test_empty_file_not_moved(self, tmp_path, no_highlights_html):
        path = tmp_path / "empty.html"
        path.write_text(no_highlights_html, encoding="utf-8")
        process_file(path, processed_dir=tmp_path / "done")
        assert path.exists()


class TestProcessInbox:
    def _inbox(self, tmp_path, html: str, names: list[str]):
        inbox = tmp_path / "inbox"
        inbox.mkdir()
        for name in names:
            (inbox / name).write_text(html, encoding="utf-8")
        return inbox

    def test_missing_inbox(self, tmp_path):
        assert process_inbox(tmp_path / "nope") == []

    def test_sorted_and_filtered(self, tmp_path, devops_html):
        inbox = self._inbox(tmp_path, devops_html, ["b.html", "a.html", "readme.txt"])
        outcomes = process_inbox(inbox)
        assert [o.source for o in outcomes] == ["a", "b"]
        assert all(o.status is IngestStatus.PUBLISHED for o in outcomes)

    def test_max_files(self, tmp_path, devops_html):
        inbox = self._inbox(tmp_path, devops_html, ["a.html", "b.html", "c.html"])
        assert len(process_inbox(inbox, max_files=2)) == 2

    def test_time_budget(self, tmp_path, devops_html):
        inbox = self._inbox(tmp_path, devops_html, ["a.html", "b.html"])
        with patch("kindlenotes.ingest.time") as mock_time:
            mock_time.monotonic.side_effect = [0.0, 1.0, 20.0]
            outcomes = process_inbox(inbox, time_budget=10)
        assert [o.source for o in outcomes] == ["a"]

    def test_one_failure_does_not_stop_run(self, tmp_path, devops_html):
        inbox = self._inbox(tmp_path, devops_html, ["a.html", "b.html"])
        publisher = _publisher()
        publisher.publish.side_effect = [RuntimeError("boom"), "ref-2"]
        outcomes = process_inbox(inbox, publishers=[publisher])
        assert [o.status for o in outcomes] == [IngestStatus.ERROR, IngestStatus.PUBLISHED]
