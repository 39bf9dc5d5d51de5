"""Tests for the kindlenotes command line."""

from __future__ import annotations

import json

import pytest

from kindlenotes.__main__ import build_publishers, main
from kindlenotes.config import load_config


@pytest.fixture(autouse=True)
def _no_notion_env(monkeypatch):
    for var in ("NOTION_TOKEN", "NOTION_DATABASE_ID", "KINDLENOTES_INBOX"):
        monkeypatch.delenv(var, raising=False)


class TestParseCommand:
    def test_json_output(self, tmp_path, devops_html, capsys):
        path = tmp_path / "devops.html"
        path.write_text(devops_html, encoding="utf-8")

        assert main(["parse", str(path), "--json"]) == 0
        data = json.loads(capsys.readouterr().out)
        assert data["title"] == "Effective DevOps"
        assert len(data["highlights"]) == 2
        assert data["highlights"][0]["highlightColor"] == "pink"

    def test_table_output(self, tmp_path, devops_html, capsys):
        path = tmp_path / "devops.html"
        path.write_text(devops_html, encoding="utf-8")

        assert main(["parse", str(path)]) == 0
        out = capsys.readouterr().out
        assert "Effective DevOps" in out
        assert "sections" in out

    def test_missing_file(self, tmp_path, capsys):
        assert main(["parse", str(tmp_path / "missing.html")]) == 1
        assert "Could not read" in capsys.readouterr().err


class TestIngestCommand:
    def test_writes_files_and_moves_export(self, tmp_path, devops_html):
        inbox = tmp_path / "inbox"
        inbox.mkdir()
        (inbox / "devops.html").write_text(devops_html, encoding="utf-8")
        out, done = tmp_path / "out", tmp_path / "done"

        rc = main([
            "ingest", "--inbox", str(inbox), "--out", str(out),
            "--processed-dir", str(done), "--no-notion",
        ])
        assert rc == 0
        assert (out / "books" / "effective-devops.json").exists()
        assert (out / "books" / "effective-devops.md").exists()
        assert (done / "devops.html").exists()

    def test_empty_inbox(self, tmp_path):
        assert main(["ingest", "--inbox", str(tmp_path / "none")]) == 0

    def test_bad_config(self, tmp_path, capsys):
        config = tmp_path / "bad.yaml"
        config.write_text("inbox: [unclosed\n", encoding="utf-8")
        assert main(["ingest", "--config", str(config)]) == 1
        assert "ERROR" in capsys.readouterr().err

    @pytest.mark.parametrize("option", [
        ["--max-files", "0"],
        ["--max-files", "-1"],
        ["--time-budget", "-5"],
    ])
    def test_invalid_override_rejected(self, tmp_path, capsys, option):
        rc = main(["ingest", "--inbox", str(tmp_path), "--no-notion", *option])
        assert rc == 1
        assert "Invalid command-line option" in capsys.readouterr().err


class TestBuildPublishers:
    def test_files_then_notion(self, tmp_path):
        config = load_config(environ={"NOTION_TOKEN": "t", "NOTION_DATABASE_ID": "db"})
        config = config.model_copy(
            update={"output": config.output.model_copy(update={"dir": tmp_path})},
        )
        assert [p.name for p in build_publishers(config)] == ["files", "notion"]

    def test_notion_disabled(self):
        config = load_config(environ={"NOTION_TOKEN": "t", "NOTION_DATABASE_ID": "db"})
        assert build_publishers(config, use_notion=False) == []

    def test_nothing_configured(self):
        assert build_publishers(load_config(environ={})) == []
