"""Shared pytest fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from kindlenotes.plugins import clear_plugins

FIXTURES_DIR = Path(__file__).parent / "fixtures"


def _read_fixture(name: str) -> str:
    return (FIXTURES_DIR / name).read_text(encoding="utf-8")


@pytest.fixture(autouse=True)
def _no_plugins():
    clear_plugins()
    yield
    clear_plugins()


@pytest.fixture
def devops_html() -> str:
    return _read_fixture("effective_devops.html")


@pytest.fixture
def no_highlights_html() -> str:
    return _read_fixture("no_highlights.html")


@pytest.fixture
def mixed_colors_html() -> str:
    return _read_fixture("mixed_colors.html")
