"""kindlenotes.plugins - Extension points for highlight strategies and publishers.

Usage::

    from kindlenotes import register_strategy

    class ListItems:
        name = "list_items"
        def extract(self, html: str) -> list[Highlight]:
            ...

    register_strategy(ListItems())

Registered strategies run, in registration order, only after every built-in
highlight tier has come back empty.  Both plugin types follow
``runtime_checkable`` ``Protocol`` contracts so ``isinstance()`` works in tests
without inheriting from a base class.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from kindlenotes.items import BookRecord, Highlight

# ---------------------------------------------------------------------------
# Protocol definitions
# ---------------------------------------------------------------------------

@runtime_checkable
class HighlightStrategyPlugin(Protocol):
    """Extra highlight strategy tried after the built-in tiers."""

    name: str

    def extract(self, html: str) -> list[Highlight]:
        """Return highlights found in *html* (empty list for a miss)."""
        ...


@runtime_checkable
class Publisher(Protocol):
    """Destination for extracted books (Notion, files, …)."""

    name: str

    def publish(self, record: BookRecord) -> str | None:
        """Publish *record*; return a reference, or None when nothing was sent."""
        ...


# ---------------------------------------------------------------------------
# Module-level registry
# ---------------------------------------------------------------------------

_strategies: list[HighlightStrategyPlugin] = []


def register_strategy(plugin: HighlightStrategyPlugin) -> None:
    """Register a custom :class:`HighlightStrategyPlugin`."""
    _strategies.append(plugin)


def get_strategies() -> list[HighlightStrategyPlugin]:
    """Return all registered strategy plugins."""
    return list(_strategies)


def clear_plugins() -> None:
    """Remove all registered plugins. Primarily for use in tests."""
    _strategies.clear()
