"""kindlenotes - turn Kindle clippings exports into structured highlights.

Quick usage::

    from kindlenotes import extract

    record = extract(open("My Clippings.html", encoding="utf-8").read())
    print(record.title, record.authors)
    for h in record.highlights:
        print(h.section, h.heading, h.highlight_color)

Publishing to Notion::

    from kindlenotes.notion import NotionClient, NotionPublisher

    publisher = NotionPublisher(NotionClient(token), database_id)
    page_id = publisher.publish(record)

Plugin extension point::

    from kindlenotes import register_strategy

    class TableRows:
        name = "table_rows"
        def extract(self, html):
            return [...]

    register_strategy(TableRows())
"""

from kindlenotes.extractors.clippings import ExtractionReport, extract, extract_with_details
from kindlenotes.items import PARSE_ERROR_TITLE, UNKNOWN_TITLE, BookRecord, Highlight
from kindlenotes.plugins import register_strategy

__version__ = "0.1.0"
__all__ = [
    "PARSE_ERROR_TITLE",
    "UNKNOWN_TITLE",
    "BookRecord",
    "ExtractionReport",
    "Highlight",
    "extract",
    "extract_with_details",
    "register_strategy",
]
