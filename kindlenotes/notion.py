"""kindlenotes.notion - publish a BookRecord as a Notion database page.

The page is created empty, then filled section by section with batched
``append block children`` requests:

    ## Section name                (heading_2)
    ### Highlight heading          (heading_3)
    highlight text                 (paragraph, colored by highlight color)

Usage::

    from kindlenotes.notion import NotionClient, NotionPublisher

    client = NotionClient(token)
    page_id = NotionPublisher(client, database_id).publish(record)
"""

from __future__ import annotations

import json
import logging
import random
import time
import urllib.error
import urllib.request
from typing import Any

from kindlenotes import settings
from kindlenotes.items import BookRecord, group_by_section
from kindlenotes.rate_limit import RequestRateLimiter

logger = logging.getLogger(__name__)

_BACKGROUND_COLORS: dict[str, str] = {
    "yellow": "yellow_background",
    "blue": "blue_background",
    "pink": "pink_background",
    "orange": "orange_background",
}

_RETRY_CODES: frozenset[int] = frozenset({429, 500, 502, 503, 504})

# 429 means the request was not processed; anything else may have been applied
_IDEMPOTENT_METHODS: frozenset[str] = frozenset({"GET", "HEAD", "PUT", "DELETE", "OPTIONS"})


# ---------------------------------------------------------------------------
# Public exception
# ---------------------------------------------------------------------------

class NotionError(RuntimeError):
    """Raised when a Notion API request fails.

    Attributes:
        status -- HTTP status code (0 if no response was received)
        body   -- response body text, when available
    """

    def __init__(self, message: str, status: int = 0, body: str | None = None) -> None:
        super().__init__(message)
        self.status = status
        self.body = body


# ---------------------------------------------------------------------------
# Block builders
# ---------------------------------------------------------------------------

def map_highlight_color(color: str | None) -> str:
    """Map a Kindle highlight color to a Notion text color."""
    return _BACKGROUND_COLORS.get(color or "", "default")


def rich_text(content: str, color: str | None = None) -> list[dict[str, Any]]:
    """Build a rich-text array, splitting *content* to respect Notion's size limit."""
    limit = settings.MAX_RICH_TEXT_CHARS
    segments = [content[i:i + limit] for i in range(0, len(content), limit)] or [""]
    items: list[dict[str, Any]] = []
    for segment in segments:
        item: dict[str, Any] = {"type": "text", "text": {"content": segment}}
        if color is not None:
            item["annotations"] = {"color": color}
        items.append(item)
    return items


def heading_block(level: int, text: str) -> dict[str, Any]:
    if level not in (1, 2, 3):
        raise ValueError(f"heading level must be 1, 2 or 3, got {level}")
    key = f"heading_{level}"
    return {
        "object": "block",
        "type": key,
        key: {"rich_text": rich_text(text), "color": "default"},
    }


def paragraph_block(text: str, color: str = "default") -> dict[str, Any]:
    return {
        "object": "block",
        "type": "paragraph",
        "paragraph": {"rich_text": rich_text(text, color)},
    }


def build_page_properties(
    record: BookRecord,
    title_property: str = settings.NOTION_TITLE_PROPERTY,
    author_property: str | None = settings.NOTION_AUTHOR_PROPERTY,
) -> dict[str, Any]:
    """Database page properties for *record* (title, plus authors when known)."""
    properties: dict[str, Any] = {
        title_property or settings.NOTION_TITLE_PROPERTY: {
            "title": [{"text": {"content": record.title}}],
        },
    }
    if record.authors and author_property:
        properties[author_property] = {
            "rich_text": [{"text": {"content": record.authors}}],
        }
    return properties


def build_section_batches(
    record: BookRecord,
    batch_size: int = settings.MAX_BLOCKS_PER_REQUEST,
) -> list[list[dict[str, Any]]]:
    """Split the page body into append requests.

    Each section contributes one batch with its heading, followed by batches
    of at most ``batch_size // 2`` highlights (two blocks each).
    """
    per_batch = max(batch_size // 2, 1)
    batches: list[list[dict[str, Any]]] = []
    for section, highlights in group_by_section(record.highlights).items():
        batches.append([heading_block(2, section)])
        for start in range(0, len(highlights), per_batch):
            blocks: list[dict[str, Any]] = []
            for highlight in highlights[start:start + per_batch]:
                blocks.append(heading_block(3, highlight.heading))
                blocks.append(
                    paragraph_block(highlight.text, map_highlight_color(highlight.highlight_color)),
                )
            batches.append(blocks)
    return batches


# ---------------------------------------------------------------------------
# HTTP client
# ---------------------------------------------------------------------------

class NotionClient:
    """Minimal Notion REST client (pages + block children)."""

    def __init__(
        self,
        token: str,
        *,
        version: str = settings.NOTION_VERSION,
        timeout: int = settings.NOTION_TIMEOUT,
        max_retries: int = settings.NOTION_MAX_RETRIES,
        rate_limiter: RequestRateLimiter | None = None,
        base_url: str = settings.NOTION_API_BASE,
    ) -> None:
        if not token:
            raise ValueError("Notion token is required")
        self._token = token
        self._version = version
        self._timeout = timeout
        self._max_retries = max_retries
        self._rate_limiter = rate_limiter
        self._base_url = base_url.rstrip("/")

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._token}",
            "Notion-Version": self._version,
            "Content-Type": "application/json",
        }

    def request(self, method: str, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        """Send a JSON request and return the decoded JSON response.

        Retries up to ``max_retries`` times with jittered exponential backoff,
        honouring ``Retry-After``.  429 is always retried; 5xx and network
        failures only for idempotent methods, so a POST or PATCH that may
        already have been applied is never sent twice.

        Raises:
            NotionError: On non-retryable HTTP errors or exhausted retries.
        """
        url = f"{self._base_url}/{path.lstrip('/')}"
        idempotent = method.upper() in _IDEMPOTENT_METHODS
        data = json.dumps(payload).encode("utf-8")

        last_exc: NotionError | None = None
        for attempt in range(self._max_retries + 1):
            if self._rate_limiter:
                self._rate_limiter.wait()
            req = urllib.request.Request(url, data=data, headers=self._headers(), method=method)
            try:
                with urllib.request.urlopen(req, timeout=self._timeout) as resp:
                    body = resp.read().decode("utf-8", errors="replace")
                    return json.loads(body) if body else {}

            except urllib.error.HTTPError as exc:
                try:
                    body_text = exc.read().decode("utf-8", errors="replace")
                except Exception:
                    body_text = ""
                error = NotionError(
                    f"Notion API error {exc.code} for {method} {path}: {body_text or exc.reason}",
                    status=exc.code,
                    body=body_text,
                )
                retryable = exc.code == 429 or (exc.code in _RETRY_CODES and idempotent)
                if retryable and attempt < self._max_retries:
                    retry_after = 0
                    ra_header = exc.headers.get("Retry-After", "") if exc.headers else ""
                    if ra_header and ra_header.strip().isdigit():
                        retry_after = int(ra_header)
                    delay = max(retry_after, 2 ** attempt) + random.uniform(0, 1)
                    logger.debug(
                        "HTTP %d for %s %s - retrying in %.1fs (attempt %d/%d)",
                        exc.code, method, path, delay, attempt + 1, self._max_retries,
                    )
                    time.sleep(delay)
                    last_exc = error
                    continue
                raise error from exc

            except (urllib.error.URLError, OSError) as exc:
                reason = getattr(exc, "reason", exc)
                error = NotionError(f"Network error for {method} {path}: {reason}")
                if idempotent and attempt < self._max_retries:
                    delay = (2 ** attempt) + random.uniform(0, 1)
                    logger.debug(
                        "Network error for %s %s - retrying in %.1fs (attempt %d/%d): %s",
                        method, path, delay, attempt + 1, self._max_retries, reason,
                    )
                    time.sleep(delay)
                    last_exc = error
                    continue
                raise error from exc

        raise last_exc or NotionError(f"All retries exhausted for {method} {path}")

    def create_page(self, database_id: str, properties: dict[str, Any]) -> str:
        """Create an empty page in *database_id* and return its id."""
        response = self.request(
            "POST",
            "pages",
            {"parent": {"database_id": database_id}, "properties": properties, "children": []},
        )
        page_id = response.get("id")
        if not page_id:
            raise NotionError("Notion API response did not include a page id", body=json.dumps(response))
        return str(page_id)

    def append_blocks(self, page_id: str, blocks: list[dict[str, Any]]) -> None:
        self.request("PATCH", f"blocks/{page_id}/children", {"children": blocks})
        logger.debug("Appended %d blocks to page %s", len(blocks), page_id)


# ---------------------------------------------------------------------------
# Publisher
# ---------------------------------------------------------------------------

class NotionPublisher:
    """Publish records as pages of one Notion database."""

    name = "notion"

    def __init__(
        self,
        client: NotionClient,
        database_id: str,
        *,
        title_property: str = settings.NOTION_TITLE_PROPERTY,
        author_property: str | None = settings.NOTION_AUTHOR_PROPERTY,
        batch_size: int = settings.MAX_BLOCKS_PER_REQUEST,
    ) -> None:
        if not database_id:
            raise ValueError("Notion database id is required")
        self._client = client
        self._database_id = database_id
        self._title_property = title_property
        self._author_property = author_property
        self._batch_size = batch_size

    def publish(self, record: BookRecord) -> str | None:
        """Create a page for *record*; returns the page id.

        Records without highlights are skipped and return None.
        """
        if not record.has_highlights:
            logger.info("Nothing to publish for %r: no highlights", record.title)
            return None

        properties = build_page_properties(record, self._title_property, self._author_property)
        page_id = self._client.create_page(self._database_id, properties)
        for blocks in build_section_batches(record, self._batch_size):
            self._client.append_blocks(page_id, blocks)

        logger.info(
            "Published %r with %d highlights to Notion page %s",
            record.title, len(record.highlights), page_id,
        )
        return page_id
