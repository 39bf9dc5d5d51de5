"""Default settings for kindlenotes.

Values here are the fallbacks used by :mod:`kindlenotes.config` when neither
the YAML config file nor the environment provides one.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Input limits
# ---------------------------------------------------------------------------
# Exports longer than this (in characters) are rejected before parsing
MAX_HTML_SIZE = 1_000_000

# Characters of raw HTML kept when an export yields no highlights
MAX_SAMPLE_SIZE = 10_000

# ---------------------------------------------------------------------------
# Inbox
# ---------------------------------------------------------------------------
INBOX_DIR = "./inbox"
HTML_SUFFIXES = (".html",)

# ---------------------------------------------------------------------------
# Notion API
# ---------------------------------------------------------------------------
NOTION_API_BASE = "https://api.notion.com/v1"
NOTION_VERSION = "2022-06-28"
NOTION_TITLE_PROPERTY = "Name"
NOTION_AUTHOR_PROPERTY = "Authors"
NOTION_TIMEOUT = 30
NOTION_MAX_RETRIES = 3

# Notion accepts 100 children per request; stay below it
MAX_BLOCKS_PER_REQUEST = 90

# Notion rejects rich-text objects longer than this
MAX_RICH_TEXT_CHARS = 2000

# Minimum pause between block-append requests (seconds)
BATCH_PAUSE_SECONDS = 0.5

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
LOG_LEVEL = "INFO"
LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"
