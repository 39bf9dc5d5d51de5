"""CLI entry point: python -m kindlenotes {parse,ingest} [options]"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from pydantic import ValidationError
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from kindlenotes import settings
from kindlenotes.config import AppConfig, ConfigError, InboxConfig, OutputConfig, load_config
from kindlenotes.extractors.clippings import extract_with_details
from kindlenotes.ingest import IngestOutcome, IngestStatus, process_inbox
from kindlenotes.notion import NotionClient, NotionPublisher
from kindlenotes.pipelines import BookWriterPipeline
from kindlenotes.plugins import Publisher
from kindlenotes.rate_limit import RequestRateLimiter

logger = logging.getLogger(__name__)

_STATUS_STYLES: dict[IngestStatus, str] = {
    IngestStatus.PUBLISHED: "green",
    IngestStatus.EMPTY: "yellow",
    IngestStatus.TOO_LARGE: "yellow",
    IngestStatus.SKIPPED: "dim",
    IngestStatus.ERROR: "red",
}


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kindlenotes",
        description=(
            "Extract highlights from Kindle clippings HTML exports\n"
            "and publish them to Notion or to JSON/Markdown files."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--log-level", default=settings.LOG_LEVEL,
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        metavar="{DEBUG,INFO,WARNING,ERROR}",
                        help=f"Logging level (default: {settings.LOG_LEVEL})")
    sub = parser.add_subparsers(dest="command", required=True)

    p_parse = sub.add_parser("parse", help="Extract one export and print the result")
    p_parse.add_argument("file", metavar="FILE", help="Clippings HTML export")
    p_parse.add_argument("--json", action="store_true", default=False,
                         help="Print the record as JSON instead of a table")

    p_ingest = sub.add_parser("ingest", help="Process every export in an inbox directory")
    p_ingest.add_argument("--config", default=None, metavar="FILE",
                          help="YAML config file")
    p_ingest.add_argument("--inbox", default=None, metavar="DIR",
                          help=f"Inbox directory (default: {settings.INBOX_DIR})")
    p_ingest.add_argument("--out", default=None, metavar="DIR",
                          help="Also write each book as JSON + Markdown under DIR")
    p_ingest.add_argument("--processed-dir", default=None, metavar="DIR",
                          help="Move published exports into DIR")
    p_ingest.add_argument("--sample-dir", default=None, metavar="DIR",
                          help="Save HTML samples of exports without highlights into DIR")
    p_ingest.add_argument("--max-files", type=int, default=None, metavar="N",
                          help="Process at most N exports this run")
    p_ingest.add_argument("--time-budget", type=float, default=None, metavar="SECONDS",
                          help="Stop starting new exports after SECONDS")
    p_ingest.add_argument("--no-notion", action="store_true", default=False,
                          help="Do not publish to Notion even if it is configured")
    return parser


# ---------------------------------------------------------------------------
# parse
# ---------------------------------------------------------------------------

def _run_parse(args: argparse.Namespace, console: Console) -> int:
    path = Path(args.file)
    try:
        html = path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        print(f"ERROR: Could not read {path}: {exc}", file=sys.stderr)
        return 1

    report = extract_with_details(html)
    record = report.record

    if args.json:
        print(json.dumps(record.to_dict(), indent=2, ensure_ascii=False))
        return 0

    console.print(
        Panel.fit(
            f"[bold cyan]{escape(record.title)}[/bold cyan]\n"
            f"Authors:     {escape(record.authors or '-')}\n"
            f"Highlights:  {len(record.highlights)}\n"
            f"Method:      {report.method}",
            border_style="cyan",
            title=f"[bold]{escape(path.name)}[/bold]",
        ),
    )
    if record.highlights:
        tbl = Table(box=box.SIMPLE_HEAVY, show_lines=False)
        tbl.add_column("#", style="dim", justify="right", width=4, no_wrap=True)
        tbl.add_column("Section", style="green", max_width=24, no_wrap=True)
        tbl.add_column("Heading", style="cyan", max_width=36, no_wrap=True)
        tbl.add_column("Color", width=8, no_wrap=True)
        tbl.add_column("Text", max_width=60, no_wrap=True)
        for i, h in enumerate(record.highlights, 1):
            tbl.add_row(
                str(i),
                escape(h.section or "-"),
                escape(h.heading),
                escape(h.highlight_color or "-"),
                escape(h.text[:57]),
            )
        console.print(tbl)
    return 0


# ---------------------------------------------------------------------------
# ingest
# ---------------------------------------------------------------------------

def _apply_overrides(config: AppConfig, args: argparse.Namespace) -> AppConfig:
    inbox_updates = {
        key: value
        for key, value in {
            "dir": Path(args.inbox).expanduser() if args.inbox else None,
            "processed_dir": Path(args.processed_dir).expanduser() if args.processed_dir else None,
            "sample_dir": Path(args.sample_dir).expanduser() if args.sample_dir else None,
            "max_files": args.max_files,
            "time_budget": args.time_budget,
        }.items()
        if value is not None
    }
    try:
        updates = {"inbox": InboxConfig.model_validate({**config.inbox.model_dump(), **inbox_updates})}
        if args.out:
            updates["output"] = OutputConfig.model_validate({"dir": Path(args.out).expanduser()})
    except ValidationError as exc:
        raise ConfigError(f"Invalid command-line option: {exc}") from exc
    return config.model_copy(update=updates)


def build_publishers(config: AppConfig, *, use_notion: bool = True) -> list[Publisher]:
    """Publishers enabled by *config*, files first."""
    publishers: list[Publisher] = []
    if config.output.dir is not None:
        publishers.append(BookWriterPipeline(config.output.dir))
    if use_notion and config.notion_enabled:
        client = NotionClient(
            config.notion.token,
            version=config.notion.version,
            timeout=config.notion.timeout,
            max_retries=config.notion.max_retries,
            rate_limiter=RequestRateLimiter(config.notion.batch_pause),
        )
        publishers.append(
            NotionPublisher(
                client,
                config.notion.database_id,
                title_property=config.notion.title_property,
                author_property=config.notion.author_property,
                batch_size=config.notion.batch_size,
            ),
        )
    return publishers


def _print_outcomes(outcomes: list[IngestOutcome], console: Console) -> None:
    tbl = Table(
        title=f"[bold]Processed exports ({len(outcomes)})[/bold]",
        box=box.SIMPLE_HEAVY,
        show_lines=False,
    )
    tbl.add_column("#", style="dim", justify="right", width=4, no_wrap=True)
    tbl.add_column("Source", style="blue", max_width=30, no_wrap=True)
    tbl.add_column("Status", width=10, no_wrap=True)
    tbl.add_column("Title", style="cyan", max_width=40, no_wrap=True)
    tbl.add_column("Highlights", justify="right", width=10, no_wrap=True)
    tbl.add_column("Detail", max_width=40, no_wrap=True)
    for i, o in enumerate(outcomes, 1):
        detail = o.error or (str(o.sample_path) if o.sample_path else "")
        if not detail and o.published_to:
            detail = ", ".join(f"{k}={v}" for k, v in o.published_to.items())
        style = _STATUS_STYLES.get(o.status, "")
        tbl.add_row(
            str(i),
            escape(o.source),
            f"[{style}]{o.status.value}[/{style}]" if style else o.status.value,
            escape((o.title or "-")[:40]),
            str(o.highlight_count),
            escape(detail[:40]),
        )
    console.print(tbl)


def _run_ingest(args: argparse.Namespace, console: Console) -> int:
    try:
        config = _apply_overrides(load_config(args.config), args)
    except ConfigError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    publishers = build_publishers(config, use_notion=not args.no_notion)
    if not publishers:
        logger.warning("No publisher configured; exports will only be parsed")

    outcomes = process_inbox(
        config.inbox.dir,
        publishers=publishers,
        processed_dir=config.inbox.processed_dir,
        sample_dir=config.inbox.sample_dir,
        max_html_size=config.inbox.max_html_size,
        max_sample_size=config.inbox.max_sample_size,
        max_files=config.inbox.max_files,
        time_budget=config.inbox.time_budget,
    )
    _print_outcomes(outcomes, console)
    return 1 if any(o.status is IngestStatus.ERROR for o in outcomes) else 0


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(level=args.log_level, format=settings.LOG_FORMAT)
    console = Console()

    if args.command == "parse":
        return _run_parse(args, console)
    return _run_ingest(args, console)


if __name__ == "__main__":
    sys.exit(main())
