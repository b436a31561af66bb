"""Command-line interface for content-acquisition."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Any

from content_acquisition.client import DEFAULT_MAP_SEARCH, AcquisitionClient
from content_acquisition.config import Settings
from content_acquisition.models import ScrapeOptions

FORMAT_CHOICES = ["markdown", "html", "rawHtml", "screenshot", "links"]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="content-acquisition",
        description="Scrape, map, extract and search websites through the extraction service.",
    )
    parser.add_argument(
        "-o", "--output",
        default=None,
        help="Output file path (default: stdout)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    scrape = sub.add_parser("scrape", help="Scrape a single page")
    scrape.add_argument("url", help="Page URL")
    _add_scrape_options(scrape)

    batch = sub.add_parser("batch", help="Scrape many pages in bounded waves")
    batch.add_argument("urls", nargs="+", help="Page URLs")
    batch.add_argument(
        "-c", "--concurrency",
        type=int,
        default=None,
        help="Maximum scrapes in flight at once (default: 5)",
    )
    _add_scrape_options(batch)

    map_ = sub.add_parser("map", help="List discoverable pages of a site")
    map_.add_argument("url", help="Root URL of the site")
    map_.add_argument("--search", default=DEFAULT_MAP_SEARCH, help="Relevance hint")
    map_.add_argument("--limit", type=int, default=50, help="Maximum links (default: 50)")
    map_.add_argument(
        "--include-subdomains",
        action="store_true",
        help="Also list pages on subdomains",
    )

    extract = sub.add_parser("extract", help="Extract structured data from pages")
    extract.add_argument("urls", nargs="+", help="Page URLs")
    extract.add_argument(
        "--prompt",
        required=True,
        help="Extraction instruction, or path to a .txt/.md file containing it",
    )
    extract.add_argument(
        "--schema",
        required=True,
        help="JSON schema, inline or as a path to a .json file",
    )
    extract.add_argument(
        "--no-web-search",
        action="store_true",
        help="Do not let the service enrich results with web search",
    )
    extract.add_argument(
        "--poll-timeout",
        type=float,
        default=None,
        help="Seconds to wait on a deferred job (default: 15)",
    )

    search = sub.add_parser("search", help="Search the web with scraped results")
    search.add_argument("query", help="Search query")
    search.add_argument("--limit", type=int, default=5, help="Number of results (default: 5)")

    return parser


def _add_scrape_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-f", "--format",
        dest="formats",
        action="append",
        choices=FORMAT_CHOICES,
        default=None,
        help="Content format to request; repeatable (default: markdown)",
    )
    parser.add_argument(
        "--main-content",
        action="store_true",
        help="Only keep the main content of the page",
    )
    parser.add_argument(
        "--retries",
        type=int,
        default=1,
        help="Retries for transient failures (default: 1)",
    )


def _scrape_options(args: argparse.Namespace) -> ScrapeOptions:
    return ScrapeOptions(
        formats=args.formats or ["markdown"],
        only_main_content=args.main_content,
        retries=args.retries,
    )


def _read_text_arg(value: str) -> str:
    """Return the file's contents if ``value`` names a file, else the value."""
    path = Path(value)
    if path.is_file():
        print(f"Loaded {path}", file=sys.stderr)
        return path.read_text(encoding="utf-8").strip()
    return value


async def _run(args: argparse.Namespace, settings: Settings) -> tuple[Any, bool]:
    async with AcquisitionClient(settings) as client:
        if args.command == "scrape":
            result = await client.scrape(args.url, _scrape_options(args))
            return result.model_dump(mode="json"), result.success

        if args.command == "batch":
            batch = await client.batch_scrape(args.urls, _scrape_options(args))
            print(f"{batch.succeeded}/{batch.total} pages scraped", file=sys.stderr)
            dumped = {url: r.model_dump(mode="json") for url, r in batch.results.items()}
            return dumped, batch.failed == 0

        if args.command == "map":
            links = await client.map_site(
                args.url,
                search=args.search,
                limit=args.limit,
                include_subdomains=args.include_subdomains,
            )
            return links, bool(links)

        if args.command == "extract":
            result = await client.extract(
                args.urls,
                prompt=_read_text_arg(args.prompt),
                schema=json.loads(_read_text_arg(args.schema)),
                enable_web_search=not args.no_web_search,
                poll_timeout=args.poll_timeout,
            )
            return result.model_dump(mode="json"), result.success

        result = await client.search(args.query, limit=args.limit)
        return result.model_dump(mode="json"), result.success


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    settings = Settings.from_env()
    if args.command == "batch" and args.concurrency is not None:
        settings = replace(settings, batch_concurrency=args.concurrency)

    try:
        payload, ok = asyncio.run(_run(args, settings))
    except ValueError as exc:
        parser.error(str(exc))

    output = json.dumps(payload, indent=2, ensure_ascii=False)

    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(output)
        print(f"Output written to {args.output}", file=sys.stderr)
    else:
        print(output)

    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
