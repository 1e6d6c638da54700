#!/usr/bin/env python3
"""Export single-card variants with live store stock from outland.no."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
from typing import Any, Dict, List, Optional

import httpx

from core.catalog_crawler import CatalogCrawler, CrawlResult
from core.user_agent_rotator import build_identity_strategy
from network.resilient_fetch import ResilientFetcher
from parsers.outland import build_listing_urls, outland_parsers
from utils.config_loader import DEFAULT_CONFIG_PATH, ScraperSettings, load_settings
from utils.diagnostics import DiagnosticsLog
from utils.error_handling import ConfigurationError
from utils.export_writers import write_card_records
from utils.logger import create_progress_bar, resolve_level, setup_logger

LOGGER = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,application/json;q=0.8,*/*;q=0.7",
    "Accept-Language": "nb-NO,nb;q=0.9,en-US;q=0.8,en;q=0.7",
}


def build_client(settings: ScraperSettings) -> httpx.AsyncClient:
    # No pool timeout: the per-item stock fan-out waits for a free connection.
    return httpx.AsyncClient(
        headers=DEFAULT_HEADERS,
        timeout=httpx.Timeout(settings.request_timeout, pool=None),
        limits=httpx.Limits(
            max_connections=settings.max_connections,
            max_keepalive_connections=settings.max_connections,
        ),
        follow_redirects=True,
    )


def _make_progress_hook(bar):
    def _hook(event: str, payload: Dict[str, Any]) -> None:
        if event == "page_done":
            bar.total = (bar.total or 0) + int(payload.get("items", 0))
            bar.refresh()
        elif event in {"item_done", "item_failed"}:
            bar.update(1)

    return _hook


async def run_export(
    settings: ScraperSettings,
    diagnostics: DiagnosticsLog,
    *,
    product_urls: Optional[List[str]] = None,
    show_progress: bool = False,
) -> CrawlResult:
    bar = None
    if show_progress:
        bar = create_progress_bar(total=len(product_urls) if product_urls else None, desc="Items")

    identity = build_identity_strategy(settings.identity_strategy, settings.identity_seed)
    try:
        async with build_client(settings) as client:
            fetcher = ResilientFetcher(
                client,
                max_retries=settings.max_retries,
                retry_delay=settings.retry_delay,
                identity=identity,
                host=settings.host_header,
            )
            crawler = CatalogCrawler(
                fetcher,
                outland_parsers(settings.base_url),
                settings,
                diagnostics,
                progress_hook=_make_progress_hook(bar) if bar is not None else None,
            )
            if product_urls:
                result = await crawler.scrape_products(product_urls)
            else:
                pages = build_listing_urls(
                    settings.base_url,
                    settings.listing_path,
                    settings.total_pages,
                    start_page=settings.start_page,
                    page_size=settings.page_size,
                )
                result = await crawler.crawl(pages)

            metrics = fetcher.metrics
            LOGGER.info(
                "Requests: %s attempts, %s transport failures, %s retries, %s exhausted",
                metrics.total_requests,
                metrics.transport_failures,
                metrics.retries,
                metrics.exhausted,
            )
    finally:
        if bar is not None:
            bar.close()

    return result


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="outland.no single-card stock exporter")
    parser.add_argument(
        "--config",
        default=None,
        help=f"JSON settings file, 'scraper' section (default: {DEFAULT_CONFIG_PATH} if present)",
    )
    parser.add_argument("--pages", dest="total_pages", type=int, default=None, help="Last listing page to crawl")
    parser.add_argument("--start-page", type=int, default=None, help="First listing page to crawl")
    parser.add_argument("--page-concurrency", type=int, default=None, help="Concurrent listing pages")
    parser.add_argument("--concurrency", dest="item_concurrency", type=int, default=None, help="Concurrent item pages")
    parser.add_argument("--max-retries", type=int, default=None, help="Retries per request on transport errors")
    parser.add_argument("--retry-delay", type=float, default=None, help="Linear backoff base in seconds")
    parser.add_argument("--location", dest="stock_location", default=None, help="Store whose stock is exported")
    parser.add_argument(
        "--product-url",
        dest="product_urls",
        action="append",
        default=None,
        help="Scrape this product page only (repeatable); skips listing pages",
    )
    parser.add_argument("--output", dest="output_path", default=None, help="Export file (.csv or .json)")
    parser.add_argument("--diagnostics", dest="diagnostics_path", default=None, help="Diagnostics log file")
    parser.add_argument(
        "--identity",
        dest="identity_strategy",
        choices=["pool", "cycle", "fake"],
        default=None,
        help="User-agent selection strategy",
    )
    parser.add_argument("--seed", dest="identity_seed", type=int, default=None, help="Seed for the user-agent pool")
    parser.add_argument("--log-level", default=None, help="Logging level (DEBUG, INFO, ...)")
    parser.add_argument("--dry-run", action="store_true", help="Skip writing exports")
    parser.add_argument("--progress", action="store_true", help="Show a progress bar")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    overrides = {
        key: value
        for key, value in vars(args).items()
        if key not in {"config", "product_urls", "dry_run", "progress"}
    }

    try:
        config_path = args.config
        if config_path is None and os.path.isfile(DEFAULT_CONFIG_PATH):
            config_path = DEFAULT_CONFIG_PATH
        settings = load_settings(config_path, **overrides)
    except ConfigurationError as exc:
        logging.basicConfig(level=logging.ERROR, format="[%(levelname)s] %(message)s")
        LOGGER.error("%s", exc)
        return 2

    setup_logger("", resolve_level(settings.log_level), settings.log_file, console=True)

    with DiagnosticsLog(settings.diagnostics_path) as diagnostics:
        result = asyncio.run(
            run_export(
                settings,
                diagnostics,
                product_urls=args.product_urls,
                show_progress=args.progress,
            )
        )

        LOGGER.info(
            "Collected %s records (%s failed items, %s failed pages)",
            len(result.records),
            len(result.failed_items),
            len(result.failed_pages),
        )
        if diagnostics.events:
            LOGGER.info("Diagnostics by kind: %s", diagnostics.counts())

    if args.dry_run:
        LOGGER.info("Dry run: skipping export write")
        return 0

    write_card_records(result.records, settings.output_path)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
