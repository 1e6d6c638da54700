"""
Four-stage catalog crawl: listing pages, item pages, variant expansion, stock.

Listing pages run on their own bounded queue and feed item jobs into a second,
wider queue as soon as each page is parsed. Every item job fans out one stock
request per variant. Per-item and per-variant problems end up in the
diagnostics log; only the records that survive every stage are returned.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import httpx

from core.task_queue import BoundedTaskQueue, JobOutcome
from core.types import AttributeIds, CardRecord
from network.resilient_fetch import ResilientFetcher
from parsers.interfaces import CatalogParsers
from parsers.magento_config import SpConfig, expand_variants
from parsers.store_stock import find_location_quantity, parse_store_stock
from utils.config_loader import ScraperSettings
from utils.diagnostics import DiagnosticKind, DiagnosticsLog
from utils.error_handling import (
    InventoryValidationError,
    MissingLocationError,
    MissingNameError,
    NoConfigurationError,
    ParsingError,
)

ProgressHook = Callable[[str, Dict[str, Any]], None]


@dataclass
class CrawlResult:
    """Flattened records plus the outcome of every page and item job."""

    records: List[CardRecord]
    item_outcomes: List[JobOutcome[List[CardRecord]]] = field(default_factory=list)
    page_outcomes: List[JobOutcome[int]] = field(default_factory=list)
    elapsed: float = 0.0

    @property
    def failed_items(self) -> List[JobOutcome[List[CardRecord]]]:
        return [outcome for outcome in self.item_outcomes if not outcome.ok]

    @property
    def failed_pages(self) -> List[JobOutcome[int]]:
        return [outcome for outcome in self.page_outcomes if not outcome.ok]

    @property
    def items_processed(self) -> int:
        return len(self.item_outcomes)


class CatalogCrawler:
    """Drive the crawl with two bounded queues and a shared fetcher."""

    def __init__(
        self,
        fetcher: ResilientFetcher,
        parsers: CatalogParsers,
        settings: ScraperSettings,
        diagnostics: Optional[DiagnosticsLog] = None,
        *,
        progress_hook: Optional[ProgressHook] = None,
    ):
        self.fetcher = fetcher
        self.parsers = parsers
        self.settings = settings
        self.diagnostics = diagnostics or DiagnosticsLog()
        self.attribute_ids = AttributeIds(
            set_name=settings.set_attribute_id,
            number=settings.number_attribute_id,
            surface=settings.surface_attribute_id,
        )
        self.logger = logging.getLogger(__name__)
        self._progress_hook = progress_hook

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def crawl(self, page_urls: Sequence[str]) -> CrawlResult:
        """Run all four stages starting from listing page addresses."""
        start_time = time.time()
        item_queue = self._item_queue()
        page_queue: BoundedTaskQueue[int] = BoundedTaskQueue(
            self.discover_page, self.settings.page_concurrency, name="pages"
        )

        self.logger.info(
            "Crawling %s listing pages (page width %s, item width %s)",
            len(page_urls),
            self.settings.page_concurrency,
            self.settings.item_concurrency,
        )
        for page_url in page_urls:
            page_queue.enqueue(page_url, item_queue)

        await page_queue.finished()
        await item_queue.finished()
        return self._collect(item_queue, page_queue, start_time)

    async def scrape_products(self, item_urls: Sequence[str]) -> CrawlResult:
        """Skip listing discovery and process the given item pages directly."""
        start_time = time.time()
        item_queue = self._item_queue()
        for item_url in dict.fromkeys(item_urls):
            item_queue.enqueue(item_url, None)
        await item_queue.finished()
        return self._collect(item_queue, None, start_time)

    # ------------------------------------------------------------------
    # Stage 1 and 2: listing pages to item jobs
    # ------------------------------------------------------------------

    async def discover_page(
        self, page_url: str, item_queue: BoundedTaskQueue[List[CardRecord]]
    ) -> int:
        page = self.parsers.page_label(page_url)
        self.logger.info("Scraping products page '%s'...", page)

        response = await self.fetcher.fetch(page_url, timeout=self.settings.request_timeout)
        links = self.parsers.extract_item_links(response.text, page)
        for item_url, origin in links:
            item_queue.enqueue(item_url, origin)

        self.logger.debug("Page '%s' yielded %s items", page, len(links))
        self._emit_progress_hook("page_done", {"page": page, "items": len(links)})
        return len(links)

    # ------------------------------------------------------------------
    # Stage 3: item page to variants
    # ------------------------------------------------------------------

    async def scrape_item(self, item_url: str, page: Optional[str] = None) -> List[CardRecord]:
        """Fetch one item page and return its stocked variant records."""
        origin = f" from page {page}" if page else ""
        self.logger.info(
            "Scraping product '%s'%s...", self.parsers.item_label(item_url), origin
        )

        response = await self.fetcher.fetch(item_url, timeout=self.settings.request_timeout)
        try:
            config, name = self._parse_item(response.text, item_url)
        except ParsingError as exc:
            kind = (
                DiagnosticKind.NO_CONFIG
                if isinstance(exc, NoConfigurationError)
                else DiagnosticKind.NO_NAME
            )
            self.logger.warning("Skipping %s: %s", item_url, exc)
            self.diagnostics.record(kind, item_url, detail=str(exc), page=page)
            return []

        variants, drops = expand_variants(config, self.attribute_ids)
        for drop in drops:
            kind = (
                DiagnosticKind.MISSING_PRICE
                if drop.field == "price"
                else DiagnosticKind.MISSING_ATTRIBUTE
            )
            self.logger.info(
                "Dropping variant %s of %s: missing %s", drop.variant_id, item_url, drop.field
            )
            self.diagnostics.record(
                kind,
                item_url,
                variant_id=drop.variant_id,
                detail=f"{drop.field}: {drop.reason}",
                page=page,
            )

        quantities = await asyncio.gather(
            *(self.resolve_stock(variant.variant_id, item_url, page) for variant in variants)
        )
        return [
            CardRecord.from_variant(name, item_url, variant, quantity)
            for variant, quantity in zip(variants, quantities)
            if quantity is not None
        ]

    def _parse_item(self, html: str, item_url: str) -> Tuple[SpConfig, str]:
        config = self.parsers.find_configuration(html)
        if config is None:
            raise NoConfigurationError(
                "no embedded script matched the product configuration schema",
                {"item": item_url},
            )
        name = self.parsers.extract_product_name(html)
        if not name:
            raise MissingNameError("product name is empty", {"item": item_url})
        return config, name

    # ------------------------------------------------------------------
    # Stage 4: live stock per variant
    # ------------------------------------------------------------------

    async def resolve_stock(
        self, variant_id: str, item_url: str, page: Optional[str] = None
    ) -> Optional[int]:
        """Quantity at the configured location, or ``None`` if the variant is dropped."""
        location = self.settings.stock_location
        try:
            response = await self.fetcher.fetch(
                self.parsers.inventory_url(variant_id),
                timeout=self.settings.inventory_timeout,
            )
        except httpx.RequestError as exc:
            # transport errors arrive here already retried; redirect loops are not retried
            self.diagnostics.record(
                DiagnosticKind.STOCK_FETCH_FAILED,
                item_url,
                variant_id=variant_id,
                detail=f"{type(exc).__name__}: {exc}",
                page=page,
            )
            return None

        try:
            return find_location_quantity(parse_store_stock(response.content), location)
        except InventoryValidationError as exc:
            self.logger.warning(
                "Invalid stock response for variant %s of %s (HTTP %s)",
                variant_id,
                item_url,
                response.status_code,
            )
            self.diagnostics.record(
                DiagnosticKind.INVALID_STOCK_RESPONSE,
                item_url,
                variant_id=variant_id,
                detail=f"HTTP {response.status_code}: {exc}",
                page=page,
            )
        except MissingLocationError as exc:
            self.logger.info(
                "No %s stock entry for variant %s of %s", location, variant_id, item_url
            )
            self.diagnostics.record(
                DiagnosticKind.MISSING_LOCATION,
                item_url,
                variant_id=variant_id,
                detail=str(exc),
                page=page,
            )
        return None

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _item_queue(self) -> BoundedTaskQueue[List[CardRecord]]:
        return BoundedTaskQueue(
            self._run_item_job, self.settings.item_concurrency, name="items"
        )

    async def _run_item_job(self, item_url: str, page: Optional[str]) -> List[CardRecord]:
        try:
            records = await self.scrape_item(item_url, page)
        except Exception as exc:
            self._emit_progress_hook(
                "item_failed", {"item": item_url, "page": page, "error": str(exc)}
            )
            raise
        self._emit_progress_hook(
            "item_done", {"item": item_url, "page": page, "records": len(records)}
        )
        return records

    def _collect(
        self,
        item_queue: BoundedTaskQueue[List[CardRecord]],
        page_queue: Optional[BoundedTaskQueue[int]],
        start_time: float,
    ) -> CrawlResult:
        page_outcomes = list(page_queue.outcomes) if page_queue is not None else []
        for outcome in page_outcomes:
            if not outcome.ok:
                page_url = outcome.args[0]
                self.diagnostics.record(
                    DiagnosticKind.PAGE_FAILED,
                    page_url,
                    detail=f"{type(outcome.error).__name__}: {outcome.error}",
                    page=self.parsers.page_label(page_url),
                )

        for outcome in item_queue.outcomes:
            if not outcome.ok:
                item_url, page = outcome.args
                self.diagnostics.record(
                    DiagnosticKind.ITEM_FAILED,
                    item_url,
                    detail=f"{type(outcome.error).__name__}: {outcome.error}",
                    page=page,
                )

        records = [record for batch in item_queue.results for record in batch]
        result = CrawlResult(
            records=records,
            item_outcomes=list(item_queue.outcomes),
            page_outcomes=page_outcomes,
            elapsed=time.time() - start_time,
        )
        self.logger.info(
            "Crawl finished in %.1fs: %s records from %s items (%s failed items, %s failed pages)",
            result.elapsed,
            len(records),
            result.items_processed,
            len(result.failed_items),
            len(result.failed_pages),
        )
        return result

    def _emit_progress_hook(self, event: str, payload: Dict[str, Any]) -> None:
        if not self._progress_hook:
            return
        try:
            self._progress_hook(event, payload)
        except Exception as exc:  # pragma: no cover - debug aid only
            self.logger.debug("Progress hook error: %s", exc)
