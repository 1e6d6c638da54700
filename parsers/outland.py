"""Page-specific glue for the outland.no single-card catalog."""

from __future__ import annotations

import re
from functools import partial
from typing import Dict, List, Optional
from urllib.parse import parse_qs, urlencode, urljoin, urlparse

from bs4 import BeautifulSoup

from parsers.interfaces import CatalogParsers, ItemLink
from parsers.magento_config import find_sp_config

SELECTORS = {
    "item_link": ".product-item-info .product-item-name a[href]",
    "title": "h1.page-title span",
}

INVENTORY_PATH = "/rest/V1/clickandcollect/storesInfo"
TITLE_MARKER = "(Enkeltkort)"
PRODUCT_SLUG_RE = re.compile(r"p-(.+)-\d+")


def build_listing_urls(
    base_url: str,
    listing_path: str,
    total_pages: int,
    *,
    start_page: int = 1,
    page_size: int = 100,
) -> List[str]:
    """Listing page addresses for pages ``start_page`` .. ``total_pages``."""
    root = urljoin(base_url.rstrip("/") + "/", listing_path.lstrip("/"))
    urls = []
    for page in range(start_page, total_pages + 1):
        query = urlencode({"available": 1, "p": page, "product_list_limit": page_size})
        urls.append(f"{root}?{query}")
    return urls


def page_label(url: str) -> str:
    """Page number from the ``p`` query parameter, or the URL itself."""
    values = parse_qs(urlparse(url).query).get("p")
    return values[0] if values else url


def product_slug(url: str) -> str:
    match = PRODUCT_SLUG_RE.search(urlparse(url).path)
    return match.group(1) if match else url


def extract_item_links(html: str, page: Optional[str], base_url: str = "") -> List[ItemLink]:
    soup = BeautifulSoup(html, "lxml")
    links: Dict[str, None] = {}
    for anchor in soup.select(SELECTORS["item_link"]):
        href = anchor.get("href", "").strip()
        if not href:
            continue
        links.setdefault(urljoin(base_url, href) if base_url else href, None)
    return [(link, page) for link in links]


def extract_product_name(html: str) -> Optional[str]:
    soup = BeautifulSoup(html, "lxml")
    title = soup.select_one(SELECTORS["title"])
    if title is None:
        return None
    name = title.get_text(strip=True).replace(TITLE_MARKER, "").strip()
    return name or None


def inventory_url(base_url: str, variant_id: str) -> str:
    return f"{base_url.rstrip('/')}{INVENTORY_PATH}?{urlencode({'productId': variant_id})}"


def outland_parsers(base_url: str) -> CatalogParsers:
    return CatalogParsers(
        extract_item_links=partial(extract_item_links, base_url=base_url),
        extract_product_name=extract_product_name,
        find_configuration=find_sp_config,
        inventory_url=partial(inventory_url, base_url),
        page_label=page_label,
        item_label=product_slug,
    )
