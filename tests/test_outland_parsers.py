from urllib.parse import parse_qs, urlparse

from catalog_pages import listing_page, product_page
from parsers.outland import (
    build_listing_urls,
    extract_item_links,
    extract_product_name,
    inventory_url,
    outland_parsers,
    page_label,
    product_slug,
)

BASE = "https://www.outland.no"
LISTING = "/samlekort-og-kortspill/magic-the-gathering/singles"


def test_listing_urls_cover_the_requested_page_range():
    urls = build_listing_urls(BASE, LISTING, 4, start_page=2, page_size=100)

    assert len(urls) == 3
    parsed = urlparse(urls[0])
    assert parsed.path == LISTING
    assert parse_qs(parsed.query) == {"available": ["1"], "p": ["2"], "product_list_limit": ["100"]}
    assert [page_label(url) for url in urls] == ["2", "3", "4"]


def test_page_label_falls_back_to_the_url():
    assert page_label("https://shop.test/catalog") == "https://shop.test/catalog"


def test_product_slug():
    assert product_slug(f"{BASE}/p-lightning-bolt-123456") == "lightning-bolt"
    assert product_slug(f"{BASE}/about-us") == f"{BASE}/about-us"


def test_item_links_are_absolute_deduplicated_and_tagged_with_the_page():
    html = listing_page(["/p-island-1001", f"{BASE}/p-forest-1002", "/p-island-1001"])

    links = extract_item_links(html, "7", base_url=BASE)

    assert links == [(f"{BASE}/p-island-1001", "7"), (f"{BASE}/p-forest-1002", "7")]


def test_item_links_ignore_anchors_outside_product_tiles():
    html = '<html><body><nav><a href="/p-ignored-1">x</a></nav></body></html>'
    assert extract_item_links(html, "1", base_url=BASE) == []


def test_product_name_strips_single_card_marker():
    assert extract_product_name(product_page(None, title="Island (Enkeltkort)")) == "Island"
    assert extract_product_name(product_page(None, title="(Enkeltkort)")) is None
    assert extract_product_name(product_page(None, title=None)) is None


def test_inventory_url():
    assert inventory_url(BASE + "/", "101") == f"{BASE}/rest/V1/clickandcollect/storesInfo?productId=101"


def test_outland_parsers_bind_the_base_url():
    parsers = outland_parsers(BASE)
    assert parsers.inventory_url("5") == inventory_url(BASE, "5")
    assert parsers.extract_item_links(listing_page(["/p-a-1"]), "1") == [(f"{BASE}/p-a-1", "1")]
    assert parsers.item_label(f"{BASE}/p-a-1") == "a"
