"""Builders for synthetic catalog documents used across the test-suite."""

from __future__ import annotations

import json
from typing import Any, Dict, Iterable, List, Mapping, Optional

SET_ID = "471"
NUMBER_ID = "479"
SURFACE_ID = "473"

ATTRIBUTES: Dict[str, Any] = {
    SET_ID: {
        "id": SET_ID,
        "code": "mtg_set",
        "label": "Set",
        "position": "0",
        "options": [
            {"id": "10", "label": "Dominaria +kr 12,00", "products": ["101", "102", "103"]},
            {"id": "11", "label": "Core Set 2021", "products": ["104"]},
        ],
    },
    NUMBER_ID: {
        "id": NUMBER_ID,
        "code": "card_number",
        "label": "Card number",
        "position": "1",
        "options": [
            {"id": "20", "label": "#42", "products": ["101", "102", "103"]},
            {"id": "21", "label": "#250", "products": ["104"]},
        ],
    },
    SURFACE_ID: {
        "id": SURFACE_ID,
        "code": "surface",
        "label": "Surface",
        "position": "2",
        "options": [
            {"id": "30", "label": "Non-foil", "products": ["101", "104"]},
            {"id": "31", "label": "Foil +kr 25,00", "products": ["102"]},
        ],
    },
}

FULL_INDEX: Dict[str, Dict[str, str]] = {
    "101": {SET_ID: "10", NUMBER_ID: "20", SURFACE_ID: "30"},
    "102": {SET_ID: "10", NUMBER_ID: "20", SURFACE_ID: "31"},
    # surface missing
    "103": {SET_ID: "10", NUMBER_ID: "20"},
    "104": {SET_ID: "11", NUMBER_ID: "21", SURFACE_ID: "30"},
}

PRICES: Dict[str, float] = {"101": 12.0, "102": 37.0, "103": 12.0, "104": 4.5}


def _price(amount: float) -> Dict[str, Any]:
    return {
        "oldPrice": {"amount": amount},
        "baseOldPrice": {"amount": amount},
        "basePrice": {"amount": amount},
        "finalPrice": {"amount": amount},
        "tierPrices": [],
        "msrpPrice": {"amount": 0},
    }


def gallery_fragment(variant_id: str) -> str:
    return (
        '<div class="MagicToolboxContainer">'
        f'<a class="MagicZoom" href="https://img.test/full/{variant_id}.jpg">'
        f'<img src="https://img.test/small/{variant_id}.jpg" alt=""/></a></div>'
    )


def build_sp_config(
    salable_ids: Iterable[str] = ("101", "102", "103"),
    index: Optional[Mapping[str, Mapping[str, str]]] = None,
    prices: Optional[Mapping[str, float]] = None,
    with_gallery: bool = True,
) -> Dict[str, Any]:
    index = dict(index if index is not None else FULL_INDEX)
    prices = dict(prices if prices is not None else PRICES)
    ids = list(salable_ids)
    return {
        "attributes": ATTRIBUTES,
        "template": "kr <%- data.price %>",
        "currencyFormat": "kr %s",
        "optionPrices": {vid: _price(amount) for vid, amount in prices.items()},
        "priceFormat": {"decimalSymbol": ","},
        "prices": {"finalPrice": {"amount": 4.5}},
        "productId": "9001",
        "chooseText": "Velg et alternativ...",
        "images": [],
        "index": index,
        # Magento lists each salable child under every attribute option it uses.
        "salable": {
            SET_ID: {"10": ids, "11": []},
            SURFACE_ID: {"30": [vid for vid in ids if vid in ("101", "104")]},
        },
        "canDisplayShowOutOfStockStatus": False,
        "magictoolbox": {
            "useOriginalGallery": False,
            "galleryData": (
                {vid: gallery_fragment(vid) for vid in index} if with_gallery else {}
            ),
            "standaloneMode": False,
            "overrideUseAjaxOption": False,
        },
        "channel": "website",
        "salesChannelCode": "base",
        "sku": {vid: f"SKU-{vid}" for vid in index},
    }


def magento_init_script(sp_config: Mapping[str, Any]) -> str:
    payload = {
        "#product_addtocart_form": {
            "configurable": {"spConfig": sp_config, "gallerySwitchStrategy": "replace"}
        }
    }
    return f'<script type="text/x-magento-init">{json.dumps(payload)}</script>'


DECOY_SCRIPTS = [
    '<script type="text/x-magento-init">{"*": {"Magento_Ui/js/core/app": {"components": {}}}}</script>',
    '<script type="text/x-magento-init">this is not json</script>',
    '<script type="text/x-magento-init">{"#product_addtocart_form": {"configurable": {"spConfig": {"attributes": []}}}}</script>',
]


def product_page(
    sp_config: Optional[Mapping[str, Any]] = None,
    title: Optional[str] = "Island (Enkeltkort)",
) -> str:
    scripts = list(DECOY_SCRIPTS)
    if sp_config is not None:
        scripts.append(magento_init_script(sp_config))
    heading = (
        f'<h1 class="page-title"><span class="base">{title}</span></h1>'
        if title is not None
        else ""
    )
    return (
        "<html><head><title>Outland</title></head><body>"
        f"{heading}<div class=\"price-box\"><span class=\"price\">kr 12,00</span></div>"
        f"{''.join(scripts)}</body></html>"
    )


def listing_page(links: List[str]) -> str:
    items = "".join(
        '<li class="item product product-item"><div class="product-item-info">'
        f'<strong class="product-item-name"><a class="product-item-link" href="{link}">Card</a></strong>'
        "</div></li>"
        for link in links
    )
    return f'<html><body><ol class="products list items product-items">{items}</ol></body></html>'


def stock_payload(entries: Mapping[str, int]) -> str:
    return json.dumps([{"name": name, "qty": qty} for name, qty in entries.items()])
