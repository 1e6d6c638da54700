from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional, Protocol, Tuple

from parsers.magento_config import SpConfig

ItemLink = Tuple[str, Optional[str]]


class ItemLinkExtractor(Protocol):
    def __call__(self, html: str, page: Optional[str]) -> List[ItemLink]:
        ...


@dataclass(frozen=True)
class CatalogParsers:
    """Site-specific functions the crawler calls at each stage."""

    extract_item_links: ItemLinkExtractor
    extract_product_name: Callable[[str], Optional[str]]
    find_configuration: Callable[[str], Optional[SpConfig]]
    inventory_url: Callable[[str], str]
    page_label: Callable[[str], str] = str
    item_label: Callable[[str], str] = str
