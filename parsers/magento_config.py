"""Magento configurable-product payload: schema, discovery and variant expansion.

Product pages embed their ``spConfig`` inside one of several
``<script type="text/x-magento-init">`` blocks. The first block that validates
against ``MagentoInitPayload`` wins; the others are simply not the one we need.

``expand_variants`` is a pure function of an already validated payload, so
all network nondeterminism stays in the fetch layer.
"""

from __future__ import annotations

import re
from typing import Dict, Iterable, List, Optional, Tuple

from bs4 import BeautifulSoup
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from core.types import AttributeIds, Variant, VariantDrop

SCRIPT_SELECTOR = 'script[type="text/x-magento-init"]'

# Option labels sometimes carry a price surcharge, e.g. "Foil +kr 12,00".
PRICE_SUFFIX_RE = re.compile(r"\s+\+\s*kr\s+\d+(?:[.,]\d+)?", re.IGNORECASE)


class _Model(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)


class ConfigOption(_Model):
    id: str
    label: str
    products: List[str] = Field(default_factory=list)


class ConfigAttribute(_Model):
    id: str
    code: str = ""
    label: str = ""
    options: List[ConfigOption]
    position: Optional[str] = None

    def option_label(self, option_id: str) -> Optional[str]:
        for option in self.options:
            if option.id == option_id:
                return option.label
        return None


class PriceAmount(_Model):
    amount: float


class OptionPrice(_Model):
    final_price: PriceAmount = Field(alias="finalPrice")
    base_price: Optional[PriceAmount] = Field(default=None, alias="basePrice")
    old_price: Optional[PriceAmount] = Field(default=None, alias="oldPrice")


class MagicToolbox(_Model):
    gallery_data: Dict[str, str] = Field(default_factory=dict, alias="galleryData")


class SpConfig(_Model):
    """The ``spConfig`` block describing every variant of one catalog item."""

    attributes: Dict[str, ConfigAttribute]
    index: Dict[str, Dict[str, str]]
    salable: Dict[str, Dict[str, List[str]]]
    option_prices: Dict[str, OptionPrice] = Field(alias="optionPrices")
    product_id: Optional[str] = Field(default=None, alias="productId")
    magictoolbox: Optional[MagicToolbox] = None
    sku: Dict[str, str] = Field(default_factory=dict)


class _Configurable(_Model):
    sp_config: SpConfig = Field(alias="spConfig")


class _AddToCartForm(_Model):
    configurable: _Configurable


class MagentoInitPayload(_Model):
    product_addtocart_form: _AddToCartForm = Field(alias="#product_addtocart_form")


def find_sp_config(html: str) -> Optional[SpConfig]:
    """Return the first embedded payload that validates, or ``None``."""
    soup = BeautifulSoup(html, "lxml")
    for script in soup.select(SCRIPT_SELECTOR):
        content = script.string or script.get_text()
        if not content or not content.strip():
            continue
        try:
            payload = MagentoInitPayload.model_validate_json(content)
        except PydanticValidationError:
            continue
        return payload.product_addtocart_form.configurable.sp_config
    return None


def clean_option_label(label: str) -> str:
    return PRICE_SUFFIX_RE.sub("", label).strip()


def salable_variant_ids(config: SpConfig) -> List[str]:
    """Deduplicated purchasable variant ids, in first-seen order."""
    seen: Dict[str, None] = {}
    for options in config.salable.values():
        for product_ids in options.values():
            for product_id in product_ids:
                seen.setdefault(product_id, None)
    return list(seen)


def resolve_option_label(
    config: SpConfig, attribute_id: str, option_id: Optional[str]
) -> Optional[str]:
    if option_id is None:
        return None
    attribute = config.attributes.get(attribute_id)
    if attribute is None:
        return None
    label = attribute.option_label(option_id)
    if label is None:
        return None
    return clean_option_label(label) or None


def variant_price(config: SpConfig, variant_id: str) -> Optional[float]:
    price = config.option_prices.get(variant_id)
    if price is None:
        return None
    return price.final_price.amount


def gallery_image(config: SpConfig, variant_id: str) -> str:
    """First image reference in the variant's gallery fragment, or ``""``."""
    if config.magictoolbox is None:
        return ""
    fragment = config.magictoolbox.gallery_data.get(variant_id)
    if not fragment:
        return ""
    soup = BeautifulSoup(fragment, "lxml")
    img = soup.find("img", src=True)
    if img is not None:
        return img["src"].strip()
    link = soup.find("a", href=True)
    if link is not None:
        return link["href"].strip()
    return ""


def expand_variants(
    config: SpConfig,
    attribute_ids: AttributeIds,
    variant_ids: Optional[Iterable[str]] = None,
) -> Tuple[List[Variant], List[VariantDrop]]:
    """Resolve every salable variant into labelled ``Variant`` values.

    A variant whose set, number or surface label cannot be resolved, or that
    has no price, is returned as a ``VariantDrop`` instead. Nothing raises.
    """
    variants: List[Variant] = []
    drops: List[VariantDrop] = []

    ids = list(variant_ids) if variant_ids is not None else salable_variant_ids(config)
    for variant_id in ids:
        selection = config.index.get(variant_id, {})
        labels: Dict[str, str] = {}
        for field, attribute_id in attribute_ids.as_fields().items():
            option_id = selection.get(attribute_id)
            label = resolve_option_label(config, attribute_id, option_id)
            if label is None:
                drops.append(
                    VariantDrop(
                        variant_id=variant_id,
                        field=field,
                        reason=f"attribute {attribute_id} option {option_id or '-'} not resolvable",
                    )
                )
                break
            labels[field] = label
        else:
            price = variant_price(config, variant_id)
            if price is None:
                drops.append(
                    VariantDrop(variant_id=variant_id, field="price", reason="no option price")
                )
                continue
            variants.append(
                Variant(
                    variant_id=variant_id,
                    set_name=labels["set"],
                    number=labels["number"],
                    surface=labels["surface"],
                    price=price,
                    image=gallery_image(config, variant_id),
                )
            )

    return variants, drops
