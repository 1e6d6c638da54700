"""
Core data types shared by the queue, the parsers and the crawler.

Everything here is frozen: a variant or record is built once and then either
emitted or discarded, never edited.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

# Type aliases
URL = str
VariantID = str
AttributeID = str
OptionID = str
PageLabel = Optional[str]


@dataclass(frozen=True)
class AttributeIds:
    """Configuration attribute ids backing the three card dimensions."""

    set_name: AttributeID = "471"
    number: AttributeID = "479"
    surface: AttributeID = "473"

    def as_fields(self) -> Dict[str, AttributeID]:
        return {"set": self.set_name, "number": self.number, "surface": self.surface}


@dataclass(frozen=True)
class Variant:
    """One purchasable combination resolved from the configuration payload."""

    variant_id: VariantID
    set_name: str
    number: str
    surface: str
    price: float
    image: str = ""


@dataclass(frozen=True)
class VariantDrop:
    """A variant that could not be resolved, with the field that was missing."""

    variant_id: VariantID
    field: str
    reason: str


@dataclass(frozen=True)
class CardRecord:
    """Final output row: one variant of one item with its live stock."""

    name: str
    link: URL
    set_name: str
    number: str
    surface: str
    price: float
    image: str
    stock_quantity: int

    @classmethod
    def from_variant(
        cls, name: str, link: URL, variant: Variant, stock_quantity: int
    ) -> "CardRecord":
        return cls(
            name=name,
            link=link,
            set_name=variant.set_name,
            number=variant.number,
            surface=variant.surface,
            price=variant.price,
            image=variant.image,
            stock_quantity=stock_quantity,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
