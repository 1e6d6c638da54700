"""Tabular export of the final card records (CSV or JSON via pandas)."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Sequence, Union

import pandas as pd

from core.types import CardRecord

LOGGER = logging.getLogger(__name__)

# record attribute -> exported column title
EXPORT_COLUMNS: Dict[str, str] = {
    "name": "Name",
    "link": "Link",
    "set_name": "Set",
    "number": "Card Number",
    "surface": "Surface",
    "price": "Price",
    "image": "Image",
    "stock_quantity": "Stock",
}


def records_to_frame(records: Sequence[CardRecord]) -> pd.DataFrame:
    frame = pd.DataFrame(
        [record.to_dict() for record in records], columns=list(EXPORT_COLUMNS)
    )
    return frame.rename(columns=EXPORT_COLUMNS)


def write_card_records(records: Sequence[CardRecord], path: Union[str, Path]) -> Path:
    """Write ``records`` to ``path``; the suffix picks CSV (default) or JSON."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    frame = records_to_frame(records)

    if target.suffix.lower() == ".json":
        frame.to_json(target, orient="records", force_ascii=False, indent=2)
    else:
        frame.to_csv(target, index=False, encoding="utf-8")

    LOGGER.info("Wrote %s records to %s", len(frame), target)
    return target
