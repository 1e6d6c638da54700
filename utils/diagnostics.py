"""Append-only record of every skipped item or dropped variant.

One tab-separated line per event lands in the diagnostics file, and the
events are also kept in memory for the end-of-run summary.
"""

from __future__ import annotations

import logging
import os
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

LOGGER = logging.getLogger(__name__)


class DiagnosticKind(str, Enum):
    """Why an item or variant did not make it into the output."""

    NO_CONFIG = "no-config"
    NO_NAME = "no-name"
    MISSING_ATTRIBUTE = "missing-attribute"
    MISSING_PRICE = "missing-price"
    INVALID_STOCK_RESPONSE = "invalid-stock-response"
    MISSING_LOCATION = "missing-location"
    STOCK_FETCH_FAILED = "stock-fetch-failed"
    ITEM_FAILED = "item-failed"
    PAGE_FAILED = "page-failed"


@dataclass(frozen=True)
class DiagnosticEvent:
    kind: DiagnosticKind
    item: str
    variant_id: Optional[str] = None
    detail: str = ""
    page: Optional[str] = None

    def to_line(self) -> str:
        fields = [
            self.kind.value,
            self.item,
            self.variant_id or "-",
            self.detail.replace("\t", " ").replace("\n", " "),
            self.page or "-",
        ]
        return "\t".join(fields)


class DiagnosticsLog:
    """Collects diagnostic events and mirrors them to an append-mode file.

    Lines go straight to a ``FileHandler`` owned by the instance, so a failing
    disk is reported by the handler's ``handleError`` instead of raising into
    the crawl.
    """

    def __init__(self, path: Optional[str] = None):
        self.path = path
        self.events: List[DiagnosticEvent] = []
        self._handler: Optional[logging.Handler] = None

        if path:
            directory = os.path.dirname(path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            handler = logging.FileHandler(path, mode="a", encoding="utf-8", delay=True)
            handler.setFormatter(logging.Formatter("%(message)s"))
            self._handler = handler

    def record(
        self,
        kind: DiagnosticKind,
        item: str,
        *,
        variant_id: Optional[str] = None,
        detail: str = "",
        page: Optional[str] = None,
    ) -> DiagnosticEvent:
        event = DiagnosticEvent(
            kind=kind, item=item, variant_id=variant_id, detail=detail, page=page
        )
        self.events.append(event)
        LOGGER.debug("Diagnostic %s for %s (%s)", kind.value, item, detail)
        if self._handler is not None:
            record = LOGGER.makeRecord(
                LOGGER.name, logging.INFO, __file__, 0, event.to_line(), None, None
            )
            self._handler.handle(record)
        return event

    def counts(self) -> Dict[str, int]:
        return dict(Counter(event.kind.value for event in self.events))

    def of_kind(self, kind: DiagnosticKind) -> List[DiagnosticEvent]:
        return [event for event in self.events if event.kind is kind]

    def close(self) -> None:
        if self._handler is None:
            return
        self._handler.close()
        self._handler = None

    def __enter__(self) -> "DiagnosticsLog":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
