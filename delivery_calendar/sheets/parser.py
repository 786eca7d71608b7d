"""Normalization of column-mapped sheet rows into delivery events.

Each configuration maps semantic fields (date, marketplace, warehouse, ...)
to column letters. Rows arrive with the header already stripped; a row's
position in that list becomes part of the event id and, later, the target
row for write-back.
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Iterator, Sequence
from typing import Any

from ..models import DeliveryEvent, GoogleSheetsConfig, Marketplace
from .utils import col_index, to_iso_date

logger = logging.getLogger(__name__)

# Leading numeric prefix, the way a lenient float parser reads "12.5kg"
_LEADING_NUMBER = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_WHITESPACE = re.compile(r"\s+")

_WILDBERRIES_EXACT = ("wb", "вб")
_WILDBERRIES_CONTAINS = ("wild", "вайлдберриз")
_OZON_CONTAINS = ("ozon",)
_YANDEX_CONTAINS = ("яндекс", "yandex")


def parse_item_count(value: Any) -> int:
    """Parse a quantity cell: "250", "1 234,50", "1,000.00" -> rounded int.

    Empty or unparseable input yields 0.
    """
    if value is None:
        return 0
    text = _WHITESPACE.sub("", str(value))
    if not text:
        return 0

    if "," in text and "." in text:
        # 1,000.00 - comma groups thousands
        text = text.replace(",", "")
    elif "," in text:
        # 1000,50 - comma is the decimal separator
        text = text.replace(",", ".", 1)

    m = _LEADING_NUMBER.match(text)
    if not m:
        return 0
    number = float(m.group(0))
    if math.isnan(number) or math.isinf(number):
        return 0
    # Round half up (1234.5 -> 1235), not banker's rounding
    return max(0, math.floor(number + 0.5))


def normalize_marketplace(value: str) -> str:
    """Map marketplace aliases to canonical labels; unknown values pass through."""
    lowered = value.strip().lower()
    if lowered in _WILDBERRIES_EXACT or any(a in lowered for a in _WILDBERRIES_CONTAINS):
        return Marketplace.WILDBERRIES.value
    if any(a in lowered for a in _OZON_CONTAINS):
        return Marketplace.OZON.value
    if any(a in lowered for a in _YANDEX_CONTAINS):
        return Marketplace.YANDEX_MARKET.value
    return value


def make_event_id(config_name: str, row_index: int) -> str:
    return f"{config_name}-delivery-{row_index}"


def _cell(row: Sequence[Any], index: int) -> str:
    if index < len(row) and row[index] is not None:
        return str(row[index])
    return ""


def _row_to_event(
    config: GoogleSheetsConfig,
    indices: dict[str, int],
    row: Sequence[Any],
    row_index: int,
) -> DeliveryEvent | None:
    date = _cell(row, indices["date"])
    marketplace = _cell(row, indices["marketplace"])
    if not date or not marketplace:
        return None

    normalized = normalize_marketplace(marketplace)
    warehouse = _cell(row, indices["warehouse"])

    return DeliveryEvent(
        id=make_event_id(config.name, row_index),
        title=f"{normalized}: {warehouse}",
        date=to_iso_date(date),
        marketplace=normalized,
        warehouse=warehouse,
        department=_cell(row, indices["department"]),
        item_count=parse_item_count(_cell(row, indices["item_count"])),
        realization_number=_cell(row, indices["realization_number"]),
        delivery_number=_cell(row, indices["delivery_number"]),
        transit_warehouse=_cell(row, indices["transit_warehouse"]),
        config_id=config.id,
        row_index=row_index,
    )


def column_indices(config: GoogleSheetsConfig) -> dict[str, int]:
    """Resolve the config's column letters to 0-based row indices."""
    m = config.column_mappings
    return {
        "date": col_index(m.date_column),
        "marketplace": col_index(m.marketplace_column),
        "warehouse": col_index(m.warehouse_column),
        "department": col_index(m.department_column),
        "item_count": col_index(m.item_count_column),
        "realization_number": col_index(m.realization_number_column),
        "delivery_number": col_index(m.delivery_number_column),
        "transit_warehouse": col_index(m.transit_warehouse_column),
    }


def iter_delivery_events(
    config: GoogleSheetsConfig,
    rows: Sequence[Sequence[Any]],
) -> Iterator[DeliveryEvent]:
    """Lazily yield events for header-stripped rows.

    A row that fails to convert is logged and skipped.
    """
    indices = column_indices(config)
    for row_index, row in enumerate(rows):
        try:
            event = _row_to_event(config, indices, row, row_index)
        except Exception as e:
            logger.warning("Failed to parse row %d of %r: %s", row_index, config.name, e)
            continue

        if event is None:
            continue
        if not isinstance(event.marketplace, str) or not event.marketplace.strip():
            logger.debug("Dropping %s: blank marketplace", event.id)
            continue
        yield event


def parse_delivery_rows(
    config: GoogleSheetsConfig,
    rows: Sequence[Sequence[Any]],
) -> list[DeliveryEvent]:
    """Eager variant of iter_delivery_events."""
    events = list(iter_delivery_events(config, rows))
    logger.debug(
        "Parsed %d events from %d rows of %r", len(events), len(rows), config.name
    )
    return events
