"""Dashboard filters and aggregates over loaded deliveries."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Sequence
from datetime import date

from ..models import DeliveryEvent, DeliveryStats, FilterOptions


def _parse_date(value: str | None) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def _unique(values: Iterable[str]) -> list[str]:
    # keeps first-seen order
    return list(dict.fromkeys(v for v in values if v))


def filter_events(
    events: Sequence[DeliveryEvent], options: FilterOptions
) -> list[DeliveryEvent]:
    """Apply dashboard filters. Date bounds are inclusive.

    Events whose date is not ISO formatted are never excluded by the range.
    """
    start = _parse_date(options.start_date)
    end = _parse_date(options.end_date)
    departments = set(options.departments or [])

    result = []
    for event in events:
        if options.marketplace and event.marketplace != options.marketplace:
            continue
        if options.warehouse and event.warehouse != options.warehouse:
            continue
        if departments and event.department not in departments:
            continue
        day = _parse_date(event.date)
        if day is not None:
            if start and day < start:
                continue
            if end and day > end:
                continue
        result.append(event)
    return result


def calculate_delivery_stats(events: Sequence[DeliveryEvent]) -> DeliveryStats:
    """Totals plus per-marketplace and per-department delivery counts."""
    return DeliveryStats(
        total_deliveries=len(events),
        total_items=sum(e.item_count for e in events),
        marketplace_breakdown=dict(Counter(e.marketplace for e in events)),
        department_breakdown=dict(Counter(e.department for e in events)),
    )


def filter_choices(
    events: Sequence[DeliveryEvent], marketplace: str | None = None
) -> dict[str, list[str]]:
    """Values offered by the filter dropdowns.

    Warehouses are narrowed to the selected marketplace, if any.
    """
    warehouse_source = (
        [e for e in events if e.marketplace == marketplace] if marketplace else events
    )
    return {
        "marketplaces": _unique(e.marketplace for e in events),
        "warehouses": _unique(e.warehouse for e in warehouse_source),
        "departments": _unique(e.department for e in events),
    }
