"""Reader for public Google Sheets through the CSV export (no credentials).

Public sheets have no column mapping: columns are found by matching header
text, which makes this path looser than the mapped parser.
"""

from __future__ import annotations

import csv
import io
import logging
import re
from datetime import date

import httpx

from ..models import DeliveryEvent, Marketplace
from .constants import (
    PUBLIC_COUNT_HEADERS,
    PUBLIC_CSV_URL,
    PUBLIC_DATE_HEADERS,
    PUBLIC_DEFAULT_DEPARTMENT,
    PUBLIC_DEPARTMENT_HEADERS,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = httpx.Timeout(30.0, connect=10.0)

_DAY_FIRST = [
    re.compile(r"^(\d{1,2})\.(\d{1,2})\.(\d{4})$"),
    re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$"),
    re.compile(r"^(\d{1,2})-(\d{1,2})-(\d{4})$"),
]
_YEAR_FIRST = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")


def find_column_index(headers: list[str], possible_names: list[str]) -> int:
    """Index of the first header containing any of the names, else -1."""
    for name in possible_names:
        for idx, header in enumerate(headers):
            if name.lower() in header.lower():
                return idx
    return -1


def parse_public_date(value: str) -> date | None:
    """Parse DD.MM.YYYY, DD/MM/YYYY, DD-MM-YYYY or YYYY-MM-DD."""
    cleaned = value.replace('"', "").replace("'", "").strip()

    for pattern in _DAY_FIRST:
        m = pattern.match(cleaned)
        if m:
            day, month, year = (int(g) for g in m.groups())
            break
    else:
        m = _YEAR_FIRST.match(cleaned)
        if not m:
            return None
        year, month, day = (int(g) for g in m.groups())

    try:
        return date(year, month, day)
    except ValueError:
        return None


def parse_public_csv(csv_text: str, sheet_name: str) -> list[DeliveryEvent]:
    """Convert CSV export text into events, matching columns by header."""
    rows = list(csv.reader(io.StringIO(csv_text)))
    if len(rows) < 2:
        logger.warning("[PUBLIC] CSV has fewer than 2 rows")
        return []

    headers = [h.strip() for h in rows[0]]
    date_idx = find_column_index(headers, PUBLIC_DATE_HEADERS)
    count_idx = find_column_index(headers, PUBLIC_COUNT_HEADERS)
    dept_idx = find_column_index(headers, PUBLIC_DEPARTMENT_HEADERS)

    if date_idx == -1:
        logger.warning("[PUBLIC] No date column among headers %s", headers)
        return []

    events: list[DeliveryEvent] = []
    for line_no, values in enumerate(rows[1:], start=2):
        if not any(v.strip() for v in values):
            continue

        raw_date = values[date_idx].strip() if date_idx < len(values) else ""
        if not raw_date:
            continue
        parsed = parse_public_date(raw_date)
        if parsed is None:
            logger.warning("[PUBLIC] Unparseable date %r in row %d", raw_date, line_no)
            continue

        if count_idx != -1:
            digits = re.sub(r"\D", "", values[count_idx] if count_idx < len(values) else "")
            item_count = int(digits) if digits else 0
        else:
            item_count = 1

        department = PUBLIC_DEFAULT_DEPARTMENT
        if dept_idx != -1 and dept_idx < len(values) and values[dept_idx].strip():
            department = values[dept_idx].strip()

        events.append(
            DeliveryEvent(
                id=f"public-{sheet_name}-{line_no}",
                title=f"{department} ({item_count})",
                date=parsed.isoformat(),
                marketplace=Marketplace.WILDBERRIES.value,
                warehouse=sheet_name,
                department=department,
                item_count=item_count,
                row_index=line_no - 2,
            )
        )

    return events


async def fetch_public_sheet(
    spreadsheet_id: str,
    sheet_name: str,
    client: httpx.AsyncClient | None = None,
) -> list[DeliveryEvent]:
    """Load events from a publicly shared sheet through its CSV export."""
    url = PUBLIC_CSV_URL.format(spreadsheet_id=spreadsheet_id)
    params = {"tqx": "out:csv", "sheet": sheet_name}
    logger.info("[PUBLIC] Loading %s / %s", spreadsheet_id, sheet_name)

    if client is None:
        async with httpx.AsyncClient(timeout=DEFAULT_TIMEOUT) as own_client:
            response = await own_client.get(url, params=params)
    else:
        response = await client.get(url, params=params)
    response.raise_for_status()

    events = parse_public_csv(response.text, sheet_name)
    logger.info("[PUBLIC] Parsed %d events", len(events))
    return events


async def is_sheet_public(
    spreadsheet_id: str,
    client: httpx.AsyncClient | None = None,
) -> bool:
    """Check whether the CSV export of the first sheet is readable anonymously."""
    url = PUBLIC_CSV_URL.format(spreadsheet_id=spreadsheet_id)
    try:
        if client is None:
            async with httpx.AsyncClient(timeout=DEFAULT_TIMEOUT) as own_client:
                response = await own_client.get(url, params={"tqx": "out:csv"})
        else:
            response = await client.get(url, params={"tqx": "out:csv"})
    except httpx.HTTPError as e:
        logger.warning("[PUBLIC] Availability check failed: %s", e)
        return False
    return response.status_code < 400
