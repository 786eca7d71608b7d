"""Google Sheets package.

- client.py: values read / batch write against the Sheets REST API
- parser.py: column-mapped rows -> DeliveryEvent
- public.py: header-driven CSV reader for public sheets
- utils.py: column letters, date formats, A1 addresses
- constants.py: scopes, URLs, header aliases
"""

from .client import SheetsClient
from .constants import FIRST_DATA_ROW, SCOPES
from .parser import (
    iter_delivery_events,
    normalize_marketplace,
    parse_delivery_rows,
    parse_item_count,
)
from .public import fetch_public_sheet, parse_public_csv
from .utils import col_index, col_letter, to_iso_date, to_sheet_date

__all__ = [
    "SheetsClient",
    "SCOPES",
    "FIRST_DATA_ROW",
    "iter_delivery_events",
    "parse_delivery_rows",
    "parse_item_count",
    "normalize_marketplace",
    "fetch_public_sheet",
    "parse_public_csv",
    "col_index",
    "col_letter",
    "to_iso_date",
    "to_sheet_date",
]
