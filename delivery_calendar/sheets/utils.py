"""Utility functions for Google Sheets operations."""

import re

_SHEET_DATE = re.compile(r"^(\d{1,2})\.(\d{1,2})\.(\d{4})$")
_ISO_DATE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")
_SHEET_ID = re.compile(r"/spreadsheets/d/([a-zA-Z0-9-_]+)")


def col_letter(index: int) -> str:
    """Convert 0-based index to column letter (A, B, ..., Z, AA, AB, ...)."""
    result = ""
    while index >= 0:
        result = chr(index % 26 + ord("A")) + result
        index = index // 26 - 1
    return result


def col_index(letter: str) -> int:
    """Convert column letter to 0-based index (A -> 0, Z -> 25, AA -> 26)."""
    letter = letter.strip().upper()
    if not letter or not letter.isascii() or not letter.isalpha():
        raise ValueError(f"Invalid column letter: {letter!r}")
    index = 0
    for char in letter:
        index = index * 26 + (ord(char) - ord("A") + 1)
    return index - 1


def extract_sheet_id(value: str) -> str:
    # accepts full URL or ID
    m = _SHEET_ID.search(value)
    return m.group(1) if m else value.strip()


def to_iso_date(value: str) -> str:
    """DD.MM.YYYY -> YYYY-MM-DD; anything else is returned unchanged."""
    m = _SHEET_DATE.match(value.strip())
    if not m:
        return value
    day, month, year = m.groups()
    return f"{year}-{month.zfill(2)}-{day.zfill(2)}"


def to_sheet_date(value: str) -> str:
    """YYYY-MM-DD -> DD.MM.YYYY; anything else is returned unchanged."""
    m = _ISO_DATE.match(value.strip())
    if not m:
        return value
    year, month, day = m.groups()
    return f"{day.zfill(2)}.{month.zfill(2)}.{year}"


def a1_cell(sheet_name: str, column: str, row: int) -> str:
    """A1 address of a single cell, e.g. 'Поставки'!B7."""
    if not sheet_name:
        return f"{column}{row}"
    return f"{quote_sheet_name(sheet_name)}!{column}{row}"


def quote_sheet_name(sheet_name: str) -> str:
    """Quote a sheet title for A1 notation when it is not a plain identifier."""
    if re.fullmatch(r"[A-Za-z0-9_]+", sheet_name):
        return sheet_name
    escaped = sheet_name.replace("'", "''")
    return f"'{escaped}'"
