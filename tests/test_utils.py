"""Tests for sheet utility functions."""

import pytest

from delivery_calendar.sheets.utils import (
    a1_cell,
    col_index,
    col_letter,
    extract_sheet_id,
    to_iso_date,
    to_sheet_date,
)


class TestColumnLetters:
    """Test cases for column letter conversion."""

    def test_col_letter_single(self):
        assert col_letter(0) == "A"
        assert col_letter(1) == "B"
        assert col_letter(25) == "Z"

    def test_col_letter_double(self):
        assert col_letter(26) == "AA"
        assert col_letter(27) == "AB"
        assert col_letter(51) == "AZ"
        assert col_letter(52) == "BA"

    def test_col_index(self):
        assert col_index("A") == 0
        assert col_index("h") == 7
        assert col_index("Z") == 25
        assert col_index("AA") == 26
        assert col_index("BA") == 52

    def test_roundtrip_edges(self):
        for index in (0, 25, 26, 701, 702):
            assert col_index(col_letter(index)) == index

    @pytest.mark.parametrize("bad", ["", "1", "A1", "Ж"])
    def test_col_index_invalid(self, bad):
        with pytest.raises(ValueError):
            col_index(bad)


class TestDates:
    """Test cases for sheet <-> ISO dates."""

    def test_to_iso(self):
        assert to_iso_date("05.03.2024") == "2024-03-05"
        assert to_iso_date("31.12.2024") == "2024-12-31"

    def test_to_iso_passthrough(self):
        assert to_iso_date("2024-03-05") == "2024-03-05"
        assert to_iso_date("завтра") == "завтра"

    def test_to_sheet(self):
        assert to_sheet_date("2024-03-05") == "05.03.2024"
        assert to_sheet_date("05.03.2024") == "05.03.2024"


class TestAddresses:
    """Test cases for A1 addresses and sheet ids."""

    def test_plain_sheet_name(self):
        assert a1_cell("Sheet1", "A", 2) == "Sheet1!A2"

    def test_quoted_sheet_name(self):
        assert a1_cell("Поставки", "B", 7) == "'Поставки'!B7"
        assert a1_cell("My Sheet", "C", 3) == "'My Sheet'!C3"

    def test_apostrophe_escaped(self):
        assert a1_cell("It's", "A", 1) == "'It''s'!A1"

    def test_extract_sheet_id_from_url(self):
        url = "https://docs.google.com/spreadsheets/d/1AbC-d_9/edit#gid=0"
        assert extract_sheet_id(url) == "1AbC-d_9"

    def test_extract_sheet_id_plain(self):
        assert extract_sheet_id("  1AbC-d_9 ") == "1AbC-d_9"
