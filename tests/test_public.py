"""Tests for the public CSV reader."""

from datetime import date

import httpx
import pytest

from delivery_calendar.sheets.public import (
    fetch_public_sheet,
    find_column_index,
    is_sheet_public,
    parse_public_csv,
    parse_public_date,
)

CSV = (
    '"Дата поставки","Кол-во","Категория"\n'
    '"01.06.2024","250 шт","Электроника"\n'
    '"","",""\n'
    '"2024-06-05","175",""\n'
    '"вчера","5","Одежда"\n'
    '"07/06/2024","1 200","Одежда"\n'
)


class TestPublicDate:
    """Test cases for parse_public_date."""

    def test_formats(self):
        expected = date(2024, 6, 7)
        assert parse_public_date("07.06.2024") == expected
        assert parse_public_date("7/6/2024") == expected
        assert parse_public_date("07-06-2024") == expected
        assert parse_public_date("2024-06-07") == expected
        assert parse_public_date('"07.06.2024"') == expected

    def test_invalid(self):
        assert parse_public_date("31.02.2024") is None
        assert parse_public_date("June 7") is None


class TestParsePublicCsv:
    """Test cases for parse_public_csv."""

    def test_find_column_index(self):
        headers = ["Дата поставки", "Кол-во", "Категория"]
        assert find_column_index(headers, ["date", "дата"]) == 0
        assert find_column_index(headers, ["отдел", "категория"]) == 2
        assert find_column_index(headers, ["склад"]) == -1

    def test_rows(self):
        events = parse_public_csv(CSV, "Лист1")

        assert [e.id for e in events] == ["public-Лист1-2", "public-Лист1-4", "public-Лист1-6"]
        assert [e.date for e in events] == ["2024-06-01", "2024-06-05", "2024-06-07"]
        assert [e.item_count for e in events] == [250, 175, 1200]
        assert events[1].department == "Общий"
        assert all(e.marketplace == "Wildberries" for e in events)
        assert all(e.warehouse == "Лист1" for e in events)

    def test_without_count_column(self):
        events = parse_public_csv("Дата\n01.06.2024\n", "S")
        assert events[0].item_count == 1

    def test_without_date_column(self):
        assert parse_public_csv("Склад,Кол-во\nМосква,5\n", "S") == []

    def test_header_only(self):
        assert parse_public_csv("Дата,Кол-во\n", "S") == []


class TestFetchPublicSheet:
    """Test cases for the HTTP side."""

    @pytest.mark.asyncio
    async def test_fetch(self):
        def handler(request):
            assert request.url.path == "/spreadsheets/d/sid/gviz/tq"
            assert request.url.params["tqx"] == "out:csv"
            assert request.url.params["sheet"] == "Лист1"
            return httpx.Response(200, text=CSV)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            events = await fetch_public_sheet("sid", "Лист1", client=client)

        assert len(events) == 3

    @pytest.mark.asyncio
    async def test_fetch_private_sheet_raises(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(401))
        async with httpx.AsyncClient(transport=transport) as client:
            with pytest.raises(httpx.HTTPStatusError):
                await fetch_public_sheet("sid", "Лист1", client=client)

    @pytest.mark.asyncio
    async def test_is_sheet_public(self):
        ok = httpx.MockTransport(lambda request: httpx.Response(200, text="a\n"))
        denied = httpx.MockTransport(lambda request: httpx.Response(403))

        async with httpx.AsyncClient(transport=ok) as client:
            assert await is_sheet_public("sid", client=client) is True
        async with httpx.AsyncClient(transport=denied) as client:
            assert await is_sheet_public("sid", client=client) is False
