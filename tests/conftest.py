"""Pytest configuration and fixtures."""

import os
import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Set test environment variables before importing app modules
os.environ.setdefault("GOOGLE_SHEETS_API_KEY", "test_api_key")
os.environ.setdefault("GOOGLE_CLIENT_ID", "test_client_id")
os.environ.setdefault("GOOGLE_CLIENT_SECRET", "test_client_secret")
os.environ.setdefault("SENTRY_DSN", "")


class FakeClock:
    """Millisecond clock under test control."""

    def __init__(self, now: int = 1_700_000_000_000):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, minutes: float = 0, seconds: float = 0) -> None:
        self.now += int(minutes * 60_000 + seconds * 1000)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def mock_settings(monkeypatch, tmp_path):
    """Mock settings for tests."""
    from delivery_calendar.config import Settings

    settings = Settings(
        _env_file=None,
        google_sheets_api_key="test_api_key",
        google_client_id="test_client_id",
        google_client_secret="test_client_secret",
        db_path=tmp_path / "settings.sqlite3",
        sentry_dsn="",
    )

    monkeypatch.setattr("delivery_calendar.config.get_settings", lambda: settings)
    monkeypatch.setattr("delivery_calendar.monitoring.get_settings", lambda: settings)
    return settings


@pytest.fixture
def kv(tmp_path):
    """Key-value store on a per-test SQLite file."""
    from delivery_calendar.storage.kv import KeyValueStore

    return KeyValueStore(tmp_path / "test_isolated.sqlite3")


@pytest.fixture
def sample_config():
    """Configuration with the default A..H mapping."""
    from delivery_calendar.models import GoogleSheetsConfig

    return GoogleSheetsConfig(
        id="cfg-1",
        name="Склад",
        spreadsheet_id="sheet-abc",
        sheet_name="Поставки",
    )


@pytest.fixture
def sample_rows():
    """Header-stripped rows in the default column layout."""
    return [
        ["01.06.2024", "OZON", "Москва", "Электроника", "250", "R-1", "D-1", "Казань"],
        ["02.06.2024", "wb", "Коледино", "Одежда", "1 234,50"],
        ["", "Ozon", "Москва", "Электроника", "10"],
        ["03.06.2024", "Яндекс Маркет", "Софьино", "Бытовая техника", "12"],
    ]


@pytest.fixture
def mock_provider():
    """Identity provider whose reauthentication hands out 'new-token'."""
    from delivery_calendar.models import AuthProvider, GoogleUser, SignInResult

    provider = MagicMock()
    provider.kind = AuthProvider.GOOGLE
    provider.reauthenticate = AsyncMock(
        return_value=SignInResult(
            user=GoogleUser(access_token="new-token"),
            access_token="new-token",
            refresh_token="refresh-2",
        )
    )
    provider.sign_in = AsyncMock()
    provider.sign_out = AsyncMock()
    return provider
