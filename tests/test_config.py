"""Tests for application settings."""

import base64
import json

import pytest
from pydantic import ValidationError

from delivery_calendar.config import Settings


class TestSettings:
    """Test cases for Settings."""

    def test_defaults(self):
        settings = Settings(_env_file=None)

        assert settings.refresh_interval_seconds == 60
        assert settings.refresh_interval_ms == 60_000
        assert settings.multi_letter_columns is False
        assert settings.firebase_enabled is False

    def test_refresh_interval_must_be_positive(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, refresh_interval_seconds=0)

    def test_service_account_forms_exclusive(self):
        with pytest.raises(ValidationError):
            Settings(
                _env_file=None,
                firebase_service_account_json_path="/tmp/sa.json",
                firebase_service_account_json_b64="e30=",
            )

    def test_missing_credentials(self):
        settings = Settings(
            _env_file=None,
            google_sheets_api_key="k",
            google_client_id="",
            firebase_api_key="",
        )

        missing = settings.missing_credentials()

        assert "GOOGLE_CLIENT_ID" in missing
        assert "FIREBASE_API_KEY" in missing
        assert "GOOGLE_SHEETS_API_KEY" not in missing

    def test_firebase_credentials_from_b64(self):
        info = {"type": "service_account", "project_id": "p"}
        encoded = base64.b64encode(json.dumps(info).encode()).decode()

        settings = Settings(_env_file=None, firebase_service_account_json_b64=encoded)

        assert settings.get_firebase_credentials_info() == info

    def test_firebase_credentials_missing_file(self, tmp_path):
        settings = Settings(
            _env_file=None,
            firebase_service_account_json_path=str(tmp_path / "missing.json"),
        )

        with pytest.raises(FileNotFoundError):
            settings.get_firebase_credentials_info()

    def test_firebase_enabled(self):
        settings = Settings(_env_file=None, firebase_api_key="k", firebase_project_id="p")
        assert settings.firebase_enabled is True
