"""Application configuration using Pydantic Settings."""

import base64
import json
from functools import lru_cache
from pathlib import Path

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Google Sheets / OAuth
    google_sheets_api_key: str = ""
    google_client_id: str = ""
    google_client_secret: str = ""

    # Firebase (federated sign-in + Firestore config storage)
    firebase_api_key: str = ""
    firebase_auth_domain: str = ""
    firebase_project_id: str = ""
    firebase_service_account_json_path: str = ""
    firebase_service_account_json_b64: str = ""

    # Data refresh
    dev_mode: bool = False  # Serve sample deliveries when nothing is configured
    refresh_interval_seconds: int = 60
    multi_letter_columns: bool = False  # Allow AA..ZZZ column designators

    # Application
    log_level: str = "INFO"
    db_path: Path = Path("data/delivery_calendar.sqlite3")

    # Monitoring (Sentry)
    sentry_dsn: str = ""
    environment: str = "production"

    @field_validator("refresh_interval_seconds")
    @classmethod
    def validate_refresh_interval(cls, v: int) -> int:
        """Refresh interval must be positive."""
        if v <= 0:
            raise ValueError("REFRESH_INTERVAL_SECONDS must be positive")
        return v

    @model_validator(mode="after")
    def validate_firebase_credentials(self) -> "Settings":
        """Service account may be given as a path or base64, not both."""
        if self.firebase_service_account_json_path and self.firebase_service_account_json_b64:
            raise ValueError(
                "Provide either FIREBASE_SERVICE_ACCOUNT_JSON_PATH or "
                "FIREBASE_SERVICE_ACCOUNT_JSON_B64, not both"
            )
        return self

    @property
    def firebase_enabled(self) -> bool:
        """Check if Firebase sign-in and Firestore storage are configured."""
        return bool(self.firebase_api_key and self.firebase_project_id)

    @property
    def refresh_interval_ms(self) -> int:
        return self.refresh_interval_seconds * 1000

    def missing_credentials(self) -> list[str]:
        """Names of unset environment variables the dashboard expects."""
        required = {
            "GOOGLE_SHEETS_API_KEY": self.google_sheets_api_key,
            "GOOGLE_CLIENT_ID": self.google_client_id,
            "GOOGLE_CLIENT_SECRET": self.google_client_secret,
            "FIREBASE_API_KEY": self.firebase_api_key,
            "FIREBASE_AUTH_DOMAIN": self.firebase_auth_domain,
            "FIREBASE_PROJECT_ID": self.firebase_project_id,
        }
        return [name for name, value in required.items() if not value]

    def get_firebase_credentials_info(self) -> dict | None:
        """Get Firebase service account credentials as dictionary, if any."""
        if self.firebase_service_account_json_b64:
            decoded = base64.b64decode(self.firebase_service_account_json_b64)
            return json.loads(decoded)

        if self.firebase_service_account_json_path:
            path = Path(self.firebase_service_account_json_path)
            if not path.exists():
                raise FileNotFoundError(f"Service account file not found: {path}")
            return json.loads(path.read_text())

        return None


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
