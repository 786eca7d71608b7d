"""Interface shared by the local and remote configuration stores."""

from __future__ import annotations

from typing import Protocol

from ..models import GoogleSheetsConfig

# Local-storage key and Firestore collection share this name
CONFIGS_KEY = "google_sheets_configs"


class ConfigStore(Protocol):
    async def list_all(self) -> list[GoogleSheetsConfig]: ...

    async def get(self, config_id: str) -> GoogleSheetsConfig | None: ...

    async def add(self, config: GoogleSheetsConfig) -> GoogleSheetsConfig | None: ...

    async def update(self, config: GoogleSheetsConfig) -> bool: ...

    async def delete(self, config_id: str) -> bool: ...
