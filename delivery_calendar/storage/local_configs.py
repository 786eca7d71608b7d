"""Sheet configurations kept in the local key-value store.

All configurations live as one JSON array under a single key; every
mutation rewrites the whole array (last writer wins).
"""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import replace

from ..models import GoogleSheetsConfig
from ..sheets.utils import extract_sheet_id
from .base import CONFIGS_KEY
from .kv import KeyValueStore

logger = logging.getLogger(__name__)


class LocalConfigStore:
    """Configurations of the direct Google sign-in, shared by all local users."""

    def __init__(self, kv: KeyValueStore, allow_multi_letter: bool = False):
        self.kv = kv
        self.allow_multi_letter = allow_multi_letter

    async def _load(self) -> list[GoogleSheetsConfig]:
        raw = await self.kv.get(CONFIGS_KEY)
        if not raw:
            return []
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error("Failed to parse stored configs: %s", e)
            return []
        if not isinstance(data, list):
            logger.error("Stored configs are not a list: %s", type(data).__name__)
            return []
        return [GoogleSheetsConfig.from_dict(item) for item in data if isinstance(item, dict)]

    async def _save(self, configs: list[GoogleSheetsConfig]) -> None:
        payload = [c.to_dict() for c in configs]
        await self.kv.set(CONFIGS_KEY, json.dumps(payload, ensure_ascii=False))

    async def list_all(self) -> list[GoogleSheetsConfig]:
        return await self._load()

    async def get(self, config_id: str) -> GoogleSheetsConfig | None:
        for config in await self._load():
            if config.id == config_id:
                return config
        return None

    async def add(self, config: GoogleSheetsConfig) -> GoogleSheetsConfig:
        """Store a new configuration under a freshly generated id."""
        config.column_mappings.validate(self.allow_multi_letter)
        new_config = replace(
            config,
            id=str(uuid.uuid4()),
            spreadsheet_id=extract_sheet_id(config.spreadsheet_id),
        )
        configs = await self._load()
        configs.append(new_config)
        await self._save(configs)
        logger.info("Config added: %s (%s)", new_config.name, new_config.id)
        return new_config

    async def update(self, config: GoogleSheetsConfig) -> bool:
        """Replace the configuration with the same id. False if absent."""
        config.column_mappings.validate(self.allow_multi_letter)
        configs = await self._load()
        for idx, existing in enumerate(configs):
            if existing.id == config.id:
                configs[idx] = replace(
                    config, spreadsheet_id=extract_sheet_id(config.spreadsheet_id)
                )
                await self._save(configs)
                return True
        return False

    async def delete(self, config_id: str) -> bool:
        """Remove by id. False (and no rewrite) if absent."""
        configs = await self._load()
        remaining = [c for c in configs if c.id != config_id]
        if len(remaining) == len(configs):
            return False
        await self._save(remaining)
        logger.info("Config deleted: %s", config_id)
        return True
