"""Writing an edited delivery back to its spreadsheet row."""

from __future__ import annotations

import logging
import re
from typing import Any

from ..auth.tokens import TokenManager
from ..exceptions import ConfigNotFoundError, DeliveryCalendarError, ReauthRequiredError
from ..models import DeliveryEvent, GoogleSheetsConfig, WriteResult
from ..monitoring import capture_exception
from ..sheets.client import SheetsClient
from ..sheets.constants import FIRST_DATA_ROW
from ..sheets.utils import a1_cell, to_sheet_date
from .delivery_service import DeliveryService

logger = logging.getLogger(__name__)

_ROW_ID = re.compile(r"delivery-(\d+)$")

REAUTH_MESSAGE = "Требуется повторная авторизация"


def row_number_from_id(event_id: str) -> int | None:
    """Sheet row of an event id ending in delivery-<N>: header row + 1-based."""
    m = _ROW_ID.search(event_id)
    return int(m.group(1)) + FIRST_DATA_ROW if m else None


def build_update_data(
    config: GoogleSheetsConfig, event: DeliveryEvent, row_number: int
) -> list[dict[str, Any]]:
    """One single-cell {range, values} entry per mapped column."""
    m = config.column_mappings
    cells = [
        (m.date_column, to_sheet_date(event.date)),
        (m.marketplace_column, event.marketplace),
        (m.warehouse_column, event.warehouse),
        (m.department_column, event.department),
        (m.item_count_column, str(event.item_count or 0)),
        (m.realization_number_column, event.realization_number or ""),
        (m.delivery_number_column, event.delivery_number or ""),
        (m.transit_warehouse_column, event.transit_warehouse or ""),
    ]
    return [
        {"range": a1_cell(config.sheet_name, column, row_number), "values": [[value]]}
        for column, value in cells
    ]


class DeliveryUpdater:
    """Persists edited deliveries. Last write wins: the row is not re-read first."""

    def __init__(self, sheets: SheetsClient, tokens: TokenManager, service: DeliveryService):
        self.sheets = sheets
        self.tokens = tokens
        self.service = service

    async def _resolve_config(self, config_id: str | None) -> GoogleSheetsConfig:
        if config_id:
            return await self.service.resolve_config(config_id)
        configs = await self.service.active_store.list_all()
        if not configs:
            raise ConfigNotFoundError("<none>")
        logger.info("No config id given, using first configuration %r", configs[0].name)
        return configs[0]

    async def _row_number(self, event: DeliveryEvent, config: GoogleSheetsConfig) -> int:
        row_number = row_number_from_id(event.id)
        if row_number is not None:
            return row_number

        logger.info("Event id %s carries no row number, looking it up in the sheet", event.id)
        for candidate in await self.service.fetch_one(config.id):
            if candidate.id == event.id and candidate.row_index is not None:
                return candidate.row_index + FIRST_DATA_ROW
        raise DeliveryCalendarError(f"Событие {event.id} не найдено в таблице")

    async def _ensure_token(self) -> bool:
        token = await self.tokens.get_access_token()
        if token and not await self.tokens.is_expired():
            return True
        logger.info("Access token missing or stale before write, refreshing")
        if await self.tokens.refresh():
            return True
        await self.tokens.clear()
        return False

    async def update(self, event: DeliveryEvent, config_id: str | None = None) -> WriteResult:
        """Write all mapped fields of event to its row in one batch request."""
        if not await self._ensure_token():
            return WriteResult(ok=False, error=REAUTH_MESSAGE, reauth_required=True)

        row_number: int | None = None
        try:
            config = await self._resolve_config(config_id or event.config_id)
            row_number = await self._row_number(event, config)
            data = build_update_data(config, event, row_number)
            logger.info(
                "Updating row %d of %r (%d cells)", row_number, config.name, len(data)
            )
            await self.tokens.call_with_refresh(
                lambda token: self.sheets.batch_update_values(config.spreadsheet_id, data, token)
            )
        except ReauthRequiredError as e:
            logger.warning("Write of %s needs re-authentication: %s", event.id, e)
            return WriteResult(ok=False, row_number=row_number, error=str(e), reauth_required=True)
        except DeliveryCalendarError as e:
            capture_exception(e, {"operation": "update_event", "event_id": event.id})
            return WriteResult(ok=False, row_number=row_number, error=str(e))

        logger.info("Row %d updated", row_number)
        return WriteResult(ok=True, row_number=row_number)
