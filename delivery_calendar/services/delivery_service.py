"""Loading deliveries from configured sheets and keeping them fresh."""

from __future__ import annotations

import asyncio
import inspect
import logging
import math
from collections import Counter
from collections.abc import Callable, Sequence
from datetime import date, timedelta
from typing import Any

from ..auth.tokens import TokenManager, now_ms
from ..exceptions import ConfigNotFoundError
from ..models import DeliveryEvent, GoogleSheetsConfig, Marketplace, SchedulerState
from ..monitoring import capture_exception
from ..sheets.client import SheetsClient
from ..sheets.constants import HEADER_ROWS
from ..sheets.parser import parse_delivery_rows
from ..storage.base import ConfigStore

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_INTERVAL_MS = 60_000

RefreshCallback = Callable[[list[DeliveryEvent]], Any]


def sample_deliveries(today: date | None = None) -> list[DeliveryEvent]:
    """Built-in deliveries for development when nothing is configured."""
    today = today or date.today()
    samples = [
        ("1", today, Marketplace.OZON, "Москва", "Электроника", 250),
        ("2", today + timedelta(days=1), Marketplace.WILDBERRIES, "Санкт-Петербург", "Одежда", 175),
        ("3", today + timedelta(days=7), Marketplace.YANDEX_MARKET, "Новосибирск", "Бытовая техника", 120),
    ]
    return [
        DeliveryEvent(
            id=event_id,
            title=f"{marketplace.value}: {warehouse}",
            date=day.isoformat(),
            marketplace=marketplace.value,
            warehouse=warehouse,
            department=department,
            item_count=count,
        )
        for event_id, day, marketplace, warehouse, department, count in samples
    ]


def index_events(events: Sequence[DeliveryEvent]) -> dict[tuple[str, int | None], DeliveryEvent]:
    """Map events by (config_id, row_index); plain ids repeat across sheets."""
    return {event.key: event for event in events}


class DeliveryService:
    """Fetches, parses and merges deliveries; owns the auto-refresh timer."""

    def __init__(
        self,
        sheets: SheetsClient,
        tokens: TokenManager,
        local_store: ConfigStore,
        remote_store: ConfigStore | None = None,
        dev_mode: bool = False,
        clock: Callable[[], int] = now_ms,
    ):
        self.sheets = sheets
        self.tokens = tokens
        self.local_store = local_store
        self.remote_store = remote_store
        self.active_store: ConfigStore = local_store
        self.dev_mode = dev_mode
        self.clock = clock

        self.scheduler = SchedulerState()
        self._timer_task: asyncio.Task | None = None
        self._tick_tasks: set[asyncio.Task] = set()

    # -------------------------------------------------------------------------
    # Fetching
    # -------------------------------------------------------------------------
    async def resolve_config(self, config_id: str) -> GoogleSheetsConfig:
        """Look the configuration up locally first, then in Firestore."""
        config = await self.local_store.get(config_id)
        if config is not None:
            return config
        if self.remote_store is not None:
            logger.debug("Config %s not stored locally, checking Firestore", config_id)
            config = await self.remote_store.get(config_id)
            if config is not None:
                return config
        raise ConfigNotFoundError(config_id)

    async def fetch_rows(self, config: GoogleSheetsConfig) -> list[list[Any]]:
        """Whole sheet in one request, header row removed."""
        rows = await self.tokens.call_with_refresh(
            lambda token: self.sheets.get_values(config.spreadsheet_id, config.sheet_name, token)
        )
        logger.debug("Got %d rows from %r (including header)", len(rows), config.name)
        return rows[HEADER_ROWS:]

    async def fetch_one(self, config_id: str) -> list[DeliveryEvent]:
        """Deliveries of one configuration."""
        await self.tokens.ensure_fresh()
        config = await self.resolve_config(config_id)
        logger.info("Loading deliveries from %r (%s)", config.name, config_id)

        rows = await self.fetch_rows(config)
        events = parse_delivery_rows(config, rows)
        logger.info("Loaded %d events from %r", len(events), config.name)
        return events

    async def fetch_many(self, config_ids: Sequence[str]) -> list[DeliveryEvent]:
        """Fetch configurations concurrently and concatenate in input order.

        One failing configuration fails the whole batch.
        """
        if not config_ids:
            logger.info("No configurations selected")
            return sample_deliveries() if self.dev_mode else []

        logger.info("Loading deliveries from %d configurations", len(config_ids))
        results = await asyncio.gather(*(self.fetch_one(cid) for cid in config_ids))
        events = [event for batch in results for event in batch]

        duplicates = {eid: n for eid, n in Counter(e.id for e in events).items() if n > 1}
        if duplicates:
            logger.warning(
                "Duplicate event ids across configurations: %d repeated (%s)",
                sum(n - 1 for n in duplicates.values()),
                ", ".join(sorted(duplicates)[:10]),
            )
        logger.info("Loaded %d events in total", len(events))
        return events

    async def fetch_all(self) -> list[DeliveryEvent]:
        """Deliveries of every configuration in the active store."""
        configs = await self.active_store.list_all()
        if not configs:
            logger.info("No saved Google Sheets configurations")
            return sample_deliveries() if self.dev_mode else []
        return await self.fetch_many([c.id for c in configs])

    # -------------------------------------------------------------------------
    # Auto-refresh
    # -------------------------------------------------------------------------
    def start_auto_refresh(
        self,
        callback: RefreshCallback,
        interval_ms: int = DEFAULT_REFRESH_INTERVAL_MS,
        config_ids: Sequence[str] | None = None,
    ) -> None:
        """Fetch now, then every interval_ms. Replaces any running timer.

        Must be called from a running event loop.
        """
        if interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        self.stop_auto_refresh()

        ids = list(config_ids) if config_ids else None
        if ids:
            logger.info(
                "Auto-refresh every %ss for %d configurations", interval_ms / 1000, len(ids)
            )
        else:
            logger.info("Auto-refresh every %ss for all configurations", interval_ms / 1000)

        self._mark_tick(interval_ms)
        self.scheduler.active = True
        self._spawn_tick(callback, ids)
        self._timer_task = asyncio.create_task(self._run_timer(callback, interval_ms, ids))

    def stop_auto_refresh(self) -> None:
        """Stop future ticks. A fetch already in flight is left to finish."""
        if self._timer_task is None:
            return
        self._timer_task.cancel()
        self._timer_task = None
        self.scheduler = SchedulerState(interval_ms=self.scheduler.interval_ms)
        logger.info("Auto-refresh stopped")

    def is_auto_refresh_active(self) -> bool:
        return self._timer_task is not None

    def progress_percent(self) -> int:
        """Share of the interval still remaining before the next tick, 0-100."""
        state = self.scheduler
        if not self.is_auto_refresh_active() or not state.last_tick_ms or not state.next_tick_ms:
            return 0
        total = state.next_tick_ms - state.last_tick_ms
        if total <= 0:
            return 0
        elapsed = self.clock() - state.last_tick_ms
        done = min(100, max(0, math.floor(elapsed / total * 100)))
        return 100 - done

    def seconds_until_next_refresh(self) -> int:
        state = self.scheduler
        if not self.is_auto_refresh_active() or not state.next_tick_ms:
            return 0
        remaining = max(0, state.next_tick_ms - self.clock())
        return math.ceil(remaining / 1000)

    async def wait_for_ticks(self) -> None:
        """Wait until ticks already started have finished."""
        if self._tick_tasks:
            await asyncio.gather(*list(self._tick_tasks), return_exceptions=True)

    def _mark_tick(self, interval_ms: int) -> None:
        now = self.clock()
        self.scheduler.last_tick_ms = now
        self.scheduler.next_tick_ms = now + interval_ms
        self.scheduler.interval_ms = interval_ms

    def _spawn_tick(self, callback: RefreshCallback, config_ids: list[str] | None) -> None:
        task = asyncio.create_task(self._tick(callback, config_ids))
        self._tick_tasks.add(task)
        task.add_done_callback(self._tick_tasks.discard)

    async def _run_timer(
        self, callback: RefreshCallback, interval_ms: int, config_ids: list[str] | None
    ) -> None:
        # Fixed cadence: a slow tick does not delay the next one
        while True:
            await asyncio.sleep(interval_ms / 1000)
            self._mark_tick(interval_ms)
            self._spawn_tick(callback, config_ids)

    async def _tick(self, callback: RefreshCallback, config_ids: list[str] | None) -> None:
        try:
            events = await (self.fetch_many(config_ids) if config_ids else self.fetch_all())
            result = callback(events)
            if inspect.isawaitable(result):
                await result
            logger.info("Auto-refresh delivered %d events", len(events))
        except Exception as e:
            # A failed tick must not stop the timer
            capture_exception(e, {"operation": "auto_refresh", "config_ids": config_ids})
