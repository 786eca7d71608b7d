"""Main entry point: restore the session and keep the delivery calendar fresh."""

import asyncio
import logging
import sys
from pathlib import Path

from delivery_calendar.config import get_settings
from delivery_calendar.models import DeliveryEvent
from delivery_calendar.monitoring import setup_sentry
from delivery_calendar.services import Dashboard, calculate_delivery_stats


def setup_logging() -> None:
    """Configure logging based on settings."""
    settings = get_settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper()),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
    )

    # Reduce noise from libraries
    logging.getLogger("googleapiclient").setLevel(logging.WARNING)
    logging.getLogger("google").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def log_deliveries(events: list[DeliveryEvent]) -> None:
    logger = logging.getLogger(__name__)
    stats = calculate_delivery_stats(events)
    logger.info(
        "deliveries_refreshed",
        extra={
            "total_deliveries": stats.total_deliveries,
            "total_items": stats.total_items,
            "marketplaces": stats.marketplace_breakdown,
        },
    )


async def main() -> None:
    """Main async entry point."""
    setup_logging()
    setup_sentry()
    logger = logging.getLogger(__name__)

    settings = get_settings()
    missing = settings.missing_credentials()
    if missing:
        logger.warning("Missing environment variables: %s", ", ".join(missing))

    Path(settings.db_path).parent.mkdir(parents=True, exist_ok=True)

    dashboard = Dashboard.from_settings(settings)
    auth = await dashboard.restore_session()
    if not auth.is_logged_in:
        logger.info("No stored session; reading sheets with the API key")
    elif not await dashboard.tokens.verify():
        logger.warning("Stored Google token rejected; falling back to the API key")

    dashboard.service.start_auto_refresh(log_deliveries, interval_ms=settings.refresh_interval_ms)
    logger.info("Delivery calendar running, refresh every %ss", settings.refresh_interval_seconds)

    try:
        await asyncio.Event().wait()
    finally:
        dashboard.service.stop_auto_refresh()
        await dashboard.service.wait_for_ticks()


if __name__ == "__main__":
    asyncio.run(main())
