"""Service layer.

- delivery_service.py: fetching, merging and auto-refresh
- updater.py: write-back of edited deliveries
- stats.py: filters and aggregates
- dashboard.py: session context wiring it all together
"""

from .dashboard import Dashboard
from .delivery_service import DeliveryService, index_events, sample_deliveries
from .stats import calculate_delivery_stats, filter_choices, filter_events
from .updater import DeliveryUpdater, build_update_data, row_number_from_id

__all__ = [
    "Dashboard",
    "DeliveryService",
    "DeliveryUpdater",
    "index_events",
    "sample_deliveries",
    "calculate_delivery_stats",
    "filter_choices",
    "filter_events",
    "build_update_data",
    "row_number_from_id",
]
