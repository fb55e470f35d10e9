"""Event handlers for Inventory domain events."""

from __future__ import annotations

import structlog

from modules.inventory.events import LowStockReached, StockMovementRecorded
from shared.domain.bus import IEventHandler

logger = structlog.get_logger(__name__)


class StockMovementRecordedHandler(IEventHandler[StockMovementRecorded]):
    def handle(self, event: StockMovementRecorded) -> None:
        logger.info(
            "inventory.event.movement_recorded",
            variation_id=str(event.aggregate_id),
            kind=event.kind,
            delta=event.delta,
            reason=event.reason,
            current_stock=event.current_stock,
        )


class LowStockReachedHandler(IEventHandler[LowStockReached]):
    def handle(self, event: LowStockReached) -> None:
        logger.warning(
            "inventory.event.low_stock",
            variation_id=str(event.aggregate_id),
            sku=event.sku,
            current_stock=event.current_stock,
            threshold=event.threshold,
        )


stock_movement_recorded_handler = StockMovementRecordedHandler()
low_stock_reached_handler = LowStockReachedHandler()

SUBSCRIPTIONS = (
    (StockMovementRecorded, stock_movement_recorded_handler),
    (LowStockReached, low_stock_reached_handler),
)
