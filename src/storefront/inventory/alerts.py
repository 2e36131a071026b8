"""Surfaces stock threshold events in the logs for the operations team."""

import structlog
from protean.utils.mixins import handle

from storefront.domain import storefront
from storefront.inventory.events import LowStockDetected, StockDepleted
from storefront.inventory.inventory_item import InventoryItem

logger = structlog.get_logger(__name__)


@storefront.event_handler(part_of=InventoryItem)
class StockAlertHandler:
    @handle(LowStockDetected)
    def on_low_stock(self, event: LowStockDetected) -> None:
        logger.warning(
            "Low stock",
            product_id=str(event.product_id),
            quantity_on_hand=event.quantity_on_hand,
            reorder_point=event.reorder_point,
            reorder_quantity=event.reorder_quantity,
        )

    @handle(StockDepleted)
    def on_stock_depleted(self, event: StockDepleted) -> None:
        logger.warning("Out of stock", product_id=str(event.product_id))
