"""Inventory reacts to order status changes.

Succeeded orders consume their reservations, cancelled ones give the stock
back, refunded ones record a return for every line. Each step is
idempotent against the reservation statuses and the Return rows already
written for the order.
"""

import structlog
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from storefront.domain import storefront
from storefront.inventory.engine import inventory_engine
from storefront.inventory.inventory_item import InventoryItem
from storefront.ordering.events import OrderCancelled, OrderRefunded, OrderSucceeded
from storefront.ordering.order import Order

logger = structlog.get_logger(__name__)


@storefront.event_handler(part_of=InventoryItem, stream_category="storefront::order")
class OrderInventoryEventHandler:
    @handle(OrderSucceeded)
    def on_order_succeeded(self, event: OrderSucceeded) -> None:
        order = current_domain.repository_for(Order).get(event.order_id)
        logger.info("Fulfilling reservations", order_id=str(order.id))
        inventory_engine.fulfill(order)

    @handle(OrderCancelled)
    def on_order_cancelled(self, event: OrderCancelled) -> None:
        order = current_domain.repository_for(Order).get(event.order_id)
        logger.info("Releasing reservations for cancelled order", order_id=str(order.id))
        inventory_engine.release(order)

    @handle(OrderRefunded)
    def on_order_refunded(self, event: OrderRefunded) -> None:
        order = current_domain.repository_for(Order).get(event.order_id)
        logger.info("Returning stock for refunded order", order_id=str(order.id))
        inventory_engine.return_order(order)
