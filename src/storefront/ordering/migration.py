"""Order import for data migration.

Imported orders are persisted with their final status but raise no events,
so no inventory, discount, commission or email side effect runs for them.
"""

import json

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, Identifier, String, Text
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.ordering.order import DispatchMode, Order, OrderStatus

logger = structlog.get_logger(__name__)

# Statuses walked from Pending to reach each imported status
_IMPORT_PATHS = {
    OrderStatus.PENDING: [],
    OrderStatus.PROCESSING: [OrderStatus.PROCESSING],
    OrderStatus.REQUIRES_ACTION: [OrderStatus.REQUIRES_ACTION],
    OrderStatus.SUCCEEDED: [OrderStatus.SUCCEEDED],
    OrderStatus.REFUNDED: [OrderStatus.SUCCEEDED, OrderStatus.REFUNDED],
    OrderStatus.CANCELLED: [OrderStatus.CANCELLED],
    OrderStatus.FAILED: [OrderStatus.FAILED],
}


@storefront.command(part_of="Order")
class ImportOrder:
    user_id = Identifier()
    status = String(choices=OrderStatus, required=True)
    items = Text(required=True)  # JSON list of order line dicts
    currency = String(max_length=3, default="USD")
    amount_paid = Float()
    refund_reason = String(max_length=50)
    external_order_id = String(max_length=255)
    external_payment_id = String(max_length=255)
    created_at = DateTime()


@storefront.command_handler(part_of=Order)
class OrderImportHandler:
    @handle(ImportOrder)
    def import_order(self, command):
        try:
            lines = json.loads(command.items)
        except (TypeError, ValueError) as exc:
            raise ValidationError({"items": ["Must be a JSON list"]}) from exc

        silent = DispatchMode.SILENT
        order = Order.create(user_id=command.user_id, items=lines, currency=command.currency, mode=silent)
        if command.created_at:
            order.created_at = command.created_at

        for step in _IMPORT_PATHS[OrderStatus(command.status)]:
            if step is OrderStatus.PROCESSING:
                order.mark_processing(command.external_order_id, command.external_payment_id, mode=silent)
            elif step is OrderStatus.SUCCEEDED:
                order.mark_succeeded(
                    amount_paid=command.amount_paid,
                    external_payment_id=command.external_payment_id,
                    mode=silent,
                )
            elif step is OrderStatus.REFUNDED:
                order.mark_refunded(reason=command.refund_reason, mode=silent)
            elif step is OrderStatus.FAILED:
                order.mark_failed("Imported as failed", mode=silent)
            else:
                order.transition_to(step, mode=silent)

        if command.external_order_id:
            order.external_order_id = command.external_order_id

        current_domain.repository_for(Order).add(order)
        logger.info("Order imported", order_id=str(order.id), status=order.status)
        return str(order.id)
