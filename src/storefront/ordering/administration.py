"""Back-office order actions: refunds and cancellations."""

import structlog
from protean import handle
from protean.fields import Boolean, Identifier, String, Text
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.ordering.order import InvalidOrderTransition, Order, RefundReason
from storefront.providers import payment_processor

logger = structlog.get_logger(__name__)


@storefront.command(part_of="Order")
class RefundOrder:
    order_id = Identifier(required=True)
    reason = String(choices=RefundReason, default=RefundReason.REQUESTED_BY_CUSTOMER.value)
    notes = Text()
    record_offline = Boolean(default=False)  # refund already issued outside the processor


@storefront.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)


@storefront.command_handler(part_of=Order)
class OrderAdministrationHandler:
    @handle(RefundOrder)
    def refund_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        if not order.can_refund:
            raise InvalidOrderTransition(f"Only succeeded orders can be refunded (order is {order.status})")

        if command.record_offline:
            order.mark_refunded(reason=command.reason, notes=command.notes)
            repo.add(order)
        elif not payment_processor().refund_order(order, reason=command.reason, notes=command.notes):
            logger.warning("Refund not confirmed by the payment processor", order_id=str(order.id))

        logger.info("Refund requested", order_id=str(order.id), status=order.status)
        return order.status

    @handle(CancelOrder)
    def cancel_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        if not order.can_cancel:
            raise InvalidOrderTransition(f"Order cannot be cancelled (order is {order.status})")

        if not payment_processor().cancel_order(order):
            order.mark_cancelled()
            repo.add(order)

        logger.info("Order cancelled", order_id=str(order.id))
        return order.status
