"""Applies payment-processor events to the order and tells the purchaser.

A payment event can arrive for an order that has already moved on (a late
success after a cancellation, say). Such events are logged and skipped
rather than retried, since no redelivery will make the transition valid.
"""

import structlog
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from storefront.domain import storefront
from storefront.notifications.dispatch import notification_key, purchaser_email, send_once
from storefront.notifications.notification import NotificationKind
from storefront.ordering.order import InvalidOrderTransition, Order
from storefront.payments.events import PaymentActionRequired, PaymentSucceeded, RefundCreated

logger = structlog.get_logger(__name__)


def _apply(order, event, change, **kwargs) -> bool:
    try:
        changed = change(**kwargs)
    except InvalidOrderTransition as exc:
        logger.warning(
            "Payment event does not apply to the order",
            order_id=str(order.id),
            event=event.__class__.__name__,
            status=order.status,
            error=str(exc),
        )
        return False

    if changed:
        current_domain.repository_for(Order).add(order)
    return True


@storefront.event_handler(part_of=Order)
class PaymentEventHandler:
    @handle(PaymentSucceeded)
    def on_payment_succeeded(self, event: PaymentSucceeded) -> None:
        order = current_domain.repository_for(Order).get(event.order_id)
        if _apply(
            order,
            event,
            order.mark_succeeded,
            amount_paid=event.amount,
            external_payment_id=event.external_payment_id,
        ):
            kind = NotificationKind.PAYMENT_SUCCEEDED.value
            send_once(
                notification_key(f"payment:{order.id}", kind),
                kind,
                purchaser_email(order),
                {"order_id": str(order.id), "amount": event.amount, "currency": event.currency},
            )

    @handle(PaymentActionRequired)
    def on_payment_action_required(self, event: PaymentActionRequired) -> None:
        order = current_domain.repository_for(Order).get(event.order_id)
        if _apply(order, event, order.mark_requires_action):
            kind = NotificationKind.PAYMENT_ACTION_REQUIRED.value
            send_once(
                notification_key(f"payment:{order.id}:{event.external_payment_id}", kind),
                kind,
                purchaser_email(order),
                {"order_id": str(order.id)},
            )

    @handle(RefundCreated)
    def on_refund_created(self, event: RefundCreated) -> None:
        order = current_domain.repository_for(Order).get(event.order_id)
        if _apply(order, event, order.mark_refunded, reason=event.reason, notes=event.notes):
            kind = NotificationKind.REFUND_CREATED.value
            send_once(
                notification_key(f"refund:{order.id}", kind),
                kind,
                purchaser_email(order),
                {
                    "order_id": str(order.id),
                    "amount": event.amount,
                    "currency": event.currency,
                    "reason": event.reason,
                },
            )
