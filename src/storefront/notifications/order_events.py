"""Emails the purchaser whenever their order changes status."""

from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from storefront.domain import storefront
from storefront.notifications.dispatch import notification_key, purchaser_email, send_once
from storefront.notifications.notification import Notification, NotificationKind
from storefront.ordering.events import (
    OrderCancelled,
    OrderPending,
    OrderProcessing,
    OrderRefunded,
    OrderSucceeded,
)
from storefront.ordering.order import Order


def _notify(event, kind: NotificationKind, **extra) -> None:
    order = current_domain.repository_for(Order).get(event.order_id)
    send_once(
        notification_key(f"order:{order.id}", kind.value),
        kind.value,
        purchaser_email(order),
        {"order_id": str(order.id), "amount": order.amount, "currency": order.currency, **extra},
    )


@storefront.event_handler(part_of=Notification, stream_category="storefront::order")
class OrderNotificationHandler:
    @handle(OrderPending)
    def on_order_pending(self, event: OrderPending) -> None:
        _notify(event, NotificationKind.ORDER_PENDING)

    @handle(OrderProcessing)
    def on_order_processing(self, event: OrderProcessing) -> None:
        _notify(event, NotificationKind.ORDER_PROCESSING)

    @handle(OrderSucceeded)
    def on_order_succeeded(self, event: OrderSucceeded) -> None:
        _notify(event, NotificationKind.ORDER_SUCCEEDED)

    @handle(OrderRefunded)
    def on_order_refunded(self, event: OrderRefunded) -> None:
        _notify(event, NotificationKind.ORDER_REFUNDED, reason=event.refund_reason)

    @handle(OrderCancelled)
    def on_order_cancelled(self, event: OrderCancelled) -> None:
        _notify(event, NotificationKind.ORDER_CANCELLED)
