"""Template registry: maps NotificationKind to template classes."""

from storefront.notifications.notification import NotificationKind
from storefront.notifications.templates.discount_granted import DiscountGrantedTemplate
from storefront.notifications.templates.order_status import (
    OrderCancelledTemplate,
    OrderPendingTemplate,
    OrderProcessingTemplate,
    OrderRefundedTemplate,
    OrderSucceededTemplate,
)
from storefront.notifications.templates.payment import (
    PaymentActionRequiredTemplate,
    PaymentSucceededTemplate,
    RefundCreatedTemplate,
)

TEMPLATE_REGISTRY: dict[str, type] = {
    NotificationKind.ORDER_PENDING.value: OrderPendingTemplate,
    NotificationKind.ORDER_PROCESSING.value: OrderProcessingTemplate,
    NotificationKind.ORDER_SUCCEEDED.value: OrderSucceededTemplate,
    NotificationKind.ORDER_REFUNDED.value: OrderRefundedTemplate,
    NotificationKind.ORDER_CANCELLED.value: OrderCancelledTemplate,
    NotificationKind.PAYMENT_SUCCEEDED.value: PaymentSucceededTemplate,
    NotificationKind.PAYMENT_ACTION_REQUIRED.value: PaymentActionRequiredTemplate,
    NotificationKind.REFUND_CREATED.value: RefundCreatedTemplate,
    NotificationKind.DISCOUNT_GRANTED.value: DiscountGrantedTemplate,
}


def get_template(kind: str):
    template_cls = TEMPLATE_REGISTRY.get(kind)
    if template_cls is None:
        raise ValueError(f"No template registered for notification kind: {kind}")
    return template_cls
