"""Notification aggregate (CQRS): one outgoing message, keyed for idempotency.

The ``key`` names the business fact the message announces (for example
``order:<id>:OrderSucceeded``). A second attempt to send the same key is
skipped once a Sent record exists, which is what makes redelivered events
safe to handle twice.

State Machine:
    SENT (terminal)
    FAILED → SENT (on a later successful attempt)
"""

from datetime import UTC, datetime
from enum import Enum

from protean.fields import DateTime, String, Text

from storefront.domain import storefront


class NotificationKind(Enum):
    ORDER_PENDING = "OrderPending"
    ORDER_PROCESSING = "OrderProcessing"
    ORDER_SUCCEEDED = "OrderSucceeded"
    ORDER_REFUNDED = "OrderRefunded"
    ORDER_CANCELLED = "OrderCancelled"
    PAYMENT_SUCCEEDED = "PaymentSucceeded"
    PAYMENT_ACTION_REQUIRED = "PaymentActionRequired"
    REFUND_CREATED = "RefundCreated"
    DISCOUNT_GRANTED = "DiscountGranted"


class NotificationStatus(Enum):
    SENT = "Sent"
    FAILED = "Failed"


@storefront.aggregate
class Notification:
    key = String(required=True, max_length=255, unique=True)
    kind = String(choices=NotificationKind, required=True)
    recipient = String(required=True, max_length=254)
    subject = String(max_length=255)
    body = Text()
    status = String(choices=NotificationStatus, default=NotificationStatus.FAILED.value)
    message_id = String(max_length=255)
    failure_reason = String(max_length=500)
    sent_at = DateTime()
    created_at = DateTime()

    @classmethod
    def draft(cls, key, kind, recipient, subject, body):
        return cls(
            key=key,
            kind=kind,
            recipient=recipient,
            subject=subject,
            body=body,
            created_at=datetime.now(UTC),
        )

    @property
    def is_sent(self) -> bool:
        return self.status == NotificationStatus.SENT.value

    def mark_sent(self, message_id=None):
        self.status = NotificationStatus.SENT.value
        self.message_id = message_id
        self.failure_reason = None
        self.sent_at = datetime.now(UTC)

    def mark_failed(self, reason):
        self.status = NotificationStatus.FAILED.value
        self.failure_reason = reason
