"""Facts reported by the payment processor about an order's money."""

from protean.fields import DateTime, Float, Identifier, String, Text

from storefront.domain import storefront


@storefront.event(part_of="Order")
class PaymentSucceeded:
    __version__ = 1

    order_id = Identifier(required=True)
    amount = Float(required=True)
    currency = String(required=True)
    external_payment_id = String()
    occurred_at = DateTime(required=True)


@storefront.event(part_of="Order")
class PaymentActionRequired:
    __version__ = 1

    order_id = Identifier(required=True)
    external_payment_id = String()
    occurred_at = DateTime(required=True)


@storefront.event(part_of="Order")
class RefundCreated:
    __version__ = 1

    order_id = Identifier(required=True)
    amount = Float(required=True)
    currency = String(required=True)
    reason = String()
    notes = Text()
    external_refund_id = String()
    occurred_at = DateTime(required=True)
