"""Commission aggregate: a seller's earnings from one order line."""

from datetime import UTC, datetime

from protean.fields import DateTime, Float, Identifier, String

from storefront.domain import storefront


@storefront.aggregate
class Commission:
    order_id = Identifier(required=True)
    order_item_id = Identifier(required=True, unique=True)
    seller_id = Identifier(required=True)
    amount = Float(required=True, min_value=0.0)
    rate = Float(required=True, min_value=0.0, max_value=1.0)
    currency = String(max_length=3, default="USD")
    created_at = DateTime()

    @classmethod
    def for_line(cls, order, item):
        return cls(
            order_id=str(order.id),
            order_item_id=str(item.id),
            seller_id=str(item.seller_id),
            rate=item.commission_rate,
            amount=round(item.line_amount * item.commission_rate, 2),
            currency=order.currency,
            created_at=datetime.now(UTC),
        )
