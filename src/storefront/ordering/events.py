"""Order status events.

Exactly one of these is raised per status change. Effect handlers across
the domain subscribe to them; payloads carry enough to log and route, and
handlers re-read the persisted order for everything else.
"""

from protean.fields import DateTime, Float, Identifier, String, Text

from storefront.domain import storefront


@storefront.event(part_of="Order")
class OrderPending:
    __version__ = 1

    order_id = Identifier(required=True)
    user_id = Identifier()
    previous_status = String()
    amount = Float(required=True)
    currency = String(required=True)
    changed_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderProcessing:
    __version__ = 1

    order_id = Identifier(required=True)
    user_id = Identifier()
    previous_status = String()
    amount = Float(required=True)
    currency = String(required=True)
    changed_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderSucceeded:
    """Payment is confirmed. Triggers fulfillment, discounts, commissions and mail."""

    __version__ = 1

    order_id = Identifier(required=True)
    user_id = Identifier()
    previous_status = String()
    amount = Float(required=True)
    amount_paid = Float()
    currency = String(required=True)
    changed_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderRefunded:
    __version__ = 1

    order_id = Identifier(required=True)
    user_id = Identifier()
    previous_status = String()
    amount = Float(required=True)
    currency = String(required=True)
    refund_reason = String()
    refund_notes = Text()
    changed_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderCancelled:
    __version__ = 1

    order_id = Identifier(required=True)
    user_id = Identifier()
    previous_status = String()
    amount = Float(required=True)
    currency = String(required=True)
    changed_at = DateTime(required=True)
