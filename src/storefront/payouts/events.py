"""Domain events for the Payout aggregate."""

from protean.fields import DateTime, Float, Identifier, String

from storefront.domain import storefront


@storefront.event(part_of="Payout")
class PayoutProcessed:
    """Money left the platform for the seller's connected account."""

    __version__ = 1

    payout_id = Identifier(required=True)
    seller_id = Identifier(required=True)
    amount = Float(required=True)
    currency = String(required=True)
    external_payout_id = String()
    processed_at = DateTime(required=True)


@storefront.event(part_of="Payout")
class PayoutFailed:
    __version__ = 1

    payout_id = Identifier(required=True)
    seller_id = Identifier(required=True)
    amount = Float(required=True)
    reason = String(required=True)
    failed_at = DateTime(required=True)


@storefront.event(part_of="Payout")
class PayoutCancelled:
    __version__ = 1

    payout_id = Identifier(required=True)
    seller_id = Identifier(required=True)
    reason = String()
    cancelled_at = DateTime(required=True)
