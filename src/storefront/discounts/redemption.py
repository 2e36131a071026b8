"""RedeemDiscount: consume one applied discount for a paid order.

Runs as its own command so each discount on an order commits, or fails,
independently. Idempotent through the discount's per-order redemption.
"""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier
from protean.utils.globals import current_domain

from storefront.discounts.discount import Discount
from storefront.domain import storefront
from storefront.ordering.order import Order

logger = structlog.get_logger(__name__)


@storefront.command(part_of="Discount")
class RedeemDiscount:
    order_id = Identifier(required=True)
    discount_id = Identifier(required=True)


@storefront.command_handler(part_of=Discount)
class RedeemDiscountHandler:
    @handle(RedeemDiscount)
    def redeem_discount(self, command):
        order = current_domain.repository_for(Order).get(command.order_id)
        applied = next(
            (d for d in (order.discounts or []) if str(d.discount_id) == str(command.discount_id)),
            None,
        )
        if applied is None:
            raise ValidationError({"discount_id": ["Discount was not applied to this order"]})

        repo = current_domain.repository_for(Discount)
        discount = repo.get(command.discount_id)
        if not discount.redeem(str(order.id), applied.amount_applied):
            logger.info("Discount already redeemed for order", discount_id=str(discount.id), order_id=str(order.id))
            return False

        repo.add(discount)
        logger.info(
            "Discount redeemed",
            discount_id=str(discount.id),
            order_id=str(order.id),
            amount=applied.amount_applied,
            balance=discount.current_balance,
        )
        return True
