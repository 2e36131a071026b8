"""Discount effects of a successful order.

DiscountGrantHandler mints one code per purchased unit of a product that
carries discount templates and mails each code to the buyer.
DiscountRedemptionHandler consumes the discounts applied at checkout.
Both re-derive their work from the persisted order, so a redelivered
OrderSucceeded only fills in what is missing.
"""

import structlog
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from storefront.discounts.discount import Discount
from storefront.discounts.redemption import RedeemDiscount
from storefront.discounts.service import generate_unique_code
from storefront.domain import storefront
from storefront.notifications.dispatch import notification_key, purchaser_email, send_once
from storefront.notifications.notification import NotificationKind
from storefront.ordering.events import OrderSucceeded
from storefront.ordering.order import Order

logger = structlog.get_logger(__name__)


def templates_for(product_id) -> list[Discount]:
    candidates = current_domain.repository_for(Discount)._dao.query.filter(product_id=str(product_id)).all().items
    return [d for d in candidates if d.is_template]


def replicas_of(template_id, order_item_id) -> list[Discount]:
    return (
        current_domain.repository_for(Discount)
        ._dao.query.filter(template_id=str(template_id), source_order_item_id=str(order_item_id))
        .all()
        .items
    )


def _announce(discount: Discount, order: Order) -> None:
    kind = NotificationKind.DISCOUNT_GRANTED.value
    send_once(
        notification_key(f"discount:{discount.id}", kind),
        kind,
        purchaser_email(order),
        {
            "code": discount.code,
            "value": discount.value,
            "currency": order.currency,
            "is_gift_card": discount.is_gift_card,
        },
    )


@storefront.event_handler(part_of=Discount, stream_category="storefront::order")
class DiscountGrantHandler:
    @handle(OrderSucceeded)
    def on_order_succeeded(self, event: OrderSucceeded) -> None:
        order = current_domain.repository_for(Order).get(event.order_id)
        if not order.user_id:
            logger.info("Guest order, no discounts granted", order_id=str(order.id))
            return

        repo = current_domain.repository_for(Discount)
        for item in order.items or []:
            for template in templates_for(item.product_id):
                existing = replicas_of(template.id, item.id)
                for _ in range(item.quantity - len(existing)):
                    replica = template.replicate_for(
                        user_id=str(order.user_id),
                        code=generate_unique_code(template.kind),
                        order_id=str(order.id),
                        order_item_id=str(item.id),
                    )
                    repo.add(replica)
                    existing.append(replica)
                    logger.info(
                        "Discount granted",
                        discount_id=str(replica.id),
                        template_id=str(template.id),
                        order_id=str(order.id),
                    )

                # Mail every replica of the line, so a crash between save and send is healed
                for replica in existing:
                    _announce(replica, order)


@storefront.event_handler(part_of=Discount, stream_category="storefront::order")
class DiscountRedemptionHandler:
    @handle(OrderSucceeded)
    def on_order_succeeded(self, event: OrderSucceeded) -> None:
        order = current_domain.repository_for(Order).get(event.order_id)
        failures = []
        for applied in order.discounts or []:
            try:
                current_domain.process(
                    RedeemDiscount(order_id=str(order.id), discount_id=str(applied.discount_id)),
                    asynchronous=False,
                )
            except Exception as exc:
                logger.error(
                    "Failed to redeem discount",
                    order_id=str(order.id),
                    discount_id=str(applied.discount_id),
                    error=str(exc),
                )
                failures.append(exc)

        if failures:
            raise failures[0]
