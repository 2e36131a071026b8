"""Records seller commissions once an order is paid, at most one per order line."""

import structlog
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from storefront.commissions.commission import Commission
from storefront.domain import storefront
from storefront.ordering.events import OrderSucceeded
from storefront.ordering.order import Order

logger = structlog.get_logger(__name__)


@storefront.event_handler(part_of=Commission, stream_category="storefront::order")
class CommissionHandler:
    @handle(OrderSucceeded)
    def on_order_succeeded(self, event: OrderSucceeded) -> None:
        order = current_domain.repository_for(Order).get(event.order_id)
        repo = current_domain.repository_for(Commission)

        for item in order.items or []:
            if not item.seller_id or not item.commission_rate:
                continue
            if repo._dao.query.filter(order_item_id=str(item.id)).all().items:
                continue

            commission = Commission.for_line(order, item)
            repo.add(commission)
            logger.info(
                "Commission recorded",
                order_id=str(order.id),
                seller_id=str(item.seller_id),
                amount=commission.amount,
            )
