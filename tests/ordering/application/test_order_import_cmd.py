"""Imported orders keep their final status and trigger no side effects."""

import json

import pytest
from protean import current_domain
from protean.exceptions import ValidationError

from storefront.commissions.commission import Commission
from storefront.inventory.engine import inventory_engine
from storefront.ordering.migration import ImportOrder
from storefront.ordering.order import Order, OrderStatus


def _import(status, lines, **fields):
    return current_domain.process(
        ImportOrder(status=status, items=json.dumps(lines), **fields),
        asynchronous=False,
    )


@pytest.fixture()
def stocked(listing):
    return listing(stock=5, seller_id="seller-001", commission_rate=0.1)


def _lines(product, quantity=2):
    return [{"product_id": product["product_id"], "quantity": quantity, "unit_amount": 20.0, "seller_id": "seller-001",
             "commission_rate": 0.1}]


class TestImportOrder:
    def test_succeeded_order_is_imported_silently(self, stocked, shopper, mailbox):
        user_id, email = shopper
        order_id = _import(
            OrderStatus.SUCCEEDED.value,
            _lines(stocked),
            user_id=user_id,
            amount_paid=40.0,
            external_payment_id="ch_legacy",
        )

        order = current_domain.repository_for(Order).get(order_id)
        assert order.status == OrderStatus.SUCCEEDED.value
        assert order.amount_paid == 40.0
        assert order.external_payment_id == "ch_legacy"

        assert mailbox.messages_to(email) == []
        assert inventory_engine.item_for(stocked["product_id"]).quantity_on_hand == 5
        assert current_domain.repository_for(Commission)._dao.query.filter(order_id=order_id).all().items == []

    def test_refunded_order_walks_through_succeeded(self, stocked):
        order_id = _import(OrderStatus.REFUNDED.value, _lines(stocked), refund_reason="duplicate")

        order = current_domain.repository_for(Order).get(order_id)
        assert order.status == OrderStatus.REFUNDED.value
        assert order.refund_reason == "duplicate"
        assert inventory_engine.item_for(stocked["product_id"]).quantity_on_hand == 5

    @pytest.mark.parametrize(
        "status",
        [OrderStatus.PENDING.value, OrderStatus.PROCESSING.value, OrderStatus.CANCELLED.value, OrderStatus.FAILED.value],
    )
    def test_every_status_can_be_imported(self, stocked, status):
        order_id = _import(status, _lines(stocked), external_order_id="pi_legacy")

        order = current_domain.repository_for(Order).get(order_id)
        assert order.status == status
        assert order.external_order_id == "pi_legacy"

    def test_lines_must_be_json(self):
        with pytest.raises(ValidationError):
            current_domain.process(ImportOrder(status=OrderStatus.PENDING.value, items="not json"), asynchronous=False)
