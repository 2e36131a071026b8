"""Tests for the Order status state machine and the events each transition raises."""

import pytest
from protean.exceptions import ValidationError

from storefront.ordering.events import (
    OrderCancelled,
    OrderPending,
    OrderProcessing,
    OrderRefunded,
    OrderSucceeded,
)
from storefront.ordering.order import DispatchMode, InvalidOrderTransition, Order, OrderStatus


def _make_order(**overrides):
    line = {
        "product_id": "prod-001",
        "price_id": "price-001",
        "name": "Notebook",
        "quantity": 2,
        "unit_amount": 12.5,
    }
    line.update(overrides)
    return Order.create(user_id="user-001", items=[line])


def _order_at(status):
    order = _make_order()
    if status == OrderStatus.PROCESSING:
        order.mark_processing("pi_001")
    elif status == OrderStatus.REQUIRES_ACTION:
        order.mark_requires_action()
    elif status == OrderStatus.SUCCEEDED:
        order.mark_succeeded()
    elif status == OrderStatus.REFUNDED:
        order.mark_succeeded()
        order.mark_refunded("requested_by_customer")
    elif status == OrderStatus.CANCELLED:
        order.mark_cancelled()
    elif status == OrderStatus.FAILED:
        order.mark_failed("Card declined")
    order._events.clear()
    return order


class TestOrderCreation:
    def test_new_order_is_pending(self):
        order = _make_order()
        assert order.status == OrderStatus.PENDING.value

    def test_creation_raises_order_pending(self):
        order = _make_order()
        assert len(order._events) == 1
        event = order._events[0]
        assert isinstance(event, OrderPending)
        assert event.previous_status is None
        assert event.amount == 25.0

    def test_silent_creation_raises_nothing(self):
        order = Order.create(
            user_id="user-001",
            items=[{"product_id": "p", "quantity": 1, "unit_amount": 5.0}],
            mode=DispatchMode.SILENT,
        )
        assert order._events == []


class TestValidTransitions:
    @pytest.mark.parametrize(
        "start,target,event_cls",
        [
            (OrderStatus.PENDING, OrderStatus.PROCESSING, OrderProcessing),
            (OrderStatus.PENDING, OrderStatus.SUCCEEDED, OrderSucceeded),
            (OrderStatus.PENDING, OrderStatus.CANCELLED, OrderCancelled),
            (OrderStatus.PROCESSING, OrderStatus.SUCCEEDED, OrderSucceeded),
            (OrderStatus.PROCESSING, OrderStatus.CANCELLED, OrderCancelled),
            (OrderStatus.REQUIRES_ACTION, OrderStatus.PROCESSING, OrderProcessing),
            (OrderStatus.REQUIRES_ACTION, OrderStatus.SUCCEEDED, OrderSucceeded),
            (OrderStatus.SUCCEEDED, OrderStatus.REFUNDED, OrderRefunded),
        ],
    )
    def test_transition_raises_one_status_event(self, start, target, event_cls):
        order = _order_at(start)
        assert order.transition_to(target) is True
        assert order.status == target.value
        assert len(order._events) == 1
        assert isinstance(order._events[0], event_cls)
        assert order._events[0].previous_status == start.value

    @pytest.mark.parametrize("start", [OrderStatus.PENDING, OrderStatus.PROCESSING])
    def test_requires_action_and_failed_raise_no_event(self, start):
        order = _order_at(start)
        order.mark_requires_action()
        assert order._events == []

        order = _order_at(start)
        order.mark_failed("Card declined")
        assert order.status == OrderStatus.FAILED.value
        assert order.failure_reason == "Card declined"
        assert order._events == []

    def test_same_status_is_a_no_op(self):
        order = _order_at(OrderStatus.PROCESSING)
        assert order.mark_processing() is False
        assert order._events == []

    def test_second_success_is_a_no_op(self):
        order = _order_at(OrderStatus.SUCCEEDED)
        assert order.mark_succeeded(amount_paid=10.0) is False
        assert order.amount_paid == 25.0
        assert order._events == []

    def test_silent_transition_changes_status_without_events(self):
        order = _order_at(OrderStatus.PENDING)
        order.mark_succeeded(mode=DispatchMode.SILENT)
        assert order.status == OrderStatus.SUCCEEDED.value
        assert order._events == []


class TestInvalidTransitions:
    @pytest.mark.parametrize(
        "start,target",
        [
            (OrderStatus.PENDING, OrderStatus.REFUNDED),
            (OrderStatus.PROCESSING, OrderStatus.PENDING),
            (OrderStatus.SUCCEEDED, OrderStatus.CANCELLED),
            (OrderStatus.SUCCEEDED, OrderStatus.PROCESSING),
            (OrderStatus.REFUNDED, OrderStatus.SUCCEEDED),
            (OrderStatus.CANCELLED, OrderStatus.PROCESSING),
            (OrderStatus.FAILED, OrderStatus.SUCCEEDED),
        ],
    )
    def test_invalid_transition_is_rejected(self, start, target):
        order = _order_at(start)
        with pytest.raises(InvalidOrderTransition):
            order.transition_to(target)
        assert order.status == start.value
        assert order._events == []


class TestPaymentFields:
    def test_success_records_amount_paid(self):
        order = _order_at(OrderStatus.PROCESSING)
        order.mark_succeeded(amount_paid=25.0, external_payment_id="ch_001")
        assert order.amount_paid == 25.0
        assert order.external_payment_id == "ch_001"
        assert order._events[0].amount_paid == 25.0

    def test_refund_keeps_reason_and_notes(self):
        order = _order_at(OrderStatus.SUCCEEDED)
        order.mark_refunded("duplicate", notes="Charged twice")
        assert order.refund_reason == "duplicate"
        assert order.refund_notes == "Charged twice"
        assert order._events[0].refund_reason == "duplicate"


class TestOrderAmounts:
    def test_amount_is_subtotal_less_discounts(self):
        order = _make_order()
        order.apply_discount(discount_id="disc-001", amount_applied=5.0, code="PROMO-1")
        assert order.subtotal == 25.0
        assert order.discount_total == 5.0
        assert order.amount == 20.0

    def test_amount_never_goes_negative(self):
        order = _make_order()
        order.apply_discount(discount_id="disc-001", amount_applied=40.0)
        assert order.amount == 0.0

    def test_same_discount_cannot_be_applied_twice(self):
        order = _make_order()
        order.apply_discount(discount_id="disc-001", amount_applied=5.0)
        with pytest.raises(ValidationError):
            order.apply_discount(discount_id="disc-001", amount_applied=5.0)

    @pytest.mark.parametrize("status", [OrderStatus.REFUNDED, OrderStatus.CANCELLED])
    def test_closed_order_amounts_are_frozen(self, status):
        order = _order_at(status)
        with pytest.raises(ValidationError):
            order.add_item(product_id="prod-002", quantity=1, unit_amount=3.0)
        assert order.amount == 25.0

    def test_notes_stay_editable_after_close(self):
        order = _order_at(OrderStatus.CANCELLED)
        order.add_notes("Customer called")
        order.add_notes("Resolved")
        assert order.notes == "Customer called\n\nResolved"
