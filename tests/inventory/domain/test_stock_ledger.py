"""Tests for the InventoryItem stock ledger, reservations and alerts."""

from datetime import UTC, datetime, timedelta

import pytest
from protean.exceptions import ValidationError

from storefront.inventory.events import LowStockDetected, StockDepleted
from storefront.inventory.inventory_item import (
    InsufficientStock,
    InventoryItem,
    ReservationStatus,
    TransactionType,
)


def _make_item(quantity=20, **overrides):
    item = InventoryItem.create(product_id="prod-001", quantity=quantity, sku="NB-001", **overrides)
    item._events.clear()
    return item


def _assert_ledger_consistent(item):
    assert item.ledger_total == item.quantity_on_hand
    for row in item.transactions:
        assert row.quantity_after == row.quantity_before + row.quantity


class TestInitialStock:
    def test_initial_quantity_is_a_restock_row(self):
        item = _make_item(quantity=20)
        assert item.quantity_on_hand == 20
        assert len(item.transactions) == 1
        assert item.transactions[0].type == TransactionType.RESTOCK.value
        _assert_ledger_consistent(item)

    def test_zero_quantity_has_empty_ledger(self):
        item = _make_item(quantity=0)
        assert item.transactions == []
        assert item.ledger_total == 0


class TestReservations:
    def test_reserve_moves_stock_out_of_the_sellable_balance(self):
        item = _make_item(quantity=20)
        item.reserve("ord-001", 3)
        assert item.quantity_on_hand == 17
        assert item.quantity_reserved == 3
        assert item.transactions[-1].type == TransactionType.RESERVATION.value
        assert item.transactions[-1].quantity == -3
        _assert_ledger_consistent(item)

    def test_reservation_expires_after_a_day(self):
        item = _make_item()
        now = datetime(2026, 1, 1, tzinfo=UTC)
        reservation = item.reserve("ord-001", 1, now=now)
        assert reservation.expires_at == now + timedelta(hours=24)

    def test_reserving_twice_for_an_order_is_a_no_op(self):
        item = _make_item(quantity=20)
        item.reserve("ord-001", 3)
        item.reserve("ord-001", 3)
        assert item.quantity_on_hand == 17
        assert len(item.reservations) == 1

    def test_cannot_reserve_more_than_on_hand(self):
        item = _make_item(quantity=2)
        with pytest.raises(InsufficientStock):
            item.reserve("ord-001", 3)
        assert item.quantity_on_hand == 2
        assert item.reservations == []

    def test_backorder_allows_negative_balance(self):
        item = _make_item(quantity=2, allow_backorder=True)
        item.reserve("ord-001", 3)
        assert item.quantity_on_hand == -1
        _assert_ledger_consistent(item)

    def test_release_returns_stock_once(self):
        item = _make_item(quantity=20)
        item.reserve("ord-001", 5)
        assert item.release("ord-001") == 5
        assert item.release("ord-001") == 0
        assert item.quantity_on_hand == 20
        assert item.quantity_reserved == 0
        assert item.reservations[0].status == ReservationStatus.CANCELLED.value
        _assert_ledger_consistent(item)

    def test_fulfill_keeps_balance_and_closes_reservation(self):
        item = _make_item(quantity=20)
        item.reserve("ord-001", 5)
        assert item.fulfill("ord-001") == 5
        assert item.quantity_on_hand == 15
        assert item.quantity_reserved == 0
        assert item.reservations[0].status == ReservationStatus.FULFILLED.value
        assert item.transactions[-1].type == TransactionType.FULFILLMENT.value
        assert item.transactions[-1].quantity == 0
        _assert_ledger_consistent(item)

    def test_fulfilled_reservation_cannot_be_released(self):
        item = _make_item(quantity=20)
        item.reserve("ord-001", 5)
        item.fulfill("ord-001")
        assert item.release("ord-001") == 0
        assert item.quantity_on_hand == 15

    def test_expired_reservations_are_returned(self):
        item = _make_item(quantity=20)
        reserved_at = datetime(2026, 1, 1, tzinfo=UTC)
        item.reserve("ord-001", 4, now=reserved_at)
        item.reserve("ord-002", 2)

        assert item.expire_reservations(now=reserved_at + timedelta(days=2)) == 1
        assert item.reservations_for("ord-001")[0].status == ReservationStatus.EXPIRED.value
        assert item.reservations_for("ord-002")[0].status == ReservationStatus.ACTIVE.value
        assert item.quantity_on_hand == 18
        _assert_ledger_consistent(item)


class TestManualMovements:
    def test_adjustment_requires_a_reason(self):
        item = _make_item()
        with pytest.raises(ValidationError):
            item.adjust(-2, reason="")

    def test_adjustment_is_signed(self):
        item = _make_item(quantity=20)
        item.adjust(-2, reason="Cycle count", author="ops")
        assert item.quantity_on_hand == 18
        assert item.transactions[-1].author == "ops"
        _assert_ledger_consistent(item)

    def test_damage_writes_off_stock(self):
        item = _make_item(quantity=20)
        item.mark_damaged(3, reason="Water damage")
        assert item.quantity_on_hand == 17
        assert item.quantity_damaged == 3
        _assert_ledger_consistent(item)

    def test_cannot_damage_more_than_on_hand(self):
        item = _make_item(quantity=2)
        with pytest.raises(InsufficientStock):
            item.mark_damaged(3)

    def test_return_adds_stock_with_order_reference(self):
        item = _make_item(quantity=20)
        item.record_return(2, "ord-001")
        assert item.quantity_on_hand == 22
        assert item.has_return_for("ord-001")
        assert not item.has_return_for("ord-002")
        _assert_ledger_consistent(item)


class TestStockAlerts:
    def test_crossing_reorder_point_raises_low_stock(self):
        item = _make_item(quantity=12, reorder_point=10)
        item.reserve("ord-001", 3)
        assert len(item._events) == 1
        event = item._events[0]
        assert isinstance(event, LowStockDetected)
        assert event.quantity_on_hand == 9
        assert event.reorder_point == 10

    def test_staying_below_reorder_point_does_not_repeat_the_alert(self):
        item = _make_item(quantity=9, reorder_point=10)
        item.reserve("ord-001", 1)
        assert item._events == []

    def test_reaching_zero_raises_stock_depleted(self):
        item = _make_item(quantity=5, reorder_point=2)
        item.reserve("ord-001", 5)
        assert len(item._events) == 1
        assert isinstance(item._events[0], StockDepleted)

    def test_restock_raises_nothing(self):
        item = _make_item(quantity=0)
        item.restock(50)
        assert item._events == []
