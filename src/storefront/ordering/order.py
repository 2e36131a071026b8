"""Order aggregate (CQRS): one purchase attempt and its status state machine.

State Machine:
    PENDING → PROCESSING | REQUIRES_ACTION | SUCCEEDED | CANCELLED | FAILED
    PROCESSING → REQUIRES_ACTION | SUCCEEDED | CANCELLED | FAILED
    REQUIRES_ACTION → PROCESSING | SUCCEEDED | CANCELLED | FAILED
    SUCCEEDED → REFUNDED
    REFUNDED, CANCELLED, FAILED are terminal

Every status change goes through ``transition_to``. A change raises one
status-named event (Failed and RequiresAction have none); saving an order
whose status did not change raises nothing. ``DispatchMode.SILENT`` is the
explicit switch for data migration, where no side effects may run.
"""

from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import InvalidOperationError, ValidationError
from protean.fields import Boolean, DateTime, Float, HasMany, Identifier, Integer, String, Text

from storefront.domain import storefront
from storefront.ordering.events import (
    OrderCancelled,
    OrderPending,
    OrderProcessing,
    OrderRefunded,
    OrderSucceeded,
)


class OrderStatus(Enum):
    PENDING = "Pending"
    PROCESSING = "Processing"
    REQUIRES_ACTION = "RequiresAction"
    SUCCEEDED = "Succeeded"
    REFUNDED = "Refunded"
    CANCELLED = "Cancelled"
    FAILED = "Failed"


class DispatchMode(Enum):
    LIVE = "live"
    SILENT = "silent"  # data migration: persist, but raise no events


class RefundReason(Enum):
    DUPLICATE = "duplicate"
    FRAUDULENT = "fraudulent"
    REQUESTED_BY_CUSTOMER = "requested_by_customer"
    OTHER = "other"


class InvalidOrderTransition(InvalidOperationError):
    """The order cannot move from its current status to the requested one."""


_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {
        OrderStatus.PROCESSING,
        OrderStatus.REQUIRES_ACTION,
        OrderStatus.SUCCEEDED,
        OrderStatus.CANCELLED,
        OrderStatus.FAILED,
    },
    OrderStatus.PROCESSING: {
        OrderStatus.REQUIRES_ACTION,
        OrderStatus.SUCCEEDED,
        OrderStatus.CANCELLED,
        OrderStatus.FAILED,
    },
    OrderStatus.REQUIRES_ACTION: {
        OrderStatus.PROCESSING,
        OrderStatus.SUCCEEDED,
        OrderStatus.CANCELLED,
        OrderStatus.FAILED,
    },
    OrderStatus.SUCCEEDED: {OrderStatus.REFUNDED},
    OrderStatus.REFUNDED: set(),
    OrderStatus.CANCELLED: set(),
    OrderStatus.FAILED: set(),
}

_STATUS_EVENTS = {
    OrderStatus.PENDING: OrderPending,
    OrderStatus.PROCESSING: OrderProcessing,
    OrderStatus.SUCCEEDED: OrderSucceeded,
    OrderStatus.REFUNDED: OrderRefunded,
    OrderStatus.CANCELLED: OrderCancelled,
}

_FINANCIALLY_CLOSED = {OrderStatus.REFUNDED, OrderStatus.CANCELLED}
_PAID_STATUSES = {OrderStatus.SUCCEEDED.value, OrderStatus.REFUNDED.value}
_CANCELLABLE = {OrderStatus.PENDING, OrderStatus.PROCESSING, OrderStatus.REQUIRES_ACTION}


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@storefront.entity(part_of="Order")
class OrderItem:
    """One order line: a snapshot of the product and price at purchase time."""

    product_id = Identifier(required=True)
    price_id = Identifier()
    name = String(max_length=255)
    quantity = Integer(required=True, min_value=1)
    unit_amount = Float(required=True, min_value=0.0)
    seller_id = Identifier()
    commission_rate = Float(default=0.0)
    is_subscription = Boolean(default=False)

    @property
    def line_amount(self) -> float:
        return round(self.unit_amount * self.quantity, 2)


@storefront.entity(part_of="Order")
class OrderDiscount:
    """Pivot between an order and an applied discount."""

    discount_id = Identifier(required=True)
    code = String(max_length=50)
    amount_applied = Float(required=True, min_value=0.0)
    balance_before = Float()  # gift cards only
    balance_after = Float()


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@storefront.aggregate
class Order:
    user_id = Identifier()  # Nullable for guest checkout
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    amount = Float(default=0.0)
    amount_paid = Float()
    currency = String(max_length=3, default="USD")
    items = HasMany(OrderItem)
    discounts = HasMany(OrderDiscount)

    refund_reason = String(max_length=50)
    refund_notes = Text()
    failure_reason = String(max_length=500)
    notes = Text()

    # Payment provider references
    external_checkout_id = String(max_length=255)
    external_order_id = String(max_length=255)  # payment intent
    external_payment_id = String(max_length=255)

    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def amount_paid_only_after_success(self):
        if self.amount_paid is not None and self.status not in _PAID_STATUSES:
            raise ValidationError({"amount_paid": ["Amount paid can only be recorded on a succeeded order"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, user_id=None, items=(), currency="USD", mode=DispatchMode.LIVE):
        now = datetime.now(UTC)
        order = cls(
            user_id=user_id,
            currency=currency,
            status=OrderStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )
        for item in items:
            order.add_item(**item)

        if mode is DispatchMode.LIVE:
            order.raise_(order._status_event(OrderPending, previous_status=None))
        return order

    # -------------------------------------------------------------------
    # Derived values
    # -------------------------------------------------------------------
    @property
    def subtotal(self) -> float:
        return round(sum(item.line_amount for item in (self.items or [])), 2)

    @property
    def discount_total(self) -> float:
        return round(sum(d.amount_applied for d in (self.discounts or [])), 2)

    @property
    def can_refund(self) -> bool:
        return self.status == OrderStatus.SUCCEEDED.value

    @property
    def can_cancel(self) -> bool:
        return OrderStatus(self.status) in _CANCELLABLE

    @property
    def is_subscription(self) -> bool:
        return any(item.is_subscription for item in (self.items or []))

    # -------------------------------------------------------------------
    # Lines and discounts
    # -------------------------------------------------------------------
    def _assert_financially_open(self):
        if OrderStatus(self.status) in _FINANCIALLY_CLOSED:
            raise ValidationError({"order": [f"Order is {self.status}; its amounts can no longer change"]})

    def _recalculate(self):
        self.amount = max(round(self.subtotal - self.discount_total, 2), 0.0)
        self.updated_at = datetime.now(UTC)

    def add_item(
        self,
        product_id,
        quantity,
        unit_amount,
        price_id=None,
        name=None,
        seller_id=None,
        commission_rate=0.0,
        is_subscription=False,
    ):
        self._assert_financially_open()
        item = OrderItem(
            product_id=product_id,
            price_id=price_id,
            name=name,
            quantity=quantity,
            unit_amount=unit_amount,
            seller_id=seller_id,
            commission_rate=commission_rate or 0.0,
            is_subscription=is_subscription,
        )
        self.add_items(item)
        self._recalculate()
        return item

    def apply_discount(self, discount_id, amount_applied, code=None, balance_before=None, balance_after=None):
        self._assert_financially_open()
        if any(str(d.discount_id) == str(discount_id) for d in (self.discounts or [])):
            raise ValidationError({"discount_id": ["Discount is already applied to this order"]})

        self.add_discounts(
            OrderDiscount(
                discount_id=discount_id,
                code=code,
                amount_applied=amount_applied,
                balance_before=balance_before,
                balance_after=balance_after,
            )
        )
        self._recalculate()

    def add_notes(self, text):
        """Notes stay editable after the order is closed."""
        self.notes = f"{self.notes}\n\n{text}" if self.notes else text
        self.updated_at = datetime.now(UTC)

    # -------------------------------------------------------------------
    # Status transitions
    # -------------------------------------------------------------------
    def _status_event(self, event_cls, previous_status, **extra):
        return event_cls(
            order_id=str(self.id),
            user_id=str(self.user_id) if self.user_id else None,
            previous_status=previous_status,
            amount=self.amount or 0.0,
            currency=self.currency,
            changed_at=self.updated_at or datetime.now(UTC),
            **extra,
        )

    def transition_to(self, target, mode=DispatchMode.LIVE, **event_fields) -> bool:
        """Move to ``target``. Returns False when the status is unchanged."""
        target = OrderStatus(target)
        current = OrderStatus(self.status)
        if target == current:
            return False

        if target not in _VALID_TRANSITIONS[current]:
            raise InvalidOrderTransition(f"Cannot transition order from {current.value} to {target.value}")

        self.status = target.value
        self.updated_at = datetime.now(UTC)

        event_cls = _STATUS_EVENTS.get(target)
        if event_cls is not None and mode is DispatchMode.LIVE:
            self.raise_(self._status_event(event_cls, current.value, **event_fields))
        return True

    def mark_processing(self, external_order_id=None, external_payment_id=None, mode=DispatchMode.LIVE):
        if external_order_id:
            self.external_order_id = external_order_id
        if external_payment_id:
            self.external_payment_id = external_payment_id
        return self.transition_to(OrderStatus.PROCESSING, mode)

    def mark_requires_action(self, mode=DispatchMode.LIVE):
        return self.transition_to(OrderStatus.REQUIRES_ACTION, mode)

    def mark_succeeded(self, amount_paid=None, external_payment_id=None, mode=DispatchMode.LIVE):
        if self.status == OrderStatus.SUCCEEDED.value:
            return False

        paid = self.amount if amount_paid is None else amount_paid
        with atomic_change(self):
            changed = self.transition_to(OrderStatus.SUCCEEDED, mode, amount_paid=paid)
            self.amount_paid = paid
            if external_payment_id:
                self.external_payment_id = external_payment_id
        return changed

    def mark_refunded(self, reason=None, notes=None, mode=DispatchMode.LIVE):
        changed = self.transition_to(OrderStatus.REFUNDED, mode, refund_reason=reason, refund_notes=notes)
        if changed:
            self.refund_reason = reason
            self.refund_notes = notes
        return changed

    def mark_cancelled(self, mode=DispatchMode.LIVE):
        return self.transition_to(OrderStatus.CANCELLED, mode)

    def mark_failed(self, reason, mode=DispatchMode.LIVE):
        changed = self.transition_to(OrderStatus.FAILED, mode)
        if changed:
            self.failure_reason = reason
        return changed

    # -------------------------------------------------------------------
    # Checkout session bookkeeping
    # -------------------------------------------------------------------
    def attach_checkout_session(self, session_id):
        self.external_checkout_id = session_id
        self.updated_at = datetime.now(UTC)

    def clear_checkout_session(self):
        self.external_checkout_id = None
        self.external_order_id = None
        self.external_payment_id = None
        self.updated_at = datetime.now(UTC)
