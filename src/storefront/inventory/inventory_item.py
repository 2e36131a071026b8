"""InventoryItem aggregate (CQRS) with an append-only stock ledger.

Stock Level Model:
    quantity_on_hand:  sellable balance, moved only through ledger rows
    quantity_reserved: held by Active reservations
    quantity_damaged:  written off

Every change to ``quantity_on_hand`` appends one ``InventoryTransaction``
whose ``quantity_after == quantity_before + quantity``; the deltas of all
rows sum to the current balance. Rows are never edited or removed.
Fulfillment rows carry a zero delta: the stock already left the sellable
balance when it was reserved.
"""

from datetime import UTC, datetime, timedelta
from enum import Enum

from protean.exceptions import InvalidOperationError, ValidationError
from protean.fields import Boolean, DateTime, HasMany, Identifier, Integer, String

from storefront.domain import storefront
from storefront.inventory.events import LowStockDetected, StockDepleted

RESERVATION_TTL = timedelta(hours=24)


class TransactionType(Enum):
    RESERVATION = "Reservation"
    RELEASE = "Release"
    FULFILLMENT = "Fulfillment"
    RETURN = "Return"
    ADJUSTMENT = "Adjustment"
    RESTOCK = "Restock"
    DAMAGE = "Damage"


class ReservationStatus(Enum):
    ACTIVE = "Active"
    FULFILLED = "Fulfilled"
    CANCELLED = "Cancelled"
    EXPIRED = "Expired"


class InsufficientStock(InvalidOperationError):
    """Not enough sellable stock to cover a reservation or write-off."""


def _as_utc(value):
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@storefront.entity(part_of="InventoryItem")
class InventoryReservation:
    order_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    status = String(choices=ReservationStatus, default=ReservationStatus.ACTIVE.value)
    reserved_at = DateTime(required=True)
    expires_at = DateTime(required=True)
    fulfilled_at = DateTime()


@storefront.entity(part_of="InventoryItem")
class InventoryTransaction:
    """One ledger row. ``quantity`` is the signed delta."""

    type = String(choices=TransactionType, required=True)
    quantity = Integer(required=True)
    quantity_before = Integer(required=True)
    quantity_after = Integer(required=True)
    reason = String(max_length=500)
    reference_type = String(max_length=50)
    reference_id = Identifier()
    author = String(max_length=255)
    created_at = DateTime(required=True)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@storefront.aggregate
class InventoryItem:
    product_id = Identifier(required=True)
    sku = String(max_length=50)
    quantity_on_hand = Integer(default=0)
    quantity_reserved = Integer(default=0, min_value=0)
    quantity_damaged = Integer(default=0, min_value=0)
    reorder_point = Integer(default=10, min_value=0)
    reorder_quantity = Integer(default=50, min_value=0)
    warehouse_location = String(max_length=100)
    track_inventory = Boolean(default=True)
    allow_backorder = Boolean(default=False)
    reservations = HasMany(InventoryReservation)
    transactions = HasMany(InventoryTransaction)
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def create(
        cls,
        product_id,
        quantity=0,
        sku=None,
        reorder_point=10,
        reorder_quantity=50,
        warehouse_location=None,
        track_inventory=True,
        allow_backorder=False,
    ):
        now = datetime.now(UTC)
        item = cls(
            product_id=product_id,
            sku=sku,
            reorder_point=reorder_point,
            reorder_quantity=reorder_quantity,
            warehouse_location=warehouse_location,
            track_inventory=track_inventory,
            allow_backorder=allow_backorder,
            created_at=now,
            updated_at=now,
        )
        if quantity:
            item.restock(quantity, notes="Initial stock")
        return item

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def ledger_total(self) -> int:
        return sum(t.quantity for t in (self.transactions or []))

    @property
    def is_low_stock(self) -> bool:
        return bool(self.reorder_point) and (self.quantity_on_hand or 0) <= self.reorder_point

    @property
    def is_out_of_stock(self) -> bool:
        return (self.quantity_on_hand or 0) <= 0 and not self.allow_backorder

    def can_fulfill(self, quantity) -> bool:
        if not self.track_inventory:
            return True
        return (self.quantity_on_hand or 0) >= quantity or self.allow_backorder

    def reservations_for(self, order_id, *statuses):
        wanted = {s.value for s in statuses}
        return [
            r
            for r in (self.reservations or [])
            if str(r.order_id) == str(order_id) and (not wanted or r.status in wanted)
        ]

    def has_return_for(self, order_id) -> bool:
        return any(
            t.type == TransactionType.RETURN.value and str(t.reference_id) == str(order_id)
            for t in (self.transactions or [])
        )

    # -------------------------------------------------------------------
    # Ledger
    # -------------------------------------------------------------------
    def _record(self, kind, delta, reason=None, reference_id=None, author=None):
        before = self.quantity_on_hand or 0
        after = before + delta
        if after < 0 and not self.allow_backorder:
            raise InsufficientStock(f"Insufficient stock for product {self.product_id}: {before} on hand, {-delta} requested")

        now = datetime.now(UTC)
        self.quantity_on_hand = after
        self.add_transactions(
            InventoryTransaction(
                type=kind.value,
                quantity=delta,
                quantity_before=before,
                quantity_after=after,
                reason=reason,
                reference_type="Order" if reference_id else None,
                reference_id=reference_id,
                author=author,
                created_at=now,
            )
        )
        self.updated_at = now
        self._check_thresholds(before, after)

    def _check_thresholds(self, before, after):
        """Raise an alert only when the balance crosses a threshold downwards."""
        now = datetime.now(UTC)
        if after <= 0 < before and not self.allow_backorder:
            self.raise_(
                StockDepleted(
                    inventory_item_id=str(self.id),
                    product_id=str(self.product_id),
                    quantity_on_hand=after,
                    detected_at=now,
                )
            )
        elif self.reorder_point and after <= self.reorder_point < before and after > 0:
            self.raise_(
                LowStockDetected(
                    inventory_item_id=str(self.id),
                    product_id=str(self.product_id),
                    quantity_on_hand=after,
                    reorder_point=self.reorder_point,
                    reorder_quantity=self.reorder_quantity,
                    detected_at=now,
                )
            )

    # -------------------------------------------------------------------
    # Reservations
    # -------------------------------------------------------------------
    def reserve(self, order_id, quantity, now=None):
        """Hold ``quantity`` for an order. A second call for the same order is a no-op."""
        if quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be positive"]})

        existing = self.reservations_for(order_id, ReservationStatus.ACTIVE, ReservationStatus.FULFILLED)
        if existing:
            return existing[0]

        self._record(
            TransactionType.RESERVATION,
            -quantity,
            reason=f"Reserved for order #{order_id}",
            reference_id=order_id,
        )
        self.quantity_reserved = (self.quantity_reserved or 0) + quantity

        reserved_at = now or datetime.now(UTC)
        reservation = InventoryReservation(
            order_id=order_id,
            quantity=quantity,
            reserved_at=reserved_at,
            expires_at=reserved_at + RESERVATION_TTL,
        )
        self.add_reservations(reservation)
        return reservation

    def _close(self, reservation, status, reason):
        self._record(
            TransactionType.RELEASE,
            reservation.quantity,
            reason=reason,
            reference_id=reservation.order_id,
        )
        self.quantity_reserved = max((self.quantity_reserved or 0) - reservation.quantity, 0)
        reservation.status = status.value

    def release(self, order_id, reason=None) -> int:
        """Return stock held by the order's Active reservations. Returns the quantity released."""
        released = 0
        for reservation in self.reservations_for(order_id, ReservationStatus.ACTIVE):
            self._close(reservation, ReservationStatus.CANCELLED, reason or f"Released for order #{order_id}")
            released += reservation.quantity
        return released

    def fulfill(self, order_id, author=None) -> int:
        fulfilled = 0
        now = datetime.now(UTC)
        for reservation in self.reservations_for(order_id, ReservationStatus.ACTIVE):
            self.quantity_reserved = max((self.quantity_reserved or 0) - reservation.quantity, 0)
            reservation.status = ReservationStatus.FULFILLED.value
            reservation.fulfilled_at = now
            self._record(
                TransactionType.FULFILLMENT,
                0,
                reason=f"Sale for order #{order_id}",
                reference_id=order_id,
                author=author,
            )
            fulfilled += reservation.quantity
        return fulfilled

    def expire_reservations(self, now=None) -> int:
        now = now or datetime.now(UTC)
        expired = 0
        active = [r for r in (self.reservations or []) if r.status == ReservationStatus.ACTIVE.value]
        for reservation in active:
            if _as_utc(reservation.expires_at) < now:
                self._close(reservation, ReservationStatus.EXPIRED, "Reservation expired")
                expired += 1
        return expired

    # -------------------------------------------------------------------
    # Manual stock movements
    # -------------------------------------------------------------------
    def record_return(self, quantity, order_id, reason=None):
        if quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be positive"]})
        self._record(
            TransactionType.RETURN,
            quantity,
            reason=reason or f"Return from order #{order_id}",
            reference_id=order_id,
        )

    def adjust(self, quantity, reason, author=None):
        if not quantity:
            raise ValidationError({"quantity": ["Adjustment must change the stock level"]})
        if not reason:
            raise ValidationError({"reason": ["Reason is required for stock adjustments"]})
        self._record(TransactionType.ADJUSTMENT, quantity, reason=reason, author=author)

    def restock(self, quantity, notes=None, author=None):
        if quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be positive"]})
        self._record(TransactionType.RESTOCK, quantity, reason=notes, author=author)

    def mark_damaged(self, quantity, reason=None, author=None):
        if quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be positive"]})
        if quantity > (self.quantity_on_hand or 0):
            raise InsufficientStock(f"Cannot damage {quantity} units: only {self.quantity_on_hand} on hand")
        self._record(TransactionType.DAMAGE, -quantity, reason=reason, author=author)
        self.quantity_damaged = (self.quantity_damaged or 0) + quantity
