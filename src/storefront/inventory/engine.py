"""Inventory reservation engine.

Serializes every stock mutation per product with ``StockLocks``: the balance
is read, checked and written while the product lock is held, so two
reservations in this process never decide against the same balance. Writes
join the caller's unit of work when there is one. Locks for an order are
taken in sorted product order.
"""

import threading
from collections import OrderedDict
from contextlib import contextmanager
from datetime import UTC, datetime

import structlog
from protean.utils.globals import current_domain

from storefront.inventory.inventory_item import InsufficientStock, InventoryItem

logger = structlog.get_logger(__name__)


class StockLocks:
    """Process-wide registry of re-entrant locks keyed by product id."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.RLock] = {}

    def lock_for(self, key) -> threading.RLock:
        with self._guard:
            return self._locks.setdefault(str(key), threading.RLock())

    @contextmanager
    def hold(self, *keys):
        acquired = []
        try:
            for key in sorted({str(k) for k in keys}):
                lock = self.lock_for(key)
                lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()


stock_locks = StockLocks()


def order_quantities(order) -> "OrderedDict[str, int]":
    """Quantity per product across the order's lines."""
    quantities: OrderedDict[str, int] = OrderedDict()
    for item in order.items or []:
        key = str(item.product_id)
        quantities[key] = quantities.get(key, 0) + item.quantity
    return quantities


class InventoryEngine:
    def __init__(self, locks: StockLocks = stock_locks) -> None:
        self.locks = locks

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    @staticmethod
    def item_for(product_id) -> InventoryItem | None:
        repo = current_domain.repository_for(InventoryItem)
        matches = repo._dao.query.filter(product_id=str(product_id)).all().items
        return repo.get(matches[0].id) if matches else None

    def _mutate(self, product_id, change):
        """Apply ``change(item)`` to the product's stock and save it. Caller holds the lock."""
        item = self.item_for(product_id)
        if item is None or not item.track_inventory:
            return None
        result = change(item)
        current_domain.repository_for(InventoryItem).add(item)
        return result

    # -------------------------------------------------------------------
    # Order lifecycle
    # -------------------------------------------------------------------
    def reserve(self, order) -> bool:
        """Reserve every tracked line or nothing. Returns False on insufficient stock."""
        quantities = order_quantities(order)
        order_id = str(order.id)

        with self.locks.hold(*quantities):
            reserved = []
            for product_id, quantity in quantities.items():
                try:
                    if self._mutate(product_id, lambda item, q=quantity: item.reserve(order_id, q)) is not None:
                        reserved.append(product_id)
                except InsufficientStock as exc:
                    logger.warning(
                        "Insufficient stock, releasing partial reservation",
                        order_id=order_id,
                        product_id=product_id,
                        error=str(exc),
                    )
                    for done in reserved:
                        self._mutate(done, lambda item: item.release(order_id, "Checkout reservation rolled back"))
                    return False

        logger.info("Inventory reserved", order_id=order_id, products=len(reserved))
        return True

    def release(self, order) -> None:
        order_id = str(order.id)
        quantities = order_quantities(order)
        with self.locks.hold(*quantities):
            for product_id in quantities:
                released = self._mutate(product_id, lambda item: item.release(order_id))
                if released:
                    logger.info("Reservation released", order_id=order_id, product_id=product_id, quantity=released)

    def fulfill(self, order) -> None:
        order_id = str(order.id)
        author = str(order.user_id) if order.user_id else None
        quantities = order_quantities(order)
        with self.locks.hold(*quantities):
            for product_id in quantities:
                fulfilled = self._mutate(product_id, lambda item: item.fulfill(order_id, author=author))
                if fulfilled:
                    logger.info("Reservation fulfilled", order_id=order_id, product_id=product_id, quantity=fulfilled)

    def record_return(self, item, quantity, order_id) -> None:
        with self.locks.hold(item.product_id):
            self._mutate(item.product_id, lambda fresh: fresh.record_return(quantity, str(order_id)))

    def return_order(self, order) -> None:
        """Put a refunded order's stock back, once per order line."""
        order_id = str(order.id)
        quantities = order_quantities(order)
        with self.locks.hold(*quantities):
            for product_id, quantity in quantities.items():
                item = self.item_for(product_id)
                if item is None or not item.track_inventory:
                    continue
                if item.has_return_for(order_id):
                    logger.info("Return already recorded", order_id=order_id, product_id=product_id)
                    continue
                self.record_return(item, quantity, order_id)

    # -------------------------------------------------------------------
    # Stock maintenance
    # -------------------------------------------------------------------
    def adjust_stock(self, product_id, quantity, reason, author=None) -> None:
        with self.locks.hold(product_id):
            self._mutate(product_id, lambda item: item.adjust(quantity, reason, author=author))

    def restock(self, product_id, quantity, notes=None, author=None) -> None:
        with self.locks.hold(product_id):
            self._mutate(product_id, lambda item: item.restock(quantity, notes=notes, author=author))

    def mark_damaged(self, product_id, quantity, reason=None, author=None) -> None:
        with self.locks.hold(product_id):
            self._mutate(product_id, lambda item: item.mark_damaged(quantity, reason=reason, author=author))

    def release_expired_reservations(self, now=None) -> int:
        now = now or datetime.now(UTC)
        items = current_domain.repository_for(InventoryItem)._dao.query.all().items
        expired = 0
        for candidate in items:
            with self.locks.hold(candidate.product_id):
                expired += self._mutate(candidate.product_id, lambda item: item.expire_reservations(now)) or 0

        if expired:
            logger.info("Expired stale reservations", count=expired)
        return expired


inventory_engine = InventoryEngine()
