"""Stock maintenance commands: set up tracking, move stock, expire holds.

``ReleaseExpiredReservations`` is meant to be triggered periodically by an
external scheduler (cron, K8s CronJob) through ``manage.py release-expired``.
"""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Identifier, Integer, String
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.inventory.engine import inventory_engine, stock_locks
from storefront.inventory.inventory_item import InventoryItem

logger = structlog.get_logger(__name__)


@storefront.command(part_of="InventoryItem")
class StockProduct:
    """Start tracking stock for a product."""

    product_id = Identifier(required=True)
    quantity = Integer(default=0, min_value=0)
    sku = String(max_length=50)
    reorder_point = Integer(default=10, min_value=0)
    reorder_quantity = Integer(default=50, min_value=0)
    warehouse_location = String(max_length=100)
    track_inventory = Boolean(default=True)
    allow_backorder = Boolean(default=False)


@storefront.command(part_of="InventoryItem")
class AdjustStock:
    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    reason = String(required=True, max_length=500)
    author = String(max_length=255)


@storefront.command(part_of="InventoryItem")
class RestockProduct:
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    notes = String(max_length=500)
    author = String(max_length=255)


@storefront.command(part_of="InventoryItem")
class MarkStockDamaged:
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    reason = String(max_length=500)
    author = String(max_length=255)


@storefront.command(part_of="InventoryItem")
class ReleaseExpiredReservations:
    as_of = DateTime()  # Optional: defaults to now


@storefront.command_handler(part_of=InventoryItem)
class StockMaintenanceHandler:
    @handle(StockProduct)
    def stock_product(self, command):
        with stock_locks.hold(command.product_id):
            if inventory_engine.item_for(command.product_id) is not None:
                raise ValidationError({"product_id": ["Inventory is already tracked for this product"]})

            item = InventoryItem.create(
                product_id=command.product_id,
                quantity=command.quantity,
                sku=command.sku,
                reorder_point=command.reorder_point,
                reorder_quantity=command.reorder_quantity,
                warehouse_location=command.warehouse_location,
                track_inventory=command.track_inventory,
                allow_backorder=command.allow_backorder,
            )
            current_domain.repository_for(InventoryItem).add(item)

        logger.info("Inventory tracking started", product_id=str(command.product_id), quantity=command.quantity)
        return str(item.id)

    @handle(AdjustStock)
    def adjust_stock(self, command):
        inventory_engine.adjust_stock(command.product_id, command.quantity, command.reason, author=command.author)

    @handle(RestockProduct)
    def restock_product(self, command):
        inventory_engine.restock(command.product_id, command.quantity, notes=command.notes, author=command.author)

    @handle(MarkStockDamaged)
    def mark_stock_damaged(self, command):
        inventory_engine.mark_damaged(command.product_id, command.quantity, reason=command.reason, author=command.author)

    @handle(ReleaseExpiredReservations)
    def release_expired_reservations(self, command):
        return inventory_engine.release_expired_reservations(command.as_of)
