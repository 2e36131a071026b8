"""Stock threshold events, raised when a ledger entry crosses a threshold."""

from protean.fields import DateTime, Identifier, Integer

from storefront.domain import storefront


@storefront.event(part_of="InventoryItem")
class LowStockDetected:
    __version__ = 1

    inventory_item_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity_on_hand = Integer(required=True)
    reorder_point = Integer(required=True)
    reorder_quantity = Integer()
    detected_at = DateTime(required=True)


@storefront.event(part_of="InventoryItem")
class StockDepleted:
    __version__ = 1

    inventory_item_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity_on_hand = Integer(required=True)
    detected_at = DateTime(required=True)
