"""Domain events for the Product and Price aggregates.

The payment provider keeps its own copy of the catalogue; these events are
what the provider sync handlers key off.
"""

from protean.fields import Boolean, DateTime, Float, Identifier, String

from storefront.domain import storefront


@storefront.event(part_of="Product")
class ProductCreated:
    __version__ = 1

    product_id = Identifier(required=True)
    name = String(required=True)
    seller_id = Identifier()
    created_at = DateTime(required=True)


@storefront.event(part_of="Product")
class ProductUpdated:
    __version__ = 1

    product_id = Identifier(required=True)
    name = String(required=True)
    is_active = Boolean(required=True)
    updated_at = DateTime(required=True)


@storefront.event(part_of="Product")
class ProductDeleted:
    __version__ = 1

    product_id = Identifier(required=True)
    deleted_at = DateTime(required=True)


@storefront.event(part_of="Price")
class PriceCreated:
    __version__ = 1

    price_id = Identifier(required=True)
    product_id = Identifier(required=True)
    amount = Float(required=True)
    currency = String(required=True)
    interval = String(required=True)
    is_default = Boolean(default=False)
    created_at = DateTime(required=True)


@storefront.event(part_of="Price")
class PriceUpdated:
    """A price changed. ``amount_changed`` tells the sync handler to re-create it at the provider."""

    __version__ = 1

    price_id = Identifier(required=True)
    product_id = Identifier(required=True)
    amount = Float(required=True)
    amount_changed = Boolean(default=False)
    is_default = Boolean(default=False)
    is_active = Boolean(default=True)
    updated_at = DateTime(required=True)


@storefront.event(part_of="Price")
class PriceDeleted:
    __version__ = 1

    price_id = Identifier(required=True)
    product_id = Identifier(required=True)
    deleted_at = DateTime(required=True)
