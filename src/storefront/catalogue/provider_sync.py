"""Keeps the payment provider's copy of the catalogue in step with ours.

Each handler reloads the aggregate and hands it to the active payment
processor. Provider failures are already logged and swallowed by the
driver, so a failed sync never blocks a catalogue change.
"""

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from storefront.catalogue.events import (
    PriceCreated,
    PriceDeleted,
    PriceUpdated,
    ProductCreated,
    ProductDeleted,
    ProductUpdated,
)
from storefront.catalogue.product import Price, Product
from storefront.domain import storefront
from storefront.providers import payment_processor

logger = structlog.get_logger(__name__)


def _load(cls, identifier):
    try:
        return current_domain.repository_for(cls).get(identifier)
    except ObjectNotFoundError:
        logger.warning("Catalogue sync target not found", kind=cls.__name__, id=str(identifier))
        return None


@storefront.event_handler(part_of=Product)
class ProductSyncHandler:
    @handle(ProductCreated)
    def on_product_created(self, event: ProductCreated) -> None:
        product = _load(Product, event.product_id)
        if product is not None:
            payment_processor().create_product(product)

    @handle(ProductUpdated)
    def on_product_updated(self, event: ProductUpdated) -> None:
        product = _load(Product, event.product_id)
        if product is None:
            return
        if product.external_product_id:
            payment_processor().update_product(product)
        else:
            payment_processor().create_product(product)

    @handle(ProductDeleted)
    def on_product_deleted(self, event: ProductDeleted) -> None:
        product = _load(Product, event.product_id)
        if product is not None and product.external_product_id:
            payment_processor().delete_product(product)


@storefront.event_handler(part_of=Price)
class PriceSyncHandler:
    @handle(PriceCreated)
    def on_price_created(self, event: PriceCreated) -> None:
        price = _load(Price, event.price_id)
        if price is not None:
            payment_processor().create_price(price)

    @handle(PriceUpdated)
    def on_price_updated(self, event: PriceUpdated) -> None:
        price = _load(Price, event.price_id)
        if price is None:
            return

        if event.amount_changed or not price.external_price_id:
            logger.info("Re-creating provider price", price_id=str(price.id), amount=price.amount)
            payment_processor().change_price(price)
        else:
            payment_processor().update_price(price)

    @handle(PriceDeleted)
    def on_price_deleted(self, event: PriceDeleted) -> None:
        price = _load(Price, event.price_id)
        if price is not None and price.external_price_id:
            payment_processor().delete_price(price)
