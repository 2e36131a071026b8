"""Product and Price aggregates (CQRS).

Products carry the seller and commission rate that commission recording
reads at order time. Prices are separate aggregates so each can be synced
to the payment provider on its own.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String, Text

from storefront.catalogue.events import (
    PriceCreated,
    PriceDeleted,
    PriceUpdated,
    ProductCreated,
    ProductDeleted,
    ProductUpdated,
)
from storefront.domain import storefront


class PriceInterval(Enum):
    ONE_TIME = "one_time"
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


@storefront.aggregate
class Product:
    name = String(required=True, max_length=255)
    description = Text()
    is_active = Boolean(default=True)
    seller_id = Identifier()
    commission_rate = Float(default=0.0, min_value=0.0, max_value=1.0)
    external_product_id = String(max_length=255)
    default_price_id = Identifier()
    deleted_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def create(cls, name, seller_id=None, commission_rate=0.0, description=None):
        now = datetime.now(UTC)
        product = cls(
            name=name,
            description=description,
            seller_id=seller_id,
            commission_rate=commission_rate or 0.0,
            created_at=now,
            updated_at=now,
        )
        product.raise_(
            ProductCreated(
                product_id=str(product.id),
                name=name,
                seller_id=str(seller_id) if seller_id else None,
                created_at=now,
            )
        )
        return product

    def update_details(self, name=None, description=None, is_active=None, commission_rate=None):
        if self.deleted_at:
            raise ValidationError({"product": ["Deleted products cannot be updated"]})

        changes = {
            "name": name,
            "description": description,
            "is_active": is_active,
            "commission_rate": commission_rate,
        }
        changed = False
        for field_name, value in changes.items():
            if value is not None and getattr(self, field_name) != value:
                setattr(self, field_name, value)
                changed = True

        if changed:
            self.updated_at = datetime.now(UTC)
            self.raise_(
                ProductUpdated(
                    product_id=str(self.id),
                    name=self.name,
                    is_active=self.is_active,
                    updated_at=self.updated_at,
                )
            )
        return changed

    def delete(self):
        if self.deleted_at:
            return
        self.is_active = False
        self.deleted_at = datetime.now(UTC)
        self.raise_(ProductDeleted(product_id=str(self.id), deleted_at=self.deleted_at))

    # Provider bookkeeping, silent on purpose: the sync handlers write these.
    def link_external(self, external_product_id):
        self.external_product_id = external_product_id

    def set_default_price(self, price_id):
        self.default_price_id = price_id


@storefront.aggregate
class Price:
    product_id = Identifier(required=True)
    name = String(max_length=255)
    amount = Float(required=True, min_value=0.0)
    currency = String(max_length=3, default="USD")
    interval = String(choices=PriceInterval, default=PriceInterval.ONE_TIME.value)
    interval_count = Integer(default=1, min_value=1)
    is_default = Boolean(default=False)
    is_active = Boolean(default=True)
    external_price_id = String(max_length=255)
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def create(cls, product_id, amount, currency="USD", interval=PriceInterval.ONE_TIME.value, name=None, is_default=False):
        now = datetime.now(UTC)
        price = cls(
            product_id=product_id,
            name=name,
            amount=amount,
            currency=currency,
            interval=interval,
            is_default=is_default,
            created_at=now,
            updated_at=now,
        )
        price.raise_(
            PriceCreated(
                price_id=str(price.id),
                product_id=str(product_id),
                amount=amount,
                currency=currency,
                interval=interval,
                is_default=is_default,
                created_at=now,
            )
        )
        return price

    @property
    def is_subscription(self) -> bool:
        return self.interval != PriceInterval.ONE_TIME.value

    def update(self, amount=None, name=None, is_default=None):
        if not self.is_active:
            raise ValidationError({"price": ["Inactive prices cannot be updated"]})

        amount_changed = amount is not None and amount != self.amount
        if amount_changed:
            self.amount = amount
        if name is not None:
            self.name = name
        if is_default is not None:
            self.is_default = is_default

        self.updated_at = datetime.now(UTC)
        self.raise_(
            PriceUpdated(
                price_id=str(self.id),
                product_id=str(self.product_id),
                amount=self.amount,
                amount_changed=amount_changed,
                is_default=self.is_default,
                is_active=self.is_active,
                updated_at=self.updated_at,
            )
        )

    def deactivate(self):
        if not self.is_active:
            return
        self.is_active = False
        self.updated_at = datetime.now(UTC)
        self.raise_(
            PriceDeleted(
                price_id=str(self.id),
                product_id=str(self.product_id),
                deleted_at=self.updated_at,
            )
        )

    def link_external(self, external_price_id):
        self.external_price_id = external_price_id
