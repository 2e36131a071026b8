"""Catalogue commands: create, update and delete products and prices."""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Boolean, Float, Identifier, String, Text
from protean.utils.globals import current_domain

from storefront.catalogue.product import Price, PriceInterval, Product
from storefront.domain import storefront


@storefront.command(part_of="Product")
class CreateProduct:
    name = String(required=True, max_length=255)
    description = Text()
    seller_id = Identifier()
    commission_rate = Float(default=0.0, min_value=0.0, max_value=1.0)


@storefront.command(part_of="Product")
class UpdateProduct:
    product_id = Identifier(required=True)
    name = String(max_length=255)
    description = Text()
    is_active = Boolean()
    commission_rate = Float(min_value=0.0, max_value=1.0)


@storefront.command(part_of="Product")
class DeleteProduct:
    product_id = Identifier(required=True)


@storefront.command(part_of="Price")
class CreatePrice:
    product_id = Identifier(required=True)
    amount = Float(required=True, min_value=0.0)
    currency = String(max_length=3, default="USD")
    interval = String(default=PriceInterval.ONE_TIME.value)
    name = String(max_length=255)
    is_default = Boolean(default=False)


@storefront.command(part_of="Price")
class UpdatePrice:
    price_id = Identifier(required=True)
    amount = Float(min_value=0.0)
    name = String(max_length=255)
    is_default = Boolean()


@storefront.command(part_of="Price")
class DeletePrice:
    price_id = Identifier(required=True)


@storefront.command_handler(part_of=Product)
class ProductCommandHandler:
    @handle(CreateProduct)
    def create_product(self, command):
        product = Product.create(
            name=command.name,
            description=command.description,
            seller_id=command.seller_id,
            commission_rate=command.commission_rate,
        )
        current_domain.repository_for(Product).add(product)
        return str(product.id)

    @handle(UpdateProduct)
    def update_product(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.get(command.product_id)
        product.update_details(
            name=command.name,
            description=command.description,
            is_active=command.is_active,
            commission_rate=command.commission_rate,
        )
        repo.add(product)

    @handle(DeleteProduct)
    def delete_product(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.get(command.product_id)
        product.delete()
        repo.add(product)


@storefront.command_handler(part_of=Price)
class PriceCommandHandler:
    @handle(CreatePrice)
    def create_price(self, command):
        product = current_domain.repository_for(Product).get(command.product_id)
        if product.deleted_at:
            raise ValidationError({"product_id": ["Cannot add a price to a deleted product"]})

        price = Price.create(
            product_id=str(product.id),
            amount=command.amount,
            currency=command.currency,
            interval=command.interval,
            name=command.name,
            is_default=command.is_default,
        )
        current_domain.repository_for(Price).add(price)
        return str(price.id)

    @handle(UpdatePrice)
    def update_price(self, command):
        repo = current_domain.repository_for(Price)
        price = repo.get(command.price_id)
        price.update(amount=command.amount, name=command.name, is_default=command.is_default)
        repo.add(price)

    @handle(DeletePrice)
    def delete_price(self, command):
        repo = current_domain.repository_for(Price)
        price = repo.get(command.price_id)
        price.deactivate()
        repo.add(price)
