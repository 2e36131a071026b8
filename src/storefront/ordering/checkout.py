"""Checkout: place an order, reserve its stock, hand off to the payment page.

PlaceOrder snapshots product and price data onto the order lines and
applies discount codes. StartCheckout reserves inventory and returns the
provider's checkout URL; when the stock is not there the order is marked
Failed and a failed result is returned instead of a URL.
"""

import json

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from storefront.catalogue.product import Price, Product
from storefront.discounts.service import apply_discounts_to_order
from storefront.domain import storefront
from storefront.inventory.engine import inventory_engine
from storefront.ordering.order import Order, OrderStatus
from storefront.providers import payment_processor

logger = structlog.get_logger(__name__)

INSUFFICIENT_STOCK = "Insufficient stock to fulfill the order"
CHECKOUT_UNAVAILABLE = "The payment processor did not return a checkout URL"


@storefront.command(part_of="Order")
class PlaceOrder:
    user_id = Identifier()
    items = Text(required=True)  # JSON list of {"price_id", "quantity"}
    discount_codes = Text()  # JSON list of codes
    currency = String(max_length=3, default="USD")


@storefront.command(part_of="Order")
class StartCheckout:
    order_id = Identifier(required=True)


@storefront.command(part_of="Order")
class CompleteCheckout:
    order_id = Identifier(required=True)


@storefront.command(part_of="Order")
class CancelCheckout:
    order_id = Identifier(required=True)


def _load_json_list(raw, field):
    if not raw:
        return []
    try:
        value = json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise ValidationError({field: ["Must be a JSON list"]}) from exc
    if not isinstance(value, list):
        raise ValidationError({field: ["Must be a JSON list"]})
    return value


def _line_for(entry) -> dict:
    try:
        price = current_domain.repository_for(Price).get(entry.get("price_id"))
        product = current_domain.repository_for(Product).get(price.product_id)
    except ObjectNotFoundError as exc:
        raise ValidationError({"items": [f"Unknown price {entry.get('price_id')}"]}) from exc

    if not price.is_active or not product.is_active or product.deleted_at:
        raise ValidationError({"items": [f"{product.name} is not available for sale"]})

    return {
        "product_id": str(product.id),
        "price_id": str(price.id),
        "name": product.name,
        "quantity": int(entry.get("quantity") or 1),
        "unit_amount": price.amount,
        "seller_id": str(product.seller_id) if product.seller_id else None,
        "commission_rate": product.commission_rate,
        "is_subscription": price.is_subscription,
    }


@storefront.command_handler(part_of=Order)
class CheckoutHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        entries = _load_json_list(command.items, "items")
        if not entries:
            raise ValidationError({"items": ["An order needs at least one item"]})

        order = Order.create(
            user_id=command.user_id,
            items=[_line_for(entry) for entry in entries],
            currency=command.currency,
        )
        apply_discounts_to_order(order, _load_json_list(command.discount_codes, "discount_codes"))
        current_domain.repository_for(Order).add(order)

        logger.info("Order placed", order_id=str(order.id), amount=order.amount, items=len(entries))
        return str(order.id)

    @handle(StartCheckout)
    def start_checkout(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        if order.status != OrderStatus.PENDING.value:
            raise ValidationError({"order_id": [f"Only pending orders can be checked out (order is {order.status})"]})

        if not inventory_engine.reserve(order):
            order.mark_failed(INSUFFICIENT_STOCK)
            repo.add(order)
            logger.warning("Checkout failed", order_id=str(order.id), reason=INSUFFICIENT_STOCK)
            return {"status": "failed", "reason": INSUFFICIENT_STOCK}

        url = payment_processor().get_checkout_url(order)
        if not url:
            inventory_engine.release(order)
            order.mark_failed(CHECKOUT_UNAVAILABLE)
            repo.add(order)
            logger.warning("Checkout failed", order_id=str(order.id), reason=CHECKOUT_UNAVAILABLE)
            return {"status": "failed", "reason": CHECKOUT_UNAVAILABLE}

        logger.info("Checkout started", order_id=str(order.id))
        return {"status": "redirect", "checkout_url": url}

    @handle(CompleteCheckout)
    def complete_checkout(self, command):
        order = current_domain.repository_for(Order).get(command.order_id)
        return payment_processor().process_checkout_success(order)

    @handle(CancelCheckout)
    def cancel_checkout(self, command):
        order = current_domain.repository_for(Order).get(command.order_id)
        return payment_processor().process_checkout_cancel(order)
