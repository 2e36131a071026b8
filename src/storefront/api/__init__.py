"""Storefront API package."""

from storefront.api.routes import inventory_router, order_router, payout_router, product_router, webhook_router

__all__ = ["product_router", "order_router", "inventory_router", "payout_router", "webhook_router"]
