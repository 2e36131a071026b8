"""Storefront domain: order-fulfillment coordination core.

One composition root for the order state machine, its effect handlers,
the inventory engine, discounts, commissions, payouts and notifications.
Provider drivers live outside the domain under ``storefront.providers``.
"""

from protean.domain import Domain

from storefront.utils.logging import configure_logging, get_logger

# Configure logging for the application
configure_logging()

logger = get_logger(__name__)

# Domain Composition Root
storefront = Domain(name="storefront")
