import os
from pathlib import Path

import pytest


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_collection_modifyitems(config, items):
    """Mark tests by the layer directory they live in."""
    for item in items:
        test_path = str(Path(item.fspath))

        if "/domain/" in test_path or "/bdd/" in test_path:
            item.add_marker(pytest.mark.domain)
        elif "/application/" in test_path:
            item.add_marker(pytest.mark.application)
        elif "/integration/" in test_path:
            item.add_marker(pytest.mark.integration)
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)


@pytest.fixture(scope="session")
def _storefront_domain(request):
    """Initialize the storefront domain once per session."""
    os.environ["PROTEAN_ENV"] = request.config.option.env

    from storefront.domain import storefront

    storefront.init()
    return storefront


@pytest.fixture(scope="session", autouse=True)
def setup_db(_storefront_domain):
    from storefront.utils.db import drop_db, setup_db

    setup_db(_storefront_domain)

    yield

    drop_db(_storefront_domain)


@pytest.fixture(autouse=True)
def run_around_tests(_storefront_domain):
    """Push the domain context, start every test with null providers and a clean mailbox."""
    from storefront.notifications.channel import reset_channels
    from storefront.providers import reset_providers, set_payment_processor, set_payout_processor
    from storefront.providers.payments.null_driver import NullPaymentDriver
    from storefront.providers.payouts.null_driver import NullPayoutDriver

    set_payment_processor(NullPaymentDriver())
    set_payout_processor(NullPayoutDriver())
    reset_channels()

    ctx = _storefront_domain.domain_context()
    ctx.push()

    yield

    from protean import current_domain

    for _, provider in current_domain.providers.items():
        provider._data_reset()

    for _, broker in current_domain.brokers.items():
        broker._data_reset()

    current_domain.event_store.store._data_reset()
    ctx.pop()

    reset_providers()
    reset_channels()


@pytest.fixture()
def mailbox():
    """The in-memory email adapter every notification goes through."""
    from storefront.notifications.channel import get_email_channel

    return get_email_channel()


# ---------------------------------------------------------------------------
# Shared data fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def shopper():
    """A registered purchaser. Returns ``(user_id, email)``."""
    from protean import current_domain

    from storefront.identity.registration import RegisterUser

    email = "shopper@example.com"
    user_id = current_domain.process(RegisterUser(email=email, name="Sam Shopper"), asynchronous=False)
    return user_id, email


@pytest.fixture()
def listing():
    """Factory for a sellable product with a price and tracked stock.

    Returns a dict with ``product_id`` and ``price_id``.
    """
    from protean import current_domain

    from storefront.catalogue.management import CreatePrice, CreateProduct
    from storefront.inventory.maintenance import StockProduct

    def _listing(name="Notebook", amount=20.0, stock=10, seller_id=None, commission_rate=0.0, reorder_point=0):
        product_id = current_domain.process(
            CreateProduct(name=name, seller_id=seller_id, commission_rate=commission_rate),
            asynchronous=False,
        )
        price_id = current_domain.process(
            CreatePrice(product_id=product_id, amount=amount, is_default=True),
            asynchronous=False,
        )
        if stock is not None:
            current_domain.process(
                StockProduct(product_id=product_id, quantity=stock, reorder_point=reorder_point),
                asynchronous=False,
            )
        return {"product_id": product_id, "price_id": price_id}

    return _listing


@pytest.fixture()
def place_order():
    """Factory placing an order for ``[(price_id, quantity), ...]``. Returns the order id."""
    import json

    from protean import current_domain

    from storefront.ordering.checkout import PlaceOrder

    def _place(lines, user_id=None, discount_codes=()):
        return current_domain.process(
            PlaceOrder(
                user_id=user_id,
                items=json.dumps([{"price_id": price_id, "quantity": quantity} for price_id, quantity in lines]),
                discount_codes=json.dumps(list(discount_codes)),
            ),
            asynchronous=False,
        )

    return _place
