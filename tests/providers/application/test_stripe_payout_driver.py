"""Stripe payout driver against a mocked StripeClient."""

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
import stripe
from protean import current_domain

from storefront.config import ProviderSettings
from storefront.identity.registration import RegisterUser
from storefront.identity.user import User
from storefront.payouts.actions import ProcessPayout, RetryPayout
from storefront.payouts.payout import Payout, PayoutStatus
from storefront.providers import set_payout_processor
from storefront.providers.payouts.stripe_driver import (
    NO_PAYOUT_ACCOUNT,
    ONBOARDING_INCOMPLETE,
    StripePayoutDriver,
    map_payout_status,
)


@pytest.fixture()
def client():
    return MagicMock()


@pytest.fixture()
def sleeps():
    return []


@pytest.fixture()
def driver(client, sleeps):
    return StripePayoutDriver(None, settings=ProviderSettings(), client=client, sleep=sleeps.append)


def _seller(account_id=None, enabled=False):
    user_id = current_domain.process(RegisterUser(email="seller@example.com"), asynchronous=False)
    repo = current_domain.repository_for(User)
    user = repo.get(user_id)
    if account_id:
        user.connect_payout_account(account_id, enabled=enabled)
        repo.add(user)
    return repo.get(user_id)


def _payout(seller_id, amount=120.5):
    payout = Payout.request(seller_id=seller_id, amount=amount)
    current_domain.repository_for(Payout).add(payout)
    return current_domain.repository_for(Payout).get(payout.id)


class TestStatusMapping:
    @pytest.mark.parametrize(
        "provider_status, expected",
        [
            ("paid", PayoutStatus.COMPLETED),
            ("failed", PayoutStatus.FAILED),
            ("canceled", PayoutStatus.FAILED),
            ("in_transit", PayoutStatus.PENDING),
            ("pending", PayoutStatus.PENDING),
            (None, PayoutStatus.PENDING),
        ],
    )
    def test_provider_statuses(self, provider_status, expected):
        assert map_payout_status(provider_status) is expected


class TestCreatePayoutPreconditions:
    def test_seller_without_account_fails_without_calling_stripe(self, driver, client):
        seller = _seller()
        payout = _payout(seller.id)

        assert driver.create_payout(payout) is None

        assert client.mock_calls == []
        stored = current_domain.repository_for(Payout).get(payout.id)
        assert stored.status == PayoutStatus.FAILED.value
        assert stored.failure_reason == NO_PAYOUT_ACCOUNT

    def test_incomplete_onboarding_fails_without_calling_stripe(self, driver, client):
        seller = _seller(account_id="acct_pending", enabled=False)
        payout = _payout(seller.id)

        assert driver.create_payout(payout) is None

        assert client.mock_calls == []
        assert current_domain.repository_for(Payout).get(payout.id).failure_reason == ONBOARDING_INCOMPLETE


class TestCreatePayout:
    def test_payout_is_created_on_the_connected_account(self, driver, client):
        seller = _seller(account_id="acct_ready", enabled=True)
        payout = _payout(seller.id)
        client.payouts.create.return_value = SimpleNamespace(id="po_123", amount=12050, currency="usd", status="paid")

        data = driver.create_payout(payout)

        assert data.external_payout_id == "po_123"
        assert data.amount == 120.5
        params = client.payouts.create.call_args.kwargs["params"]
        assert params["amount"] == 12050
        assert params["metadata"] == {"payout_id": str(payout.id), "seller_id": str(seller.id)}
        assert client.payouts.create.call_args.kwargs["options"] == {"stripe_account": "acct_ready"}

        stored = current_domain.repository_for(Payout).get(payout.id)
        assert stored.status == PayoutStatus.COMPLETED.value
        assert stored.external_payout_id == "po_123"

    def test_rate_limit_is_retried_with_backoff(self, driver, client, sleeps):
        seller = _seller(account_id="acct_ready", enabled=True)
        payout = _payout(seller.id)
        client.payouts.create.side_effect = stripe.RateLimitError("Too many requests")

        assert driver.create_payout(payout) is None

        assert client.payouts.create.call_count == 3
        assert sleeps == [pytest.approx(0.2), pytest.approx(0.4)]
        assert current_domain.repository_for(Payout).get(payout.id).status == PayoutStatus.PENDING.value


class TestProcessThroughStripe:
    @pytest.fixture(autouse=True)
    def use_driver(self, driver, client):
        set_payout_processor(driver)
        client.transfers.create.return_value = SimpleNamespace(
            id="tr_stripe", amount=12050, currency="usd", destination="acct_ready"
        )

    def test_payout_in_transit_is_stored_as_pending(self, client):
        seller = _seller(account_id="acct_ready", enabled=True)
        payout = _payout(seller.id)
        client.payouts.create.return_value = SimpleNamespace(id="po_456", amount=12050, currency="usd", status="in_transit")

        status = current_domain.process(ProcessPayout(payout_id=payout.id), asynchronous=False)

        assert status == PayoutStatus.PENDING.value
        stored = current_domain.repository_for(Payout).get(payout.id)
        assert stored.status == PayoutStatus.PENDING.value
        assert stored.external_payout_id == "po_456"

    def test_retry_after_api_error_transfers_once(self, client):
        seller = _seller(account_id="acct_ready", enabled=True)
        payout = _payout(seller.id)
        client.payouts.create.side_effect = stripe.APIError("Bank unavailable")

        assert current_domain.process(ProcessPayout(payout_id=payout.id), asynchronous=False) == PayoutStatus.FAILED.value

        client.payouts.create.side_effect = None
        client.payouts.create.return_value = SimpleNamespace(id="po_789", amount=12050, currency="usd", status="paid")
        status = current_domain.process(RetryPayout(payout_id=payout.id), asynchronous=False)

        assert status == PayoutStatus.COMPLETED.value
        assert client.transfers.create.call_count == 1
        assert current_domain.repository_for(Payout).get(payout.id).external_transfer_id == "tr_stripe"


class TestConnectedAccounts:
    def test_account_state_is_written_to_the_seller(self, driver, client):
        seller = _seller()
        client.accounts.create.return_value = SimpleNamespace(
            id="acct_new",
            details_submitted=True,
            charges_enabled=True,
            payouts_enabled=True,
            capabilities={"transfers": "active"},
        )

        account = driver.create_connected_account(seller)

        assert account.onboarding_complete
        stored = current_domain.repository_for(User).get(seller.id)
        assert stored.external_payout_account_id == "acct_new"
        assert stored.payouts_enabled is True
        assert stored.capabilities == {"transfers": "active"}

    def test_cancel_without_provider_payout_is_a_no_op(self, driver, client):
        seller = _seller(account_id="acct_ready", enabled=True)

        assert driver.cancel_payout(_payout(seller.id)) is False
        client.payouts.cancel.assert_not_called()
