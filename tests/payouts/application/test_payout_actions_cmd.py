"""Application tests for the payout commands."""

from unittest.mock import MagicMock

import pytest
from protean import current_domain

from storefront.identity.registration import RegisterUser
from storefront.identity.user import User
from storefront.payouts.actions import NULL_RESULT, CancelPayout, ProcessPayout, RequestPayout, RetryPayout
from storefront.payouts.payout import InvalidPayoutStatus, Payout, PayoutStatus
from storefront.providers import set_payout_processor
from storefront.providers.payouts.port import PayoutData, TransferData


@pytest.fixture()
def seller():
    """A seller whose connected account can receive payouts."""
    user_id = current_domain.process(RegisterUser(email="seller@example.com", name="Sal Seller"), asynchronous=False)
    repo = current_domain.repository_for(User)
    user = repo.get(user_id)
    user.connect_payout_account("acct_001", enabled=True, capabilities={"transfers": "active"}, details_submitted=True)
    repo.add(user)
    return user_id


@pytest.fixture()
def processor():
    mock = MagicMock()
    mock.create_transfer.return_value = TransferData(id="tr_001", amount=150.0, currency="usd", destination="acct_001")
    mock.create_payout.return_value = _payout_data(PayoutStatus.COMPLETED)
    mock.cancel_payout.return_value = True
    set_payout_processor(mock)
    return mock


def _payout_data(status, external_payout_id="po_001"):
    return PayoutData(external_payout_id=external_payout_id, amount=150.0, currency="usd", status=status.value)


def _request(seller_id, amount=150.0):
    return current_domain.process(
        RequestPayout(seller_id=seller_id, amount=amount, notes="Monthly payout"),
        asynchronous=False,
    )


def _payout(payout_id):
    return current_domain.repository_for(Payout).get(payout_id)


class TestProcessPayout:
    def test_null_driver_fails_the_payout(self, seller):
        payout_id = _request(seller)

        status = current_domain.process(ProcessPayout(payout_id=payout_id), asynchronous=False)

        assert status == PayoutStatus.FAILED.value
        assert _payout(payout_id).failure_reason == NULL_RESULT

    def test_funds_are_transferred_before_the_payout(self, seller, processor):
        payout_id = _request(seller)

        status = current_domain.process(ProcessPayout(payout_id=payout_id), asynchronous=False)

        assert status == PayoutStatus.COMPLETED.value
        transfer_seller, amount, metadata = processor.create_transfer.call_args.args
        assert str(transfer_seller.id) == seller
        assert amount == 150.0
        assert metadata == {"payout_id": payout_id, "seller_id": seller}
        assert _payout(payout_id).external_transfer_id == "tr_001"
        assert _payout(payout_id).external_payout_id == "po_001"

    def test_payout_in_transit_stays_pending(self, seller, processor):
        processor.create_payout.return_value = _payout_data(PayoutStatus.PENDING, external_payout_id="po_transit")
        payout_id = _request(seller)

        status = current_domain.process(ProcessPayout(payout_id=payout_id), asynchronous=False)

        assert status == PayoutStatus.PENDING.value
        assert _payout(payout_id).external_payout_id == "po_transit"

    def test_submitted_payout_is_not_processed_twice(self, seller, processor):
        processor.create_payout.return_value = _payout_data(PayoutStatus.PENDING)
        payout_id = _request(seller)
        current_domain.process(ProcessPayout(payout_id=payout_id), asynchronous=False)

        with pytest.raises(InvalidPayoutStatus):
            current_domain.process(ProcessPayout(payout_id=payout_id), asynchronous=False)
        processor.create_payout.assert_called_once()

    def test_provider_failure_is_kept(self, seller, processor):
        processor.create_payout.return_value = PayoutData(
            external_payout_id="po_002", amount=150.0, currency="usd", status=PayoutStatus.FAILED.value, failure_message="Bank declined"
        )
        payout_id = _request(seller)

        status = current_domain.process(ProcessPayout(payout_id=payout_id), asynchronous=False)

        assert status == PayoutStatus.FAILED.value
        assert _payout(payout_id).failure_reason == "Bank declined"

    def test_unconfirmed_transfer_fails_without_a_payout(self, seller, processor):
        processor.create_transfer.return_value = None
        payout_id = _request(seller)

        status = current_domain.process(ProcessPayout(payout_id=payout_id), asynchronous=False)

        assert status == PayoutStatus.FAILED.value
        assert _payout(payout_id).failure_reason == NULL_RESULT
        processor.create_payout.assert_not_called()

    def test_seller_without_enabled_account_skips_the_transfer(self, shopper, processor):
        user_id, _ = shopper
        payout_id = _request(user_id)

        current_domain.process(ProcessPayout(payout_id=payout_id), asynchronous=False)

        processor.create_transfer.assert_not_called()
        processor.create_payout.assert_called_once()

    def test_provider_exception_fails_the_payout(self, seller, processor):
        processor.create_payout.side_effect = RuntimeError("provider down")
        payout_id = _request(seller)

        status = current_domain.process(ProcessPayout(payout_id=payout_id), asynchronous=False)

        assert status == PayoutStatus.FAILED.value
        assert _payout(payout_id).failure_reason == "provider down"

    def test_only_pending_payouts_are_processed(self, seller, processor):
        payout_id = _request(seller)
        current_domain.process(ProcessPayout(payout_id=payout_id), asynchronous=False)

        with pytest.raises(InvalidPayoutStatus):
            current_domain.process(ProcessPayout(payout_id=payout_id), asynchronous=False)


class TestCancelPayout:
    def test_pending_payout_is_cancelled(self, seller):
        payout_id = _request(seller)

        status = current_domain.process(
            CancelPayout(payout_id=payout_id, reason="Seller request"),
            asynchronous=False,
        )

        assert status == PayoutStatus.CANCELLED.value
        assert _payout(payout_id).notes == "Monthly payout\n\nCancellation reason: Seller request"

    def test_provider_is_asked_to_cancel_a_submitted_payout(self, seller, processor):
        payout_id = _request(seller)
        repo = current_domain.repository_for(Payout)
        payout = repo.get(payout_id)
        payout.record_provider_status(PayoutStatus.PENDING, external_payout_id="po_009")
        repo.add(payout)

        current_domain.process(CancelPayout(payout_id=payout_id), asynchronous=False)

        processor.cancel_payout.assert_called_once()
        assert _payout(payout_id).status == PayoutStatus.CANCELLED.value

    def test_failed_payout_cannot_be_cancelled(self, seller):
        payout_id = _request(seller)
        current_domain.process(ProcessPayout(payout_id=payout_id), asynchronous=False)

        with pytest.raises(InvalidPayoutStatus):
            current_domain.process(CancelPayout(payout_id=payout_id), asynchronous=False)


class TestRetryPayout:
    def test_failed_payout_is_processed_again(self, seller, processor):
        processor.create_payout.return_value = None
        payout_id = _request(seller)
        current_domain.process(ProcessPayout(payout_id=payout_id), asynchronous=False)
        assert _payout(payout_id).status == PayoutStatus.FAILED.value

        processor.create_payout.return_value = _payout_data(PayoutStatus.COMPLETED)
        status = current_domain.process(RetryPayout(payout_id=payout_id), asynchronous=False)

        assert status == PayoutStatus.COMPLETED.value
        assert _payout(payout_id).failure_reason is None

    def test_retry_reuses_the_earlier_transfer(self, seller, processor):
        processor.create_payout.side_effect = RuntimeError("provider down")
        payout_id = _request(seller)
        current_domain.process(ProcessPayout(payout_id=payout_id), asynchronous=False)
        assert _payout(payout_id).external_transfer_id == "tr_001"

        processor.create_payout.side_effect = None
        processor.create_payout.return_value = _payout_data(PayoutStatus.COMPLETED)
        status = current_domain.process(RetryPayout(payout_id=payout_id), asynchronous=False)

        assert status == PayoutStatus.COMPLETED.value
        assert processor.create_transfer.call_count == 1
        assert processor.create_payout.call_count == 2

    def test_pending_payout_cannot_be_retried(self, seller):
        payout_id = _request(seller)

        with pytest.raises(InvalidPayoutStatus):
            current_domain.process(RetryPayout(payout_id=payout_id), asynchronous=False)
