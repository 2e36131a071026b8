"""Tests for the Payout aggregate state machine."""

import pytest
from protean.exceptions import ValidationError

from storefront.payouts.events import PayoutCancelled, PayoutFailed, PayoutProcessed
from storefront.payouts.payout import InvalidPayoutStatus, Payout, PayoutStatus


def _make_payout(amount=150.0):
    return Payout.request(seller_id="seller-001", amount=amount, notes="Monthly payout")


class TestPayoutRequest:
    def test_new_payout_is_pending(self):
        payout = _make_payout()
        assert payout.status == PayoutStatus.PENDING.value
        assert payout.can_cancel
        assert not payout.can_retry

    @pytest.mark.parametrize("amount", [0, -10.0])
    def test_amount_must_be_positive(self, amount):
        with pytest.raises(ValidationError):
            _make_payout(amount=amount)


class TestPayoutTransitions:
    def test_completion_raises_payout_processed(self):
        payout = _make_payout()
        payout.mark_completed()
        assert payout.status == PayoutStatus.COMPLETED.value
        assert isinstance(payout._events[-1], PayoutProcessed)

    def test_failure_keeps_the_reason(self):
        payout = _make_payout()
        payout.mark_failed("onboarding incomplete")
        assert payout.status == PayoutStatus.FAILED.value
        assert payout.failure_reason == "onboarding incomplete"
        assert isinstance(payout._events[-1], PayoutFailed)

    def test_failing_twice_raises_one_event(self):
        payout = _make_payout()
        payout.mark_failed("first")
        payout.mark_failed("second")
        assert payout.failure_reason == "first"
        assert len([e for e in payout._events if isinstance(e, PayoutFailed)]) == 1

    def test_cancel_appends_reason_to_notes(self):
        payout = _make_payout()
        payout.cancel("Seller request")
        assert payout.status == PayoutStatus.CANCELLED.value
        assert payout.notes == "Monthly payout\n\nCancellation reason: Seller request"
        assert isinstance(payout._events[-1], PayoutCancelled)

    @pytest.mark.parametrize("finish", ["mark_completed", "cancel"])
    def test_only_pending_payouts_cancel(self, finish):
        payout = _make_payout()
        getattr(payout, finish)()
        with pytest.raises(InvalidPayoutStatus):
            payout.cancel("Too late")

    def test_retry_reopens_a_failed_payout(self):
        payout = _make_payout()
        payout.mark_failed("network")
        payout.reopen_for_retry()
        assert payout.status == PayoutStatus.PENDING.value
        assert payout.failure_reason is None

    def test_only_failed_payouts_retry(self):
        with pytest.raises(InvalidPayoutStatus):
            _make_payout().reopen_for_retry()

    def test_provider_status_is_applied(self):
        payout = _make_payout()
        payout.record_provider_status(PayoutStatus.PENDING, external_payout_id="po_001")
        assert payout.status == PayoutStatus.PENDING.value
        assert payout.external_payout_id == "po_001"

        payout.record_provider_status(PayoutStatus.COMPLETED)
        assert payout.status == PayoutStatus.COMPLETED.value
