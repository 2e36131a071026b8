"""Payout aggregate (CQRS): money owed to a seller, sent through the payout provider.

State Machine:
    PENDING → COMPLETED
    PENDING → FAILED → (retry) → PENDING
    PENDING → CANCELLED

Status changes come from the payout actions and from the payout driver
reporting what the provider did. Nothing else writes the status.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import InvalidOperationError, ValidationError
from protean.fields import DateTime, Float, Identifier, String, Text

from storefront.domain import storefront
from storefront.payouts.events import PayoutCancelled, PayoutFailed, PayoutProcessed


class PayoutStatus(Enum):
    PENDING = "Pending"
    COMPLETED = "Completed"
    FAILED = "Failed"
    CANCELLED = "Cancelled"


class InvalidPayoutStatus(InvalidOperationError):
    """The payout is not in a status that allows the requested action."""


@storefront.aggregate
class Payout:
    seller_id = Identifier(required=True)
    amount = Float(required=True, min_value=0.01)
    currency = String(max_length=3, default="USD")
    status = String(choices=PayoutStatus, default=PayoutStatus.PENDING.value)
    external_payout_id = String(max_length=255)
    external_transfer_id = String(max_length=255)
    failure_reason = String(max_length=500)
    notes = Text()
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def request(cls, seller_id, amount, currency="USD", notes=None):
        if amount is None or amount <= 0:
            raise ValidationError({"amount": ["Payout amount must be positive"]})
        now = datetime.now(UTC)
        return cls(
            seller_id=seller_id,
            amount=amount,
            currency=currency,
            notes=notes,
            created_at=now,
            updated_at=now,
        )

    @property
    def can_cancel(self) -> bool:
        return self.status == PayoutStatus.PENDING.value

    @property
    def can_retry(self) -> bool:
        return self.status == PayoutStatus.FAILED.value

    # -------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------
    def mark_completed(self):
        if self.status == PayoutStatus.COMPLETED.value:
            return
        self.status = PayoutStatus.COMPLETED.value
        self.failure_reason = None
        self.updated_at = datetime.now(UTC)
        self.raise_(
            PayoutProcessed(
                payout_id=str(self.id),
                seller_id=str(self.seller_id),
                amount=self.amount,
                currency=self.currency,
                external_payout_id=self.external_payout_id,
                processed_at=self.updated_at,
            )
        )

    def mark_failed(self, reason):
        if self.status == PayoutStatus.FAILED.value:
            return
        self.status = PayoutStatus.FAILED.value
        self.failure_reason = reason
        self.updated_at = datetime.now(UTC)
        self.raise_(
            PayoutFailed(
                payout_id=str(self.id),
                seller_id=str(self.seller_id),
                amount=self.amount,
                reason=reason,
                failed_at=self.updated_at,
            )
        )

    def cancel(self, reason=None):
        if not self.can_cancel:
            raise InvalidPayoutStatus(
                "The payout cannot be cancelled. Only pending payouts can be cancelled. "
                f"Current status: {self.status}"
            )

        if reason:
            line = f"Cancellation reason: {reason}"
            self.notes = f"{self.notes}\n\n{line}" if self.notes else line
        self.status = PayoutStatus.CANCELLED.value
        self.updated_at = datetime.now(UTC)
        self.raise_(
            PayoutCancelled(
                payout_id=str(self.id),
                seller_id=str(self.seller_id),
                reason=reason,
                cancelled_at=self.updated_at,
            )
        )

    def reopen_for_retry(self):
        if not self.can_retry:
            raise InvalidPayoutStatus(f"Only failed payouts can be retried. Current status: {self.status}")
        self.status = PayoutStatus.PENDING.value
        self.failure_reason = None
        self.updated_at = datetime.now(UTC)

    def record_provider_status(self, status, external_payout_id=None, failure_reason=None):
        """Apply the status the payout provider reported."""
        if external_payout_id:
            self.external_payout_id = external_payout_id

        if status == PayoutStatus.COMPLETED:
            self.mark_completed()
        elif status == PayoutStatus.FAILED:
            self.mark_failed(failure_reason or "Payout failed at provider")
        else:
            self.updated_at = datetime.now(UTC)
