"""Payout actions: process, cancel and retry a seller payout.

Processing moves the funds to the seller's connected account once, then asks
the provider to pay them out and keeps the status it reports. A retry
reuses an earlier transfer and only asks for the payout again. Preconditions (a connected account with
payouts enabled) are checked by the driver before any provider call; a
failed precondition leaves the payout Failed with the reason.
"""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Float, Identifier, String
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.identity.user import User
from storefront.payouts.payout import InvalidPayoutStatus, Payout, PayoutStatus
from storefront.providers import payout_processor

logger = structlog.get_logger(__name__)

NULL_RESULT = "Driver returned null - payout creation failed"


@storefront.command(part_of="Payout")
class RequestPayout:
    seller_id = Identifier(required=True)
    amount = Float(required=True, min_value=0.01)
    currency = String(max_length=3, default="USD")
    notes = String(max_length=1000)


@storefront.command(part_of="Payout")
class ProcessPayout:
    payout_id = Identifier(required=True)


@storefront.command(part_of="Payout")
class CancelPayout:
    payout_id = Identifier(required=True)
    reason = String(max_length=500)


@storefront.command(part_of="Payout")
class RetryPayout:
    payout_id = Identifier(required=True)


def _seller(payout) -> User | None:
    try:
        return current_domain.repository_for(User).get(payout.seller_id)
    except ObjectNotFoundError:
        return None


def _transfer_funds(processor, payout) -> bool:
    """Move the funds to the seller's account unless that already happened.

    Returns False when the processor did not confirm the transfer. Sellers
    without an enabled account are left to the payout preconditions.
    """
    if payout.external_transfer_id:
        return True

    seller = _seller(payout)
    if seller is None or not seller.has_payout_account or not seller.payouts_enabled:
        return True

    transfer = processor.create_transfer(
        seller,
        payout.amount,
        {"payout_id": str(payout.id), "seller_id": str(payout.seller_id)},
    )
    if transfer is None:
        return False
    payout.external_transfer_id = transfer.id
    return True


def process(payout: Payout) -> Payout:
    """Run a Pending payout through the payout processor and persist the outcome."""
    if payout.status != PayoutStatus.PENDING.value:
        raise InvalidPayoutStatus(
            f"A payout must be in pending status to be processed. Current status: {payout.status}"
        )

    processor = payout_processor()
    try:
        if _transfer_funds(processor, payout):
            result = processor.create_payout(payout)
            if result is None:
                payout.mark_failed(NULL_RESULT)
            else:
                payout.record_provider_status(
                    PayoutStatus(result.status),
                    external_payout_id=result.external_payout_id,
                    failure_reason=result.failure_message,
                )
        else:
            payout.mark_failed(NULL_RESULT)
    except Exception as exc:
        logger.error("Payout processing failed", payout_id=str(payout.id), error=str(exc))
        payout.mark_failed(str(exc))

    current_domain.repository_for(Payout).add(payout)
    logger.info("Payout processed", payout_id=str(payout.id), status=payout.status, reason=payout.failure_reason)
    return payout


@storefront.command_handler(part_of=Payout)
class PayoutActionsHandler:
    @handle(RequestPayout)
    def request_payout(self, command):
        payout = Payout.request(
            seller_id=command.seller_id,
            amount=command.amount,
            currency=command.currency,
            notes=command.notes,
        )
        current_domain.repository_for(Payout).add(payout)
        return str(payout.id)

    @handle(ProcessPayout)
    def process_payout(self, command):
        payout = current_domain.repository_for(Payout).get(command.payout_id)
        if payout.external_payout_id:
            raise InvalidPayoutStatus("The payout was already submitted to the provider")
        return process(payout).status

    @handle(CancelPayout)
    def cancel_payout(self, command):
        repo = current_domain.repository_for(Payout)
        payout = repo.get(command.payout_id)
        if not payout.can_cancel:
            raise InvalidPayoutStatus(
                "The payout cannot be cancelled. Only pending payouts can be cancelled. "
                f"Current status: {payout.status}"
            )

        if payout.external_payout_id and not payout_processor().cancel_payout(payout):
            logger.warning("Provider did not confirm the cancellation", payout_id=str(payout.id))

        payout.cancel(command.reason)
        repo.add(payout)
        return payout.status

    @handle(RetryPayout)
    def retry_payout(self, command):
        payout = current_domain.repository_for(Payout).get(command.payout_id)
        payout.reopen_for_retry()
        return process(payout).status
