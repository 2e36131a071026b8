"""Translates verified Stripe webhook payloads into payment events on the order.

Supported event types:
    payment_intent.succeeded         → PaymentSucceeded
    payment_intent.requires_action   → PaymentActionRequired
    charge.refunded / refund.created → RefundCreated

Anything else is acknowledged and ignored.
"""

import json
from datetime import UTC, datetime

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import String, Text
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.ordering.order import Order, RefundReason
from storefront.payments.events import PaymentActionRequired, PaymentSucceeded, RefundCreated
from storefront.providers.stripe_base import from_cents

logger = structlog.get_logger(__name__)

_STRIPE_REFUND_REASONS = {reason.value for reason in RefundReason}


@storefront.command(part_of="Order")
class ProcessPaymentWebhook:
    event_id = String(required=True, max_length=255)
    event_type = String(required=True, max_length=100)
    payload = Text(required=True)  # JSON of the event's data.object


def _find_order(data: dict) -> Order | None:
    repo = current_domain.repository_for(Order)
    order_id = (data.get("metadata") or {}).get("order_id")
    if order_id:
        try:
            return repo.get(order_id)
        except ObjectNotFoundError:
            return None

    intent_id = data.get("payment_intent") if data.get("object") != "payment_intent" else data.get("id")
    if not intent_id:
        return None
    matches = repo._dao.query.filter(external_order_id=intent_id).all().items
    return repo.get(matches[0].id) if matches else None


def _payment_event(event_type: str, order: Order, data: dict):
    now = datetime.now(UTC)
    currency = (data.get("currency") or order.currency).upper()

    if event_type == "payment_intent.succeeded":
        received = data.get("amount_received", data.get("amount"))
        return PaymentSucceeded(
            order_id=str(order.id),
            amount=from_cents(received) if received is not None else order.amount,
            currency=currency,
            external_payment_id=data.get("latest_charge") or data.get("id"),
            occurred_at=now,
        )

    if event_type == "payment_intent.requires_action":
        return PaymentActionRequired(order_id=str(order.id), external_payment_id=data.get("id"), occurred_at=now)

    if event_type in ("charge.refunded", "refund.created"):
        refunded = data.get("amount_refunded", data.get("amount"))
        reason = data.get("reason")
        return RefundCreated(
            order_id=str(order.id),
            amount=from_cents(refunded) if refunded is not None else order.amount,
            currency=currency,
            reason=reason if reason in _STRIPE_REFUND_REASONS else RefundReason.OTHER.value,
            notes=(data.get("metadata") or {}).get("notes"),
            external_refund_id=data.get("id"),
            occurred_at=now,
        )

    return None


@storefront.command_handler(part_of=Order)
class PaymentWebhookHandler:
    @handle(ProcessPaymentWebhook)
    def process_payment_webhook(self, command):
        try:
            data = json.loads(command.payload)
        except (TypeError, ValueError) as exc:
            raise ValidationError({"payload": ["Must be a JSON object"]}) from exc

        order = _find_order(data)
        if order is None:
            logger.warning("Webhook does not match an order", event_id=command.event_id, event_type=command.event_type)
            return False

        event = _payment_event(command.event_type, order, data)
        if event is None:
            logger.info("Webhook ignored", event_id=command.event_id, event_type=command.event_type)
            return False

        order.raise_(event)
        current_domain.repository_for(Order).add(order)
        logger.info(
            "Payment event recorded",
            event_id=command.event_id,
            event_type=command.event_type,
            order_id=str(order.id),
        )
        return True
