"""Idempotent email dispatch.

``send_once`` renders and sends a message for a key unless a Sent record
already exists for it. Delivery failures are recorded on the Notification
and logged; they never propagate into the handler that asked for the mail.
"""

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from storefront.identity.user import User
from storefront.notifications.channel import get_email_channel
from storefront.notifications.notification import Notification
from storefront.notifications.templates import get_template

logger = structlog.get_logger(__name__)


def notification_key(subject_id, kind: str) -> str:
    return f"{subject_id}:{kind}"


def find_by_key(key: str) -> Notification | None:
    matches = current_domain.repository_for(Notification)._dao.query.filter(key=key).all().items
    return matches[0] if matches else None


def purchaser_email(order) -> str | None:
    """The order's purchaser address, or None for guest checkouts."""
    if not order.user_id:
        return None
    try:
        return current_domain.repository_for(User).get(order.user_id).email
    except ObjectNotFoundError:
        logger.warning("Purchaser not found", order_id=str(order.id), user_id=str(order.user_id))
        return None


def send_once(key: str, kind: str, recipient: str | None, context: dict) -> Notification | None:
    """Send the ``kind`` message for ``key``. Returns None when skipped."""
    if not recipient:
        logger.debug("No recipient, notification skipped", key=key)
        return None

    repo = current_domain.repository_for(Notification)
    notification = find_by_key(key)
    if notification is not None and notification.is_sent:
        logger.info("Notification already sent", key=key)
        return None

    content = get_template(kind).render(context)
    if notification is None:
        notification = Notification.draft(
            key=key,
            kind=kind,
            recipient=recipient,
            subject=content["subject"],
            body=content["body"],
        )

    try:
        result = get_email_channel().send(to=recipient, subject=content["subject"], body=content["body"])
        if result.get("status") == "sent":
            notification.mark_sent(result.get("message_id"))
        else:
            notification.mark_failed(result.get("error", "Unknown dispatch error"))
    except Exception as exc:
        notification.mark_failed(str(exc))

    if notification.is_sent:
        logger.info("Notification sent", key=key, kind=kind)
    else:
        logger.error("Notification dispatch failed", key=key, kind=kind, error=notification.failure_reason)

    repo.add(notification)
    return notification
