"""Templates for messages triggered by the payment processor's webhooks."""

from storefront.notifications.notification import NotificationKind


class PaymentSucceededTemplate:
    kind = NotificationKind.PAYMENT_SUCCEEDED.value

    @staticmethod
    def render(context: dict) -> dict:
        order_id = context.get("order_id", "N/A")
        amount = float(context.get("amount") or 0)
        currency = context.get("currency", "USD")
        return {
            "subject": f"Payment Receipt - {currency} {amount:.2f}",
            "body": (
                f"We received your payment of {currency} {amount:.2f} "
                f"for order #{order_id}.\n\n"
                "Thank you!"
            ),
        }


class PaymentActionRequiredTemplate:
    kind = NotificationKind.PAYMENT_ACTION_REQUIRED.value

    @staticmethod
    def render(context: dict) -> dict:
        order_id = context.get("order_id", "N/A")
        return {
            "subject": f"Action Required for Order #{order_id}",
            "body": (
                f"Your bank needs you to confirm the payment for order #{order_id}.\n\n"
                "Please return to the checkout page to complete it."
            ),
        }


class RefundCreatedTemplate:
    kind = NotificationKind.REFUND_CREATED.value

    @staticmethod
    def render(context: dict) -> dict:
        order_id = context.get("order_id", "N/A")
        amount = float(context.get("amount") or 0)
        currency = context.get("currency", "USD")
        return {
            "subject": f"Refund Processed - {currency} {amount:.2f}",
            "body": (
                f"A refund of {currency} {amount:.2f} has been issued for order #{order_id}.\n\n"
                f"Reason: {context.get('reason') or 'as requested'}"
            ),
        }
