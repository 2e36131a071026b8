"""Order status templates, one per status the purchaser hears about."""

from storefront.notifications.notification import NotificationKind


def _total(context: dict) -> str:
    return f"{context.get('currency', 'USD')} {float(context.get('amount') or 0):.2f}"


class OrderPendingTemplate:
    kind = NotificationKind.ORDER_PENDING.value

    @staticmethod
    def render(context: dict) -> dict:
        order_id = context.get("order_id", "N/A")
        return {
            "subject": f"Order #{order_id} Received",
            "body": (
                f"We've received your order #{order_id}.\n\n"
                f"Order Total: {_total(context)}\n\n"
                "We'll let you know as soon as your payment is confirmed."
            ),
        }


class OrderProcessingTemplate:
    kind = NotificationKind.ORDER_PROCESSING.value

    @staticmethod
    def render(context: dict) -> dict:
        order_id = context.get("order_id", "N/A")
        return {
            "subject": f"Order #{order_id} Is Processing",
            "body": f"Your payment for order #{order_id} is being processed.",
        }


class OrderSucceededTemplate:
    kind = NotificationKind.ORDER_SUCCEEDED.value

    @staticmethod
    def render(context: dict) -> dict:
        order_id = context.get("order_id", "N/A")
        return {
            "subject": f"Order #{order_id} Confirmed",
            "body": (
                f"Your order #{order_id} has been confirmed.\n\n"
                f"Order Total: {_total(context)}\n\n"
                "Thank you for your purchase!"
            ),
        }


class OrderRefundedTemplate:
    kind = NotificationKind.ORDER_REFUNDED.value

    @staticmethod
    def render(context: dict) -> dict:
        order_id = context.get("order_id", "N/A")
        reason = context.get("reason") or "as requested"
        return {
            "subject": f"Order #{order_id} Refunded",
            "body": (
                f"Your order #{order_id} has been refunded ({_total(context)}).\n\n"
                f"Reason: {reason}\n\n"
                "The refund should appear in your account within 5-10 "
                "business days, depending on your payment provider."
            ),
        }


class OrderCancelledTemplate:
    kind = NotificationKind.ORDER_CANCELLED.value

    @staticmethod
    def render(context: dict) -> dict:
        order_id = context.get("order_id", "N/A")
        return {
            "subject": f"Order #{order_id} Cancelled",
            "body": (
                f"Your order #{order_id} has been cancelled.\n\n"
                "If you did not request this, please contact support."
            ),
        }
