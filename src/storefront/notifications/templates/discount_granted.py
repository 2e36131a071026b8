"""Sent once per discount code minted from a purchased template."""

from storefront.notifications.notification import NotificationKind


class DiscountGrantedTemplate:
    kind = NotificationKind.DISCOUNT_GRANTED.value

    @staticmethod
    def render(context: dict) -> dict:
        code = context.get("code", "N/A")
        value = context.get("value", "")
        if context.get("is_gift_card"):
            headline = f"Your gift card worth {context.get('currency', 'USD')} {float(value or 0):.2f} is ready."
        else:
            headline = "Your discount code is ready."
        return {
            "subject": "Your New Discount Code",
            "body": (
                f"{headline}\n\n"
                f"Code: {code}\n\n"
                "Enter it at checkout to redeem it."
            ),
        }
