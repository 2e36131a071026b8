"""Discount lookups, code generation and checkout-time application.

Applying a discount to an order only records the pivot on the order. The
discount's own balance and usage count change later, once the order
succeeds (see ``storefront.discounts.order_events``).
"""

import structlog
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from storefront.discounts.discount import Discount, DiscountKind, random_code

logger = structlog.get_logger(__name__)

CODE_ATTEMPTS = 5


class CodeGenerationError(RuntimeError):
    """No unused discount code could be generated."""


def find_by_code(code: str) -> Discount | None:
    matches = current_domain.repository_for(Discount)._dao.query.filter(code=code.strip().upper()).all().items
    return matches[0] if matches else None


def generate_unique_code(kind: str = DiscountKind.PROMO_CODE.value, attempts: int = CODE_ATTEMPTS) -> str:
    for _ in range(attempts):
        code = random_code(kind)
        if find_by_code(code) is None:
            return code
    raise CodeGenerationError(f"Unable to generate a unique discount code after {attempts} attempts")


def create_gift_card(balance: float, user_id=None, code: str | None = None, expires_at=None) -> Discount:
    discount = Discount.gift_card(
        code=(code or generate_unique_code(DiscountKind.GIFT_CARD.value)).upper(),
        balance=balance,
        user_id=user_id,
        expires_at=expires_at,
    )
    current_domain.repository_for(Discount).add(discount)
    logger.info("Gift card created", discount_id=str(discount.id), balance=balance)
    return discount


def create_promo_code(value: float, code: str | None = None, **options) -> Discount:
    discount = Discount.promo_code(
        code=(code or generate_unique_code(DiscountKind.PROMO_CODE.value)).upper(),
        value=value,
        **options,
    )
    current_domain.repository_for(Discount).add(discount)
    logger.info("Promo code created", discount_id=str(discount.id), code=discount.code)
    return discount


def apply_discounts_to_order(order, codes) -> list[str]:
    """Attach each code to ``order`` in turn, against the amount still payable.

    Returns the ids of the discounts applied. Raises ValidationError for
    an unknown or unusable code.
    """
    applied = []
    for code in codes or []:
        discount = find_by_code(code)
        if discount is None:
            raise ValidationError({"discount_codes": [f"Unknown discount code {code}"]})

        reason = discount.unusable_reason()
        if reason:
            raise ValidationError({"discount_codes": [f"{code}: {reason}"]})

        amount = discount.calculate(order.amount)
        if amount <= 0:
            continue

        balance_before = balance_after = None
        if discount.is_gift_card:
            balance_before = discount.current_balance
            balance_after = max(round(balance_before - amount, 2), 0.0)

        order.apply_discount(
            discount_id=str(discount.id),
            code=discount.code,
            amount_applied=amount,
            balance_before=balance_before,
            balance_after=balance_after,
        )
        applied.append(str(discount.id))
    return applied
