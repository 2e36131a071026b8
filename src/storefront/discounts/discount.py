"""Discount aggregate (CQRS): gift cards, promo codes and manual credits.

A discount bound to a product with no owner is a *template*: it is never
redeemed itself. Each unit of that product bought in a succeeded order
gets its own user-owned replica with a fresh code.

Balance and usage only change through ``redeem``, which keeps one
redemption record per order so a redelivered order event cannot count
twice.
"""

import secrets
import string
from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, HasMany, Identifier, Integer, String

from storefront.domain import storefront


class DiscountKind(Enum):
    GIFT_CARD = "GiftCard"
    PROMO_CODE = "PromoCode"
    MANUAL = "Manual"


class DiscountValueType(Enum):
    FIXED = "Fixed"
    PERCENTAGE = "Percentage"


CODE_PREFIXES = {
    DiscountKind.GIFT_CARD.value: "GIFT",
    DiscountKind.PROMO_CODE.value: "PROMO",
    DiscountKind.MANUAL.value: "MANUAL",
}

_CODE_ALPHABET = string.ascii_uppercase + string.digits


def random_code(kind: str) -> str:
    """PREFIX-XXXX-XXXX-XXXX-XXXX"""
    groups = ("".join(secrets.choice(_CODE_ALPHABET) for _ in range(4)) for _ in range(4))
    return "-".join([CODE_PREFIXES.get(kind, "CODE"), *groups])


def _as_utc(value):
    if value is None:
        return None
    return value if value.tzinfo else value.replace(tzinfo=UTC)


@storefront.entity(part_of="Discount")
class DiscountRedemption:
    order_id = Identifier(required=True)
    amount_applied = Float(required=True)
    balance_before = Float()
    balance_after = Float()
    redeemed_at = DateTime()


@storefront.aggregate
class Discount:
    kind = String(choices=DiscountKind, required=True)
    value_type = String(choices=DiscountValueType, default=DiscountValueType.FIXED.value)
    value = Float(required=True, min_value=0.0)
    code = String(required=True, max_length=50)
    current_balance = Float()  # gift cards only
    times_used = Integer(default=0)
    max_uses = Integer()
    min_order_amount = Float()
    is_active = Boolean(default=True)
    activated_at = DateTime()
    expires_at = DateTime()

    user_id = Identifier()  # owner; null for promo codes and templates
    product_id = Identifier()  # set on product-bound templates

    # Replicas remember where they came from
    template_id = Identifier()
    source_order_id = Identifier()
    source_order_item_id = Identifier()

    redemptions = HasMany(DiscountRedemption)
    created_at = DateTime()

    # -------------------------------------------------------------------
    # Factories
    # -------------------------------------------------------------------
    @classmethod
    def gift_card(cls, code, balance, user_id=None, expires_at=None):
        now = datetime.now(UTC)
        return cls(
            kind=DiscountKind.GIFT_CARD.value,
            value_type=DiscountValueType.FIXED.value,
            value=balance,
            current_balance=balance,
            code=code.upper(),
            user_id=user_id,
            activated_at=now,
            expires_at=expires_at,
            created_at=now,
        )

    @classmethod
    def promo_code(
        cls,
        code,
        value,
        value_type=DiscountValueType.PERCENTAGE.value,
        max_uses=None,
        min_order_amount=None,
        expires_at=None,
    ):
        if value_type == DiscountValueType.PERCENTAGE.value and value > 100:
            raise ValidationError({"value": ["Percentage discounts cannot exceed 100"]})
        now = datetime.now(UTC)
        return cls(
            kind=DiscountKind.PROMO_CODE.value,
            value_type=value_type,
            value=value,
            code=code.upper(),
            max_uses=max_uses,
            min_order_amount=min_order_amount,
            activated_at=now,
            expires_at=expires_at,
            created_at=now,
        )

    @classmethod
    def template_for(cls, product_id, code, value, kind=DiscountKind.GIFT_CARD.value, value_type=None):
        """A product-bound stamp. Never activated, never redeemed."""
        return cls(
            kind=kind,
            value_type=value_type or DiscountValueType.FIXED.value,
            value=value,
            current_balance=value if kind == DiscountKind.GIFT_CARD.value else None,
            code=code.upper(),
            product_id=product_id,
            created_at=datetime.now(UTC),
        )

    def replicate_for(self, user_id, code, order_id, order_item_id):
        if not self.is_template:
            raise ValidationError({"discount": ["Only template discounts can be replicated"]})

        now = datetime.now(UTC)
        return Discount(
            kind=self.kind,
            value_type=self.value_type,
            value=self.value,
            current_balance=self.value if self.is_gift_card else None,
            code=code.upper(),
            max_uses=self.max_uses,
            min_order_amount=self.min_order_amount,
            user_id=user_id,
            template_id=str(self.id),
            source_order_id=str(order_id),
            source_order_item_id=str(order_item_id),
            times_used=0,
            activated_at=now,
            created_at=now,
        )

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def is_template(self) -> bool:
        return self.user_id is None and self.product_id is not None

    @property
    def is_gift_card(self) -> bool:
        return self.kind == DiscountKind.GIFT_CARD.value

    def unusable_reason(self, at=None):
        """Why this discount cannot be applied right now, or None."""
        at = at or datetime.now(UTC)
        if self.is_template:
            return "Template discounts cannot be redeemed"
        if not self.is_active:
            return "Discount is not active"
        if self.activated_at is None or _as_utc(self.activated_at) > at:
            return "Discount is not activated yet"
        if self.expires_at is not None and _as_utc(self.expires_at) <= at:
            return "Discount has expired"
        if self.max_uses is not None and (self.times_used or 0) >= self.max_uses:
            return "Discount has reached its usage limit"
        if self.is_gift_card and (self.current_balance or 0) <= 0:
            return "Gift card has no remaining balance"
        return None

    def calculate(self, order_amount: float) -> float:
        """Amount this discount takes off ``order_amount``."""
        if order_amount <= 0:
            return 0.0
        if self.min_order_amount and order_amount < self.min_order_amount:
            return 0.0

        if self.value_type == DiscountValueType.PERCENTAGE.value:
            return min(round(order_amount * self.value / 100, 2), order_amount)
        if self.is_gift_card:
            return round(min(self.current_balance or 0.0, order_amount), 2)
        return round(min(self.value, order_amount), 2)

    def redemption_for(self, order_id):
        return next(
            (r for r in (self.redemptions or []) if str(r.order_id) == str(order_id)),
            None,
        )

    # -------------------------------------------------------------------
    # Redemption
    # -------------------------------------------------------------------
    def redeem(self, order_id, amount_applied) -> bool:
        """Consume this discount for one order. Returns False if already done."""
        if self.is_template:
            raise ValidationError({"discount": ["Template discounts cannot be redeemed"]})
        if self.redemption_for(order_id) is not None:
            return False

        balance_before = self.current_balance
        balance_after = None
        if self.is_gift_card:
            balance_after = max(round((self.current_balance or 0.0) - amount_applied, 2), 0.0)
            self.current_balance = balance_after

        self.times_used = (self.times_used or 0) + 1
        self.add_redemptions(
            DiscountRedemption(
                order_id=order_id,
                amount_applied=amount_applied,
                balance_before=balance_before,
                balance_after=balance_after,
                redeemed_at=datetime.now(UTC),
            )
        )
        return True
