"""Discount administration: gift cards, promo codes and product templates."""

from protean import handle
from protean.fields import DateTime, Float, Identifier, Integer, String
from protean.utils.globals import current_domain

from storefront.discounts.discount import Discount, DiscountKind, DiscountValueType
from storefront.discounts.service import create_gift_card, create_promo_code, generate_unique_code
from storefront.domain import storefront


@storefront.command(part_of="Discount")
class IssueGiftCard:
    balance = Float(required=True, min_value=0.01)
    user_id = Identifier()
    code = String(max_length=50)
    expires_at = DateTime()


@storefront.command(part_of="Discount")
class CreatePromoCode:
    value = Float(required=True, min_value=0.01)
    value_type = String(choices=DiscountValueType, default=DiscountValueType.PERCENTAGE.value)
    code = String(max_length=50)
    max_uses = Integer(min_value=1)
    min_order_amount = Float(min_value=0.0)
    expires_at = DateTime()


@storefront.command(part_of="Discount")
class CreateDiscountTemplate:
    """Attach a discount to a product; buyers of the product receive a copy."""

    product_id = Identifier(required=True)
    value = Float(required=True, min_value=0.01)
    kind = String(choices=DiscountKind, default=DiscountKind.GIFT_CARD.value)
    value_type = String(choices=DiscountValueType, default=DiscountValueType.FIXED.value)


@storefront.command(part_of="Discount")
class DeactivateDiscount:
    discount_id = Identifier(required=True)


@storefront.command_handler(part_of=Discount)
class DiscountManagementHandler:
    @handle(IssueGiftCard)
    def issue_gift_card(self, command):
        discount = create_gift_card(
            balance=command.balance,
            user_id=command.user_id,
            code=command.code,
            expires_at=command.expires_at,
        )
        return str(discount.id)

    @handle(CreatePromoCode)
    def create_promo_code(self, command):
        discount = create_promo_code(
            value=command.value,
            code=command.code,
            value_type=command.value_type,
            max_uses=command.max_uses,
            min_order_amount=command.min_order_amount,
            expires_at=command.expires_at,
        )
        return str(discount.id)

    @handle(CreateDiscountTemplate)
    def create_discount_template(self, command):
        template = Discount.template_for(
            product_id=command.product_id,
            code=generate_unique_code(command.kind),
            value=command.value,
            kind=command.kind,
            value_type=command.value_type,
        )
        current_domain.repository_for(Discount).add(template)
        return str(template.id)

    @handle(DeactivateDiscount)
    def deactivate_discount(self, command):
        repo = current_domain.repository_for(Discount)
        discount = repo.get(command.discount_id)
        discount.is_active = False
        repo.add(discount)
