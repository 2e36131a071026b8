"""BDD tests for drawing down a gift card balance."""

from uuid import uuid4

import pytest
from pytest_bdd import given, parsers, scenarios, then, when

from storefront.discounts.discount import Discount

scenarios("features/gift_card_depletion.feature")


@pytest.fixture()
def payments():
    """Orders paid with the card, in order, as ``(order_id, amount_applied)``."""
    return []


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse("a gift card with a balance of {balance:f}"), target_fixture="gift_card")
def gift_card(balance):
    return Discount.gift_card(code="GIFT-BDD-CARD", balance=balance, user_id="user-bdd")


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse("an order of {amount:f} is paid with the gift card"))
def pay_order(gift_card, payments, amount):
    order_id = str(uuid4())
    applied = gift_card.calculate(amount)
    gift_card.redeem(order_id, applied)
    payments.append((order_id, applied))


@when("the payment for that order is recorded again")
def pay_again(gift_card, payments):
    order_id, applied = payments[-1]
    assert gift_card.redeem(order_id, applied) is False


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse("the gift card balance is {balance:f}"))
def balance_is(gift_card, balance):
    assert gift_card.current_balance == pytest.approx(balance)


@then(parsers.re(r"the gift card has been used (?P<count>\d+) times?"), converters={"count": int})
def used_times(gift_card, count):
    assert gift_card.times_used == count
    assert len(gift_card.redemptions) == count


@then(parsers.cfparse("{amount:f} is taken off the order"))
def taken_off(payments, amount):
    assert payments[-1][1] == pytest.approx(amount)


@then(parsers.cfparse('the gift card can no longer be used because "{reason}"'))
def unusable(gift_card, reason):
    assert gift_card.unusable_reason() == reason
