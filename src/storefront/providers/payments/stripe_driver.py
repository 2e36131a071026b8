"""Stripe payment driver.

Mirrors the catalogue into Stripe products/prices, runs hosted checkout,
and applies refunds and cancellations back onto the local order. Local
records are saved right after the provider call they depend on succeeds.
"""

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from storefront.catalogue.product import Price, PriceInterval, Product
from storefront.discounts.discount import DiscountValueType
from storefront.identity.user import User
from storefront.ordering.order import Order, RefundReason
from storefront.providers.payments.port import (
    CouponData,
    CustomerData,
    InvoiceData,
    PaymentMethodData,
    PaymentProcessor,
    PriceData,
    ProductData,
    SubscriptionData,
)
from storefront.providers.stripe_base import StripeDriver, from_cents, from_timestamp, to_cents

logger = structlog.get_logger(__name__)

LIST_LIMIT = 100

_REFUND_REASONS = {
    RefundReason.DUPLICATE.value: "duplicate",
    RefundReason.FRAUDULENT.value: "fraudulent",
    RefundReason.REQUESTED_BY_CUSTOMER.value: "requested_by_customer",
}


def _product(obj) -> ProductData:
    return ProductData(
        id=obj.id,
        name=obj.name,
        active=bool(getattr(obj, "active", True)),
        default_price=getattr(obj, "default_price", None),
    )


def _price(obj) -> PriceData:
    recurring = getattr(obj, "recurring", None)
    return PriceData(
        id=obj.id,
        product=getattr(obj, "product", None),
        unit_amount=from_cents(getattr(obj, "unit_amount", 0)),
        currency=obj.currency,
        interval=recurring["interval"] if recurring else None,
        active=bool(getattr(obj, "active", True)),
    )


def _customer(obj) -> CustomerData:
    return CustomerData(id=obj.id, email=getattr(obj, "email", None), name=getattr(obj, "name", None))


def _payment_method(obj, default_id=None) -> PaymentMethodData:
    card = getattr(obj, "card", None)
    return PaymentMethodData(
        id=obj.id,
        brand=getattr(card, "brand", None) if card else None,
        last4=getattr(card, "last4", None) if card else None,
        exp_month=getattr(card, "exp_month", None) if card else None,
        exp_year=getattr(card, "exp_year", None) if card else None,
        is_default=obj.id == default_id,
    )


def _subscription(obj) -> SubscriptionData:
    items = obj["items"]["data"] if obj["items"] else []
    return SubscriptionData(
        id=obj.id,
        status=obj.status,
        price_id=items[0]["price"]["id"] if items else None,
        current_period_end=from_timestamp(getattr(obj, "current_period_end", None)),
        cancel_at_period_end=bool(getattr(obj, "cancel_at_period_end", False)),
    )


def _invoice(obj) -> InvoiceData:
    return InvoiceData(
        id=obj.id,
        status=getattr(obj, "status", None),
        amount_due=from_cents(getattr(obj, "amount_due", 0)),
        hosted_invoice_url=getattr(obj, "hosted_invoice_url", None),
    )


class StripePaymentDriver(StripeDriver, PaymentProcessor):
    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    @staticmethod
    def _save(aggregate):
        current_domain.repository_for(type(aggregate)).add(aggregate)

    @staticmethod
    def _load(cls, identifier):
        if not identifier:
            return None
        try:
            return current_domain.repository_for(cls).get(identifier)
        except ObjectNotFoundError:
            return None

    def _customer_id(self, user) -> str | None:
        if user is None:
            return None
        if not user.external_customer_id:
            self.create_customer(user)
        return user.external_customer_id

    def _active_subscription(self, user):
        customer_id = self._customer_id(user)
        if not customer_id:
            return None
        result = self.stripe.subscriptions.list(params={"customer": customer_id, "status": "active", "limit": 1})
        return result.data[0] if result.data else None

    # -------------------------------------------------------------------
    # Products
    # -------------------------------------------------------------------
    def create_product(self, product):
        if product.external_product_id:
            return self.get_product(product)

        def create():
            result = self.stripe.products.create(
                params={
                    "name": product.name,
                    "description": product.description or None,
                    "active": product.is_active,
                    "metadata": {"product_id": str(product.id)},
                }
            )
            product.link_external(result.id)
            self._save(product)
            return _product(result)

        return self._execute("create_product", create)

    def get_product(self, product):
        if not product.external_product_id:
            return None
        return self._execute(
            "get_product",
            lambda: _product(self.stripe.products.retrieve(product.external_product_id)),
        )

    def update_product(self, product):
        if not product.external_product_id:
            return None
        return self._execute(
            "update_product",
            lambda: _product(
                self.stripe.products.update(
                    product.external_product_id,
                    params={
                        "name": product.name,
                        "description": product.description or None,
                        "active": product.is_active,
                    },
                )
            ),
        )

    def delete_product(self, product):
        if not product.external_product_id:
            return False

        def delete():
            result = self.stripe.products.delete(product.external_product_id)
            product.link_external(None)
            self._save(product)
            return bool(getattr(result, "deleted", False))

        return self._execute("delete_product", delete, False)

    def list_products(self, filters=None):
        def fetch():
            params = {"limit": LIST_LIMIT}
            params.update(filters or {})
            return [_product(item) for item in self.stripe.products.list(params=params).data]

        return self._execute("list_products", fetch, [])

    # -------------------------------------------------------------------
    # Prices
    # -------------------------------------------------------------------
    def _price_params(self, price, product) -> dict:
        params = {
            "product": product.external_product_id,
            "unit_amount": to_cents(price.amount),
            "currency": price.currency.lower(),
            "nickname": price.name or None,
            "metadata": {"price_id": str(price.id)},
        }
        if price.interval != PriceInterval.ONE_TIME.value:
            params["recurring"] = {"interval": price.interval, "interval_count": price.interval_count or 1}
        return params

    def _make_default(self, price, product):
        self.stripe.products.update(product.external_product_id, params={"default_price": price.external_price_id})
        product.set_default_price(str(price.id))
        self._save(product)

    def create_price(self, price):
        product = self._load(Product, price.product_id)
        if product is None or not product.external_product_id:
            logger.warning("Price sync skipped, product is not synced", price_id=str(price.id))
            return None

        def create():
            result = self.stripe.prices.create(params=self._price_params(price, product))
            price.link_external(result.id)
            self._save(price)
            if price.is_default:
                self._make_default(price, product)
            return _price(result)

        return self._execute("create_price", create)

    def get_price(self, price):
        if not price.external_price_id:
            return None
        return self._execute("get_price", lambda: _price(self.stripe.prices.retrieve(price.external_price_id)))

    def update_price(self, price):
        if not price.external_price_id:
            return None

        def update():
            result = self.stripe.prices.update(
                price.external_price_id,
                params={
                    "nickname": price.name or None,
                    "active": price.is_active,
                    "metadata": {"price_id": str(price.id)},
                },
            )
            if price.is_default:
                product = self._load(Product, price.product_id)
                if product is not None and product.external_product_id:
                    self._make_default(price, product)
            return _price(result)

        return self._execute("update_price", update)

    def change_price(self, price):
        """Stripe prices are immutable: archive the old one and create a replacement."""
        if price.external_price_id:
            archived = self._execute(
                "change_price",
                lambda: self.stripe.prices.update(price.external_price_id, params={"active": False}),
            )
            if archived is None:
                return None
            price.link_external(None)
        return self.create_price(price)

    def delete_price(self, price):
        if not price.external_price_id:
            return False

        def delete():
            self.stripe.prices.update(price.external_price_id, params={"active": False})
            price.is_active = False
            self._save(price)
            return True

        return self._execute("delete_price", delete, False)

    def list_prices(self, product, filters=None):
        if not product.external_product_id:
            return []

        def fetch():
            params = {"product": product.external_product_id, "limit": LIST_LIMIT}
            params.update(filters or {})
            return [_price(item) for item in self.stripe.prices.list(params=params).data]

        return self._execute("list_prices", fetch, [])

    # -------------------------------------------------------------------
    # Payment methods
    # -------------------------------------------------------------------
    def create_payment_method(self, user, payment_method_id):
        def attach():
            customer_id = self._customer_id(user)
            if not customer_id:
                return None
            return _payment_method(
                self.stripe.payment_methods.attach(payment_method_id, params={"customer": customer_id})
            )

        return self._execute("create_payment_method", attach)

    def list_payment_methods(self, user):
        if not user.external_customer_id:
            return []

        def fetch():
            customer = self.stripe.customers.retrieve(user.external_customer_id)
            settings = getattr(customer, "invoice_settings", None)
            default_id = getattr(settings, "default_payment_method", None) if settings else None
            result = self.stripe.payment_methods.list(
                params={"customer": user.external_customer_id, "type": "card", "limit": LIST_LIMIT}
            )
            return [_payment_method(item, default_id) for item in result.data]

        return self._execute("list_payment_methods", fetch, [])

    def update_payment_method(self, user, payment_method_id, is_default=False):
        if not user.external_customer_id:
            return None

        def update():
            if is_default:
                self.stripe.customers.update(
                    user.external_customer_id,
                    params={"invoice_settings": {"default_payment_method": payment_method_id}},
                )
            method = self.stripe.payment_methods.retrieve(payment_method_id)
            return _payment_method(method, payment_method_id if is_default else None)

        return self._execute("update_payment_method", update)

    def delete_payment_method(self, user, payment_method_id):
        def detach():
            self.stripe.payment_methods.detach(payment_method_id)
            return True

        return self._execute("delete_payment_method", detach, False)

    # -------------------------------------------------------------------
    # Customers
    # -------------------------------------------------------------------
    def search_customer(self, field, value):
        def search():
            result = self.stripe.customers.search(params={"query": f"{field}:'{value}'", "limit": 1})
            return _customer(result.data[0]) if result.data else None

        return self._execute("search_customer", search)

    def create_customer(self, user, force=False):
        if user.external_customer_id and not force:
            return self.get_customer(user)

        def create():
            result = self.stripe.customers.create(
                params={
                    "email": user.email,
                    "name": user.name or None,
                    "metadata": {"user_id": str(user.id)},
                }
            )
            user.link_customer(result.id)
            self._save(user)
            return _customer(result)

        return self._execute("create_customer", create)

    def get_customer(self, user):
        if not user.external_customer_id:
            return None
        return self._execute(
            "get_customer",
            lambda: _customer(self.stripe.customers.retrieve(user.external_customer_id)),
        )

    def delete_customer(self, user):
        if not user.external_customer_id:
            return False

        def delete():
            result = self.stripe.customers.delete(user.external_customer_id)
            user.link_customer(None)
            self._save(user)
            return bool(getattr(result, "deleted", False))

        return self._execute("delete_customer", delete, False)

    def sync_customer_information(self, user):
        if not user.external_customer_id:
            return False

        def sync():
            self.stripe.customers.update(
                user.external_customer_id,
                params={"email": user.email, "name": user.name or None},
            )
            return True

        return self._execute("sync_customer_information", sync, False)

    # -------------------------------------------------------------------
    # Coupons
    # -------------------------------------------------------------------
    def create_coupon(self, discount, amount=None):
        def create():
            params = {
                "name": discount.code,
                "duration": "once",
                "metadata": {"discount_id": str(discount.id)},
            }
            if amount is None and discount.value_type == DiscountValueType.PERCENTAGE.value:
                params["percent_off"] = discount.value
            else:
                params["amount_off"] = to_cents(discount.value if amount is None else amount)
                params["currency"] = self.settings.currency
            result = self.stripe.coupons.create(params=params)
            return CouponData(
                id=result.id,
                name=getattr(result, "name", None),
                amount_off=from_cents(params["amount_off"]) if "amount_off" in params else None,
                percent_off=params.get("percent_off"),
            )

        return self._execute("create_coupon", create)

    # -------------------------------------------------------------------
    # Subscriptions
    # -------------------------------------------------------------------
    def start_subscription(self, order):
        user = self._load(User, order.user_id)
        if user is None or not order.is_subscription:
            return None

        def start():
            customer_id = self._customer_id(user)
            items = []
            for item in order.items:
                price = self._load(Price, item.price_id)
                if price is not None and price.external_price_id and price.is_subscription:
                    items.append({"price": price.external_price_id, "quantity": item.quantity})
            if not customer_id or not items:
                return None
            result = self.stripe.subscriptions.create(
                params={"customer": customer_id, "items": items, "metadata": {"order_id": str(order.id)}}
            )
            return _subscription(result)

        return self._execute("start_subscription", start)

    def swap_subscription(self, user, price):
        if not price.external_price_id:
            return None

        def swap():
            subscription = self._active_subscription(user)
            if subscription is None:
                return None
            item_id = subscription["items"]["data"][0]["id"]
            result = self.stripe.subscriptions.update(
                subscription.id,
                params={
                    "items": [{"id": item_id, "price": price.external_price_id}],
                    "proration_behavior": "create_prorations",
                },
            )
            return _subscription(result)

        return self._execute("swap_subscription", swap)

    def cancel_subscription(self, user, cancel_now=False, reason=None):
        def cancel():
            subscription = self._active_subscription(user)
            if subscription is None:
                return False
            details = {"cancellation_details": {"comment": reason}} if reason else {}
            if cancel_now:
                self.stripe.subscriptions.cancel(subscription.id, params=details)
            else:
                self.stripe.subscriptions.update(subscription.id, params={"cancel_at_period_end": True, **details})
            return True

        return self._execute("cancel_subscription", cancel, False)

    def continue_subscription(self, user):
        def resume():
            subscription = self._active_subscription(user)
            if subscription is None or not getattr(subscription, "cancel_at_period_end", False):
                return False
            self.stripe.subscriptions.update(subscription.id, params={"cancel_at_period_end": False})
            return True

        return self._execute("continue_subscription", resume, False)

    def update_subscription(self, user, options):
        def update():
            subscription = self._active_subscription(user)
            if subscription is None:
                return None
            return _subscription(self.stripe.subscriptions.update(subscription.id, params=options))

        return self._execute("update_subscription", update)

    def current_subscription(self, user):
        def fetch():
            subscription = self._active_subscription(user)
            return _subscription(subscription) if subscription is not None else None

        return self._execute("current_subscription", fetch)

    def list_subscriptions(self, user, filters=None):
        if not user.external_customer_id:
            return []

        def fetch():
            params = {"customer": user.external_customer_id, "limit": LIST_LIMIT}
            params.update(filters or {})
            return [_subscription(item) for item in self.stripe.subscriptions.list(params=params).data]

        return self._execute("list_subscriptions", fetch, [])

    # -------------------------------------------------------------------
    # Checkout and order lifecycle
    # -------------------------------------------------------------------
    def _checkout_coupons(self, order):
        """One coupon per applied discount, or None if any is refused.

        Created ahead of the session so a retried session call reuses them.
        """
        coupons = []
        for applied in order.discounts or []:
            params = {
                "name": applied.code or "Discount",
                "duration": "once",
                "amount_off": to_cents(applied.amount_applied),
                "currency": order.currency.lower(),
                "metadata": {"discount_id": str(applied.discount_id)},
            }
            options = {"idempotency_key": f"checkout-coupon-{order.id}-{applied.discount_id}"}
            coupon = self._execute(
                "create_coupon",
                lambda params=params, options=options: self.stripe.coupons.create(params=params, options=options),
            )
            if coupon is None:
                return None
            coupons.append({"coupon": coupon.id})
        return coupons

    def get_checkout_url(self, order):
        line_items = []
        for item in order.items or []:
            price = self._load(Price, item.price_id)
            if price is not None and price.external_price_id:
                line_items.append({"price": price.external_price_id, "quantity": item.quantity})

        if not line_items:
            logger.warning("Checkout has no provider line items", order_id=str(order.id))
            return False

        coupons = self._checkout_coupons(order)
        if coupons is None:
            return False

        def create():
            mode = "subscription" if order.is_subscription else "payment"
            base_url = self.settings.app_url
            params = {
                "mode": mode,
                "line_items": line_items,
                "client_reference_id": str(order.id),
                "success_url": f"{base_url}/checkout/success?order={order.id}",
                "cancel_url": f"{base_url}/checkout/cancel?order={order.id}",
                "metadata": {"order_id": str(order.id)},
            }
            if mode == "payment":
                params["payment_intent_data"] = {"metadata": {"order_id": str(order.id)}}

            customer_id = self._customer_id(self._load(User, order.user_id))
            if customer_id:
                params["customer"] = customer_id
            if coupons:
                params["discounts"] = coupons

            session = self.stripe.checkout.sessions.create(params=params)
            order.attach_checkout_session(session.id)
            self._save(order)
            return session.url if session.status == "open" else False

        return self._execute("get_checkout_url", create, False)

    def process_checkout_success(self, order):
        if not order.external_checkout_id:
            return False

        def complete():
            session = self.stripe.checkout.sessions.retrieve(order.external_checkout_id)
            order.mark_processing(
                external_order_id=getattr(session, "payment_intent", None) or getattr(session, "subscription", None),
                external_payment_id=getattr(session, "invoice", None),
            )
            self._save(order)
            return True

        return self._execute("process_checkout_success", complete, False)

    def process_checkout_cancel(self, order):
        def cancel():
            order.clear_checkout_session()
            self._save(order)
            return True

        return self._execute("process_checkout_cancel", cancel, False)

    def refund_order(self, order, reason=None, notes=None):
        if not order.external_order_id or not order.can_refund:
            return False

        def refund():
            result = self.stripe.refunds.create(
                params={
                    "payment_intent": order.external_order_id,
                    "reason": _REFUND_REASONS.get(reason, "requested_by_customer"),
                    "metadata": {"order_id": str(order.id), "notes": notes or ""},
                }
            )
            order.mark_refunded(reason=reason, notes=notes)
            self._save(order)
            return result.status == "succeeded"

        return self._execute("refund_order", refund, False)

    def cancel_order(self, order):
        if not order.can_cancel:
            return False

        def cancel():
            if order.external_checkout_id:
                session = self.stripe.checkout.sessions.retrieve(order.external_checkout_id)
                if session.status == "open":
                    self.stripe.checkout.sessions.expire(order.external_checkout_id)
            order.mark_cancelled()
            self._save(order)
            return True

        return self._execute("cancel_order", cancel, False)

    def get_billing_portal_url(self, user, return_url=None):
        def create():
            customer_id = self._customer_id(user)
            if not customer_id:
                return None
            session = self.stripe.billing_portal.sessions.create(
                params={"customer": customer_id, "return_url": return_url or f"{self.settings.app_url}/account"}
            )
            return session.url

        return self._execute("get_billing_portal_url", create)

    def find_invoice(self, invoice_id, params=None):
        return self._execute(
            "find_invoice",
            lambda: _invoice(self.stripe.invoices.retrieve(invoice_id, params=params or {})),
        )
