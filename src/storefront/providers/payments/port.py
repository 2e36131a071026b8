"""Payment processor port.

The payment-side twin of ``PayoutProcessor``: catalogue sync, customers,
payment methods, subscriptions and the checkout/refund lifecycle. Drivers
map every provider failure to ``None``, ``False`` or an empty list.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class ProductData:
    id: str
    name: str
    active: bool = True
    default_price: str | None = None


@dataclass(frozen=True)
class PriceData:
    id: str
    product: str | None
    unit_amount: float
    currency: str
    interval: str | None = None
    active: bool = True


@dataclass(frozen=True)
class CustomerData:
    id: str
    email: str | None = None
    name: str | None = None


@dataclass(frozen=True)
class PaymentMethodData:
    id: str
    brand: str | None = None
    last4: str | None = None
    exp_month: int | None = None
    exp_year: int | None = None
    is_default: bool = False


@dataclass(frozen=True)
class CouponData:
    id: str
    name: str | None = None
    amount_off: float | None = None
    percent_off: float | None = None


@dataclass(frozen=True)
class SubscriptionData:
    id: str
    status: str
    price_id: str | None = None
    current_period_end: datetime | None = None
    cancel_at_period_end: bool = False


@dataclass(frozen=True)
class InvoiceData:
    id: str
    status: str | None = None
    amount_due: float = 0.0
    hosted_invoice_url: str | None = None


class PaymentProcessor(ABC):
    """Abstract payment processor interface."""

    # Products
    @abstractmethod
    def create_product(self, product) -> ProductData | None: ...

    @abstractmethod
    def get_product(self, product) -> ProductData | None: ...

    @abstractmethod
    def update_product(self, product) -> ProductData | None: ...

    @abstractmethod
    def delete_product(self, product) -> bool: ...

    @abstractmethod
    def list_products(self, filters: dict | None = None) -> list[ProductData]: ...

    # Prices
    @abstractmethod
    def create_price(self, price) -> PriceData | None: ...

    @abstractmethod
    def get_price(self, price) -> PriceData | None: ...

    @abstractmethod
    def update_price(self, price) -> PriceData | None: ...

    @abstractmethod
    def change_price(self, price) -> PriceData | None: ...

    @abstractmethod
    def delete_price(self, price) -> bool: ...

    @abstractmethod
    def list_prices(self, product, filters: dict | None = None) -> list[PriceData]: ...

    # Payment methods
    @abstractmethod
    def create_payment_method(self, user, payment_method_id: str) -> PaymentMethodData | None: ...

    @abstractmethod
    def list_payment_methods(self, user) -> list[PaymentMethodData]: ...

    @abstractmethod
    def update_payment_method(
        self, user, payment_method_id: str, is_default: bool = False
    ) -> PaymentMethodData | None: ...

    @abstractmethod
    def delete_payment_method(self, user, payment_method_id: str) -> bool: ...

    # Customers
    @abstractmethod
    def search_customer(self, field: str, value: str) -> CustomerData | None: ...

    @abstractmethod
    def create_customer(self, user, force: bool = False) -> CustomerData | None: ...

    @abstractmethod
    def get_customer(self, user) -> CustomerData | None: ...

    @abstractmethod
    def delete_customer(self, user) -> bool: ...

    @abstractmethod
    def sync_customer_information(self, user) -> bool: ...

    # Coupons
    @abstractmethod
    def create_coupon(self, discount, amount: float | None = None) -> CouponData | None: ...

    # Subscriptions
    @abstractmethod
    def start_subscription(self, order) -> SubscriptionData | None: ...

    @abstractmethod
    def swap_subscription(self, user, price) -> SubscriptionData | None: ...

    @abstractmethod
    def cancel_subscription(self, user, cancel_now: bool = False, reason: str | None = None) -> bool: ...

    @abstractmethod
    def continue_subscription(self, user) -> bool: ...

    @abstractmethod
    def update_subscription(self, user, options: dict) -> SubscriptionData | None: ...

    @abstractmethod
    def current_subscription(self, user) -> SubscriptionData | None: ...

    @abstractmethod
    def list_subscriptions(self, user, filters: dict | None = None) -> list[SubscriptionData]: ...

    # Checkout and order lifecycle
    @abstractmethod
    def get_checkout_url(self, order) -> str | bool: ...

    @abstractmethod
    def process_checkout_success(self, order) -> bool: ...

    @abstractmethod
    def process_checkout_cancel(self, order) -> bool: ...

    @abstractmethod
    def refund_order(self, order, reason: str | None = None, notes: str | None = None) -> bool: ...

    @abstractmethod
    def cancel_order(self, order) -> bool: ...

    @abstractmethod
    def get_billing_portal_url(self, user, return_url: str | None = None) -> str | None: ...

    @abstractmethod
    def find_invoice(self, invoice_id: str, params: dict | None = None) -> InvoiceData | None: ...
