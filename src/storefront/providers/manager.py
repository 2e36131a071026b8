"""Driver managers: pick a driver by configuration and delegate to it.

A manager exposes the driver contract itself. Callers never check whether
payments are enabled; an unknown or missing driver name resolves to the
Null driver, which answers every call with an empty result.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable

import structlog

from storefront.config import ProviderSettings
from storefront.providers.payments.null_driver import NullPaymentDriver
from storefront.providers.payments.port import PaymentProcessor
from storefront.providers.payouts.null_driver import NullPayoutDriver
from storefront.providers.payouts.port import PayoutProcessor

logger = structlog.get_logger(__name__)

NULL_DRIVER = "null"


class DriverManager(ABC):
    contract: type
    setting: str

    def __init__(self, settings: ProviderSettings | None = None) -> None:
        self.settings = settings or ProviderSettings.from_env()
        self._factories: dict[str, Callable] = {
            NULL_DRIVER: self.create_null_driver,
            "stripe": self.create_stripe_driver,
        }
        self._drivers: dict[str, object] = {}

    def get_default_driver(self) -> str:
        return (getattr(self.settings, self.setting, None) or NULL_DRIVER).lower()

    def driver(self, name: str | None = None):
        """Return the memoized driver called ``name`` (default: configured one)."""
        name = (name or self.get_default_driver()).lower()
        if name not in self._factories:
            logger.warning(
                "Unknown provider driver, using null driver",
                driver=name,
                contract=self.contract.__name__,
            )
            name = NULL_DRIVER

        if name not in self._drivers:
            self._drivers[name] = self._factories[name](self.settings)
        return self._drivers[name]

    def extend(self, name: str, factory: Callable) -> None:
        """Register a custom driver factory taking ``ProviderSettings``."""
        self._factories[name.lower()] = factory
        self._drivers.pop(name.lower(), None)

    def forget_drivers(self) -> None:
        self._drivers.clear()

    @abstractmethod
    def create_null_driver(self, settings):
        """Build the zero-I/O driver for this contract."""

    @abstractmethod
    def create_stripe_driver(self, settings):
        """Build the Stripe driver for this contract."""

    def __getattr__(self, item):
        if item.startswith("_") or item not in self.contract.__abstractmethods__:
            raise AttributeError(f"{type(self).__name__} has no attribute {item!r}")
        return getattr(self.driver(), item)


class PaymentManager(DriverManager):
    contract = PaymentProcessor
    setting = "payment_driver"

    def create_null_driver(self, settings):
        return NullPaymentDriver()

    def create_stripe_driver(self, settings):
        from storefront.providers.payments.stripe_driver import StripePaymentDriver

        return StripePaymentDriver(settings.stripe_secret, settings=settings)


class PayoutManager(DriverManager):
    contract = PayoutProcessor
    setting = "payout_driver"

    def create_null_driver(self, settings):
        return NullPayoutDriver()

    def create_stripe_driver(self, settings):
        from storefront.providers.payouts.stripe_driver import StripePayoutDriver

        return StripePayoutDriver(settings.stripe_secret, settings=settings)
