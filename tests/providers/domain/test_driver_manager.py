import pytest

from storefront.config import ProviderSettings
from storefront.providers.errors import ProviderConfigurationError
from storefront.providers.manager import DriverManager, PaymentManager, PayoutManager
from storefront.providers.payments.null_driver import NullPaymentDriver
from storefront.providers.payouts.null_driver import NullPayoutDriver
from storefront.providers.payouts.stripe_driver import StripePayoutDriver


class TestSettings:
    def test_defaults_to_null_drivers(self, monkeypatch):
        for name in ("PAYMENT_DRIVER", "PAYOUT_DRIVER", "STRIPE_SECRET", "STRIPE_WEBHOOK_SECRET"):
            monkeypatch.delenv(name, raising=False)

        settings = ProviderSettings.from_env()

        assert settings.payment_driver == "null"
        assert settings.payout_driver == "null"
        assert settings.stripe_secret is None

    def test_reads_the_environment(self, monkeypatch):
        monkeypatch.setenv("PAYMENT_DRIVER", "Stripe")
        monkeypatch.setenv("STRIPE_SECRET", "sk_test_123")
        monkeypatch.setenv("APP_URL", "https://shop.example.com/")

        settings = ProviderSettings.from_env()

        assert settings.payment_driver == "stripe"
        assert settings.stripe_secret == "sk_test_123"
        assert settings.app_url == "https://shop.example.com"


class TestDriverSelection:
    def test_null_driver_by_default(self):
        manager = PaymentManager(ProviderSettings())
        assert isinstance(manager.driver(), NullPaymentDriver)

    def test_unknown_driver_falls_back_to_null(self):
        manager = PayoutManager(ProviderSettings(payout_driver="paypal"))
        assert isinstance(manager.driver(), NullPayoutDriver)

    def test_drivers_are_memoized(self):
        manager = PayoutManager(ProviderSettings())
        assert manager.driver() is manager.driver()

    def test_stripe_without_secret_is_a_configuration_error(self):
        manager = PayoutManager(ProviderSettings(payout_driver="stripe"))
        with pytest.raises(ProviderConfigurationError, match="Stripe secret is not defined."):
            manager.driver()

    def test_stripe_driver_is_built_with_a_secret(self):
        manager = PayoutManager(ProviderSettings(payout_driver="stripe", stripe_secret="sk_test_123"))
        assert isinstance(manager.driver(), StripePayoutDriver)

    def test_custom_driver_can_be_registered(self):
        class Recorder(NullPayoutDriver):
            pass

        manager = PayoutManager(ProviderSettings(payout_driver="recorder"))
        manager.extend("recorder", lambda settings: Recorder())
        assert isinstance(manager.driver(), Recorder)


class TestManagerHooks:
    def test_base_manager_cannot_be_built(self):
        with pytest.raises(TypeError):
            DriverManager(ProviderSettings())

    def test_manager_must_build_every_driver(self):
        class NullOnlyManager(DriverManager):
            contract = PayoutManager.contract
            setting = "payout_driver"

            def create_null_driver(self, settings):
                return NullPayoutDriver()

        with pytest.raises(TypeError, match="create_stripe_driver"):
            NullOnlyManager(ProviderSettings())


class TestDelegation:
    def test_contract_calls_reach_the_driver(self):
        manager = PaymentManager(ProviderSettings())
        assert manager.get_checkout_url(object()) is False

    def test_non_contract_attributes_are_not_proxied(self):
        manager = PaymentManager(ProviderSettings())
        with pytest.raises(AttributeError):
            manager.not_a_driver_method
