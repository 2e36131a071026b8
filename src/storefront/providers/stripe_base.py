"""Plumbing shared by the Stripe payment and payout drivers."""

import time
from datetime import UTC, datetime

import stripe

from storefront.config import ProviderSettings
from storefront.providers.errors import ProviderConfigurationError, classify_stripe_error
from storefront.providers.retry import DEFAULT_POLICY, RetryPolicy, execute_with_error_handling


def to_cents(amount) -> int:
    return int(round(float(amount or 0) * 100))


def from_cents(amount) -> float:
    return (amount or 0) / 100


def from_timestamp(value) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromtimestamp(int(value), UTC)


def as_dict(value) -> dict:
    """Stripe objects are dict subclasses; test doubles may be plain dicts."""
    return dict(value) if value else {}


class StripeDriver:
    """Base for drivers talking to Stripe through a ``StripeClient``.

    ``client`` and ``sleep`` can be injected so the drivers are exercised
    without network access or real waiting.
    """

    def __init__(
        self,
        secret: str | None,
        settings: ProviderSettings | None = None,
        client=None,
        sleep=time.sleep,
        policy: RetryPolicy = DEFAULT_POLICY,
    ) -> None:
        if client is None and not secret:
            raise ProviderConfigurationError("Stripe secret is not defined.")

        self.settings = settings or ProviderSettings()
        self.stripe = client if client is not None else stripe.StripeClient(secret)
        self.policy = policy
        self._sleep = sleep

    def _execute(self, method: str, callback, default=None):
        return execute_with_error_handling(
            method,
            callback,
            default,
            classify=classify_stripe_error,
            policy=self.policy,
            sleep=self._sleep,
        )
