"""Provider settings read from the process environment."""

import os
from dataclasses import dataclass


def _env(name: str, default: str | None = None) -> str | None:
    value = os.getenv(name)
    return value if value not in (None, "") else default


@dataclass(frozen=True)
class ProviderSettings:
    payment_driver: str = "null"
    payout_driver: str = "null"
    stripe_secret: str | None = None
    stripe_webhook_secret: str | None = None
    connect_account_type: str = "express"
    statement_descriptor: str = "STOREFRONT PAYOUT"
    app_url: str = "http://localhost:8000"
    currency: str = "usd"

    @classmethod
    def from_env(cls) -> "ProviderSettings":
        return cls(
            payment_driver=(_env("PAYMENT_DRIVER", "null") or "null").lower(),
            payout_driver=(_env("PAYOUT_DRIVER", "null") or "null").lower(),
            stripe_secret=_env("STRIPE_SECRET"),
            stripe_webhook_secret=_env("STRIPE_WEBHOOK_SECRET"),
            connect_account_type=_env("STRIPE_CONNECT_ACCOUNT_TYPE", "express"),
            statement_descriptor=_env("PAYOUT_STATEMENT_DESCRIPTOR", "STOREFRONT PAYOUT"),
            app_url=(_env("APP_URL", "http://localhost:8000") or "").rstrip("/"),
            currency=(_env("STORE_CURRENCY", "usd") or "usd").lower(),
        )
