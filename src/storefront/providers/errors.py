"""Provider error taxonomy.

Drivers never let provider failures escape. The only exception that does
is ``ProviderConfigurationError``: a driver that cannot be built at all.
"""

from enum import Enum

import stripe


class ProviderConfigurationError(Exception):
    """A driver was requested without the settings it needs."""


class ErrorClass(Enum):
    RATE_LIMIT = "rate_limit"
    API = "api"
    UNEXPECTED = "unexpected"


def classify_stripe_error(exc: Exception) -> ErrorClass:
    if isinstance(exc, stripe.RateLimitError):
        return ErrorClass.RATE_LIMIT
    if isinstance(exc, stripe.StripeError):
        if getattr(exc, "http_status", None) == 429:
            return ErrorClass.RATE_LIMIT
        return ErrorClass.API
    return ErrorClass.UNEXPECTED
