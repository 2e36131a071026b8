"""Payment and payout provider access.

Provides payment_processor() / payout_processor() returning the active
managers, plus setters so tests can swap in a manager or a bare driver.
"""

from storefront.providers.manager import PaymentManager, PayoutManager

_payment_processor = None
_payout_processor = None


def payment_processor():
    """Return the active payment processor. Defaults to a PaymentManager built from the environment."""
    global _payment_processor
    if _payment_processor is None:
        _payment_processor = PaymentManager()
    return _payment_processor


def payout_processor():
    """Return the active payout processor. Defaults to a PayoutManager built from the environment."""
    global _payout_processor
    if _payout_processor is None:
        _payout_processor = PayoutManager()
    return _payout_processor


def set_payment_processor(processor) -> None:
    global _payment_processor
    _payment_processor = processor


def set_payout_processor(processor) -> None:
    global _payout_processor
    _payout_processor = processor


def reset_providers() -> None:
    """Drop overrides and memoized drivers; the next call re-reads the environment."""
    global _payment_processor, _payout_processor
    _payment_processor = None
    _payout_processor = None
