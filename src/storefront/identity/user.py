"""User aggregate: purchaser identity plus the seller's payout-account link.

Only the fields the fulfillment core needs live here. The payout fields
mirror the connected account at the payment provider and are written by
the payout driver whenever it learns something new about that account.
"""

import json
from datetime import UTC, datetime

from protean.fields import Boolean, DateTime, String, Text

from storefront.domain import storefront


@storefront.aggregate
class User:
    email = String(required=True, max_length=254)
    name = String(max_length=200)
    external_customer_id = String(max_length=255)

    # Connected payout account
    external_payout_account_id = String(max_length=255)
    payouts_enabled = Boolean(default=False)
    payouts_onboarded_at = DateTime()
    payouts_capabilities = Text()  # JSON object, capability -> status

    @classmethod
    def register(cls, email, name=None):
        return cls(email=email, name=name)

    @property
    def has_payout_account(self) -> bool:
        return bool(self.external_payout_account_id)

    @property
    def capabilities(self) -> dict:
        return json.loads(self.payouts_capabilities) if self.payouts_capabilities else {}

    def connect_payout_account(self, account_id, enabled, capabilities=None, details_submitted=False):
        """Record a freshly created connected account."""
        self.external_payout_account_id = account_id
        self.payouts_enabled = bool(enabled)
        self.payouts_onboarded_at = datetime.now(UTC) if details_submitted else None
        self.payouts_capabilities = json.dumps(capabilities or {}, sort_keys=True)

    def sync_payout_onboarding(self, enabled, capabilities=None) -> bool:
        """Refresh cached onboarding state. Returns True when anything changed."""
        encoded = json.dumps(capabilities or {}, sort_keys=True)
        if bool(enabled) == bool(self.payouts_enabled) and encoded == (self.payouts_capabilities or "{}"):
            return False

        if enabled and not self.payouts_onboarded_at:
            self.payouts_onboarded_at = datetime.now(UTC)
        self.payouts_enabled = bool(enabled)
        self.payouts_capabilities = encoded
        return True

    def disconnect_payout_account(self):
        self.external_payout_account_id = None
        self.payouts_enabled = False
        self.payouts_onboarded_at = None
        self.payouts_capabilities = None

    def link_customer(self, customer_id):
        self.external_customer_id = customer_id
