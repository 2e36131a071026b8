"""Payout driver used when payouts are disabled. Performs no I/O."""

from storefront.providers.payouts.port import PayoutProcessor


class NullPayoutDriver(PayoutProcessor):
    def create_connected_account(self, user, options=None):
        return None

    def get_connected_account(self, user):
        return None

    def update_connected_account(self, user, options):
        return None

    def delete_connected_account(self, user):
        return False

    def get_account_onboarding_url(self, user, return_url=None, refresh_url=None):
        return None

    def is_account_onboarding_complete(self, user):
        return False

    def get_account_dashboard_url(self, user):
        return None

    def get_balance(self, user):
        return None

    def get_platform_balance(self):
        return None

    def create_payout(self, payout):
        return None

    def get_payout(self, payout):
        return None

    def cancel_payout(self, payout):
        return False

    def retry_payout(self, payout):
        return None

    def list_payouts(self, user, filters=None):
        return []

    def create_transfer(self, user, amount, metadata=None):
        return None

    def get_transfer(self, transfer_id):
        return None

    def reverse_transfer(self, transfer_id, amount=None):
        return None
