"""Stripe Connect payout driver.

Keeps the seller's ``User`` record in step with the connected account and
refuses to create payouts for sellers who cannot receive them. Every
provider call goes through the shared retry wrapper, so failures come back
as ``None``/``False``/``[]`` and never as exceptions.
"""

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from storefront.identity.user import User
from storefront.payouts.payout import Payout, PayoutStatus
from storefront.providers.payouts.port import (
    Balance,
    BalanceAmount,
    ConnectedAccount,
    PayoutData,
    PayoutProcessor,
    TransferData,
)
from storefront.providers.stripe_base import StripeDriver, as_dict, from_cents, from_timestamp, to_cents

logger = structlog.get_logger(__name__)

NO_PAYOUT_ACCOUNT = "no connected payout account"
ONBOARDING_INCOMPLETE = "onboarding incomplete"

_PAYOUT_STATUS_MAP = {
    "paid": PayoutStatus.COMPLETED,
    "failed": PayoutStatus.FAILED,
    "canceled": PayoutStatus.FAILED,
}

LIST_LIMIT = 100


def map_payout_status(provider_status: str | None) -> PayoutStatus:
    return _PAYOUT_STATUS_MAP.get(provider_status or "", PayoutStatus.PENDING)


def _account(obj) -> ConnectedAccount:
    return ConnectedAccount(
        id=obj.id,
        email=getattr(obj, "email", None),
        details_submitted=bool(getattr(obj, "details_submitted", False)),
        charges_enabled=bool(getattr(obj, "charges_enabled", False)),
        payouts_enabled=bool(getattr(obj, "payouts_enabled", False)),
        capabilities=as_dict(getattr(obj, "capabilities", None)),
        country=getattr(obj, "country", None),
        default_currency=getattr(obj, "default_currency", None),
    )


def _balance(obj) -> Balance:
    return Balance(
        available=[BalanceAmount(from_cents(b.amount), b.currency) for b in (obj.available or [])],
        pending=[BalanceAmount(from_cents(b.amount), b.currency) for b in (getattr(obj, "pending", None) or [])],
    )


def _payout_data(obj, payout_id=None) -> PayoutData:
    return PayoutData(
        external_payout_id=obj.id,
        amount=from_cents(obj.amount),
        currency=obj.currency,
        status=map_payout_status(obj.status).value,
        payout_id=payout_id,
        arrival_date=from_timestamp(getattr(obj, "arrival_date", None)),
        failure_message=getattr(obj, "failure_message", None),
    )


def _transfer(obj) -> TransferData:
    return TransferData(
        id=obj.id,
        amount=from_cents(obj.amount),
        currency=obj.currency,
        destination=getattr(obj, "destination", None),
        reversed=bool(getattr(obj, "reversed", False)),
        amount_reversed=from_cents(getattr(obj, "amount_reversed", 0)),
    )


class StripePayoutDriver(StripeDriver, PayoutProcessor):
    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    def _save_user(self, user):
        current_domain.repository_for(User).add(user)

    def _save_payout(self, payout):
        current_domain.repository_for(Payout).add(payout)

    def _seller_for(self, payout) -> User | None:
        try:
            return current_domain.repository_for(User).get(payout.seller_id)
        except ObjectNotFoundError:
            return None

    @staticmethod
    def _on_account(user) -> dict:
        return {"stripe_account": user.external_payout_account_id}

    # -------------------------------------------------------------------
    # Connected accounts
    # -------------------------------------------------------------------
    def create_connected_account(self, user, options=None):
        if user.has_payout_account:
            return self.get_connected_account(user)

        def create():
            params = {
                "type": self.settings.connect_account_type,
                "email": user.email,
                "business_type": "individual",
                "capabilities": {"transfers": {"requested": True}},
                "metadata": {"user_id": str(user.id), "email": user.email},
            }
            params.update(options or {})
            account = _account(self.stripe.accounts.create(params=params))

            user.connect_payout_account(
                account.id,
                enabled=account.onboarding_complete,
                capabilities=account.capabilities,
                details_submitted=account.details_submitted,
            )
            self._save_user(user)
            logger.info("Connected payout account created", user_id=str(user.id), account_id=account.id)
            return account

        return self._execute("create_connected_account", create)

    def get_connected_account(self, user):
        if not user.has_payout_account:
            return None

        return self._execute(
            "get_connected_account",
            lambda: _account(self.stripe.accounts.retrieve(user.external_payout_account_id)),
        )

    def update_connected_account(self, user, options):
        if not user.has_payout_account:
            return None

        return self._execute(
            "update_connected_account",
            lambda: _account(self.stripe.accounts.update(user.external_payout_account_id, params=options)),
        )

    def delete_connected_account(self, user):
        if not user.has_payout_account:
            return False

        def delete():
            result = self.stripe.accounts.delete(user.external_payout_account_id)
            user.disconnect_payout_account()
            self._save_user(user)
            return bool(getattr(result, "deleted", False))

        return self._execute("delete_connected_account", delete, False)

    def get_account_onboarding_url(self, user, return_url=None, refresh_url=None):
        if not user.has_payout_account and self.create_connected_account(user) is None:
            return None

        def link():
            account_link = self.stripe.account_links.create(
                params={
                    "account": user.external_payout_account_id,
                    "refresh_url": refresh_url or f"{self.settings.app_url}/payouts/onboarding/refresh",
                    "return_url": return_url or f"{self.settings.app_url}/payouts/onboarding/return",
                    "type": "account_onboarding",
                }
            )
            return account_link.url

        return self._execute("get_account_onboarding_url", link)

    def is_account_onboarding_complete(self, user):
        if not user.has_payout_account:
            return False

        def check():
            account = _account(self.stripe.accounts.retrieve(user.external_payout_account_id))
            complete = account.onboarding_complete
            if user.sync_payout_onboarding(complete, account.capabilities):
                self._save_user(user)
                logger.info(
                    "Payout onboarding state refreshed",
                    user_id=str(user.id),
                    payouts_enabled=complete,
                )
            return complete

        return self._execute("is_account_onboarding_complete", check, False)

    def get_account_dashboard_url(self, user):
        if not user.has_payout_account:
            return None

        return self._execute(
            "get_account_dashboard_url",
            lambda: self.stripe.accounts.login_links.create(user.external_payout_account_id).url,
        )

    # -------------------------------------------------------------------
    # Balances
    # -------------------------------------------------------------------
    def get_balance(self, user):
        if not user.has_payout_account or not user.payouts_enabled:
            return None

        return self._execute(
            "get_balance",
            lambda: _balance(self.stripe.balance.retrieve(options=self._on_account(user))),
        )

    def get_platform_balance(self):
        return self._execute("get_platform_balance", lambda: _balance(self.stripe.balance.retrieve()))

    # -------------------------------------------------------------------
    # Payouts
    # -------------------------------------------------------------------
    def create_payout(self, payout):
        seller = self._seller_for(payout)

        if seller is None or not seller.has_payout_account:
            payout.mark_failed(NO_PAYOUT_ACCOUNT)
            self._save_payout(payout)
            return None

        if not seller.payouts_enabled:
            payout.mark_failed(ONBOARDING_INCOMPLETE)
            self._save_payout(payout)
            return None

        def create():
            result = self.stripe.payouts.create(
                params={
                    "amount": to_cents(payout.amount),
                    "currency": (payout.currency or self.settings.currency).lower(),
                    "statement_descriptor": self.settings.statement_descriptor.upper()[:22],
                    "metadata": {"payout_id": str(payout.id), "seller_id": str(payout.seller_id)},
                },
                options=self._on_account(seller),
            )
            data = _payout_data(result, payout_id=str(payout.id))
            payout.record_provider_status(
                PayoutStatus(data.status),
                external_payout_id=data.external_payout_id,
                failure_reason=data.failure_message,
            )
            self._save_payout(payout)
            return data

        return self._execute("create_payout", create)

    def get_payout(self, payout):
        if not payout.external_payout_id:
            return None
        seller = self._seller_for(payout)
        if seller is None or not seller.has_payout_account:
            return None

        def fetch():
            result = self.stripe.payouts.retrieve(payout.external_payout_id, options=self._on_account(seller))
            data = _payout_data(result, payout_id=str(payout.id))
            payout.record_provider_status(PayoutStatus(data.status), failure_reason=data.failure_message)
            self._save_payout(payout)
            return data

        return self._execute("get_payout", fetch)

    def cancel_payout(self, payout):
        if not payout.external_payout_id:
            return False
        seller = self._seller_for(payout)
        if seller is None or not seller.has_payout_account:
            return False

        def cancel():
            self.stripe.payouts.cancel(payout.external_payout_id, options=self._on_account(seller))
            return True

        return self._execute("cancel_payout", cancel, False)

    def retry_payout(self, payout):
        return self.create_payout(payout)

    def list_payouts(self, user, filters=None):
        if not user.has_payout_account:
            return []

        def fetch():
            params = {"limit": LIST_LIMIT}
            params.update(filters or {})
            result = self.stripe.payouts.list(params=params, options=self._on_account(user))
            return [_payout_data(item) for item in result.data]

        return self._execute("list_payouts", fetch, [])

    # -------------------------------------------------------------------
    # Transfers
    # -------------------------------------------------------------------
    def create_transfer(self, user, amount, metadata=None):
        if not user.has_payout_account:
            return None

        return self._execute(
            "create_transfer",
            lambda: _transfer(
                self.stripe.transfers.create(
                    params={
                        "amount": to_cents(amount),
                        "currency": self.settings.currency,
                        "destination": user.external_payout_account_id,
                        "metadata": metadata or {},
                    }
                )
            ),
        )

    def get_transfer(self, transfer_id):
        return self._execute("get_transfer", lambda: _transfer(self.stripe.transfers.retrieve(transfer_id)))

    def reverse_transfer(self, transfer_id, amount=None):
        def reverse():
            params = {"amount": to_cents(amount)} if amount else {}
            self.stripe.transfers.reversals.create(transfer_id, params=params)
            return _transfer(self.stripe.transfers.retrieve(transfer_id))

        return self._execute("reverse_transfer", reverse)
