"""Payout processor port.

Every payout driver (Stripe Connect, the Null driver, test doubles)
implements this contract. Operations return value objects on success and
``None``, ``False`` or an empty list when the provider cannot help.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class ConnectedAccount:
    id: str
    email: str | None = None
    details_submitted: bool = False
    charges_enabled: bool = False
    payouts_enabled: bool = False
    capabilities: dict = field(default_factory=dict)
    country: str | None = None
    default_currency: str | None = None

    @property
    def onboarding_complete(self) -> bool:
        return self.details_submitted and self.charges_enabled and self.payouts_enabled


@dataclass(frozen=True)
class BalanceAmount:
    amount: float
    currency: str


@dataclass(frozen=True)
class Balance:
    available: list[BalanceAmount] = field(default_factory=list)
    pending: list[BalanceAmount] = field(default_factory=list)


@dataclass(frozen=True)
class PayoutData:
    external_payout_id: str
    amount: float
    currency: str
    status: str
    payout_id: str | None = None
    arrival_date: datetime | None = None
    failure_message: str | None = None


@dataclass(frozen=True)
class TransferData:
    id: str
    amount: float
    currency: str
    destination: str | None = None
    reversed: bool = False
    amount_reversed: float = 0.0


class PayoutProcessor(ABC):
    """Abstract payout processor interface."""

    # Connected accounts
    @abstractmethod
    def create_connected_account(self, user, options: dict | None = None) -> ConnectedAccount | None: ...

    @abstractmethod
    def get_connected_account(self, user) -> ConnectedAccount | None: ...

    @abstractmethod
    def update_connected_account(self, user, options: dict) -> ConnectedAccount | None: ...

    @abstractmethod
    def delete_connected_account(self, user) -> bool: ...

    @abstractmethod
    def get_account_onboarding_url(
        self, user, return_url: str | None = None, refresh_url: str | None = None
    ) -> str | None: ...

    @abstractmethod
    def is_account_onboarding_complete(self, user) -> bool: ...

    @abstractmethod
    def get_account_dashboard_url(self, user) -> str | None: ...

    # Balances
    @abstractmethod
    def get_balance(self, user) -> Balance | None: ...

    @abstractmethod
    def get_platform_balance(self) -> Balance | None: ...

    # Payouts
    @abstractmethod
    def create_payout(self, payout) -> PayoutData | None: ...

    @abstractmethod
    def get_payout(self, payout) -> PayoutData | None: ...

    @abstractmethod
    def cancel_payout(self, payout) -> bool: ...

    @abstractmethod
    def retry_payout(self, payout) -> PayoutData | None: ...

    @abstractmethod
    def list_payouts(self, user, filters: dict | None = None) -> list[PayoutData]: ...

    # Transfers
    @abstractmethod
    def create_transfer(self, user, amount: float, metadata: dict | None = None) -> TransferData | None: ...

    @abstractmethod
    def get_transfer(self, transfer_id: str) -> TransferData | None: ...

    @abstractmethod
    def reverse_transfer(self, transfer_id: str, amount: float | None = None) -> TransferData | None: ...
