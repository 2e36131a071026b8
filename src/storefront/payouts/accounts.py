"""Seller payout-account lifecycle: connect, refresh onboarding, disconnect.

The payout driver writes the account state onto the User; these commands
only choose the user and return what the driver reported.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.identity.user import User
from storefront.providers import payout_processor

logger = structlog.get_logger(__name__)


@storefront.command(part_of="User")
class ConnectPayoutAccount:
    user_id = Identifier(required=True)
    return_url = String(max_length=500)
    refresh_url = String(max_length=500)


@storefront.command(part_of="User")
class SyncPayoutOnboarding:
    user_id = Identifier(required=True)


@storefront.command(part_of="User")
class DisconnectPayoutAccount:
    user_id = Identifier(required=True)


@storefront.command_handler(part_of=User)
class PayoutAccountHandler:
    @handle(ConnectPayoutAccount)
    def connect_payout_account(self, command):
        """Create the connected account if needed and return its onboarding link."""
        user = current_domain.repository_for(User).get(command.user_id)
        url = payout_processor().get_account_onboarding_url(user, command.return_url, command.refresh_url)
        if url is None:
            logger.warning("Payout onboarding link unavailable", user_id=str(user.id))
        return url

    @handle(SyncPayoutOnboarding)
    def sync_payout_onboarding(self, command):
        user = current_domain.repository_for(User).get(command.user_id)
        return payout_processor().is_account_onboarding_complete(user)

    @handle(DisconnectPayoutAccount)
    def disconnect_payout_account(self, command):
        user = current_domain.repository_for(User).get(command.user_id)
        return payout_processor().delete_connected_account(user)
