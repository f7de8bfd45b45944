from datetime import datetime, timezone
from typing import TYPE_CHECKING

from ...errors import MissingFromPayload
from ...messages import FetchNextBalancesRequest, FetchNextBalancesResponse
from ...models import PSPAccount, PSPBalance

if TYPE_CHECKING:
    from .plugin import Plugin


def fetch_next_balances(
    plugin: "Plugin", req: FetchNextBalancesRequest
) -> FetchNextBalancesResponse:
    client = plugin._require_client()
    if not req.from_payload:
        raise MissingFromPayload()
    account = PSPAccount.from_payload(req.from_payload)

    record = client.get_account_balance(account.reference)
    balance = PSPBalance(
        account_reference=account.reference,
        created_at=datetime.now(timezone.utc),
        # Balances are already integers in minor units.
        amount=int(record["available_balance"]),
        asset=account.default_asset or "USD/2",
    )
    return FetchNextBalancesResponse(
        balances=[balance], new_state=b"{}", has_more=False
    )
