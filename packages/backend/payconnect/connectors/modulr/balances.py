from datetime import datetime, timezone
from typing import TYPE_CHECKING

from ...currency import amount_from_string, format_asset, get_precision
from ...errors import MissingFromPayload
from ...messages import FetchNextBalancesRequest, FetchNextBalancesResponse
from ...models import PSPAccount, PSPBalance
from .currencies import SUPPORTED_CURRENCIES

if TYPE_CHECKING:
    from .plugin import Plugin


def fetch_next_balances(
    plugin: "Plugin", req: FetchNextBalancesRequest
) -> FetchNextBalancesResponse:
    client = plugin._require_client()
    if not req.from_payload:
        raise MissingFromPayload()
    account = PSPAccount.from_payload(req.from_payload)

    record = client.get_account(account.reference)
    precision = get_precision(SUPPORTED_CURRENCIES, record["currency"])
    balance = PSPBalance(
        account_reference=record["id"],
        created_at=datetime.now(timezone.utc),
        amount=amount_from_string(record["balance"], precision),
        asset=format_asset(SUPPORTED_CURRENCIES, record["currency"]),
    )
    return FetchNextBalancesResponse(
        balances=[balance], new_state=b"{}", has_more=False
    )
