from datetime import datetime, timezone
from typing import TYPE_CHECKING

from ...currency import ISO4217_CURRENCIES, format_asset
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

    balances: list[PSPBalance] = []
    record = client.fetch_balance(account.reference)
    if record is not None:
        balances.append(
            PSPBalance(
                account_reference=record["accountId"],
                created_at=datetime.now(timezone.utc).replace(microsecond=0),
                amount=int(record["amountInMinors"]),
                asset=format_asset(ISO4217_CURRENCIES, record["currency"]),
            )
        )

    # Balances are a point-in-time snapshot; there is nothing to resume.
    return FetchNextBalancesResponse(balances=balances, new_state=b"{}", has_more=False)
