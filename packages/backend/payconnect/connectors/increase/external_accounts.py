import json
from typing import TYPE_CHECKING, Any

from dateutil.parser import isoparse

from ...messages import (
    FetchNextExternalAccountsRequest,
    FetchNextExternalAccountsResponse,
)
from ...models import PSPAccount
from ...state import dump_state, load_state
from .timeline import TimelineState, fetch_timeline

if TYPE_CHECKING:
    from .plugin import Plugin


def to_psp_external_account(record: dict[str, Any]) -> PSPAccount:
    # Increase external accounts are US bank accounts; no currency is reported.
    return PSPAccount(
        reference=record["id"],
        created_at=isoparse(record["created_at"]),
        name=record.get("description"),
        default_asset="USD/2",
        metadata={
            "increase/routingNumber": str(record.get("routing_number", "")),
            "increase/accountHolder": str(record.get("account_holder", "")),
        },
        raw=json.dumps(record).encode(),
    )


def fetch_next_external_accounts(
    plugin: "Plugin", req: FetchNextExternalAccountsRequest
) -> FetchNextExternalAccountsResponse:
    state = load_state(TimelineState, req.state)
    batch = fetch_timeline(
        plugin,
        "external_accounts",
        state,
        req.page_size,
        to_psp_external_account,
        "external_accounts",
    )
    return FetchNextExternalAccountsResponse(
        external_accounts=batch.items,
        new_state=dump_state(state),
        has_more=batch.has_more,
    )
