import json
from typing import TYPE_CHECKING, Any

from dateutil.parser import isoparse

from ...currency import format_asset
from ...messages import FetchNextAccountsRequest, FetchNextAccountsResponse
from ...models import PSPAccount
from ...state import dump_state, load_state
from .currencies import SUPPORTED_CURRENCIES
from .timeline import TimelineState, fetch_timeline

if TYPE_CHECKING:
    from .plugin import Plugin


def to_psp_account(record: dict[str, Any]) -> PSPAccount:
    return PSPAccount(
        reference=record["id"],
        created_at=isoparse(record["created_at"]),
        name=record.get("name"),
        default_asset=format_asset(SUPPORTED_CURRENCIES, record["currency"]),
        metadata={
            "increase/status": str(record.get("status", "")),
            "increase/bank": str(record.get("bank", "")),
        },
        raw=json.dumps(record).encode(),
    )


def fetch_next_accounts(
    plugin: "Plugin", req: FetchNextAccountsRequest
) -> FetchNextAccountsResponse:
    state = load_state(TimelineState, req.state)
    batch = fetch_timeline(
        plugin, "accounts", state, req.page_size, to_psp_account, "accounts"
    )
    return FetchNextAccountsResponse(
        accounts=batch.items, new_state=dump_state(state), has_more=batch.has_more
    )
