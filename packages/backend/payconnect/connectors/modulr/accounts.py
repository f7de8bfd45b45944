import json
from datetime import datetime
from typing import TYPE_CHECKING, Any

from pydantic import Field

from ...currency import format_asset
from ...messages import FetchNextAccountsRequest, FetchNextAccountsResponse
from ...models import PSPAccount
from ...pagination import fetch_batch, numbered_pages
from ...state import PluginState, dump_state, load_state
from .currencies import SUPPORTED_CURRENCIES, parse_time

if TYPE_CHECKING:
    from .plugin import Plugin


class AccountsState(PluginState):
    last_created_at: datetime | None = Field(default=None, alias="lastCreatedAt")


def to_psp_account(record: dict[str, Any]) -> PSPAccount:
    return PSPAccount(
        reference=record["id"],
        created_at=parse_time(record["createdDate"]),
        name=record.get("name"),
        default_asset=format_asset(SUPPORTED_CURRENCIES, record["currency"]),
        metadata={"modulr/status": str(record.get("status", ""))},
        raw=json.dumps(record).encode(),
    )


def fetch_next_accounts(
    plugin: "Plugin", req: FetchNextAccountsRequest
) -> FetchNextAccountsResponse:
    client = plugin._require_client()
    state = load_state(AccountsState, req.state)
    since = state.last_created_at

    batch = fetch_batch(
        numbered_pages(lambda page: client.get_accounts(page, req.page_size, since)),
        to_psp_account,
        req.page_size,
        # Strictly newer only: records sharing the watermark timestamp that were
        # left behind by a truncated batch are not refetched.
        is_new=lambda r: since is None or parse_time(r["createdDate"]) > since,
        provider=plugin.provider_name,
        entity="accounts",
    )
    if batch.last_record is not None:
        state.last_created_at = parse_time(batch.last_record["createdDate"])

    return FetchNextAccountsResponse(
        accounts=batch.items, new_state=dump_state(state), has_more=batch.has_more
    )
