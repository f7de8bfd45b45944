import json
from typing import TYPE_CHECKING, Any

from dateutil.parser import isoparse
from pydantic import Field

from ...currency import ISO4217_CURRENCIES, format_asset
from ...messages import (
    FetchNextAccountsRequest,
    FetchNextAccountsResponse,
    FetchNextExternalAccountsRequest,
    FetchNextExternalAccountsResponse,
)
from ...models import PSPAccount
from ...pagination import fetch_batch
from ...state import PluginState, dump_state, load_state

if TYPE_CHECKING:
    from .plugin import Plugin


class AccountsState(PluginState):
    last_id: str = Field(default="", alias="lastId")


def to_psp_account(record: dict[str, Any]) -> PSPAccount:
    return PSPAccount(
        reference=record["id"],
        created_at=isoparse(record["openingDate"]),
        name=record.get("name"),
        default_asset=format_asset(ISO4217_CURRENCIES, record["currency"]),
        raw=json.dumps(record).encode(),
    )


def _fetch(plugin: "Plugin", filename: str, state_raw, page_size: int, entity: str):
    client = plugin._require_client()
    state = load_state(AccountsState, state_raw)
    batch = fetch_batch(
        client.iter_pages(filename, page_size),
        to_psp_account,
        page_size,
        is_new=lambda r: str(r["id"]) > state.last_id,
        provider=plugin.provider_name,
        entity=entity,
    )
    if batch.last_record is not None:
        state.last_id = str(batch.last_record["id"])
    return batch, dump_state(state)


def fetch_next_accounts(
    plugin: "Plugin", req: FetchNextAccountsRequest
) -> FetchNextAccountsResponse:
    batch, new_state = _fetch(
        plugin, "accounts.json", req.state, req.page_size, "accounts"
    )
    return FetchNextAccountsResponse(
        accounts=batch.items, new_state=new_state, has_more=batch.has_more
    )


def fetch_next_external_accounts(
    plugin: "Plugin", req: FetchNextExternalAccountsRequest
) -> FetchNextExternalAccountsResponse:
    batch, new_state = _fetch(
        plugin, "external_accounts.json", req.state, req.page_size, "external_accounts"
    )
    return FetchNextExternalAccountsResponse(
        external_accounts=batch.items, new_state=new_state, has_more=batch.has_more
    )
