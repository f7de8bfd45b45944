"""Merchant accounts, read through page-number pagination.

Merchant accounts carry no creation timestamp, so there is no watermark to
filter on: the state only remembers the next page to read.  Once the list
is exhausted the page goes back to zero and the next cycle starts over,
which lets newly opened merchant accounts show up.
"""

import json
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from pydantic import Field

from ...messages import FetchNextAccountsRequest, FetchNextAccountsResponse
from ...models import PSPAccount
from ...pagination import fetch_batch, numbered_pages
from ...state import PluginState, dump_state, load_state

if TYPE_CHECKING:
    from .plugin import Plugin


class AccountsState(PluginState):
    # 0-based index of the next page to read
    page: int = Field(default=0, ge=0)


def to_psp_account(record: dict[str, Any]) -> PSPAccount:
    metadata = {}
    if record.get("status"):
        metadata["adyen/status"] = str(record["status"])
    if record.get("companyId"):
        metadata["adyen/companyId"] = str(record["companyId"])
    return PSPAccount(
        reference=record["id"],
        created_at=datetime.now(timezone.utc),
        name=record.get("name") or record["id"],
        metadata=metadata,
        raw=json.dumps(record).encode(),
    )


def fetch_next_accounts(
    plugin: "Plugin", req: FetchNextAccountsRequest
) -> FetchNextAccountsResponse:
    client = plugin._require_client()
    state = load_state(AccountsState, req.state)

    batch = fetch_batch(
        numbered_pages(
            lambda page: client.get_merchant_accounts(page + 1, req.page_size),
            start=state.page,
        ),
        to_psp_account,
        req.page_size,
        provider=plugin.provider_name,
        entity="accounts",
    )

    # Every page is requested with the caller's page size, so a batch never
    # spans more than one page.
    if batch.has_more:
        state.page += batch.pages_fetched
    else:
        state.page = 0

    return FetchNextAccountsResponse(
        accounts=batch.items, new_state=dump_state(state), has_more=batch.has_more
    )
