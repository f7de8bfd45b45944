"""Beneficiaries are the accounts Modulr can pay out to."""

import json
from datetime import datetime
from typing import TYPE_CHECKING, Any

from pydantic import Field

from ...messages import (
    FetchNextExternalAccountsRequest,
    FetchNextExternalAccountsResponse,
)
from ...models import PSPAccount
from ...pagination import fetch_batch, numbered_pages
from ...state import PluginState, dump_state, load_state
from .currencies import parse_time

if TYPE_CHECKING:
    from .plugin import Plugin


class ExternalAccountsState(PluginState):
    last_modified_since: datetime | None = Field(
        default=None, alias="lastModifiedSince"
    )


def to_psp_external_account(record: dict[str, Any]) -> PSPAccount:
    return PSPAccount(
        reference=record["id"],
        created_at=parse_time(record["created"]),
        name=record.get("name"),
        raw=json.dumps(record).encode(),
    )


def fetch_next_external_accounts(
    plugin: "Plugin", req: FetchNextExternalAccountsRequest
) -> FetchNextExternalAccountsResponse:
    client = plugin._require_client()
    state = load_state(ExternalAccountsState, req.state)
    since = state.last_modified_since

    batch = fetch_batch(
        numbered_pages(
            lambda page: client.get_beneficiaries(page, req.page_size, since)
        ),
        to_psp_external_account,
        req.page_size,
        # Strictly newer only: records sharing the watermark timestamp that were
        # left behind by a truncated batch are not refetched.
        is_new=lambda r: since is None or parse_time(r["created"]) > since,
        provider=plugin.provider_name,
        entity="external_accounts",
    )
    if batch.last_record is not None:
        state.last_modified_since = parse_time(batch.last_record["created"])

    return FetchNextExternalAccountsResponse(
        external_accounts=batch.items,
        new_state=dump_state(state),
        has_more=batch.has_more,
    )
