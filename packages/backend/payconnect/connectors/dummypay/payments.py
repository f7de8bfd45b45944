import json
from typing import TYPE_CHECKING, Any

from dateutil.parser import isoparse
from pydantic import Field

from ...currency import (
    ISO4217_CURRENCIES,
    amount_from_string,
    format_asset,
    get_precision,
)
from ...messages import FetchNextPaymentsRequest, FetchNextPaymentsResponse
from ...models import PaymentScheme, PaymentStatus, PaymentType, PSPPayment
from ...pagination import fetch_batch
from ...state import PluginState, dump_state, load_state

if TYPE_CHECKING:
    from .plugin import Plugin


class PaymentsState(PluginState):
    last_id: str = Field(default="", alias="lastId")


def to_psp_payment(record: dict[str, Any]) -> PSPPayment:
    asset = format_asset(ISO4217_CURRENCIES, record["currency"])
    precision = get_precision(ISO4217_CURRENCIES, record["currency"])
    return PSPPayment(
        reference=record["id"],
        parent_reference=record.get("parentId", ""),
        created_at=isoparse(record["createdAt"]),
        type=PaymentType(record.get("type", PaymentType.OTHER.value)),
        amount=amount_from_string(str(record["amount"]), precision),
        asset=asset,
        scheme=PaymentScheme.OTHER,
        status=PaymentStatus(record.get("status", PaymentStatus.UNKNOWN.value)),
        source_account_reference=record.get("sourceAccountId"),
        destination_account_reference=record.get("destinationAccountId"),
        raw=json.dumps(record).encode(),
    )


def fetch_next_payments(
    plugin: "Plugin", req: FetchNextPaymentsRequest
) -> FetchNextPaymentsResponse:
    client = plugin._require_client()
    state = load_state(PaymentsState, req.state)

    batch = fetch_batch(
        client.iter_pages("payments.json", req.page_size),
        to_psp_payment,
        req.page_size,
        is_new=lambda r: str(r["id"]) > state.last_id,
        provider=plugin.provider_name,
        entity="payments",
    )
    if batch.last_record is not None:
        state.last_id = str(batch.last_record["id"])

    return FetchNextPaymentsResponse(
        payments=batch.items, new_state=dump_state(state), has_more=batch.has_more
    )
