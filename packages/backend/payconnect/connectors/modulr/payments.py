import json
from datetime import datetime
from typing import TYPE_CHECKING, Any

from pydantic import Field

from ...currency import amount_from_string, format_asset, get_precision
from ...errors import MissingFromPayload
from ...messages import FetchNextPaymentsRequest, FetchNextPaymentsResponse
from ...models import PaymentScheme, PaymentStatus, PaymentType, PSPAccount, PSPPayment
from ...pagination import fetch_batch, numbered_pages
from ...state import PluginState, dump_state, load_state
from .currencies import SUPPORTED_CURRENCIES, parse_time
from .transfers import translate_payment

if TYPE_CHECKING:
    from .client import Client
    from .plugin import Plugin


class PaymentsState(PluginState):
    last_transaction_time: datetime | None = Field(
        default=None, alias="lastTransactionTime"
    )


def match_transaction_type(transaction_type: str) -> PaymentType:
    if transaction_type in ("PI_REV", "PO_REV", "ADHOC"):
        return PaymentType.OTHER
    if transaction_type == "INT_INTERC":
        return PaymentType.TRANSFER
    if transaction_type.startswith("PI_"):
        return PaymentType.PAYIN
    if transaction_type.startswith("PO_"):
        return PaymentType.PAYOUT
    return PaymentType.OTHER


def transaction_to_payment(
    client: "Client", transaction: dict[str, Any], account: PSPAccount
) -> PSPPayment | None:
    payment_type = match_transaction_type(transaction.get("type", ""))
    if payment_type == PaymentType.TRANSFER:
        # Internal transfers appear twice, once per side.  Only the credit
        # side is translated, from the full transfer resource.
        if not transaction.get("credit"):
            return None
        return translate_payment(client.get_payment(transaction["sourceId"]))

    currency = (transaction.get("account") or {}).get("currency", "")
    precision = get_precision(SUPPORTED_CURRENCIES, currency)

    payment = PSPPayment(
        # The source id identifies the payment; the transaction id only
        # identifies this ledger line.
        reference=transaction["sourceId"],
        created_at=parse_time(transaction["postedDate"]),
        type=payment_type,
        amount=amount_from_string(str(transaction["amount"]), precision),
        asset=format_asset(SUPPORTED_CURRENCIES, currency),
        scheme=PaymentScheme.OTHER,
        status=PaymentStatus.SUCCEEDED,
        raw=json.dumps(transaction).encode(),
    )
    if payment_type == PaymentType.PAYIN:
        payment.destination_account_reference = account.reference
    elif payment_type == PaymentType.PAYOUT:
        payment.source_account_reference = account.reference
    elif transaction.get("credit"):
        payment.destination_account_reference = account.reference
    else:
        payment.source_account_reference = account.reference
    return payment


def fetch_next_payments(
    plugin: "Plugin", req: FetchNextPaymentsRequest
) -> FetchNextPaymentsResponse:
    client = plugin._require_client()
    state = load_state(PaymentsState, req.state)
    if not req.from_payload:
        raise MissingFromPayload()
    account = PSPAccount.from_payload(req.from_payload)
    since = state.last_transaction_time

    batch = fetch_batch(
        numbered_pages(
            lambda page: client.get_transactions(
                account.reference, page, req.page_size, since
            )
        ),
        lambda t: transaction_to_payment(client, t, account),
        req.page_size,
        # Strictly newer only: records sharing the watermark timestamp that were
        # left behind by a truncated batch are not refetched.
        is_new=lambda t: since is None or parse_time(t["transactionDate"]) > since,
        provider=plugin.provider_name,
        entity="payments",
    )
    if batch.last_record is not None:
        state.last_transaction_time = parse_time(batch.last_record["transactionDate"])

    return FetchNextPaymentsResponse(
        payments=batch.items, new_state=dump_state(state), has_more=batch.has_more
    )
