import json
from typing import TYPE_CHECKING, Any

from dateutil.parser import isoparse
from pydantic import Field

from ...currency import format_asset
from ...errors import MissingPageSize
from ...messages import FetchNextPaymentsRequest, FetchNextPaymentsResponse
from ...models import PaymentScheme, PaymentStatus, PaymentType, PSPPayment
from ...state import PluginState, dump_state, load_state
from .currencies import SUPPORTED_CURRENCIES
from .timeline import TimelineState, fetch_timeline

if TYPE_CHECKING:
    from .plugin import Plugin

_SCHEMES = {
    "ach_transfer_intention": PaymentScheme.ACH,
    "ach_transfer_rejection": PaymentScheme.ACH,
    "inbound_ach_transfer": PaymentScheme.ACH,
    "card_settlement": PaymentScheme.OTHER,
    "real_time_payments_transfer_acknowledgement": PaymentScheme.RTP,
    "inbound_real_time_payments_transfer_confirmation": PaymentScheme.RTP,
}


def map_payment(record: dict[str, Any], status: PaymentStatus) -> PSPPayment:
    """Translate an Increase transaction (settled, pending or declined)."""
    source = record.get("source") or {}
    category = source.get("category", "")
    amount = int(record["amount"])

    if category == "account_transfer_intention":
        payment_type = PaymentType.TRANSFER
    elif amount >= 0:
        payment_type = PaymentType.PAYIN
    else:
        payment_type = PaymentType.PAYOUT

    payment = PSPPayment(
        reference=record["id"],
        created_at=isoparse(record["created_at"]),
        type=payment_type,
        # Sign only carries direction, which the type already records.
        amount=abs(amount),
        asset=format_asset(SUPPORTED_CURRENCIES, record["currency"]),
        scheme=_SCHEMES.get(category, PaymentScheme.OTHER),
        status=status,
        metadata={"increase/category": category} if category else {},
        raw=json.dumps(record).encode(),
    )
    account_id = record.get("account_id")
    if payment_type == PaymentType.TRANSFER:
        payment.source_account_reference = source.get("source_account_id") or account_id
        payment.destination_account_reference = source.get("destination_account_id")
    elif payment_type == PaymentType.PAYIN:
        payment.destination_account_reference = account_id
    else:
        payment.source_account_reference = account_id
    return payment


# stream name -> (resource, status of every record in it)
PAYMENT_STREAMS: tuple[tuple[str, str, PaymentStatus], ...] = (
    ("succeeded", "transactions", PaymentStatus.SUCCEEDED),
    ("pending", "pending_transactions", PaymentStatus.PENDING),
    ("declined", "declined_transactions", PaymentStatus.FAILED),
)


class PaymentsState(PluginState):
    succeeded: TimelineState = Field(default_factory=TimelineState)
    pending: TimelineState = Field(default_factory=TimelineState)
    declined: TimelineState = Field(default_factory=TimelineState)


def _shares(page_size: int, streams: int) -> list[int]:
    base, extra = divmod(page_size, streams)
    return [base + (1 if idx < extra else 0) for idx in range(streams)]


def fetch_next_payments(
    plugin: "Plugin", req: FetchNextPaymentsRequest
) -> FetchNextPaymentsResponse:
    """Merge settled, pending and declined transactions into one batch.

    The page size is split between the three streams; quota a stream leaves
    unused carries over to the next one.  Each stream keeps its own cursor.
    """
    if req.page_size <= 0:
        raise MissingPageSize()
    state = load_state(PaymentsState, req.state)

    payments: list[PSPPayment] = []
    has_more = False
    leftover = 0
    for (name, resource, status), share in zip(
        PAYMENT_STREAMS, _shares(req.page_size, len(PAYMENT_STREAMS))
    ):
        quota = share + leftover
        if quota == 0:
            # Not queried this time.
            has_more = True
            continue
        batch = fetch_timeline(
            plugin,
            resource,
            getattr(state, name),
            quota,
            lambda r, status=status: map_payment(r, status),
            "payments",
        )
        payments.extend(batch.items)
        has_more = has_more or batch.has_more
        leftover = quota - len(batch.items)

    return FetchNextPaymentsResponse(
        payments=payments, new_state=dump_state(state), has_more=has_more
    )
