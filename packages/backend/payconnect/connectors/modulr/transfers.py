"""Transfers (account to account) and payouts (account to beneficiary).

Modulr accepts a payment synchronously but usually settles it later, so
initiation returns a polling id unless the payment is already processed.
"""

import json
from typing import TYPE_CHECKING, Any

from ...currency import (
    amount_from_string,
    amount_to_string,
    format_asset,
    get_precision,
    parse_asset,
)
from ...errors import CurrencyNotSupported, InvalidRequest, wrap_error
from ...models import (
    PaymentScheme,
    PaymentStatus,
    PaymentType,
    PSPPayment,
    PSPPaymentInitiation,
)
from .currencies import SUPPORTED_CURRENCIES, parse_time

if TYPE_CHECKING:
    from .plugin import Plugin

_PENDING = {"SUBMITTED", "VALIDATED", "PENDING_FOR_DATE", "PENDING_FOR_FUNDS"}


def match_status(status: str) -> PaymentStatus:
    status = (status or "").upper()
    if status == "PROCESSED":
        return PaymentStatus.SUCCEEDED
    if status in _PENDING:
        return PaymentStatus.PENDING
    if status == "CANCELLED":
        return PaymentStatus.CANCELLED
    if status.startswith("ER_"):
        return PaymentStatus.FAILED
    return PaymentStatus.OTHER


def translate_payment(record: dict[str, Any]) -> PSPPayment:
    """Translate a ``/payments`` resource into a canonical payment."""
    details = record.get("details") or {}
    destination = details.get("destination") or {}
    currency = details.get("currency", "")
    precision = get_precision(SUPPORTED_CURRENCIES, currency)

    payment_type = (
        PaymentType.PAYOUT
        if destination.get("type") == "BENEFICIARY"
        else PaymentType.TRANSFER
    )
    return PSPPayment(
        reference=record["id"],
        created_at=parse_time(record["createdDate"]),
        type=payment_type,
        amount=amount_from_string(str(details.get("amount", "")), precision),
        asset=format_asset(SUPPORTED_CURRENCIES, currency),
        scheme=PaymentScheme.OTHER,
        status=match_status(record.get("status", "")),
        source_account_reference=details.get("sourceAccountId"),
        destination_account_reference=destination.get("id"),
        raw=json.dumps(record).encode(),
    )


def _build_request(pi: PSPPaymentInitiation, destination_type: str) -> dict[str, Any]:
    if pi.source_account is None:
        raise InvalidRequest("source account is required in transfer/payout request")
    if pi.destination_account is None:
        raise InvalidRequest(
            "destination account is required in transfer/payout request"
        )
    try:
        code, _ = parse_asset(pi.asset)
        precision = get_precision(SUPPORTED_CURRENCIES, code)
    except (ValueError, CurrencyNotSupported) as exc:
        raise wrap_error(
            exc, InvalidRequest, "failed to get currency and precision from asset"
        ) from exc

    return {
        "idempotencyKey": pi.reference,
        "sourceAccountId": pi.source_account.reference,
        "destination": {"type": destination_type, "id": pi.destination_account.reference},
        "currency": code,
        "amount": amount_to_string(pi.amount, precision),
        "reference": pi.description,
        "externalReference": pi.description,
    }


def initiate(
    plugin: "Plugin", pi: PSPPaymentInitiation, destination_type: str
) -> tuple[PSPPayment | None, str | None]:
    """Return ``(payment, None)`` if settled, else ``(None, polling_id)``."""
    client = plugin._require_client()
    resp = client.initiate_payment(_build_request(pi, destination_type))
    if match_status(resp.get("status", "")) == PaymentStatus.SUCCEEDED:
        return translate_payment(resp), None
    return None, resp["id"]


def poll(plugin: "Plugin", payment_id: str) -> tuple[PSPPayment | None, str | None]:
    """Return ``(payment, None)``, ``(None, error)`` or ``(None, None)`` if pending."""
    client = plugin._require_client()
    record = client.get_payment(payment_id)
    status = match_status(record.get("status", ""))
    if status == PaymentStatus.SUCCEEDED:
        return translate_payment(record), None
    if status in (PaymentStatus.FAILED, PaymentStatus.CANCELLED):
        return None, f"payment {payment_id} {record.get('status')}"
    return None, None
