"""Bank account creation and payment initiation on Increase."""

import json
from typing import TYPE_CHECKING, Any

from dateutil.parser import isoparse

from ...currency import format_asset, parse_asset
from ...errors import InvalidRequest
from ...models import (
    BankAccount,
    PaymentScheme,
    PaymentStatus,
    PaymentType,
    PSPAccount,
    PSPPayment,
    PSPPaymentInitiation,
)
from .currencies import SUPPORTED_CURRENCIES

if TYPE_CHECKING:
    from .plugin import Plugin

ROUTING_NUMBER_KEY = "increase/routingNumber"

_STATUSES = {
    "complete": PaymentStatus.SUCCEEDED,
    "submitted": PaymentStatus.PENDING,
    "pending_approval": PaymentStatus.PENDING,
    "pending_submission": PaymentStatus.PENDING,
    "pending_reviewing": PaymentStatus.PENDING,
    "canceled": PaymentStatus.CANCELLED,
    "rejected": PaymentStatus.FAILED,
    "returned": PaymentStatus.FAILED,
}


def create_bank_account(plugin: "Plugin", bank_account: BankAccount) -> PSPAccount:
    client = plugin._require_client()
    routing_number = bank_account.metadata.get(ROUTING_NUMBER_KEY)
    if not bank_account.account_number:
        raise InvalidRequest("missing account number in bank account")
    if not routing_number:
        raise InvalidRequest(f"missing {ROUTING_NUMBER_KEY} in bank account metadata")

    record = client.create(
        "external_accounts",
        {
            "account_number": bank_account.account_number,
            "routing_number": routing_number,
            "description": bank_account.name,
        },
        idempotency_key=bank_account.id,
    )
    return PSPAccount(
        reference=record["id"],
        created_at=isoparse(record["created_at"]),
        name=record.get("description"),
        default_asset="USD/2",
        metadata={ROUTING_NUMBER_KEY: routing_number},
        raw=json.dumps(record).encode(),
    )


def _validate(pi: PSPPaymentInitiation) -> None:
    if pi.source_account is None:
        raise InvalidRequest("source account is required in transfer/payout request")
    if pi.destination_account is None:
        raise InvalidRequest(
            "destination account is required in transfer/payout request"
        )
    try:
        code, _ = parse_asset(pi.asset)
    except ValueError as exc:
        raise InvalidRequest(f"invalid asset: {pi.asset!r}") from exc
    if code not in SUPPORTED_CURRENCIES:
        raise InvalidRequest(f"unsupported currency: {code}")


def _to_payment(
    record: dict[str, Any], payment_type: PaymentType, destination_key: str
) -> PSPPayment:
    return PSPPayment(
        reference=record["id"],
        created_at=isoparse(record["created_at"]),
        type=payment_type,
        amount=int(record["amount"]),
        asset=format_asset(SUPPORTED_CURRENCIES, record.get("currency", "USD")),
        scheme=PaymentScheme.ACH if payment_type == PaymentType.PAYOUT else PaymentScheme.OTHER,
        status=_STATUSES.get(record.get("status", ""), PaymentStatus.OTHER),
        source_account_reference=record.get("account_id"),
        destination_account_reference=record.get(destination_key),
        raw=json.dumps(record).encode(),
    )


def create_transfer(plugin: "Plugin", pi: PSPPaymentInitiation) -> PSPPayment:
    client = plugin._require_client()
    _validate(pi)
    record = client.create(
        "account_transfers",
        {
            "account_id": pi.source_account.reference,
            "destination_account_id": pi.destination_account.reference,
            "amount": pi.amount,
            "description": pi.description,
        },
        idempotency_key=pi.reference,
    )
    return _to_payment(record, PaymentType.TRANSFER, "destination_account_id")


def create_payout(plugin: "Plugin", pi: PSPPaymentInitiation) -> PSPPayment:
    client = plugin._require_client()
    _validate(pi)
    record = client.create(
        "ach_transfers",
        {
            "account_id": pi.source_account.reference,
            "external_account_id": pi.destination_account.reference,
            "amount": pi.amount,
            "statement_descriptor": pi.description,
        },
        idempotency_key=pi.reference,
    )
    return _to_payment(record, PaymentType.PAYOUT, "external_account_id")
