"""Payment initiation against the file store; payments settle immediately."""

import json
from datetime import timezone
from typing import TYPE_CHECKING

from ...currency import amount_to_string, is_valid_asset, parse_asset
from ...errors import InvalidRequest
from ...models import (
    PaymentScheme,
    PaymentStatus,
    PaymentType,
    PSPPayment,
    PSPPaymentInitiation,
    PSPPaymentInitiationReversal,
)

if TYPE_CHECKING:
    from .plugin import Plugin


def _validate_initiation(pi: PSPPaymentInitiation) -> None:
    if not is_valid_asset(pi.asset):
        raise InvalidRequest(f"invalid asset: {pi.asset!r}")
    if pi.source_account is None:
        raise InvalidRequest("missing source account")
    if pi.destination_account is None:
        raise InvalidRequest("missing destination account")
    if pi.amount <= 0:
        raise InvalidRequest("amount must be positive")


def create_payment(
    plugin: "Plugin", payment_type: PaymentType, pi: PSPPaymentInitiation
) -> PSPPayment:
    client = plugin._require_client()
    _validate_initiation(pi)
    code, precision = parse_asset(pi.asset)

    record = {
        "id": pi.reference,
        "createdAt": pi.created_at.astimezone(timezone.utc).isoformat(),
        "type": payment_type.value,
        "status": PaymentStatus.SUCCEEDED.value,
        "amount": amount_to_string(pi.amount, precision),
        "currency": code,
        "sourceAccountId": pi.source_account.reference,
        "destinationAccountId": pi.destination_account.reference,
        "description": pi.description,
    }
    client.adjust_balance(pi.source_account.reference, -pi.amount, code)
    client.append_payment(record)

    return PSPPayment(
        reference=pi.reference,
        created_at=pi.created_at,
        type=payment_type,
        amount=pi.amount,
        asset=pi.asset,
        scheme=PaymentScheme.OTHER,
        status=PaymentStatus.SUCCEEDED,
        source_account_reference=pi.source_account.reference,
        destination_account_reference=pi.destination_account.reference,
        metadata=dict(pi.metadata),
        raw=json.dumps(record).encode(),
    )


def reverse_payment(
    plugin: "Plugin",
    payment_type: PaymentType,
    reversal: PSPPaymentInitiationReversal,
) -> PSPPayment:
    client = plugin._require_client()
    related = reversal.related_payment_initiation
    _validate_initiation(related)
    if reversal.asset != related.asset:
        raise InvalidRequest("reversal asset differs from the original payment")
    if reversal.amount > related.amount:
        raise InvalidRequest("reversal amount exceeds the original payment")
    code, precision = parse_asset(reversal.asset)

    record = {
        "id": reversal.reference,
        "parentId": related.reference,
        "createdAt": reversal.created_at.astimezone(timezone.utc).isoformat(),
        "type": payment_type.value,
        "status": PaymentStatus.REFUNDED.value,
        "amount": amount_to_string(reversal.amount, precision),
        "currency": code,
        "sourceAccountId": related.source_account.reference,
        "destinationAccountId": related.destination_account.reference,
        "description": reversal.description,
    }
    client.adjust_balance(related.source_account.reference, reversal.amount, code)
    client.append_payment(record)

    return PSPPayment(
        reference=reversal.reference,
        parent_reference=related.reference,
        created_at=reversal.created_at,
        type=payment_type,
        amount=reversal.amount,
        asset=reversal.asset,
        scheme=PaymentScheme.OTHER,
        status=PaymentStatus.REFUNDED,
        source_account_reference=related.source_account.reference,
        destination_account_reference=related.destination_account.reference,
        metadata=dict(reversal.metadata),
        raw=json.dumps(record).encode(),
    )
