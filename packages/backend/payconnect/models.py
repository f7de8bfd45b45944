"""Canonical, vendor-agnostic domain model produced by every connector."""

import base64
import json
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from .currency import is_valid_asset
from .errors import InvalidRequest


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class PluginType(str, Enum):
    PSP = "PSP"
    OPEN_BANKING = "OPEN_BANKING"
    BOTH = "BOTH"


class PaymentType(str, Enum):
    UNKNOWN = "UNKNOWN"
    PAYIN = "PAY-IN"
    PAYOUT = "PAYOUT"
    TRANSFER = "TRANSFER"
    OTHER = "OTHER"


class PaymentStatus(str, Enum):
    UNKNOWN = "UNKNOWN"
    PENDING = "PENDING"
    SUCCEEDED = "SUCCEEDED"
    CANCELLED = "CANCELLED"
    FAILED = "FAILED"
    EXPIRED = "EXPIRED"
    REFUNDED = "REFUNDED"
    REFUNDED_FAILURE = "REFUNDED_FAILURE"
    REFUND_REVERSED = "REFUND_REVERSED"
    DISPUTE = "DISPUTE"
    DISPUTE_WON = "DISPUTE_WON"
    DISPUTE_LOST = "DISPUTE_LOST"
    AMOUNT_ADJUSTMENT = "AMOUNT_ADJUSTMENT"
    AUTHORISATION = "AUTHORISATION"
    CAPTURE = "CAPTURE"
    CAPTURE_FAILED = "CAPTURE_FAILED"
    OTHER = "OTHER"


class PaymentScheme(str, Enum):
    UNKNOWN = "UNKNOWN"
    CARD_VISA = "CARD_VISA"
    CARD_MASTERCARD = "CARD_MASTERCARD"
    CARD_AMEX = "CARD_AMEX"
    CARD_DINERS = "CARD_DINERS"
    CARD_DISCOVER = "CARD_DISCOVER"
    CARD_JCB = "CARD_JCB"
    CARD_UNION_PAY = "CARD_UNION_PAY"
    CARD_ALIPAY = "CARD_ALIPAY"
    CARD_CUP = "CARD_CUP"
    SEPA_DEBIT = "SEPA_DEBIT"
    SEPA_CREDIT = "SEPA_CREDIT"
    SEPA = "SEPA"
    GOOGLE_PAY = "GOOGLE_PAY"
    APPLE_PAY = "APPLE_PAY"
    DOKU = "DOKU"
    DRAGON_PAY = "DRAGON_PAY"
    MAESTRO = "MAESTRO"
    MOL_PAY = "MOL_PAY"
    A2A = "A2A"
    ACH_DEBIT = "ACH_DEBIT"
    ACH = "ACH"
    RTP = "RTP"
    OTHER = "OTHER"


class Capability(str, Enum):
    """Operations a connector declares it supports, read by the scheduler."""

    FETCH_ACCOUNTS = "FETCH_ACCOUNTS"
    FETCH_BALANCES = "FETCH_BALANCES"
    FETCH_EXTERNAL_ACCOUNTS = "FETCH_EXTERNAL_ACCOUNTS"
    FETCH_PAYMENTS = "FETCH_PAYMENTS"
    FETCH_OTHERS = "FETCH_OTHERS"
    CREATE_WEBHOOKS = "CREATE_WEBHOOKS"
    TRANSLATE_WEBHOOKS = "TRANSLATE_WEBHOOKS"
    CREATE_BANK_ACCOUNT = "CREATE_BANK_ACCOUNT"
    CREATE_TRANSFER = "CREATE_TRANSFER"
    CREATE_PAYOUT = "CREATE_PAYOUT"
    ALLOW_ACCOUNT_CREATION = "ALLOW_ACCOUNT_CREATION"
    ALLOW_PAYMENT_CREATION = "ALLOW_PAYMENT_CREATION"


# ---------------------------------------------------------------------------
# Canonical entities
# ---------------------------------------------------------------------------


@dataclass
class PSPAccount:
    """An account as seen by the provider (internal or external)."""

    reference: str
    created_at: datetime
    name: str | None = None
    default_asset: str | None = None  # e.g. "EUR/2"
    metadata: dict[str, str] = field(default_factory=dict)
    raw: bytes = b""  # verbatim vendor JSON

    def validate(self) -> None:
        if not self.reference:
            raise InvalidRequest("missing account reference")
        if self.created_at is None:
            raise InvalidRequest("missing account createdAt")
        if not self.raw:
            raise InvalidRequest("missing account raw")
        if self.default_asset is not None and not is_valid_asset(self.default_asset):
            raise InvalidRequest(f"invalid default asset: {self.default_asset}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "reference": self.reference,
            "createdAt": self.created_at.isoformat(),
            "name": self.name,
            "defaultAsset": self.default_asset,
            "metadata": dict(self.metadata),
            "raw": _encode_raw(self.raw),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PSPAccount":
        return cls(
            reference=data["reference"],
            created_at=datetime.fromisoformat(data["createdAt"]),
            name=data.get("name"),
            default_asset=data.get("defaultAsset"),
            metadata=dict(data.get("metadata") or {}),
            raw=_decode_raw(data.get("raw")),
        )

    def to_payload(self) -> bytes:
        """Serialize for use as a ``from_payload`` of a child task."""
        return json.dumps(self.to_dict(), separators=(",", ":")).encode()

    @classmethod
    def from_payload(cls, payload: bytes) -> "PSPAccount":
        return cls.from_dict(json.loads(payload))


@dataclass
class PSPBalance:
    account_reference: str
    created_at: datetime
    amount: int  # minor units
    asset: str

    def validate(self) -> None:
        if not self.account_reference:
            raise InvalidRequest("missing balance account reference")
        if not is_valid_asset(self.asset):
            raise InvalidRequest(f"invalid balance asset: {self.asset}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "accountReference": self.account_reference,
            "createdAt": self.created_at.isoformat(),
            "amount": self.amount,
            "asset": self.asset,
        }


@dataclass
class PSPPayment:
    reference: str
    created_at: datetime
    type: PaymentType
    amount: int  # minor units
    asset: str
    scheme: PaymentScheme = PaymentScheme.OTHER
    status: PaymentStatus = PaymentStatus.UNKNOWN
    # Original payment reference for refunds, disputes, etc.
    parent_reference: str = ""
    source_account_reference: str | None = None
    destination_account_reference: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)
    raw: bytes = b""

    def validate(self) -> None:
        if not self.reference:
            raise InvalidRequest("missing payment reference")
        if self.created_at is None:
            raise InvalidRequest("missing payment createdAt")
        if self.amount is None or self.amount < 0:
            raise InvalidRequest("missing or negative payment amount")
        if not is_valid_asset(self.asset):
            raise InvalidRequest(f"invalid payment asset: {self.asset}")
        if not self.raw:
            raise InvalidRequest("missing payment raw")

    def to_dict(self) -> dict[str, Any]:
        return {
            "reference": self.reference,
            "parentReference": self.parent_reference,
            "createdAt": self.created_at.isoformat(),
            "type": self.type.value,
            "amount": self.amount,
            "asset": self.asset,
            "scheme": self.scheme.value,
            "status": self.status.value,
            "sourceAccountReference": self.source_account_reference,
            "destinationAccountReference": self.destination_account_reference,
            "metadata": dict(self.metadata),
            "raw": _encode_raw(self.raw),
        }


@dataclass
class PSPPaymentsToDelete:
    reference: str


@dataclass
class PSPPaymentInitiation:
    """A payment the platform asks the provider to execute."""

    reference: str
    created_at: datetime
    description: str
    amount: int
    asset: str
    source_account: PSPAccount | None = None
    destination_account: PSPAccount | None = None
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass
class PSPPaymentInitiationReversal:
    reference: str
    created_at: datetime
    description: str
    related_payment_initiation: PSPPaymentInitiation
    amount: int
    asset: str
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass
class BankAccount:
    """Bank account details forwarded to a provider for creation."""

    id: str
    created_at: datetime
    name: str
    account_number: str | None = None
    iban: str | None = None
    swift_bic_code: str | None = None
    country: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass
class PSPOther:
    id: str
    other: bytes

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "other": _encode_raw(self.other)}


# ---------------------------------------------------------------------------
# Webhooks
# ---------------------------------------------------------------------------


@dataclass
class PSPWebhookConfig:
    name: str
    url_path: str
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass
class PSPWebhook:
    body: bytes
    base_path: str = ""
    headers: dict[str, list[str]] = field(default_factory=dict)
    query_values: dict[str, list[str]] = field(default_factory=dict)

    def header(self, name: str) -> str | None:
        """Case-insensitive lookup of the first value of a header."""
        wanted = name.lower()
        for key, values in self.headers.items():
            if key.lower() == wanted and values:
                return values[0]
        return None


@dataclass
class WebhookResponse:
    account: PSPAccount | None = None
    external_account: PSPAccount | None = None
    payment: PSPPayment | None = None


def _encode_raw(raw: bytes) -> str:
    return base64.b64encode(raw or b"").decode()


def _decode_raw(value: str | None) -> bytes:
    if not value:
        return b""
    return base64.b64decode(value)
