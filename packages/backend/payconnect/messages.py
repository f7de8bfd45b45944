"""Request and response types exchanged with connector plugins."""

from dataclasses import dataclass, field

from .models import (
    BankAccount,
    Capability,
    PSPAccount,
    PSPBalance,
    PSPOther,
    PSPPayment,
    PSPPaymentInitiation,
    PSPPaymentInitiationReversal,
    PSPPaymentsToDelete,
    PSPWebhook,
    PSPWebhookConfig,
    WebhookResponse,
)
from .workflow import ConnectorTasksTree


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


@dataclass
class InstallRequest:
    config: bytes | dict | None
    connector_id: str = ""


@dataclass
class InstallResponse:
    workflow: ConnectorTasksTree
    capabilities: list[Capability] = field(default_factory=list)


@dataclass
class UninstallRequest:
    connector_id: str
    # Webhook configs previously returned by create_webhooks, if any.
    webhook_configs: list[PSPWebhookConfig] = field(default_factory=list)


@dataclass
class UninstallResponse:
    pass


# ---------------------------------------------------------------------------
# Fetch operations
# ---------------------------------------------------------------------------


@dataclass
class FetchNextAccountsRequest:
    page_size: int
    state: bytes | None = None
    from_payload: bytes | None = None


@dataclass
class FetchNextAccountsResponse:
    accounts: list[PSPAccount]
    new_state: bytes
    has_more: bool


@dataclass
class FetchNextBalancesRequest:
    page_size: int
    state: bytes | None = None
    from_payload: bytes | None = None


@dataclass
class FetchNextBalancesResponse:
    balances: list[PSPBalance]
    new_state: bytes
    has_more: bool


@dataclass
class FetchNextExternalAccountsRequest:
    page_size: int
    state: bytes | None = None
    from_payload: bytes | None = None


@dataclass
class FetchNextExternalAccountsResponse:
    external_accounts: list[PSPAccount]
    new_state: bytes
    has_more: bool


@dataclass
class FetchNextPaymentsRequest:
    page_size: int
    state: bytes | None = None
    from_payload: bytes | None = None


@dataclass
class FetchNextPaymentsResponse:
    payments: list[PSPPayment]
    new_state: bytes
    has_more: bool
    payments_to_delete: list[PSPPaymentsToDelete] = field(default_factory=list)


@dataclass
class FetchNextOthersRequest:
    name: str
    page_size: int
    state: bytes | None = None
    from_payload: bytes | None = None


@dataclass
class FetchNextOthersResponse:
    others: list[PSPOther]
    new_state: bytes
    has_more: bool


# ---------------------------------------------------------------------------
# Bank accounts and payment initiation
# ---------------------------------------------------------------------------


@dataclass
class CreateBankAccountRequest:
    bank_account: BankAccount


@dataclass
class CreateBankAccountResponse:
    related_account: PSPAccount


@dataclass
class CreateTransferRequest:
    payment_initiation: PSPPaymentInitiation


@dataclass
class CreateTransferResponse:
    """Either ``payment`` (settled synchronously) or ``polling_transfer_id``."""

    payment: PSPPayment | None = None
    polling_transfer_id: str | None = None


@dataclass
class ReverseTransferRequest:
    payment_initiation_reversal: PSPPaymentInitiationReversal


@dataclass
class ReverseTransferResponse:
    payment: PSPPayment


@dataclass
class PollTransferStatusRequest:
    transfer_id: str


@dataclass
class PollTransferStatusResponse:
    """Neither field set means the transfer is still in flight."""

    payment: PSPPayment | None = None
    error: str | None = None


@dataclass
class CreatePayoutRequest:
    payment_initiation: PSPPaymentInitiation


@dataclass
class CreatePayoutResponse:
    payment: PSPPayment | None = None
    polling_payout_id: str | None = None


@dataclass
class ReversePayoutRequest:
    payment_initiation_reversal: PSPPaymentInitiationReversal


@dataclass
class ReversePayoutResponse:
    payment: PSPPayment


@dataclass
class PollPayoutStatusRequest:
    payout_id: str


@dataclass
class PollPayoutStatusResponse:
    payment: PSPPayment | None = None
    error: str | None = None


# ---------------------------------------------------------------------------
# Webhooks
# ---------------------------------------------------------------------------


@dataclass
class CreateWebhooksRequest:
    connector_id: str
    webhook_base_url: str
    from_payload: bytes | None = None


@dataclass
class CreateWebhooksResponse:
    configs: list[PSPWebhookConfig] = field(default_factory=list)
    others: list[PSPOther] = field(default_factory=list)


@dataclass
class TrimWebhookRequest:
    webhook: PSPWebhook
    config: PSPWebhookConfig | None = None


@dataclass
class TrimWebhookResponse:
    webhooks: list[PSPWebhook]


@dataclass
class VerifyWebhookRequest:
    webhook: PSPWebhook
    config: PSPWebhookConfig | None = None


@dataclass
class VerifyWebhookResponse:
    webhook_idempotency_key: str | None = None


@dataclass
class TranslateWebhookRequest:
    name: str
    webhook: PSPWebhook
    config: PSPWebhookConfig | None = None


@dataclass
class TranslateWebhookResponse:
    responses: list[WebhookResponse] = field(default_factory=list)
