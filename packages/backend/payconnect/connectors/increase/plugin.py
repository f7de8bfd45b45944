"""Increase connector: US banking API with cursor pagination and webhooks."""

import logging

from pydantic import Field

from ...messages import (
    CreateBankAccountRequest,
    CreateBankAccountResponse,
    CreatePayoutRequest,
    CreatePayoutResponse,
    CreateTransferRequest,
    CreateTransferResponse,
    CreateWebhooksRequest,
    CreateWebhooksResponse,
    FetchNextAccountsRequest,
    FetchNextAccountsResponse,
    FetchNextBalancesRequest,
    FetchNextBalancesResponse,
    FetchNextExternalAccountsRequest,
    FetchNextExternalAccountsResponse,
    FetchNextPaymentsRequest,
    FetchNextPaymentsResponse,
    InstallRequest,
    InstallResponse,
    TranslateWebhookRequest,
    TranslateWebhookResponse,
    UninstallRequest,
    UninstallResponse,
    VerifyWebhookRequest,
    VerifyWebhookResponse,
)
from ...models import Capability
from ...workflow import TaskType, task
from .. import Plugin as BasePlugin
from ..config import ConnectorConfig, unmarshal_and_validate_config
from . import accounts, balances, external_accounts, payments, transfers, webhooks
from .client import DEFAULT_ENDPOINT, Client

logger = logging.getLogger("payconnect.connectors.increase")

PROVIDER_NAME = "increase"
PAGE_SIZE = 100

CAPABILITIES = (
    Capability.FETCH_ACCOUNTS,
    Capability.FETCH_BALANCES,
    Capability.FETCH_EXTERNAL_ACCOUNTS,
    Capability.FETCH_PAYMENTS,
    Capability.CREATE_WEBHOOKS,
    Capability.TRANSLATE_WEBHOOKS,
    Capability.CREATE_BANK_ACCOUNT,
    Capability.CREATE_TRANSFER,
    Capability.CREATE_PAYOUT,
)

WORKFLOW = (
    task(
        TaskType.FETCH_ACCOUNTS,
        "fetch_accounts",
        task(TaskType.FETCH_BALANCES, "fetch_balances"),
    ),
    task(TaskType.FETCH_EXTERNAL_ACCOUNTS, "fetch_external_accounts"),
    task(TaskType.FETCH_PAYMENTS, "fetch_payments"),
    task(TaskType.CREATE_WEBHOOKS, "create_webhooks", periodically=False),
)


class Config(ConnectorConfig):
    api_key: str = Field(alias="apiKey", min_length=1)
    webhook_shared_secret: str = Field(alias="webhookSharedSecret", min_length=1)
    endpoint: str = Field(default=DEFAULT_ENDPOINT)


class Plugin(BasePlugin):
    provider_name = PROVIDER_NAME

    def install(self, req: InstallRequest) -> InstallResponse:
        config = unmarshal_and_validate_config(Config, req.config)
        self.config = config
        self.client = Client(config.api_key, config.endpoint, timeout=self.http_timeout)
        logger.info("Installed increase name=%s endpoint=%s", self.name, config.endpoint)
        return InstallResponse(workflow=WORKFLOW, capabilities=list(CAPABILITIES))

    def uninstall(self, req: UninstallRequest) -> UninstallResponse:
        webhooks.delete_webhooks(self, req)
        return UninstallResponse()

    def fetch_next_accounts(
        self, req: FetchNextAccountsRequest
    ) -> FetchNextAccountsResponse:
        return accounts.fetch_next_accounts(self, req)

    def fetch_next_balances(
        self, req: FetchNextBalancesRequest
    ) -> FetchNextBalancesResponse:
        return balances.fetch_next_balances(self, req)

    def fetch_next_external_accounts(
        self, req: FetchNextExternalAccountsRequest
    ) -> FetchNextExternalAccountsResponse:
        return external_accounts.fetch_next_external_accounts(self, req)

    def fetch_next_payments(
        self, req: FetchNextPaymentsRequest
    ) -> FetchNextPaymentsResponse:
        return payments.fetch_next_payments(self, req)

    def create_bank_account(
        self, req: CreateBankAccountRequest
    ) -> CreateBankAccountResponse:
        account = transfers.create_bank_account(self, req.bank_account)
        return CreateBankAccountResponse(related_account=account)

    def create_transfer(self, req: CreateTransferRequest) -> CreateTransferResponse:
        payment = transfers.create_transfer(self, req.payment_initiation)
        return CreateTransferResponse(payment=payment)

    def create_payout(self, req: CreatePayoutRequest) -> CreatePayoutResponse:
        payment = transfers.create_payout(self, req.payment_initiation)
        return CreatePayoutResponse(payment=payment)

    def create_webhooks(self, req: CreateWebhooksRequest) -> CreateWebhooksResponse:
        return webhooks.create_webhooks(self, req)

    def verify_webhook(self, req: VerifyWebhookRequest) -> VerifyWebhookResponse:
        return webhooks.verify_webhook(self, req)

    def translate_webhook(
        self, req: TranslateWebhookRequest
    ) -> TranslateWebhookResponse:
        return webhooks.translate_webhook(self, req)
