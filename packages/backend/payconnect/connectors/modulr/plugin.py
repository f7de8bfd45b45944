"""Modulr connector: UK/EU e-money accounts with page-number pagination."""

import logging

from pydantic import Field

from ...messages import (
    CreatePayoutRequest,
    CreatePayoutResponse,
    CreateTransferRequest,
    CreateTransferResponse,
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
    PollPayoutStatusRequest,
    PollPayoutStatusResponse,
    PollTransferStatusRequest,
    PollTransferStatusResponse,
    UninstallRequest,
    UninstallResponse,
)
from ...models import Capability
from ...workflow import TaskType, task
from .. import Plugin as BasePlugin
from ..config import ConnectorConfig, unmarshal_and_validate_config
from . import accounts, balances, external_accounts, payments, transfers
from .client import DEFAULT_ENDPOINT, Client

logger = logging.getLogger("payconnect.connectors.modulr")

PROVIDER_NAME = "modulr"
PAGE_SIZE = 100

CAPABILITIES = (
    Capability.FETCH_ACCOUNTS,
    Capability.FETCH_BALANCES,
    Capability.FETCH_EXTERNAL_ACCOUNTS,
    Capability.FETCH_PAYMENTS,
    Capability.CREATE_TRANSFER,
    Capability.CREATE_PAYOUT,
)

WORKFLOW = (
    task(
        TaskType.FETCH_ACCOUNTS,
        "fetch_accounts",
        task(TaskType.FETCH_PAYMENTS, "fetch_payments"),
        task(TaskType.FETCH_BALANCES, "fetch_balances"),
    ),
    task(TaskType.FETCH_EXTERNAL_ACCOUNTS, "fetch_beneficiaries"),
)


class Config(ConnectorConfig):
    api_key: str = Field(alias="apiKey", min_length=1)
    api_secret: str = Field(alias="apiSecret", min_length=1)
    endpoint: str = Field(default=DEFAULT_ENDPOINT)


class Plugin(BasePlugin):
    provider_name = PROVIDER_NAME

    def install(self, req: InstallRequest) -> InstallResponse:
        config = unmarshal_and_validate_config(Config, req.config)
        self.config = config
        self.client = Client(
            config.api_key,
            config.api_secret,
            config.endpoint,
            timeout=self.http_timeout,
        )
        logger.info("Installed modulr name=%s endpoint=%s", self.name, config.endpoint)
        return InstallResponse(workflow=WORKFLOW, capabilities=list(CAPABILITIES))

    def uninstall(self, req: UninstallRequest) -> UninstallResponse:
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

    def create_transfer(self, req: CreateTransferRequest) -> CreateTransferResponse:
        payment, polling_id = transfers.initiate(self, req.payment_initiation, "ACCOUNT")
        return CreateTransferResponse(payment=payment, polling_transfer_id=polling_id)

    def poll_transfer_status(
        self, req: PollTransferStatusRequest
    ) -> PollTransferStatusResponse:
        payment, error = transfers.poll(self, req.transfer_id)
        return PollTransferStatusResponse(payment=payment, error=error)

    def create_payout(self, req: CreatePayoutRequest) -> CreatePayoutResponse:
        payment, polling_id = transfers.initiate(
            self, req.payment_initiation, "BENEFICIARY"
        )
        return CreatePayoutResponse(payment=payment, polling_payout_id=polling_id)

    def poll_payout_status(
        self, req: PollPayoutStatusRequest
    ) -> PollPayoutStatusResponse:
        payment, error = transfers.poll(self, req.payout_id)
        return PollPayoutStatusResponse(payment=payment, error=error)
