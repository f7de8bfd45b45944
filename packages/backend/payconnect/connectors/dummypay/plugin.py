"""Dummy payment provider backed by JSON files on disk.

Used for local development and end-to-end tests of the scheduling loop:
there is no network, and payment initiation settles immediately.
"""

import json
import logging

from pydantic import Field

from ...messages import (
    CreateBankAccountRequest,
    CreateBankAccountResponse,
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
    FetchNextOthersRequest,
    FetchNextOthersResponse,
    FetchNextPaymentsRequest,
    FetchNextPaymentsResponse,
    InstallRequest,
    InstallResponse,
    ReversePayoutRequest,
    ReversePayoutResponse,
    ReverseTransferRequest,
    ReverseTransferResponse,
    UninstallRequest,
    UninstallResponse,
)
from ...models import Capability, PaymentType, PSPAccount
from ...workflow import TaskType, task
from .. import Plugin as BasePlugin
from ..config import ConnectorConfig, unmarshal_and_validate_config
from . import accounts, balances, others, payments, transfers
from .client import Client

logger = logging.getLogger("payconnect.connectors.dummypay")

PROVIDER_NAME = "dummypay"
PAGE_SIZE = 25

CAPABILITIES = (
    Capability.FETCH_ACCOUNTS,
    Capability.FETCH_BALANCES,
    Capability.FETCH_EXTERNAL_ACCOUNTS,
    Capability.FETCH_PAYMENTS,
    Capability.FETCH_OTHERS,
    Capability.CREATE_BANK_ACCOUNT,
    Capability.CREATE_TRANSFER,
    Capability.CREATE_PAYOUT,
    Capability.ALLOW_ACCOUNT_CREATION,
    Capability.ALLOW_PAYMENT_CREATION,
)

WORKFLOW = (
    task(
        TaskType.FETCH_ACCOUNTS,
        "fetch_accounts",
        task(TaskType.FETCH_BALANCES, "fetch_balances"),
    ),
    task(TaskType.FETCH_EXTERNAL_ACCOUNTS, "fetch_external_accounts"),
    task(TaskType.FETCH_PAYMENTS, "fetch_payments"),
)


class Config(ConnectorConfig):
    directory: str = Field(min_length=1)


class Plugin(BasePlugin):
    provider_name = PROVIDER_NAME

    def install(self, req: InstallRequest) -> InstallResponse:
        config = unmarshal_and_validate_config(Config, req.config)
        self.config = config
        self.client = Client(config.directory)
        logger.info("Installed dummypay name=%s directory=%s", self.name, config.directory)
        return InstallResponse(workflow=WORKFLOW, capabilities=list(CAPABILITIES))

    def uninstall(self, req: UninstallRequest) -> UninstallResponse:
        return UninstallResponse()

    def fetch_next_accounts(
        self, req: FetchNextAccountsRequest
    ) -> FetchNextAccountsResponse:
        return accounts.fetch_next_accounts(self, req)

    def fetch_next_external_accounts(
        self, req: FetchNextExternalAccountsRequest
    ) -> FetchNextExternalAccountsResponse:
        return accounts.fetch_next_external_accounts(self, req)

    def fetch_next_balances(
        self, req: FetchNextBalancesRequest
    ) -> FetchNextBalancesResponse:
        return balances.fetch_next_balances(self, req)

    def fetch_next_payments(
        self, req: FetchNextPaymentsRequest
    ) -> FetchNextPaymentsResponse:
        return payments.fetch_next_payments(self, req)

    def fetch_next_others(self, req: FetchNextOthersRequest) -> FetchNextOthersResponse:
        return others.fetch_next_others(self, req)

    def create_bank_account(
        self, req: CreateBankAccountRequest
    ) -> CreateBankAccountResponse:
        self._require_client()
        bank_account = req.bank_account
        raw = {
            "id": bank_account.id,
            "name": bank_account.name,
            "accountNumber": bank_account.account_number,
            "iban": bank_account.iban,
            "swiftBicCode": bank_account.swift_bic_code,
            "country": bank_account.country,
        }
        return CreateBankAccountResponse(
            related_account=PSPAccount(
                reference=f"dummypay-{bank_account.id}",
                created_at=bank_account.created_at,
                name="dummypay-account",
                metadata=dict(bank_account.metadata),
                raw=json.dumps(raw).encode(),
            )
        )

    def create_transfer(self, req: CreateTransferRequest) -> CreateTransferResponse:
        payment = transfers.create_payment(
            self, PaymentType.TRANSFER, req.payment_initiation
        )
        return CreateTransferResponse(payment=payment)

    def reverse_transfer(self, req: ReverseTransferRequest) -> ReverseTransferResponse:
        payment = transfers.reverse_payment(
            self, PaymentType.TRANSFER, req.payment_initiation_reversal
        )
        return ReverseTransferResponse(payment=payment)

    def create_payout(self, req: CreatePayoutRequest) -> CreatePayoutResponse:
        payment = transfers.create_payment(
            self, PaymentType.PAYOUT, req.payment_initiation
        )
        return CreatePayoutResponse(payment=payment)

    def reverse_payout(self, req: ReversePayoutRequest) -> ReversePayoutResponse:
        payment = transfers.reverse_payment(
            self, PaymentType.PAYOUT, req.payment_initiation_reversal
        )
        return ReversePayoutResponse(payment=payment)
