"""Adyen connector: merchant accounts plus webhook-delivered payments."""

import logging

from pydantic import Field

from ...messages import (
    CreateWebhooksRequest,
    CreateWebhooksResponse,
    FetchNextAccountsRequest,
    FetchNextAccountsResponse,
    InstallRequest,
    InstallResponse,
    TranslateWebhookRequest,
    TranslateWebhookResponse,
    TrimWebhookRequest,
    TrimWebhookResponse,
    UninstallRequest,
    UninstallResponse,
    VerifyWebhookRequest,
    VerifyWebhookResponse,
)
from ...models import Capability
from ...workflow import TaskType, task
from .. import Plugin as BasePlugin
from ..config import ConnectorConfig, unmarshal_and_validate_config
from . import accounts, webhooks
from .client import Client, management_endpoint

logger = logging.getLogger("payconnect.connectors.adyen")

PROVIDER_NAME = "adyen"
PAGE_SIZE = 100

CAPABILITIES = (
    Capability.FETCH_ACCOUNTS,
    Capability.FETCH_PAYMENTS,
    Capability.CREATE_WEBHOOKS,
    Capability.TRANSLATE_WEBHOOKS,
)

WORKFLOW = (
    task(TaskType.FETCH_ACCOUNTS, "fetch_accounts"),
    task(TaskType.CREATE_WEBHOOKS, "create_webhooks", periodically=False),
)


class Config(ConnectorConfig):
    api_key: str = Field(alias="apiKey", min_length=1)
    company_id: str = Field(alias="companyID", min_length=1)
    live_endpoint_prefix: str | None = Field(default=None, alias="liveEndpointPrefix")
    webhook_username: str | None = Field(default=None, alias="webhookUsername")
    webhook_password: str | None = Field(default=None, alias="webhookPassword")


class Plugin(BasePlugin):
    provider_name = PROVIDER_NAME

    def install(self, req: InstallRequest) -> InstallResponse:
        config = unmarshal_and_validate_config(Config, req.config)
        self.config = config
        self.client = Client(
            config.api_key,
            config.company_id,
            management_endpoint(config.live_endpoint_prefix),
            timeout=self.http_timeout,
        )
        logger.info(
            "Installed adyen name=%s company=%s live=%s",
            self.name,
            config.company_id,
            bool(config.live_endpoint_prefix),
        )
        return InstallResponse(workflow=WORKFLOW, capabilities=list(CAPABILITIES))

    def uninstall(self, req: UninstallRequest) -> UninstallResponse:
        webhooks.delete_webhooks(self, req)
        return UninstallResponse()

    def fetch_next_accounts(
        self, req: FetchNextAccountsRequest
    ) -> FetchNextAccountsResponse:
        return accounts.fetch_next_accounts(self, req)

    def create_webhooks(self, req: CreateWebhooksRequest) -> CreateWebhooksResponse:
        return webhooks.create_webhooks(self, req)

    def trim_webhook(self, req: TrimWebhookRequest) -> TrimWebhookResponse:
        return webhooks.trim_webhook(self, req)

    def verify_webhook(self, req: VerifyWebhookRequest) -> VerifyWebhookResponse:
        return webhooks.verify_webhook(self, req)

    def translate_webhook(
        self, req: TranslateWebhookRequest
    ) -> TranslateWebhookResponse:
        return webhooks.translate_webhook(self, req)
