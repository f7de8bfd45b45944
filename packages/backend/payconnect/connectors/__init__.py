"""Connector plugin architecture: base plugin contract and registry."""

import logging
from dataclasses import dataclass
from typing import Any

from ..errors import NotYetInstalled, OperationNotImplemented
from ..messages import (
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
    FetchNextOthersRequest,
    FetchNextOthersResponse,
    FetchNextPaymentsRequest,
    FetchNextPaymentsResponse,
    InstallRequest,
    InstallResponse,
    PollPayoutStatusRequest,
    PollPayoutStatusResponse,
    PollTransferStatusRequest,
    PollTransferStatusResponse,
    ReversePayoutRequest,
    ReversePayoutResponse,
    ReverseTransferRequest,
    ReverseTransferResponse,
    TranslateWebhookRequest,
    TranslateWebhookResponse,
    TrimWebhookRequest,
    TrimWebhookResponse,
    UninstallRequest,
    UninstallResponse,
    VerifyWebhookRequest,
    VerifyWebhookResponse,
)
from ..models import Capability, PluginType
from .config import ConnectorConfig
from .wrapper import PluginWrapper

logger = logging.getLogger("payconnect.connectors")

DEFAULT_PAGE_SIZE = 25


# ---------------------------------------------------------------------------
# Plugin base class
# ---------------------------------------------------------------------------


class Plugin:
    """Base connector plugin.

    Every operation raises ``OperationNotImplemented`` until a connector
    overrides it.  A fresh instance is *uninstalled*: ``client`` is ``None``
    and data operations must call ``_require_client`` first, which raises
    ``NotYetInstalled``.  ``install`` validates the raw config, builds the
    vendor client and returns the static workflow.
    """

    # Short identifier, e.g. ``modulr``, ``dummypay``
    provider_name: str = ""

    def __init__(self, name: str, http_timeout: float = 30.0) -> None:
        self.name = name
        self.http_timeout = http_timeout
        self.client: Any = None
        self.config: ConnectorConfig | None = None

    @property
    def installed(self) -> bool:
        return self.client is not None

    def _require_client(self) -> Any:
        if self.client is None:
            raise NotYetInstalled()
        return self.client

    # -- lifecycle ------------------------------------------------------------

    def install(self, req: InstallRequest) -> InstallResponse:
        raise OperationNotImplemented()

    def uninstall(self, req: UninstallRequest) -> UninstallResponse:
        raise OperationNotImplemented()

    # -- fetching -------------------------------------------------------------

    def fetch_next_accounts(
        self, req: FetchNextAccountsRequest
    ) -> FetchNextAccountsResponse:
        raise OperationNotImplemented()

    def fetch_next_balances(
        self, req: FetchNextBalancesRequest
    ) -> FetchNextBalancesResponse:
        raise OperationNotImplemented()

    def fetch_next_external_accounts(
        self, req: FetchNextExternalAccountsRequest
    ) -> FetchNextExternalAccountsResponse:
        raise OperationNotImplemented()

    def fetch_next_payments(
        self, req: FetchNextPaymentsRequest
    ) -> FetchNextPaymentsResponse:
        raise OperationNotImplemented()

    def fetch_next_others(self, req: FetchNextOthersRequest) -> FetchNextOthersResponse:
        raise OperationNotImplemented()

    # -- payment initiation ---------------------------------------------------

    def create_bank_account(
        self, req: CreateBankAccountRequest
    ) -> CreateBankAccountResponse:
        raise OperationNotImplemented()

    def create_transfer(self, req: CreateTransferRequest) -> CreateTransferResponse:
        raise OperationNotImplemented()

    def reverse_transfer(self, req: ReverseTransferRequest) -> ReverseTransferResponse:
        raise OperationNotImplemented()

    def poll_transfer_status(
        self, req: PollTransferStatusRequest
    ) -> PollTransferStatusResponse:
        raise OperationNotImplemented()

    def create_payout(self, req: CreatePayoutRequest) -> CreatePayoutResponse:
        raise OperationNotImplemented()

    def reverse_payout(self, req: ReversePayoutRequest) -> ReversePayoutResponse:
        raise OperationNotImplemented()

    def poll_payout_status(
        self, req: PollPayoutStatusRequest
    ) -> PollPayoutStatusResponse:
        raise OperationNotImplemented()

    # -- webhooks -------------------------------------------------------------

    def create_webhooks(self, req: CreateWebhooksRequest) -> CreateWebhooksResponse:
        raise OperationNotImplemented()

    def trim_webhook(self, req: TrimWebhookRequest) -> TrimWebhookResponse:
        """Split a delivery into individual webhooks; identity by default."""
        return TrimWebhookResponse(webhooks=[req.webhook])

    def verify_webhook(self, req: VerifyWebhookRequest) -> VerifyWebhookResponse:
        raise OperationNotImplemented()

    def translate_webhook(
        self, req: TranslateWebhookRequest
    ) -> TranslateWebhookResponse:
        raise OperationNotImplemented()


# ---------------------------------------------------------------------------
# Plugin registry
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RegisteredPlugin:
    provider: str
    plugin_cls: type[Plugin]
    plugin_type: PluginType
    capabilities: tuple[Capability, ...]
    config_cls: type[ConnectorConfig]
    page_size: int
    debug: bool = False


class PluginRegistry:
    """Provider name -> plugin constructor, capabilities and defaults.

    Populated once by the composition root, then frozen.
    """

    def __init__(self) -> None:
        self._plugins: dict[str, RegisteredPlugin] = {}
        self._frozen = False

    def register(
        self,
        provider: str,
        plugin_cls: type[Plugin],
        *,
        capabilities: list[Capability] | tuple[Capability, ...],
        config_cls: type[ConnectorConfig],
        plugin_type: PluginType = PluginType.PSP,
        page_size: int = DEFAULT_PAGE_SIZE,
        debug: bool = False,
    ) -> None:
        if self._frozen:
            raise RuntimeError("plugin registry is frozen")
        if provider in self._plugins:
            raise ValueError(f"Provider '{provider}' is already registered")
        if page_size <= 0:
            raise ValueError("page_size must be positive")
        self._plugins[provider] = RegisteredPlugin(
            provider=provider,
            plugin_cls=plugin_cls,
            plugin_type=plugin_type,
            capabilities=tuple(capabilities),
            config_cls=config_cls,
            page_size=page_size,
            debug=debug,
        )

    def freeze(self) -> "PluginRegistry":
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def _lookup(self, provider: str) -> RegisteredPlugin:
        entry = self._plugins.get(provider)
        if entry is None:
            raise LookupError(
                f"Unknown provider '{provider}'. "
                f"Available: {self.list_providers()}"
            )
        return entry

    def get_plugin(
        self, provider: str, name: str, http_timeout: float = 30.0
    ) -> PluginWrapper:
        """Construct an uninstalled plugin, wrapped for logging and metrics."""
        entry = self._lookup(provider)
        return PluginWrapper(provider, entry.plugin_cls(name, http_timeout))

    def get_capabilities(self, provider: str) -> tuple[Capability, ...]:
        return self._lookup(provider).capabilities

    def get_plugin_type(self, provider: str) -> PluginType:
        return self._lookup(provider).plugin_type

    def get_config_schema(self, provider: str) -> dict[str, Any]:
        return self._lookup(provider).config_cls.model_json_schema(by_alias=True)

    def get_page_size(self, provider: str) -> int:
        return self._lookup(provider).page_size

    def list_providers(self, include_debug: bool = True) -> list[str]:
        return sorted(
            provider
            for provider, entry in self._plugins.items()
            if include_debug or not entry.debug
        )

    def __contains__(self, provider: object) -> bool:
        return provider in self._plugins


def build_registry() -> PluginRegistry:
    """Register every built-in connector in a fixed order, then freeze."""
    from . import adyen, dummypay, increase, modulr

    registry = PluginRegistry()
    for module in (adyen, dummypay, increase, modulr):
        module.register(registry)
    logger.debug("Registered providers: %s", registry.list_providers())
    return registry.freeze()
