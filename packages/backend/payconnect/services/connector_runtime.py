"""In-memory connector runtime behind the dev server.

Installs plugins from the registry, keeps one pagination state blob per
fetch stream and routes webhook deliveries through trim, verify and
translate.  Nothing is persisted: restarting the process uninstalls
everything.
"""

import json
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from ..config import Settings
from ..connectors import PluginRegistry
from ..connectors.wrapper import PluginWrapper
from ..errors import InvalidRequest
from ..messages import (
    CreateWebhooksRequest,
    FetchNextAccountsRequest,
    FetchNextBalancesRequest,
    FetchNextExternalAccountsRequest,
    FetchNextOthersRequest,
    FetchNextPaymentsRequest,
    InstallRequest,
    TranslateWebhookRequest,
    TrimWebhookRequest,
    UninstallRequest,
    VerifyWebhookRequest,
)
from ..models import Capability, PSPAccount, PSPWebhook, PSPWebhookConfig
from ..workflow import ConnectorTasksTree, tree_to_list

logger = logging.getLogger("payconnect.runtime")

# entity -> (request type, plugin method, response items attribute)
FETCHERS: dict[str, tuple[type, str, str]] = {
    "accounts": (FetchNextAccountsRequest, "fetch_next_accounts", "accounts"),
    "balances": (FetchNextBalancesRequest, "fetch_next_balances", "balances"),
    "external-accounts": (
        FetchNextExternalAccountsRequest,
        "fetch_next_external_accounts",
        "external_accounts",
    ),
    "payments": (FetchNextPaymentsRequest, "fetch_next_payments", "payments"),
    "others": (FetchNextOthersRequest, "fetch_next_others", "others"),
}


@dataclass
class InstalledConnector:
    connector_id: str
    provider: str
    plugin: PluginWrapper
    page_size: int
    workflow: ConnectorTasksTree
    capabilities: list[Capability]
    installed_at: datetime
    webhook_configs: list[PSPWebhookConfig] = field(default_factory=list)
    # state key -> opaque state blob returned by the last fetch
    states: dict[str, bytes] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.connector_id,
            "provider": self.provider,
            "name": self.plugin.name,
            "pageSize": self.page_size,
            "installedAt": self.installed_at.isoformat(),
            "capabilities": [c.value for c in self.capabilities],
            "workflow": tree_to_list(self.workflow),
            "webhooks": [
                {"name": c.name, "urlPath": c.url_path} for c in self.webhook_configs
            ],
        }


class ConnectorRuntime:
    def __init__(self, registry: PluginRegistry, settings: Settings) -> None:
        self.registry = registry
        self.settings = settings
        self._connectors: dict[str, InstalledConnector] = {}
        self._lock = threading.Lock()

    # -- lifecycle ------------------------------------------------------------

    def install(
        self, provider: str, name: str, config: dict[str, Any] | None
    ) -> InstalledConnector:
        plugin = self.registry.get_plugin(
            provider, name, http_timeout=self.settings.http_timeout_seconds
        )
        connector_id = uuid4().hex
        resp = plugin.install(InstallRequest(config=config, connector_id=connector_id))

        page_size = self.registry.get_page_size(provider)
        if isinstance(config, dict) and config.get("pageSize"):
            page_size = int(config["pageSize"])

        installed = InstalledConnector(
            connector_id=connector_id,
            provider=provider,
            plugin=plugin,
            page_size=page_size,
            workflow=resp.workflow,
            capabilities=list(resp.capabilities),
            installed_at=datetime.now(timezone.utc),
        )

        if Capability.CREATE_WEBHOOKS in installed.capabilities:
            self._create_webhooks(installed)

        with self._lock:
            self._connectors[connector_id] = installed
        logger.info(
            "Connector installed id=%s provider=%s name=%s", connector_id, provider, name
        )
        return installed

    def _create_webhooks(self, installed: InstalledConnector) -> None:
        base_url = self.settings.webhook_base_url
        if not base_url:
            logger.warning(
                "Skipping webhook creation id=%s: webhook_base_url is not set",
                installed.connector_id,
            )
            return
        resp = installed.plugin.create_webhooks(
            CreateWebhooksRequest(
                connector_id=installed.connector_id,
                webhook_base_url=(
                    f"{base_url.rstrip('/')}/connectors/"
                    f"{installed.connector_id}/webhooks"
                ),
            )
        )
        installed.webhook_configs = list(resp.configs)

    def uninstall(self, connector_id: str) -> None:
        installed = self.get(connector_id)
        installed.plugin.uninstall(
            UninstallRequest(
                connector_id=connector_id,
                webhook_configs=list(installed.webhook_configs),
            )
        )
        with self._lock:
            self._connectors.pop(connector_id, None)
        logger.info("Connector uninstalled id=%s", connector_id)

    def get(self, connector_id: str) -> InstalledConnector:
        with self._lock:
            installed = self._connectors.get(connector_id)
        if installed is None:
            raise LookupError(f"connector {connector_id} not found")
        return installed

    def list_connectors(self) -> list[InstalledConnector]:
        with self._lock:
            return sorted(self._connectors.values(), key=lambda c: c.installed_at)

    # -- fetching -------------------------------------------------------------

    def states(self, connector_id: str) -> dict[str, Any]:
        installed = self.get(connector_id)
        return {key: _decode_state(raw) for key, raw in installed.states.items()}

    def fetch(
        self,
        connector_id: str,
        entity: str,
        *,
        from_payload: dict[str, Any] | None = None,
        page_size: int | None = None,
        reset: bool = False,
    ) -> dict[str, Any]:
        """Run one ``fetch_next_*`` call and remember the returned state."""
        installed = self.get(connector_id)
        fetcher = FETCHERS.get(entity)
        if fetcher is None:
            raise LookupError(f"unknown entity {entity!r}")
        request_cls, method, items_attr = fetcher

        payload = None
        state_key = entity
        extra: dict[str, Any] = {}
        if entity == "others":
            # others streams are selected by name, carried in fromPayload
            name = _others_name(from_payload)
            state_key = f"{entity}:{name}"
            extra["name"] = name
        elif from_payload is not None:
            account = _account_from_payload(from_payload)
            payload = account.to_payload()
            state_key = f"{entity}:{account.reference}"

        if reset:
            installed.states.pop(state_key, None)

        req = request_cls(
            page_size=page_size or installed.page_size,
            state=installed.states.get(state_key),
            from_payload=payload,
            **extra,
        )
        resp = getattr(installed.plugin, method)(req)
        installed.states[state_key] = resp.new_state

        items = getattr(resp, items_attr)
        return {
            "entity": entity,
            "stateKey": state_key,
            "items": [item.to_dict() for item in items],
            "hasMore": resp.has_more,
            "state": _decode_state(resp.new_state),
        }

    # -- webhooks -------------------------------------------------------------

    def handle_webhook(
        self, connector_id: str, name: str, webhook: PSPWebhook
    ) -> list[dict[str, Any]]:
        installed = self.get(connector_id)
        config = _find_webhook_config(installed.webhook_configs, name)

        results = []
        trimmed = installed.plugin.trim_webhook(
            TrimWebhookRequest(webhook=webhook, config=config)
        )
        for single in trimmed.webhooks:
            verified = installed.plugin.verify_webhook(
                VerifyWebhookRequest(webhook=single, config=config)
            )
            translated = installed.plugin.translate_webhook(
                TranslateWebhookRequest(name=config.name, webhook=single, config=config)
            )
            results.append(
                {
                    "idempotencyKey": verified.webhook_idempotency_key,
                    "responses": [_webhook_response_dict(r) for r in translated.responses],
                }
            )
        return results


def _find_webhook_config(
    configs: list[PSPWebhookConfig], name: str
) -> PSPWebhookConfig:
    for config in configs:
        if config.name == name or config.url_path.strip("/") == name.strip("/"):
            return config
    raise LookupError(f"webhook {name!r} not configured")


def _others_name(data: dict[str, Any] | None) -> str:
    name = (data or {}).get("name")
    if not isinstance(name, str) or not name:
        raise InvalidRequest("fromPayload.name is required for others")
    return name


def _account_from_payload(data: dict[str, Any]) -> PSPAccount:
    try:
        return PSPAccount.from_dict(data)
    except (KeyError, TypeError, ValueError) as exc:
        raise InvalidRequest(f"invalid fromPayload: {exc}") from exc


def _decode_state(raw: bytes | None) -> Any:
    if not raw:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        return raw.decode(errors="replace")


def _webhook_response_dict(resp) -> dict[str, Any]:
    out = {}
    if resp.account is not None:
        out["account"] = resp.account.to_dict()
    if resp.external_account is not None:
        out["externalAccount"] = resp.external_account.to_dict()
    if resp.payment is not None:
        out["payment"] = resp.payment.to_dict()
    return out
