"""Logging and metrics around every plugin operation."""

import logging
import time
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, TypeVar

from ..errors import PluginError, UpstreamError, wrap_error
from ..observability import track_plugin_call

if TYPE_CHECKING:
    from . import Plugin

logger = logging.getLogger("payconnect.connectors.wrapper")

R = TypeVar("R")


class PluginWrapper:
    """Delegates to a plugin, adding structured logs and Prometheus metrics.

    Errors outside the plugin error taxonomy (a bug in a translator, an
    unexpected vendor payload) are re-raised as ``UpstreamError`` so callers
    only ever see ``PluginError`` subclasses.
    """

    def __init__(self, provider: str, plugin: "Plugin") -> None:
        self.provider = provider
        self.plugin = plugin

    @property
    def name(self) -> str:
        return self.plugin.name

    @property
    def installed(self) -> bool:
        return self.plugin.installed

    def _call(
        self,
        operation: str,
        message: str,
        fn: Callable[[Any], R],
        req: Any,
        items_attr: str | None = None,
    ) -> R:
        logger.info("%s provider=%s name=%s", message, self.provider, self.name)
        started = time.perf_counter()
        outcome = "error"
        items = 0
        try:
            resp = fn(req)
            outcome = "success"
            if items_attr is not None:
                items = len(getattr(resp, items_attr))
            return resp
        except PluginError as exc:
            outcome = type(exc).__name__
            logger.warning(
                "%s failed provider=%s name=%s error=%s",
                operation,
                self.provider,
                self.name,
                exc,
            )
            raise
        except Exception as exc:
            logger.exception(
                "%s crashed provider=%s name=%s", operation, self.provider, self.name
            )
            raise wrap_error(exc, UpstreamError, f"{operation} failed") from exc
        finally:
            track_plugin_call(
                self.provider,
                operation,
                outcome,
                time.perf_counter() - started,
                items,
            )

    def install(self, req):
        return self._call("install", "installing...", self.plugin.install, req)

    def uninstall(self, req):
        return self._call("uninstall", "uninstalling...", self.plugin.uninstall, req)

    def fetch_next_accounts(self, req):
        return self._call(
            "fetch_next_accounts",
            "fetching next accounts...",
            self.plugin.fetch_next_accounts,
            req,
            "accounts",
        )

    def fetch_next_balances(self, req):
        return self._call(
            "fetch_next_balances",
            "fetching next balances...",
            self.plugin.fetch_next_balances,
            req,
            "balances",
        )

    def fetch_next_external_accounts(self, req):
        return self._call(
            "fetch_next_external_accounts",
            "fetching next external accounts...",
            self.plugin.fetch_next_external_accounts,
            req,
            "external_accounts",
        )

    def fetch_next_payments(self, req):
        return self._call(
            "fetch_next_payments",
            "fetching next payments...",
            self.plugin.fetch_next_payments,
            req,
            "payments",
        )

    def fetch_next_others(self, req):
        return self._call(
            "fetch_next_others",
            "fetching next others...",
            self.plugin.fetch_next_others,
            req,
            "others",
        )

    def create_bank_account(self, req):
        return self._call(
            "create_bank_account",
            "creating bank account...",
            self.plugin.create_bank_account,
            req,
        )

    def create_transfer(self, req):
        return self._call(
            "create_transfer", "creating transfer...", self.plugin.create_transfer, req
        )

    def reverse_transfer(self, req):
        return self._call(
            "reverse_transfer",
            "reversing transfer...",
            self.plugin.reverse_transfer,
            req,
        )

    def poll_transfer_status(self, req):
        return self._call(
            "poll_transfer_status",
            "polling transfer status...",
            self.plugin.poll_transfer_status,
            req,
        )

    def create_payout(self, req):
        return self._call(
            "create_payout", "creating payout...", self.plugin.create_payout, req
        )

    def reverse_payout(self, req):
        return self._call(
            "reverse_payout", "reversing payout...", self.plugin.reverse_payout, req
        )

    def poll_payout_status(self, req):
        return self._call(
            "poll_payout_status",
            "polling payout status...",
            self.plugin.poll_payout_status,
            req,
        )

    def create_webhooks(self, req):
        return self._call(
            "create_webhooks", "creating webhooks...", self.plugin.create_webhooks, req
        )

    def trim_webhook(self, req):
        return self._call(
            "trim_webhook", "trimming webhook...", self.plugin.trim_webhook, req
        )

    def verify_webhook(self, req):
        return self._call(
            "verify_webhook", "verifying webhook...", self.plugin.verify_webhook, req
        )

    def translate_webhook(self, req):
        return self._call(
            "translate_webhook",
            "translating webhook...",
            self.plugin.translate_webhook,
            req,
            "responses",
        )
