"""Thin Increase REST client (bearer API key, cursor-paginated lists)."""

import logging
from typing import Any

import requests

from ...errors import UpstreamError, wrap_error

logger = logging.getLogger("payconnect.connectors.increase")

DEFAULT_ENDPOINT = "https://api.increase.com"


class Client:
    def __init__(
        self,
        api_key: str,
        endpoint: str = DEFAULT_ENDPOINT,
        timeout: float = 30,
        session: requests.Session | None = None,
    ) -> None:
        self.api_key = api_key
        self.endpoint = endpoint.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def _do(
        self,
        method: str,
        path: str,
        operation: str,
        *,
        params: dict[str, Any] | None = None,
        payload: dict[str, Any] | None = None,
        idempotency_key: str | None = None,
    ) -> Any:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        if idempotency_key:
            headers["Idempotency-Key"] = idempotency_key
        try:
            resp = self.session.request(
                method,
                f"{self.endpoint}/{path.lstrip('/')}",
                headers=headers,
                params=params,
                json=payload,
                timeout=self.timeout,
            )
            resp.raise_for_status()
            return resp.json()
        except (requests.RequestException, ValueError) as exc:
            logger.warning("Increase %s %s failed: %s", method, path, exc)
            raise wrap_error(exc, UpstreamError, f"failed to {operation}") from exc

    def list(
        self, resource: str, page_size: int, cursor: str | None
    ) -> tuple[list[dict[str, Any]], str | None]:
        """One page of ``resource`` in creation order, plus the next cursor."""
        params: dict[str, Any] = {"limit": page_size}
        if cursor:
            params["cursor"] = cursor
        body = self._do("GET", resource, f"list {resource}", params=params)
        return body.get("data", []), body.get("next_cursor")

    def get(self, resource: str, object_id: str) -> dict[str, Any]:
        return self._do("GET", f"{resource}/{object_id}", f"get {resource}")

    def get_account_balance(self, account_id: str) -> dict[str, Any]:
        return self._do("GET", f"accounts/{account_id}/balance", "get account balance")

    def create(
        self, resource: str, payload: dict[str, Any], idempotency_key: str | None = None
    ) -> dict[str, Any]:
        return self._do(
            "POST",
            resource,
            f"create {resource}",
            payload=payload,
            idempotency_key=idempotency_key,
        )

    def create_event_subscription(
        self, url: str, category: str, shared_secret: str, idempotency_key: str
    ) -> dict[str, Any]:
        return self.create(
            "event_subscriptions",
            {
                "url": url,
                "selected_event_category": category,
                "shared_secret": shared_secret,
            },
            idempotency_key=idempotency_key,
        )

    def delete_event_subscription(self, subscription_id: str) -> dict[str, Any]:
        return self._do(
            "PATCH",
            f"event_subscriptions/{subscription_id}",
            "delete event subscription",
            payload={"status": "deleted"},
        )
