"""Adyen Management API client (merchant accounts and webhook setup)."""

import logging
from typing import Any

import requests

from ...errors import UpstreamError, wrap_error

logger = logging.getLogger("payconnect.connectors.adyen")

TEST_ENDPOINT = "https://management-test.adyen.com/v3"
LIVE_ENDPOINT = "https://management-live.adyen.com/v3"


def management_endpoint(live_endpoint_prefix: str | None) -> str:
    """Live credentials come with a prefix; without one the test API is used."""
    return LIVE_ENDPOINT if live_endpoint_prefix else TEST_ENDPOINT


class Client:
    def __init__(
        self,
        api_key: str,
        company_id: str,
        endpoint: str = TEST_ENDPOINT,
        timeout: float = 30,
        session: requests.Session | None = None,
    ) -> None:
        self.api_key = api_key
        self.company_id = company_id
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
    ) -> Any:
        try:
            resp = self.session.request(
                method,
                f"{self.endpoint}/companies/{self.company_id}/{path.lstrip('/')}",
                headers={"X-API-Key": self.api_key, "Content-Type": "application/json"},
                params=params,
                json=payload,
                timeout=self.timeout,
            )
            resp.raise_for_status()
            if resp.status_code == 204 or not resp.content:
                return {}
            return resp.json()
        except (requests.RequestException, ValueError) as exc:
            logger.warning("Adyen %s %s failed: %s", method, path, exc)
            raise wrap_error(exc, UpstreamError, f"failed to {operation}") from exc

    def get_merchant_accounts(self, page: int, page_size: int) -> list[dict[str, Any]]:
        """``page`` is 1-based, as the Management API expects."""
        body = self._do(
            "GET",
            "merchants",
            "get merchant accounts",
            params={"pageNumber": page, "pageSize": page_size},
        )
        return body.get("data", [])

    def create_webhook(
        self,
        url: str,
        description: str,
        username: str | None = None,
        password: str | None = None,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "type": "standard",
            "url": url,
            "description": description,
            "active": True,
            "communicationFormat": "json",
        }
        if username and password:
            payload["username"] = username
            payload["password"] = password
        return self._do("POST", "webhooks", "create webhook", payload=payload)

    def generate_hmac_key(self, webhook_id: str) -> str:
        body = self._do(
            "POST", f"webhooks/{webhook_id}/generateHmac", "generate hmac key"
        )
        return body["hmacKey"]

    def delete_webhook(self, webhook_id: str) -> None:
        self._do("DELETE", f"webhooks/{webhook_id}", "delete webhook")
