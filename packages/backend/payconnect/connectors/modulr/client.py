"""Thin Modulr REST client.

Requests are signed with Modulr's HMAC scheme: an ``Authorization`` header
carrying an HMAC-SHA1 of the ``date`` and ``x-mod-nonce`` headers.
"""

import base64
import hashlib
import hmac
import logging
import uuid
from datetime import datetime
from email.utils import formatdate
from typing import Any
from urllib.parse import quote

import requests

from ...errors import UpstreamError, wrap_error

logger = logging.getLogger("payconnect.connectors.modulr")

DEFAULT_ENDPOINT = "https://api-sandbox.modulrfinance.com/api-sandbox-token"
TIME_FORMAT = "%Y-%m-%dT%H:%M:%S%z"


def signature_headers(
    api_key: str, api_secret: str, nonce: str | None = None, date: str | None = None
) -> dict[str, str]:
    nonce = nonce or str(uuid.uuid4())
    date = date or formatdate(usegmt=True)
    to_sign = f"date: {date}\nx-mod-nonce: {nonce}"
    digest = hmac.new(api_secret.encode(), to_sign.encode(), hashlib.sha1).digest()
    signature = quote(base64.b64encode(digest).decode(), safe="")
    return {
        "Authorization": (
            f'Signature keyId="{api_key}",algorithm="hmac-sha1",'
            f'headers="date x-mod-nonce",signature="{signature}"'
        ),
        "Date": date,
        "x-mod-nonce": nonce,
    }


def format_time(value: datetime) -> str:
    return value.strftime(TIME_FORMAT)


class Client:
    def __init__(
        self,
        api_key: str,
        api_secret: str,
        endpoint: str = DEFAULT_ENDPOINT,
        timeout: float = 30,
        session: requests.Session | None = None,
    ) -> None:
        self.api_key = api_key
        self.api_secret = api_secret
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
        headers = signature_headers(self.api_key, self.api_secret)
        headers["Content-Type"] = "application/json"
        try:
            resp = self.session.request(
                method,
                f"{self.endpoint}{path}",
                headers=headers,
                params=params,
                json=payload,
                timeout=self.timeout,
            )
            resp.raise_for_status()
            return resp.json()
        except (requests.RequestException, ValueError) as exc:
            logger.warning("Modulr %s %s failed: %s", method, path, exc)
            raise wrap_error(exc, UpstreamError, f"failed to {operation}") from exc

    @staticmethod
    def _page_params(page: int, page_size: int) -> dict[str, Any]:
        return {"page": page, "size": page_size, "sortOrder": "asc"}

    # -- accounts -------------------------------------------------------------

    def get_accounts(
        self, page: int, page_size: int, from_created: datetime | None
    ) -> list[dict[str, Any]]:
        params = self._page_params(page, page_size)
        params["sortField"] = "createdDate"
        if from_created is not None:
            params["fromCreatedDate"] = format_time(from_created)
        return self._do("GET", "/accounts", "get accounts", params=params)["content"]

    def get_account(self, account_id: str) -> dict[str, Any]:
        return self._do("GET", f"/accounts/{account_id}", "get account")

    def get_beneficiaries(
        self, page: int, page_size: int, modified_since: datetime | None
    ) -> list[dict[str, Any]]:
        params = self._page_params(page, page_size)
        params["sortField"] = "created"
        if modified_since is not None:
            params["modifiedSince"] = format_time(modified_since)
        return self._do("GET", "/beneficiaries", "get beneficiaries", params=params)[
            "content"
        ]

    # -- transactions ---------------------------------------------------------

    def get_transactions(
        self,
        account_id: str,
        page: int,
        page_size: int,
        from_date: datetime | None,
    ) -> list[dict[str, Any]]:
        params = self._page_params(page, page_size)
        if from_date is not None:
            params["fromTransactionDate"] = format_time(from_date)
        return self._do(
            "GET",
            f"/accounts/{account_id}/transactions",
            "get transactions",
            params=params,
        )["content"]

    # -- payments -------------------------------------------------------------

    def get_payment(self, payment_id: str) -> dict[str, Any]:
        content = self._do(
            "GET", "/payments", "get payment", params={"id": payment_id}
        )["content"]
        if not content:
            raise UpstreamError(f"failed to get payment: {payment_id} not found")
        return content[0]

    def initiate_payment(self, payload: dict[str, Any]) -> dict[str, Any]:
        return self._do("POST", "/payments", "initiate payment", payload=payload)
