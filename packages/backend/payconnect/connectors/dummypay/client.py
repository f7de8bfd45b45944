"""File-backed client: every "API call" reads or writes JSON in a directory.

Layout::

    accounts.json           [{"id", "name", "currency", "openingDate"}]
    external_accounts.json  same shape as accounts
    balances.json           [{"accountId", "amountInMinors", "currency"}]
    payments.json           [{"id", "createdAt", "type", "status", "amount",
                              "currency", "sourceAccountId",
                              "destinationAccountId"}]
    others/<name>.json      [{"id", ...}]

Missing files read as empty lists.
"""

import json
import logging
from collections.abc import Iterator
from pathlib import Path
from typing import Any

from ...errors import UpstreamError, wrap_error

logger = logging.getLogger("payconnect.connectors.dummypay")


class Client:
    def __init__(self, directory: str) -> None:
        self.directory = Path(directory)

    # -- raw file access ------------------------------------------------------

    def read_records(self, filename: str) -> list[dict[str, Any]]:
        """Return the records of ``filename`` sorted by ``id``."""
        records = self._read(filename)
        return sorted(records, key=lambda r: str(r.get("id", "")))

    def iter_pages(
        self, filename: str, page_size: int
    ) -> Iterator[list[dict[str, Any]]]:
        records = self.read_records(filename)
        for start in range(0, len(records), page_size):
            yield records[start : start + page_size]

    def _read(self, filename: str) -> list[dict[str, Any]]:
        path = self.directory / filename
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        except OSError as exc:
            raise wrap_error(exc, UpstreamError, f"failed to read {filename}") from exc
        if not text.strip():
            return []
        try:
            data = json.loads(text)
        except ValueError as exc:
            raise wrap_error(
                exc, UpstreamError, f"failed to unmarshal {filename}"
            ) from exc
        if not isinstance(data, list):
            raise UpstreamError(f"failed to unmarshal {filename}: expected a list")
        return data

    def _write(self, filename: str, records: list[dict[str, Any]]) -> None:
        path = self.directory / filename
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(records, indent=2), encoding="utf-8")
        except OSError as exc:
            raise wrap_error(exc, UpstreamError, f"failed to write {filename}") from exc

    # -- balances -------------------------------------------------------------

    def fetch_balance(self, account_id: str) -> dict[str, Any] | None:
        for balance in self._read("balances.json"):
            if balance.get("accountId") == account_id:
                return balance
        return None

    def adjust_balance(self, account_id: str, delta: int, currency: str) -> None:
        """Add ``delta`` minor units to an account balance, creating it if absent."""
        balances = self._read("balances.json")
        for balance in balances:
            if balance.get("accountId") == account_id:
                new_amount = int(balance.get("amountInMinors", 0)) + delta
                if new_amount < 0:
                    raise UpstreamError(
                        f"balance of {account_id} would become negative ({new_amount})"
                    )
                balance["amountInMinors"] = new_amount
                break
        else:
            if delta < 0:
                raise UpstreamError(f"no balance found for account {account_id}")
            balances.append(
                {"accountId": account_id, "amountInMinors": delta, "currency": currency}
            )
        self._write("balances.json", balances)

    # -- payments -------------------------------------------------------------

    def append_payment(self, record: dict[str, Any]) -> None:
        payments = self._read("payments.json")
        if any(p.get("id") == record["id"] for p in payments):
            raise UpstreamError(f"payment {record['id']} already exists")
        payments.append(record)
        self._write("payments.json", payments)
        logger.debug("Recorded payment id=%s dir=%s", record["id"], self.directory)
