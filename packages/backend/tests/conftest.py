import json

import pytest

from payconnect import create_app
from payconnect.config import Settings


def write_json(directory, filename, data):
    path = directory / filename
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


@pytest.fixture()
def dummypay_dir(tmp_path):
    write_json(
        tmp_path,
        "accounts.json",
        [
            {"id": "acc-1", "name": "Main", "currency": "EUR", "openingDate": "2024-01-01T00:00:00Z"},
            {"id": "acc-2", "name": "Savings", "currency": "EUR", "openingDate": "2024-01-02T00:00:00Z"},
            {"id": "acc-3", "name": "Payroll", "currency": "USD", "openingDate": "2024-01-03T00:00:00Z"},
        ],
    )
    write_json(
        tmp_path,
        "external_accounts.json",
        [{"id": "ext-1", "name": "Supplier", "currency": "EUR", "openingDate": "2024-02-01T00:00:00Z"}],
    )
    write_json(
        tmp_path,
        "balances.json",
        [{"accountId": "acc-1", "amountInMinors": 10000, "currency": "EUR"}],
    )
    write_json(
        tmp_path,
        "payments.json",
        [
            {
                "id": "pay-1",
                "createdAt": "2024-03-01T09:30:00Z",
                "type": "PAY-IN",
                "status": "SUCCEEDED",
                "amount": "12.50",
                "currency": "EUR",
                "destinationAccountId": "acc-1",
            }
        ],
    )
    return tmp_path


@pytest.fixture()
def settings():
    return Settings(
        log_level="WARNING",
        webhook_base_url="https://payments.example.com",
        registry_debug=True,
    )


@pytest.fixture()
def app_fixture(settings):
    app = create_app(settings)
    app.config.update(TESTING=True)
    yield app


@pytest.fixture()
def client(app_fixture):
    return app_fixture.test_client()
