"""Tests for the connector dev server endpoints.

Covers:
- Provider discovery and config schemas
- Install / list / get / uninstall
- Fetching with cached state and reset
- Webhook delivery through trim, verify and translate
- Error to status code mapping
- CLI
"""

from unittest.mock import patch

from conftest import write_json
from test_adyen import HMAC_KEY, _item, _notification

from payconnect import create_app
from payconnect.config import Settings
from payconnect.connectors.adyen.client import Client as AdyenClient


def _install_dummypay(client, directory, **config):
    r = client.post(
        "/connectors",
        json={
            "provider": "dummypay",
            "name": "local",
            "config": {"directory": str(directory), **config},
        },
    )
    assert r.status_code == 201
    return r.get_json()["id"]


# ---------------------------------------------------------------------------
# Providers
# ---------------------------------------------------------------------------


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.get_json() == {"status": "ok"}


def test_list_providers(client):
    r = client.get("/providers")
    assert r.status_code == 200
    providers = {p["provider"]: p for p in r.get_json()["providers"]}
    assert set(providers) == {"adyen", "dummypay", "increase", "modulr"}
    assert providers["modulr"]["pageSize"] == 100
    assert "CREATE_PAYOUT" in providers["modulr"]["capabilities"]


def test_debug_providers_hidden():
    app = create_app(Settings(log_level="WARNING", registry_debug=False))
    r = app.test_client().get("/providers")
    names = [p["provider"] for p in r.get_json()["providers"]]
    assert "dummypay" not in names


def test_config_schema(client):
    r = client.get("/providers/increase/config-schema")
    assert r.status_code == 200
    assert "webhookSharedSecret" in r.get_json()["properties"]


def test_config_schema_unknown_provider(client):
    r = client.get("/providers/nope/config-schema")
    assert r.status_code == 404
    assert "Unknown provider" in r.get_json()["error"]


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


def test_install_validation(client, dummypay_dir):
    assert client.post("/connectors", json={}).status_code == 400
    assert client.post("/connectors", json={"provider": "nope"}).status_code == 404

    r = client.post("/connectors", json={"provider": "dummypay", "config": {}})
    assert r.status_code == 400
    assert r.get_json()["type"] == "InvalidConfig"

    r = client.post("/connectors", json={"provider": "dummypay", "config": "oops"})
    assert r.status_code == 400


def test_install_list_get_uninstall(client, dummypay_dir):
    connector_id = _install_dummypay(client, dummypay_dir)

    r = client.get("/connectors")
    assert [c["id"] for c in r.get_json()["connectors"]] == [connector_id]

    r = client.get(f"/connectors/{connector_id}")
    data = r.get_json()
    assert data["provider"] == "dummypay"
    assert data["pageSize"] == 25
    assert data["workflow"][0]["taskType"] == "FETCH_ACCOUNTS"
    assert data["webhooks"] == []

    assert client.delete(f"/connectors/{connector_id}").status_code == 200
    assert client.get(f"/connectors/{connector_id}").status_code == 404
    assert client.delete(f"/connectors/{connector_id}").status_code == 404


# ---------------------------------------------------------------------------
# Fetching
# ---------------------------------------------------------------------------


def test_fetch_resumes_from_cached_state(client, dummypay_dir):
    connector_id = _install_dummypay(client, dummypay_dir, pageSize=2)

    r = client.post(f"/connectors/{connector_id}/fetch/accounts")
    data = r.get_json()
    assert [a["reference"] for a in data["items"]] == ["acc-1", "acc-2"]
    assert data["hasMore"] is True

    r = client.post(f"/connectors/{connector_id}/fetch/accounts", json={})
    data = r.get_json()
    assert [a["reference"] for a in data["items"]] == ["acc-3"]
    assert data["hasMore"] is False

    r = client.get(f"/connectors/{connector_id}/state")
    assert r.get_json()["states"]["accounts"] == {"lastId": "acc-3"}

    r = client.post(f"/connectors/{connector_id}/fetch/accounts", json={"reset": True})
    assert [a["reference"] for a in r.get_json()["items"]] == ["acc-1", "acc-2"]


def test_fetch_page_size_override(client, dummypay_dir):
    connector_id = _install_dummypay(client, dummypay_dir)
    r = client.post(f"/connectors/{connector_id}/fetch/accounts", json={"pageSize": 1})
    assert len(r.get_json()["items"]) == 1

    r = client.post(f"/connectors/{connector_id}/fetch/accounts", json={"pageSize": 0})
    assert r.status_code == 400


def test_fetch_balances_from_payload(client, dummypay_dir):
    connector_id = _install_dummypay(client, dummypay_dir)

    r = client.post(f"/connectors/{connector_id}/fetch/balances")
    assert r.status_code == 400
    assert r.get_json()["type"] == "MissingFromPayload"

    r = client.post(
        f"/connectors/{connector_id}/fetch/balances",
        json={"fromPayload": {"reference": "acc-1", "createdAt": "2024-01-01T00:00:00+00:00"}},
    )
    assert r.status_code == 200
    data = r.get_json()
    assert data["stateKey"] == "balances:acc-1"
    assert data["items"][0]["amount"] == 10000

    r = client.post(
        f"/connectors/{connector_id}/fetch/balances", json={"fromPayload": {"name": "x"}}
    )
    assert r.status_code == 400


def test_fetch_payments(client, dummypay_dir):
    connector_id = _install_dummypay(client, dummypay_dir)
    r = client.post(f"/connectors/{connector_id}/fetch/payments")
    payment = r.get_json()["items"][0]
    assert payment["amount"] == 1250
    assert payment["type"] == "PAY-IN"


def test_fetch_others_by_name(client, dummypay_dir):
    write_json(
        dummypay_dir, "others/disputes.json", [{"id": "d-1"}, {"id": "d-2"}]
    )
    connector_id = _install_dummypay(client, dummypay_dir)

    r = client.post(f"/connectors/{connector_id}/fetch/others")
    assert r.status_code == 400

    r = client.post(
        f"/connectors/{connector_id}/fetch/others",
        json={"fromPayload": {"name": "disputes"}, "pageSize": 1},
    )
    assert r.status_code == 200
    data = r.get_json()
    assert data["stateKey"] == "others:disputes"
    assert [o["id"] for o in data["items"]] == ["d-1"]
    assert data["hasMore"] is True

    r = client.post(
        f"/connectors/{connector_id}/fetch/others",
        json={"fromPayload": {"name": "disputes"}},
    )
    assert [o["id"] for o in r.get_json()["items"]] == ["d-2"]

    r = client.get(f"/connectors/{connector_id}/state")
    assert r.get_json()["states"]["others:disputes"] == {"lastId": "d-2"}


def test_fetch_errors(client, dummypay_dir):
    connector_id = _install_dummypay(client, dummypay_dir)
    assert client.post(f"/connectors/{connector_id}/fetch/widgets").status_code == 404
    assert client.post("/connectors/missing/fetch/accounts").status_code == 404

    write_json(dummypay_dir, "payments.json", {"not": "a list"})
    r = client.post(f"/connectors/{connector_id}/fetch/payments")
    assert r.status_code == 502
    assert r.get_json()["type"] == "UpstreamError"


# ---------------------------------------------------------------------------
# Webhooks
# ---------------------------------------------------------------------------


def test_webhook_not_configured(client, dummypay_dir):
    connector_id = _install_dummypay(client, dummypay_dir)
    r = client.post(f"/connectors/{connector_id}/webhooks/standard", data=b"{}")
    assert r.status_code == 404


@patch.object(AdyenClient, "delete_webhook")
@patch.object(AdyenClient, "generate_hmac_key", return_value=HMAC_KEY)
@patch.object(AdyenClient, "create_webhook", return_value={"id": "WH-1"})
def test_adyen_webhook_flow(mock_create, mock_hmac, mock_delete, client):
    r = client.post(
        "/connectors",
        json={"provider": "adyen", "config": {"apiKey": "key", "companyID": "Company"}},
    )
    assert r.status_code == 201
    installed = r.get_json()
    connector_id = installed["id"]
    assert installed["webhooks"] == [{"name": "standard", "urlPath": "/standard"}]
    assert mock_create.call_args.kwargs["url"] == (
        f"https://payments.example.com/connectors/{connector_id}/webhooks/standard"
    )

    body = _notification(_item(), _item("REFUND", pspReference="PSP-2", originalReference="PSP-1"))
    r = client.post(
        f"/connectors/{connector_id}/webhooks/standard",
        data=body,
        content_type="application/json",
    )
    assert r.status_code == 200
    deliveries = r.get_json()["webhooks"]
    assert [d["idempotencyKey"] for d in deliveries] == ["PSP-1:AUTHORISATION", "PSP-2:REFUND"]
    assert deliveries[1]["responses"][0]["payment"]["status"] == "REFUNDED"

    tampered = _item()
    tampered["amount"]["value"] = 1
    r = client.post(
        f"/connectors/{connector_id}/webhooks/standard", data=_notification(tampered)
    )
    assert r.status_code == 401

    assert client.post(f"/connectors/{connector_id}/fetch/payments").status_code == 501

    assert client.delete(f"/connectors/{connector_id}").status_code == 200
    mock_delete.assert_called_once_with("WH-1")


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


def test_list_providers_command(app_fixture):
    runner = app_fixture.test_cli_runner()
    result = runner.invoke(args=["list-providers"])
    assert result.exit_code == 0
    assert "modulr: FETCH_ACCOUNTS" in result.output
    assert "dummypay" not in result.output

    result = runner.invoke(args=["list-providers", "--all"])
    assert "dummypay" in result.output
