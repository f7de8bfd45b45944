def test_request_id_header_is_returned(client):
    response = client.get("/health")
    assert response.status_code == 200
    request_id = response.headers.get("X-Request-ID")
    assert request_id
    assert len(request_id) >= 16


def test_request_id_is_propagated(client):
    response = client.get("/health", headers={"X-Request-ID": "req-1234567890abcdef"})
    assert response.headers["X-Request-ID"] == "req-1234567890abcdef"


def test_metrics_endpoint_exposes_http_and_plugin_metrics(client, dummypay_dir):
    health = client.get("/health")
    assert health.status_code == 200

    installed = client.post(
        "/connectors",
        json={"provider": "dummypay", "config": {"directory": str(dummypay_dir)}},
    )
    assert installed.status_code == 201
    connector_id = installed.get_json()["id"]

    fetched = client.post(f"/connectors/{connector_id}/fetch/accounts")
    assert fetched.status_code == 200

    metrics = client.get("/metrics")
    assert metrics.status_code == 200
    payload = metrics.get_data(as_text=True)
    assert "payconnect_http_requests_total" in payload
    assert 'endpoint="/health"' in payload
    assert 'endpoint="/connectors/<connector_id>/fetch/<entity>"' in payload
    assert "payconnect_plugin_calls_total" in payload
    assert 'operation="fetch_next_accounts"' in payload
    assert "payconnect_fetched_items_total" in payload
