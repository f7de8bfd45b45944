"""Tests for the Adyen connector.

Covers:
- Merchant account paging that restarts once exhausted
- Webhook creation with HMAC key generation
- Splitting, HMAC verification and basic auth of notifications
- Event code translation
"""

import base64
import binascii
import hashlib
import hmac
import json
from unittest.mock import MagicMock

from payconnect.connectors.adyen import Config, Plugin
from payconnect.connectors.adyen.client import LIVE_ENDPOINT, TEST_ENDPOINT, Client
from payconnect.connectors.adyen.webhooks import parse_scheme, sign
from payconnect.errors import InvalidRequest, WebhookVerificationFailed
from payconnect.messages import (
    CreateWebhooksRequest,
    FetchNextAccountsRequest,
    InstallRequest,
    TranslateWebhookRequest,
    TrimWebhookRequest,
    UninstallRequest,
    VerifyWebhookRequest,
)
from payconnect.models import (
    PaymentScheme,
    PaymentStatus,
    PaymentType,
    PSPWebhook,
    PSPWebhookConfig,
)

HMAC_KEY = "44782DEF547AAA06C910C43932B1EB0C71FC68D9D0C057550C48EC2ACF6BA056"


def _plugin(**config):
    plugin = Plugin("adyen")
    plugin.client = MagicMock()
    plugin.config = Config(apiKey="key", companyID="Company", **config)
    return plugin


def _config():
    return PSPWebhookConfig(
        name="standard",
        url_path="/standard",
        metadata={"hmac_key": HMAC_KEY, "webhookId": "WH-1"},
    )


def _item(event_code="AUTHORISATION", success="true", **overrides):
    item = {
        "pspReference": "PSP-1",
        "originalReference": "",
        "merchantAccountCode": "MerchantECOM",
        "merchantReference": "order-42",
        "amount": {"value": 1000, "currency": "EUR"},
        "eventCode": event_code,
        "eventDate": "2024-06-01T12:00:00+02:00",
        "success": success,
        "paymentMethod": "visa",
    }
    item.update(overrides)
    item["additionalData"] = {"hmacSignature": sign(item, HMAC_KEY)}
    return item


def _notification(*items):
    return json.dumps(
        {
            "live": "false",
            "notificationItems": [{"NotificationRequestItem": i} for i in items],
        }
    ).encode()


# ---------------------------------------------------------------------------
# Install and accounts
# ---------------------------------------------------------------------------


def test_install_selects_endpoint():
    plugin = Plugin("adyen", http_timeout=3)
    plugin.install(InstallRequest(config={"apiKey": "key", "companyID": "Company"}))
    assert isinstance(plugin.client, Client)
    assert plugin.client.endpoint == TEST_ENDPOINT
    assert plugin.client.timeout == 3

    live = Plugin("adyen")
    live.install(
        InstallRequest(
            config={"apiKey": "key", "companyID": "Company", "liveEndpointPrefix": "abc"}
        )
    )
    assert live.client.endpoint == LIVE_ENDPOINT


def test_merchant_accounts_restart_after_last_page():
    plugin = _plugin()
    pages = {
        1: [{"id": "M1", "name": "One", "status": "Active"}, {"id": "M2"}],
        2: [{"id": "M3"}],
    }
    plugin.client.get_merchant_accounts.side_effect = (
        lambda page, size: pages.get(page, [])
    )

    first = plugin.fetch_next_accounts(FetchNextAccountsRequest(page_size=2))
    assert [a.reference for a in first.accounts] == ["M1", "M2"]
    assert first.accounts[0].metadata == {"adyen/status": "Active"}
    assert first.accounts[1].name == "M2"
    assert first.has_more is True
    assert json.loads(first.new_state) == {"page": 1}

    second = plugin.fetch_next_accounts(
        FetchNextAccountsRequest(page_size=2, state=first.new_state)
    )
    assert [a.reference for a in second.accounts] == ["M3"]
    assert second.has_more is False
    assert json.loads(second.new_state) == {"page": 0}

    third = plugin.fetch_next_accounts(
        FetchNextAccountsRequest(page_size=2, state=second.new_state)
    )
    assert [a.reference for a in third.accounts] == ["M1", "M2"]
    assert [c.args for c in plugin.client.get_merchant_accounts.call_args_list] == [
        (1, 2),
        (2, 2),
        (1, 2),
    ]


# ---------------------------------------------------------------------------
# Webhook lifecycle
# ---------------------------------------------------------------------------


def test_create_webhooks_stores_hmac_key():
    plugin = _plugin(webhookUsername="user", webhookPassword="pass")
    plugin.client.create_webhook.return_value = {"id": "WH-1"}
    plugin.client.generate_hmac_key.return_value = HMAC_KEY

    resp = plugin.create_webhooks(
        CreateWebhooksRequest(connector_id="c1", webhook_base_url="https://hooks.test/c1/")
    )
    assert len(resp.configs) == 1
    assert resp.configs[0].url_path == "/standard"
    assert resp.configs[0].metadata == {"hmac_key": HMAC_KEY, "webhookId": "WH-1"}

    kwargs = plugin.client.create_webhook.call_args.kwargs
    assert kwargs["url"] == "https://hooks.test/c1/standard"
    assert kwargs["username"] == "user"
    plugin.client.generate_hmac_key.assert_called_once_with("WH-1")


def test_create_webhooks_requires_base_url():
    for base_url in ("", "&grjete%"):
        try:
            _plugin().create_webhooks(
                CreateWebhooksRequest(connector_id="c1", webhook_base_url=base_url)
            )
            assert False, f"Should have raised for {base_url!r}"
        except InvalidRequest:
            pass


def test_uninstall_deletes_webhook():
    plugin = _plugin()
    plugin.uninstall(UninstallRequest(connector_id="c1", webhook_configs=[_config()]))
    plugin.client.delete_webhook.assert_called_once_with("WH-1")


# ---------------------------------------------------------------------------
# Verification
# ---------------------------------------------------------------------------


def test_signature_matches_adyen_signing_string():
    item = _item()
    expected = base64.b64encode(
        hmac.new(
            binascii.unhexlify(HMAC_KEY),
            b"PSP-1::MerchantECOM:order-42:1000:EUR:AUTHORISATION:true",
            hashlib.sha256,
        ).digest()
    ).decode()
    assert item["additionalData"]["hmacSignature"] == expected


def test_trim_splits_notification_items():
    webhook = PSPWebhook(
        body=_notification(_item(), _item("CAPTURE", pspReference="PSP-2")),
        headers={"Content-Type": ["application/json"]},
    )
    resp = _plugin().trim_webhook(TrimWebhookRequest(webhook=webhook, config=_config()))
    assert len(resp.webhooks) == 2
    second = json.loads(resp.webhooks[1].body)
    assert second["notificationItems"][0]["NotificationRequestItem"]["pspReference"] == "PSP-2"
    assert resp.webhooks[1].headers == webhook.headers


def test_trim_single_item_is_identity():
    webhook = PSPWebhook(body=_notification(_item()))
    resp = _plugin().trim_webhook(TrimWebhookRequest(webhook=webhook))
    assert resp.webhooks == [webhook]


def test_verify_webhook_idempotency_key():
    resp = _plugin().verify_webhook(
        VerifyWebhookRequest(webhook=PSPWebhook(body=_notification(_item())), config=_config())
    )
    assert resp.webhook_idempotency_key == "PSP-1:AUTHORISATION"


def test_verify_webhook_rejects_tampered_amount():
    item = _item()
    item["amount"]["value"] = 1
    try:
        _plugin().verify_webhook(
            VerifyWebhookRequest(webhook=PSPWebhook(body=_notification(item)), config=_config())
        )
        assert False, "Should have raised"
    except WebhookVerificationFailed as exc:
        assert "PSP-1" in str(exc)


def test_verify_webhook_requires_hmac_key():
    config = PSPWebhookConfig(name="standard", url_path="/standard")
    try:
        _plugin().verify_webhook(
            VerifyWebhookRequest(webhook=PSPWebhook(body=_notification(_item())), config=config)
        )
        assert False, "Should have raised"
    except WebhookVerificationFailed:
        pass


def test_verify_webhook_basic_auth():
    plugin = _plugin(webhookUsername="user", webhookPassword="pass")
    body = _notification(_item())
    try:
        plugin.verify_webhook(VerifyWebhookRequest(webhook=PSPWebhook(body=body), config=_config()))
        assert False, "Should have raised"
    except WebhookVerificationFailed as exc:
        assert "basic auth" in str(exc)

    token = base64.b64encode(b"user:pass").decode()
    webhook = PSPWebhook(body=body, headers={"authorization": [f"Basic {token}"]})
    resp = plugin.verify_webhook(VerifyWebhookRequest(webhook=webhook, config=_config()))
    assert resp.webhook_idempotency_key == "PSP-1:AUTHORISATION"


def test_verify_webhook_malformed_body():
    try:
        _plugin().verify_webhook(
            VerifyWebhookRequest(webhook=PSPWebhook(body=b"not json"), config=_config())
        )
        assert False, "Should have raised"
    except InvalidRequest:
        pass


# ---------------------------------------------------------------------------
# Translation
# ---------------------------------------------------------------------------


def _translate(*items):
    resp = _plugin().translate_webhook(
        TranslateWebhookRequest(
            name="standard", webhook=PSPWebhook(body=_notification(*items)), config=_config()
        )
    )
    return [r.payment for r in resp.responses]


def test_translate_authorisation():
    (payment,) = _translate(_item())
    assert payment.reference == "PSP-1"
    assert payment.type == PaymentType.PAYIN
    assert payment.status == PaymentStatus.AUTHORISATION
    assert payment.scheme == PaymentScheme.CARD_VISA
    assert payment.amount == 1000
    assert payment.asset == "EUR/2"
    assert payment.destination_account_reference == "MerchantECOM"
    payment.validate()


def test_translate_failed_authorisation():
    (payment,) = _translate(_item(success="false"))
    assert payment.status == PaymentStatus.FAILED


def test_translate_refund_links_parent():
    (payment,) = _translate(_item("REFUND", pspReference="PSP-9", originalReference="PSP-1"))
    assert payment.status == PaymentStatus.REFUNDED
    assert payment.parent_reference == "PSP-1"


def test_translate_payout():
    (payment,) = _translate(_item("PAYOUT_THIRDPARTY", success="false"))
    assert payment.type == PaymentType.PAYOUT
    assert payment.status == PaymentStatus.FAILED
    assert payment.source_account_reference == "MerchantECOM"
    assert payment.destination_account_reference is None


def test_translate_skips_unsuccessful_and_unknown_events():
    assert _translate(_item("CAPTURE", success="false")) == []
    assert _translate(_item("REPORT_AVAILABLE")) == []


def test_translate_skips_unsupported_currency():
    item = _item(amount={"value": 1, "currency": "XXX"})
    payments = _translate(item, _item("CAPTURE"))
    assert [p.status for p in payments] == [PaymentStatus.CAPTURE]


def test_parse_scheme():
    assert parse_scheme("mc") == PaymentScheme.CARD_MASTERCARD
    assert parse_scheme("maestro") == PaymentScheme.MAESTRO
    assert parse_scheme("amex_applepay") == PaymentScheme.CARD_AMEX
    assert parse_scheme(None) == PaymentScheme.OTHER
    assert parse_scheme("ideal") == PaymentScheme.OTHER
