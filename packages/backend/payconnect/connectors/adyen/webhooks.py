"""Adyen standard notifications.

A delivery is a JSON document holding one or more ``NotificationRequestItem``
entries.  ``trim_webhook`` splits it so each item is verified and translated
on its own; every item carries an ``additionalData.hmacSignature`` computed
with the HMAC key generated when the webhook was created.
"""

import base64
import binascii
import hashlib
import hmac
import json
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from dateutil.parser import isoparse

from ...currency import format_asset
from ...errors import CurrencyNotSupported, InvalidRequest, WebhookVerificationFailed
from ...messages import (
    CreateWebhooksRequest,
    CreateWebhooksResponse,
    TranslateWebhookRequest,
    TranslateWebhookResponse,
    TrimWebhookRequest,
    TrimWebhookResponse,
    UninstallRequest,
    VerifyWebhookRequest,
    VerifyWebhookResponse,
)
from ...models import (
    PaymentScheme,
    PaymentStatus,
    PaymentType,
    PSPOther,
    PSPPayment,
    PSPWebhook,
    PSPWebhookConfig,
    WebhookResponse,
)
from ...observability import track_skipped_record
from .currencies import SUPPORTED_CURRENCIES

if TYPE_CHECKING:
    from .plugin import Plugin

logger = logging.getLogger("payconnect.connectors.adyen")

STANDARD_WEBHOOK = "standard"
STANDARD_URL_PATH = "/standard"
HMAC_KEY_METADATA = "hmac_key"
WEBHOOK_ID_METADATA = "webhookId"


def create_webhooks(
    plugin: "Plugin", req: CreateWebhooksRequest
) -> CreateWebhooksResponse:
    client = plugin._require_client()
    base_url = (req.webhook_base_url or "").rstrip("/")
    if not base_url:
        raise InvalidRequest("missing webhook base url")
    if not base_url.startswith(("http://", "https://")):
        raise InvalidRequest(f"invalid webhook base url: {base_url!r}")

    config = plugin.config
    resp = client.create_webhook(
        url=f"{base_url}{STANDARD_URL_PATH}",
        description=f"payconnect {req.connector_id}",
        username=config.webhook_username,
        password=config.webhook_password,
    )
    hmac_key = client.generate_hmac_key(resp["id"])
    logger.info("Created adyen webhook id=%s connector=%s", resp["id"], req.connector_id)

    return CreateWebhooksResponse(
        configs=[
            PSPWebhookConfig(
                name=STANDARD_WEBHOOK,
                url_path=STANDARD_URL_PATH,
                metadata={HMAC_KEY_METADATA: hmac_key, WEBHOOK_ID_METADATA: resp["id"]},
            )
        ],
        others=[PSPOther(id=resp["id"], other=json.dumps(resp).encode())],
    )


def delete_webhooks(plugin: "Plugin", req: UninstallRequest) -> None:
    client = plugin._require_client()
    for config in req.webhook_configs:
        webhook_id = config.metadata.get(WEBHOOK_ID_METADATA)
        if webhook_id:
            client.delete_webhook(webhook_id)


# ---------------------------------------------------------------------------
# Parsing and trimming
# ---------------------------------------------------------------------------


def _parse_notification(body: bytes) -> dict[str, Any]:
    try:
        notification = json.loads(body)
    except ValueError as exc:
        raise InvalidRequest(f"failed to unmarshal webhook: {exc}") from exc
    if not isinstance(notification, dict) or not isinstance(
        notification.get("notificationItems"), list
    ):
        raise InvalidRequest("failed to unmarshal webhook: missing notificationItems")
    return notification


def _items(notification: dict[str, Any]) -> list[dict[str, Any]]:
    items = []
    for entry in notification["notificationItems"]:
        item = entry.get("NotificationRequestItem") if isinstance(entry, dict) else None
        if not isinstance(item, dict):
            raise InvalidRequest("malformed notification item")
        items.append(item)
    return items


def trim_webhook(plugin: "Plugin", req: TrimWebhookRequest) -> TrimWebhookResponse:
    notification = _parse_notification(req.webhook.body)
    items = _items(notification)
    if len(items) <= 1:
        return TrimWebhookResponse(webhooks=[req.webhook])

    webhooks = []
    for item in items:
        body = {
            "live": notification.get("live", "false"),
            "notificationItems": [{"NotificationRequestItem": item}],
        }
        webhooks.append(
            PSPWebhook(
                body=json.dumps(body).encode(),
                base_path=req.webhook.base_path,
                headers=req.webhook.headers,
                query_values=req.webhook.query_values,
            )
        )
    return TrimWebhookResponse(webhooks=webhooks)


# ---------------------------------------------------------------------------
# Verification
# ---------------------------------------------------------------------------


def signing_string(item: dict[str, Any]) -> str:
    amount = item.get("amount") or {}
    return ":".join(
        str(part)
        for part in (
            item.get("pspReference", ""),
            item.get("originalReference", ""),
            item.get("merchantAccountCode", ""),
            item.get("merchantReference", ""),
            amount.get("value", ""),
            amount.get("currency", ""),
            item.get("eventCode", ""),
            item.get("success", ""),
        )
    )


def sign(item: dict[str, Any], hmac_key: str) -> str:
    try:
        key = binascii.unhexlify(hmac_key)
    except (binascii.Error, ValueError) as exc:
        raise WebhookVerificationFailed("invalid hmac key") from exc
    digest = hmac.new(key, signing_string(item).encode(), hashlib.sha256).digest()
    return base64.b64encode(digest).decode()


def is_valid_signature(item: dict[str, Any], hmac_key: str) -> bool:
    received = (item.get("additionalData") or {}).get("hmacSignature")
    if not received:
        return False
    return hmac.compare_digest(sign(item, hmac_key), received)


def _check_basic_auth(plugin: "Plugin", webhook: PSPWebhook) -> None:
    username = plugin.config.webhook_username
    password = plugin.config.webhook_password
    if not username or not password:
        return
    expected = base64.b64encode(f"{username}:{password}".encode()).decode()
    header = webhook.header("Authorization") or ""
    if not hmac.compare_digest(header, f"Basic {expected}"):
        raise WebhookVerificationFailed("invalid basic auth credentials")


def verify_webhook(plugin: "Plugin", req: VerifyWebhookRequest) -> VerifyWebhookResponse:
    plugin._require_client()
    if req.config is None or req.config.name != STANDARD_WEBHOOK:
        raise InvalidRequest("unknown webhook name")
    hmac_key = req.config.metadata.get(HMAC_KEY_METADATA)
    if not hmac_key:
        raise WebhookVerificationFailed("missing hmac key in webhook config")

    _check_basic_auth(plugin, req.webhook)

    items = _items(_parse_notification(req.webhook.body))
    if not items:
        raise InvalidRequest("webhook has no notification items")
    for item in items:
        if not is_valid_signature(item, hmac_key):
            raise WebhookVerificationFailed(
                f"invalid hmac signature for {item.get('pspReference')!r}"
            )

    if len(items) == 1:
        key = f"{items[0].get('pspReference', '')}:{items[0].get('eventCode', '')}"
    else:
        key = base64.b64encode(hashlib.sha256(req.webhook.body).digest()).decode()
    return VerifyWebhookResponse(webhook_idempotency_key=key)


# ---------------------------------------------------------------------------
# Translation
# ---------------------------------------------------------------------------

_SCHEME_PREFIXES = (
    ("visa", PaymentScheme.CARD_VISA),
    ("electron", PaymentScheme.CARD_VISA),
    ("amex", PaymentScheme.CARD_AMEX),
    ("alipay", PaymentScheme.CARD_ALIPAY),
    ("cup", PaymentScheme.CARD_CUP),
    ("discover", PaymentScheme.CARD_DISCOVER),
    ("doku", PaymentScheme.DOKU),
    ("dragonpay", PaymentScheme.DRAGON_PAY),
    ("jcb", PaymentScheme.CARD_JCB),
    ("maestro", PaymentScheme.MAESTRO),
    ("mc", PaymentScheme.CARD_MASTERCARD),
    ("molpay", PaymentScheme.MOL_PAY),
    ("diners", PaymentScheme.CARD_DINERS),
)


def parse_scheme(payment_method: str | None) -> PaymentScheme:
    method = payment_method or ""
    for prefix, scheme in _SCHEME_PREFIXES:
        if method.startswith(prefix):
            return scheme
    return PaymentScheme.OTHER


def _succeeded(item: dict[str, Any]) -> bool:
    return str(item.get("success", "")).lower() != "false"


def _payment(
    item: dict[str, Any],
    payment_type: PaymentType,
    status: PaymentStatus,
    scheme: PaymentScheme = PaymentScheme.OTHER,
) -> PSPPayment:
    amount = item.get("amount") or {}
    payment = PSPPayment(
        reference=item["pspReference"],
        parent_reference=item.get("originalReference") or "",
        created_at=isoparse(item["eventDate"]),
        type=payment_type,
        amount=int(amount.get("value", 0)),
        asset=format_asset(SUPPORTED_CURRENCIES, amount.get("currency", "")),
        scheme=scheme,
        status=status,
        raw=json.dumps(item).encode(),
    )
    if payment_type == PaymentType.PAYOUT:
        payment.source_account_reference = item.get("merchantAccountCode")
    else:
        payment.destination_account_reference = item.get("merchantAccountCode")
    return payment


def _authorisation(item: dict[str, Any]) -> PSPPayment:
    status = PaymentStatus.AUTHORISATION if _succeeded(item) else PaymentStatus.FAILED
    return _payment(
        item, PaymentType.PAYIN, status, parse_scheme(item.get("paymentMethod"))
    )


def _payin(status: PaymentStatus) -> Callable[[dict[str, Any]], PSPPayment | None]:
    def handle(item: dict[str, Any]) -> PSPPayment | None:
        if not _succeeded(item):
            return None
        return _payment(item, PaymentType.PAYIN, status)

    return handle


def _payout(status: PaymentStatus) -> Callable[[dict[str, Any]], PSPPayment | None]:
    def handle(item: dict[str, Any]) -> PSPPayment | None:
        if not _succeeded(item):
            return None
        return _payment(item, PaymentType.PAYOUT, status)

    return handle


def _payout_thirdparty(item: dict[str, Any]) -> PSPPayment:
    status = PaymentStatus.SUCCEEDED if _succeeded(item) else PaymentStatus.FAILED
    return _payment(item, PaymentType.PAYOUT, status)


EVENT_HANDLERS: dict[str, Callable[[dict[str, Any]], PSPPayment | None]] = {
    "AUTHORISATION": _authorisation,
    "AUTHORISATION_ADJUSTMENT": _payin(PaymentStatus.AMOUNT_ADJUSTMENT),
    "CANCELLATION": _payin(PaymentStatus.CANCELLED),
    "CAPTURE": _payin(PaymentStatus.CAPTURE),
    "CAPTURE_FAILED": _payin(PaymentStatus.CAPTURE_FAILED),
    "REFUND": _payin(PaymentStatus.REFUNDED),
    "REFUND_FAILED": _payin(PaymentStatus.REFUNDED_FAILURE),
    "REFUNDED_REVERSED": _payin(PaymentStatus.REFUND_REVERSED),
    "REFUND_WITH_DATA": _payin(PaymentStatus.REFUNDED),
    "PAYOUT_THIRDPARTY": _payout_thirdparty,
    "PAYOUT_DECLINE": _payout(PaymentStatus.FAILED),
    "PAYOUT_EXPIRE": _payout(PaymentStatus.EXPIRED),
}


def translate_item(plugin: "Plugin", item: dict[str, Any]) -> PSPPayment | None:
    handler = EVENT_HANDLERS.get(item.get("eventCode", ""))
    if handler is None:
        logger.debug("Ignoring adyen event code=%s", item.get("eventCode"))
        return None
    try:
        return handler(item)
    except CurrencyNotSupported as exc:
        logger.warning(
            "Skipping payments record provider=%s reason=%s", plugin.provider_name, exc
        )
        track_skipped_record(plugin.provider_name, "payments", "currency_not_supported")
        return None


def translate_webhook(
    plugin: "Plugin", req: TranslateWebhookRequest
) -> TranslateWebhookResponse:
    plugin._require_client()
    if req.name != STANDARD_WEBHOOK:
        raise InvalidRequest(f"unknown webhook name: {req.name!r}")

    responses = []
    for item in _items(_parse_notification(req.webhook.body)):
        payment = translate_item(plugin, item)
        if payment is not None:
            responses.append(WebhookResponse(payment=payment))
    return TranslateWebhookResponse(responses=responses)
