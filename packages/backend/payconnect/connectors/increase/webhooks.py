"""Increase event subscriptions: creation, signature checks and translation.

Deliveries carry an ``Increase-Webhook-Signature`` header of the form
``t=<RFC3339 timestamp>,v1=<hex HMAC-SHA256>``, signed over
``"<t>.<body>"`` with the subscription's shared secret.
"""

import hashlib
import hmac
import json
import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any

from dateutil.parser import isoparse

from ...errors import InvalidRequest, WebhookVerificationFailed
from ...messages import (
    CreateWebhooksRequest,
    CreateWebhooksResponse,
    TranslateWebhookRequest,
    TranslateWebhookResponse,
    UninstallRequest,
    VerifyWebhookRequest,
    VerifyWebhookResponse,
)
from ...models import PaymentStatus, PSPOther, PSPWebhookConfig, WebhookResponse
from .payments import map_payment

if TYPE_CHECKING:
    from .plugin import Plugin

logger = logging.getLogger("payconnect.connectors.increase")

SIGNATURE_HEADER = "Increase-Webhook-Signature"
SIGNATURE_TOLERANCE = timedelta(minutes=5)


# event category -> (url path, resource to fetch, resulting payment status)
SUPPORTED_WEBHOOKS: dict[str, tuple[str, str, PaymentStatus]] = {
    "declined_transaction.created": (
        "/declined_transaction/created",
        "declined_transactions",
        PaymentStatus.FAILED,
    ),
    "pending_transaction.created": (
        "/pending_transaction/created",
        "pending_transactions",
        PaymentStatus.PENDING,
    ),
    "pending_transaction.updated": (
        "/pending_transaction/updated",
        "pending_transactions",
        PaymentStatus.PENDING,
    ),
    "transaction.created": (
        "/transaction/created",
        "transactions",
        PaymentStatus.SUCCEEDED,
    ),
}


def create_webhooks(
    plugin: "Plugin", req: CreateWebhooksRequest
) -> CreateWebhooksResponse:
    client = plugin._require_client()
    base_url = (req.webhook_base_url or "").rstrip("/")
    if not base_url:
        raise InvalidRequest("missing webhook base url")
    if not base_url.startswith("https://"):
        raise InvalidRequest("webhook URL must use HTTPS protocol")

    configs: list[PSPWebhookConfig] = []
    others: list[PSPOther] = []
    for category in sorted(SUPPORTED_WEBHOOKS):
        url_path = SUPPORTED_WEBHOOKS[category][0]
        resp = client.create_event_subscription(
            url=f"{base_url}{url_path}",
            category=category,
            shared_secret=plugin.config.webhook_shared_secret,
            idempotency_key=_idempotency_key(req.connector_id, category),
        )
        configs.append(
            PSPWebhookConfig(
                name=category,
                url_path=url_path,
                metadata={"subscriptionId": resp["id"]},
            )
        )
        others.append(PSPOther(id=resp["id"], other=json.dumps(resp).encode()))

    logger.info(
        "Created %d event subscriptions connector=%s", len(configs), req.connector_id
    )
    return CreateWebhooksResponse(configs=configs, others=others)


def delete_webhooks(plugin: "Plugin", req: UninstallRequest) -> None:
    client = plugin._require_client()
    for config in req.webhook_configs:
        subscription_id = config.metadata.get("subscriptionId")
        if subscription_id:
            client.delete_event_subscription(subscription_id)


def _idempotency_key(connector_id: str, category: str) -> str:
    return hashlib.sha256(f"{connector_id}:{category}".encode()).hexdigest()


# ---------------------------------------------------------------------------
# Verification
# ---------------------------------------------------------------------------


def parse_signature_header(header: str) -> tuple[str, list[str]]:
    timestamp = ""
    signatures: list[str] = []
    for part in header.split(","):
        key, sep, value = part.strip().partition("=")
        if not sep:
            continue
        if key == "t":
            timestamp = value
        elif key == "v1":
            signatures.append(value)
    if not timestamp or not signatures:
        raise WebhookVerificationFailed("invalid signature header")
    return timestamp, signatures


def sign(timestamp: str, body: bytes, secret: str) -> str:
    message = timestamp.encode() + b"." + body
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


def verify_signature(
    body: bytes, header: str, secret: str, now: datetime | None = None
) -> None:
    timestamp, signatures = parse_signature_header(header)

    try:
        signed_at = isoparse(timestamp)
    except ValueError as exc:
        raise WebhookVerificationFailed("invalid signature timestamp") from exc
    if signed_at.tzinfo is None:
        signed_at = signed_at.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    if abs(now - signed_at) > SIGNATURE_TOLERANCE:
        raise WebhookVerificationFailed("timestamp outside tolerance window")

    expected = sign(timestamp, body, secret)
    if not any(hmac.compare_digest(expected, sig.lower()) for sig in signatures):
        raise WebhookVerificationFailed("invalid webhook signature")


def _parse_event(body: bytes) -> dict[str, Any]:
    try:
        event = json.loads(body)
    except ValueError as exc:
        raise InvalidRequest(f"failed to unmarshal webhook: {exc}") from exc
    if not isinstance(event, dict) or not event.get("id"):
        raise InvalidRequest("failed to unmarshal webhook: missing event id")
    return event


def verify_webhook(plugin: "Plugin", req: VerifyWebhookRequest) -> VerifyWebhookResponse:
    plugin._require_client()
    header = req.webhook.header(SIGNATURE_HEADER)
    if not header:
        raise WebhookVerificationFailed(f"missing {SIGNATURE_HEADER} header")
    verify_signature(req.webhook.body, header, plugin.config.webhook_shared_secret)

    if req.config is None or req.config.name not in SUPPORTED_WEBHOOKS:
        raise InvalidRequest("unknown webhook name")

    event = _parse_event(req.webhook.body)
    return VerifyWebhookResponse(webhook_idempotency_key=event["id"])


# ---------------------------------------------------------------------------
# Translation
# ---------------------------------------------------------------------------


def translate_webhook(
    plugin: "Plugin", req: TranslateWebhookRequest
) -> TranslateWebhookResponse:
    client = plugin._require_client()
    supported = SUPPORTED_WEBHOOKS.get(req.name)
    if supported is None:
        raise InvalidRequest(f"unknown webhook name: {req.name!r}")
    _, resource, status = supported

    event = _parse_event(req.webhook.body)
    object_id = event.get("associated_object_id")
    if not object_id:
        raise InvalidRequest("webhook has no associated object")

    payment = map_payment(client.get(resource, object_id), status)
    return TranslateWebhookResponse(responses=[WebhookResponse(payment=payment)])
