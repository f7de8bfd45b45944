"""Connector lifecycle, fetch and webhook endpoints."""

import logging

from flask import Blueprint, current_app, jsonify, request

from ..models import PSPWebhook
from .errors import register_error_handlers

bp = Blueprint("connectors", __name__)
register_error_handlers(bp)
logger = logging.getLogger("payconnect.routes")


def _runtime():
    return current_app.extensions["payconnect.runtime"]


@bp.post("")
def install():
    """Install a connector from ``{"provider", "name", "config"}``."""
    data = request.get_json(silent=True) or {}
    provider = (data.get("provider") or "").strip()
    if not provider:
        return jsonify(error="provider required"), 400
    name = (data.get("name") or provider).strip()
    config = data.get("config")
    if config is not None and not isinstance(config, dict):
        return jsonify(error="config must be an object"), 400

    installed = _runtime().install(provider, name, config)
    return jsonify(installed.to_dict()), 201


@bp.get("")
def list_connectors():
    return jsonify(connectors=[c.to_dict() for c in _runtime().list_connectors()])


@bp.get("/<connector_id>")
def get_connector(connector_id: str):
    return jsonify(_runtime().get(connector_id).to_dict())


@bp.get("/<connector_id>/state")
def get_state(connector_id: str):
    return jsonify(states=_runtime().states(connector_id))


@bp.post("/<connector_id>/fetch/<entity>")
def fetch(connector_id: str, entity: str):
    """Fetch the next page of ``entity``, resuming from the cached state."""
    data = request.get_json(silent=True) or {}
    page_size = data.get("pageSize")
    if page_size is not None and (not isinstance(page_size, int) or page_size <= 0):
        return jsonify(error="pageSize must be a positive integer"), 400
    from_payload = data.get("fromPayload")
    if from_payload is not None and not isinstance(from_payload, dict):
        return jsonify(error="fromPayload must be an object"), 400

    result = _runtime().fetch(
        connector_id,
        entity,
        from_payload=from_payload,
        page_size=page_size,
        reset=bool(data.get("reset") or request.args.get("reset") == "true"),
    )
    return jsonify(result)


@bp.post("/<connector_id>/webhooks/<path:name>")
def receive_webhook(connector_id: str, name: str):
    webhook = PSPWebhook(
        body=request.get_data(),
        base_path=request.path,
        headers={key: request.headers.getlist(key) for key in request.headers.keys()},
        query_values=request.args.to_dict(flat=False),
    )
    results = _runtime().handle_webhook(connector_id, name, webhook)
    logger.info(
        "Webhook handled connector=%s name=%s deliveries=%d",
        connector_id,
        name,
        len(results),
    )
    return jsonify(webhooks=results)


@bp.delete("/<connector_id>")
def uninstall(connector_id: str):
    _runtime().uninstall(connector_id)
    return jsonify(message="uninstalled")
