"""Plugin errors -> HTTP status codes."""

import logging

from flask import jsonify

from ..errors import (
    InvalidConfig,
    InvalidRequest,
    NotYetInstalled,
    OperationNotImplemented,
    PluginError,
    UpstreamError,
    WebhookVerificationFailed,
)

logger = logging.getLogger("payconnect.routes")

_STATUS_CODES: tuple[tuple[type[PluginError], int], ...] = (
    (InvalidConfig, 400),
    (InvalidRequest, 400),
    (OperationNotImplemented, 501),
    (NotYetInstalled, 409),
    (WebhookVerificationFailed, 401),
    (UpstreamError, 502),
)


def status_for(exc: BaseException) -> int:
    if isinstance(exc, LookupError):
        return 404
    if isinstance(exc, ValueError):
        return 400
    for error_cls, status in _STATUS_CODES:
        if isinstance(exc, error_cls):
            return status
    # CurrencyNotSupported and other plugin errors point at bad input
    return 400


def error_response(exc: Exception):
    status = status_for(exc)
    if status >= 500:
        logger.warning("Request failed status=%s error=%s", status, exc)
    return jsonify(error=str(exc), type=type(exc).__name__), status


def register_error_handlers(bp) -> None:
    for exc_cls in (PluginError, LookupError, ValueError):
        bp.register_error_handler(exc_cls, error_response)
