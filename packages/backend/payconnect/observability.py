import json
import logging
import os
import time
from datetime import datetime, timezone
from uuid import uuid4

from flask import Response, g, has_request_context, request
from prometheus_client import (
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
    multiprocess,
)

_active: "Observability | None" = None


class JsonLogFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": self._request_id(),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, separators=(",", ":"))

    @staticmethod
    def _request_id() -> str | None:
        if not has_request_context():
            return None
        return getattr(g, "request_id", None)


class Observability:
    def __init__(self) -> None:
        self.multiprocess_enabled = bool(os.getenv("PROMETHEUS_MULTIPROC_DIR"))
        self.registry = (
            None if self.multiprocess_enabled else CollectorRegistry(auto_describe=True)
        )
        self.http_requests_total = Counter(
            "payconnect_http_requests_total",
            "Total HTTP requests by endpoint/method/status.",
            ["method", "endpoint", "status_code"],
            registry=self.registry,
        )
        self.http_request_duration_seconds = Histogram(
            "payconnect_http_request_duration_seconds",
            "HTTP request duration in seconds by endpoint/method.",
            ["method", "endpoint"],
            buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2, 5, 10),
            registry=self.registry,
        )
        self.plugin_calls_total = Counter(
            "payconnect_plugin_calls_total",
            "Plugin operations by provider/operation/outcome.",
            ["provider", "operation", "outcome"],
            registry=self.registry,
        )
        self.plugin_call_duration_seconds = Histogram(
            "payconnect_plugin_call_duration_seconds",
            "Plugin operation duration in seconds by provider/operation.",
            ["provider", "operation"],
            buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1, 2, 5, 10, 30, 60),
            registry=self.registry,
        )
        self.fetched_items_total = Counter(
            "payconnect_fetched_items_total",
            "Canonical items returned by fetch operations.",
            ["provider", "operation"],
            registry=self.registry,
        )
        self.skipped_records_total = Counter(
            "payconnect_skipped_records_total",
            "Vendor records dropped during translation, by reason.",
            ["provider", "entity", "reason"],
            registry=self.registry,
        )

    def activate(self) -> "Observability":
        """Make this instance the target of the module-level ``track_*`` helpers."""
        global _active
        _active = self
        return self

    def observe_http_request(
        self, method: str, endpoint: str, status_code: int, duration_seconds: float
    ) -> None:
        status = str(status_code)
        self.http_requests_total.labels(
            method=method, endpoint=endpoint, status_code=status
        ).inc()
        self.http_request_duration_seconds.labels(
            method=method, endpoint=endpoint
        ).observe(duration_seconds)

    def observe_plugin_call(
        self,
        provider: str,
        operation: str,
        outcome: str,
        duration_seconds: float,
        items: int = 0,
    ) -> None:
        self.plugin_calls_total.labels(
            provider=provider, operation=operation, outcome=outcome
        ).inc()
        self.plugin_call_duration_seconds.labels(
            provider=provider, operation=operation
        ).observe(duration_seconds)
        if items:
            self.fetched_items_total.labels(
                provider=provider, operation=operation
            ).inc(items)

    def record_skipped_record(self, provider: str, entity: str, reason: str) -> None:
        self.skipped_records_total.labels(
            provider=provider, entity=entity, reason=reason
        ).inc()

    def metrics_response(self) -> Response:
        if self.multiprocess_enabled:
            registry = CollectorRegistry()
            multiprocess.MultiProcessCollector(registry)
            payload = generate_latest(registry)
        else:
            payload = generate_latest(self.registry)
        return Response(payload, mimetype="text/plain; version=0.0.4; charset=utf-8")


def get_observability() -> Observability | None:
    return _active


def configure_logging(log_level: str) -> None:
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level, logging.INFO))

    json_handler_present = any(
        isinstance(handler.formatter, JsonLogFormatter)
        for handler in root_logger.handlers
        if getattr(handler, "formatter", None) is not None
    )
    if json_handler_present:
        return

    root_logger.handlers.clear()
    handler = logging.StreamHandler()
    handler.setFormatter(JsonLogFormatter())
    root_logger.addHandler(handler)


def init_request_context() -> None:
    request_id = request.headers.get("X-Request-ID") or uuid4().hex
    g.request_id = request_id
    g.request_start = time.perf_counter()


def finalize_request(response: Response) -> Response:
    request_id = getattr(g, "request_id", None)
    if request_id:
        response.headers["X-Request-ID"] = request_id

    request_start = getattr(g, "request_start", None)
    if request_start is not None:
        elapsed = time.perf_counter() - request_start
        endpoint = request.url_rule.rule if request.url_rule else request.path
        obs = get_observability()
        if obs:
            obs.observe_http_request(
                method=request.method,
                endpoint=endpoint,
                status_code=response.status_code,
                duration_seconds=elapsed,
            )
    return response


def track_plugin_call(
    provider: str, operation: str, outcome: str, duration_seconds: float, items: int = 0
) -> None:
    obs = get_observability()
    if obs:
        obs.observe_plugin_call(provider, operation, outcome, duration_seconds, items)


def track_skipped_record(provider: str, entity: str, reason: str) -> None:
    obs = get_observability()
    if obs:
        obs.record_skipped_record(provider=provider, entity=entity, reason=reason)
