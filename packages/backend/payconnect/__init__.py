import logging

import click
from flask import Flask, jsonify

from .config import Settings
from .connectors import PluginRegistry, build_registry
from .observability import (
    Observability,
    configure_logging,
    finalize_request,
    init_request_context,
)
from .routes import register_routes
from .services.connector_runtime import ConnectorRuntime


def create_app(
    settings: Settings | None = None, registry: PluginRegistry | None = None
) -> Flask:
    app = Flask(__name__)
    cfg = settings or Settings()
    plugins = registry or build_registry()

    # Logging
    log_level = cfg.log_level.upper()
    configure_logging(log_level)
    logger = logging.getLogger("payconnect")
    logger.info("Starting payconnect dev server with log level %s", log_level)

    observability = Observability().activate()

    app.extensions["payconnect.settings"] = cfg
    app.extensions["payconnect.registry"] = plugins
    app.extensions["payconnect.runtime"] = ConnectorRuntime(plugins, cfg)
    app.extensions["payconnect.observability"] = observability

    app.before_request(init_request_context)
    app.after_request(finalize_request)

    register_routes(app)

    @app.get("/health")
    def health():
        return jsonify(status="ok"), 200

    @app.get("/metrics")
    def metrics():
        return observability.metrics_response()

    @app.errorhandler(500)
    def internal_error(_error):
        return jsonify(error="internal server error"), 500

    @app.cli.command("list-providers")
    @click.option("--all", "include_debug", is_flag=True, help="Include debug providers.")
    def list_providers(include_debug: bool):
        """Print registered providers and their capabilities."""
        for provider in plugins.list_providers(include_debug=include_debug):
            capabilities = ", ".join(c.value for c in plugins.get_capabilities(provider))
            click.echo(f"{provider}: {capabilities}")

    return app
