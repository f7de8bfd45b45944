"""Provider discovery endpoints."""

from flask import Blueprint, current_app, jsonify

from .errors import register_error_handlers

bp = Blueprint("providers", __name__)
register_error_handlers(bp)


def _registry():
    return current_app.extensions["payconnect.registry"]


@bp.get("")
def list_providers():
    """Return registered providers with their capabilities."""
    registry = _registry()
    settings = current_app.extensions["payconnect.settings"]
    providers = registry.list_providers(include_debug=settings.registry_debug)
    return jsonify(
        providers=[
            {
                "provider": provider,
                "type": registry.get_plugin_type(provider).value,
                "capabilities": [c.value for c in registry.get_capabilities(provider)],
                "pageSize": registry.get_page_size(provider),
            }
            for provider in providers
        ]
    )


@bp.get("/<provider>/config-schema")
def config_schema(provider: str):
    return jsonify(_registry().get_config_schema(provider))
