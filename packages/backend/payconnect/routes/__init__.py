from flask import Flask

from .connectors import bp as connectors_bp
from .providers import bp as providers_bp


def register_routes(app: Flask) -> None:
    app.register_blueprint(providers_bp, url_prefix="/providers")
    app.register_blueprint(connectors_bp, url_prefix="/connectors")
