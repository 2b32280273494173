"""Flask application package."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from dotenv import load_dotenv
from flask import Flask


def create_app(overrides: Mapping[str, Any] | None = None) -> Flask:
    """Application factory.

    Args:
        overrides: Config values applied after the environment config.

    Returns:
        Configured Flask application.
    """
    load_dotenv()

    from loto_harvest.config import get_config
    from loto_harvest.db import init_db
    from loto_harvest.error_handlers import register_error_handlers
    from loto_harvest.logging_config import configure_logging
    from loto_harvest.routes.draws import draws_bp
    from loto_harvest.routes.health import health_bp
    from loto_harvest.routes.predictions import predictions_bp

    app = Flask(__name__)
    app.config.from_object(get_config())
    if overrides:
        app.config.update(overrides)

    configure_logging(app)
    init_db(app)
    register_error_handlers(app)

    app.register_blueprint(health_bp)
    app.register_blueprint(draws_bp, url_prefix="/api")
    app.register_blueprint(predictions_bp, url_prefix="/api")

    return app
