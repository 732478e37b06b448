# backend/storeledger/__init__.py
from __future__ import annotations

from typing import Any, Mapping

from flask import Flask

from .config import Config
from .extensions import db, migrate


def create_app(config_overrides: Mapping[str, Any] | None = None) -> Flask:
    """
    Build the application that owns the ledger's store handle.

    One app == one engine. Tests create isolated apps (e.g. in-memory
    SQLite) by passing overrides; shutdown_app() releases the engine.
    """
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app


def shutdown_app(app: Flask) -> None:
    """Release the app's sessions and pooled connections."""
    with app.app_context():
        db.session.remove()
        db.engine.dispose()
