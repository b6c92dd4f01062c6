# backend/pisonet/__init__.py
from flask import Flask

from .config import Config
from .extensions import db, migrate



def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    # Service modules log under "pisonet.*", children of app.logger
    app.logger.setLevel(app.config["LOG_LEVEL"])

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.harvest import harvest_bp
    from .routes.aggregates import aggregates_bp
    from .routes.history import history_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(harvest_bp)
    app.register_blueprint(aggregates_bp)
    app.register_blueprint(history_bp)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
