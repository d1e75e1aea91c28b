# backend/rally/__init__.py
from flask import Flask, request

from .config import Config
from .extensions import db, migrate, socketio


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    socketio.init_app(
        app,
        async_mode=app.config.get("SOCKETIO_ASYNC_MODE", "threading"),
        cors_allowed_origins=app.config.get("CORS_ORIGINS", []),
    )

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Socket.IO event handlers register on import
    from . import sockets  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.activities import activities_bp
    from .routes.submissions import submissions_bp
    from .routes.products import products_bp
    from .routes.inventory import inventory_bp
    from .routes.sales import sales_bp
    from .routes.points import points_bp
    from .routes.leaderboard import leaderboard_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(activities_bp)
    app.register_blueprint(submissions_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(inventory_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(points_bp)
    app.register_blueprint(leaderboard_bp)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in set(app.config.get("CORS_ORIGINS", [])):
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "X-User-Id, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
