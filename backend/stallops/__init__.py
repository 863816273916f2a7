# backend/stallops/__init__.py
from flask import Flask, request

from .config import Config
from .extensions import db, migrate


def create_app(test_config=None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.stalls import stalls_bp
    from .routes.delivery_zones import delivery_zones_bp
    from .routes.payroll import payroll_bp
    from .routes.investors import investors_bp
    from .routes.expenses import expenses_bp
    from .routes.profit_loss import profit_loss_bp
    from .routes.inventory import inventory_bp
    from .routes.performance import performance_bp
    from .routes.orders import orders_bp
    from .routes.audit import audit_bp

    app.register_blueprint(system_bp, url_prefix="/api")
    app.register_blueprint(stalls_bp)
    app.register_blueprint(delivery_zones_bp)
    app.register_blueprint(payroll_bp)
    app.register_blueprint(investors_bp)
    app.register_blueprint(expenses_bp)
    app.register_blueprint(profit_loss_bp)
    app.register_blueprint(inventory_bp)
    app.register_blueprint(performance_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(audit_bp)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in app.config.get("CORS_ALLOWED_ORIGINS", ()):
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = (
                "Content-Type, If-Match, X-Actor-Id, X-Actor-Name, X-Actor-Role"
            )
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PATCH,DELETE,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
