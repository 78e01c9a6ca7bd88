# backend/storefront/__init__.py
from flask import Flask, request

from .config import Config
from .extensions import db, migrate


def create_app(config_object=Config) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_object)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.products import products_bp
    from .routes.reviews import reviews_bp
    from .routes.cart import cart_bp
    from .routes.wishlist import wishlist_bp
    from .routes.orders import orders_bp
    from .routes.payments import payments_bp
    from .routes.transactions import transactions_bp
    from .routes.notifications import notifications_bp
    from .routes.request_orders import request_orders_bp
    from .routes.inventory import inventory_bp
    from .routes.warehouse import warehouse_bp
    from .routes.staff import staff_bp
    from .routes.users import users_bp
    from .routes.dashboard import dashboard_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(reviews_bp)
    app.register_blueprint(cart_bp)
    app.register_blueprint(wishlist_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(payments_bp)
    app.register_blueprint(transactions_bp)
    app.register_blueprint(notifications_bp)
    app.register_blueprint(request_orders_bp)
    app.register_blueprint(inventory_bp)
    app.register_blueprint(warehouse_bp)
    app.register_blueprint(staff_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(dashboard_bp)

    allowed_origins = set(app.config.get("CORS_ALLOWED_ORIGINS", []))

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
