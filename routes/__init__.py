"""
Flask route blueprints for the Bookstore client.

This module contains all route handlers organized by functionality:
- main: Index and health check
- auth: Login, logout, current user
- orders: Order list, detail, admin changes and notes
- delivery: Delivery manager actions on orders
- delivery_status: Delivery manager availability
- catalog: Books, categories and authors

Each blueprint is registered with the Flask app in create_app().
"""

from .main import main_bp
from .auth import auth_bp
from .orders import orders_bp
from .delivery import delivery_bp
from .delivery_status import delivery_status_bp
from .catalog import catalog_bp

__all__ = [
    "main_bp",
    "auth_bp",
    "orders_bp",
    "delivery_bp",
    "delivery_status_bp",
    "catalog_bp",
    "register_blueprints",
]


def register_blueprints(app):
    """
    Register all blueprints with the Flask app.

    Args:
        app: Flask application instance
    """
    app.register_blueprint(main_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(delivery_bp)
    app.register_blueprint(delivery_status_bp)
    app.register_blueprint(catalog_bp)
