"""
Bookstore Client - Flask Application Entry Point.

This is a slim app factory that:
1. Validates the bookstore API configuration (fail-fast)
2. Creates the provider registry (one provider set per signed-in session)
3. Registers route blueprints
4. Sets up JSON error handlers

ARCHITECTURE:
    Flask worker threads
    └── ProviderRegistry (lock-protected map: session key -> ProviderSet)
        └── per user: BookstoreAPIClient (own requests.Session and tokens)
                      + orders, delivery status and catalog providers

No background threads. Every API call runs on the request thread that
needs it.
"""

from __future__ import annotations

import atexit
import logging
import os
import sys
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

from dotenv import load_dotenv
from flask import Flask, flash
from werkzeug.exceptions import HTTPException

from logging_config import setup_logging, get_logger
from core.exceptions import BookstoreClientError, ConfigurationError, ValidationError
from services.session_registry import ProviderRegistry
from routes import register_blueprints
from routes.helpers import drain_messages


# Module logger (configured after setup_logging)
logger = get_logger(__name__)


def _get_base_path() -> Path:
    """
    Get the base path for the application.

    In PyInstaller bundle: Returns the directory containing the executable
    In development: Returns the directory containing app.py
    """
    if getattr(sys, 'frozen', False):
        return Path(sys.executable).parent
    else:
        return Path(__file__).parent


def _validate_base_url(base_url: Optional[str]) -> str:
    """
    Raises:
        ConfigurationError: If the URL is empty or not http(s)
    """
    parsed = urlparse(base_url or "")
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ConfigurationError("BOOKSTORE_API_BASE_URL", base_url)
    return base_url.rstrip("/")


def create_app(
    config_object: str = "config.Config",
    registry: Optional[ProviderRegistry] = None
) -> Flask:
    """
    Application factory - creates and configures Flask app.

    FAIL-FAST: Without a usable BOOKSTORE_API_BASE_URL the app will not
    start. Nothing can work without the bookstore API.

    Args:
        config_object: Import path of the config class
        registry: Provider registry to use instead of a new one (tests)

    Returns:
        Configured Flask application

    Raises:
        ConfigurationError: If the API base URL is missing or invalid
    """
    # Load .env from base path (next to executable in production)
    # Use override=True so .env file always takes precedence over shell environment
    base_path = _get_base_path()
    env_file = base_path / '.env'
    if env_file.exists():
        load_dotenv(env_file, override=True)
    else:
        load_dotenv(override=True)

    # Create Flask app
    app = Flask(__name__)
    app.config.from_object(config_object)

    # Configure logging
    log_level = logging.DEBUG if app.config.get("DEBUG") else logging.INFO
    enable_file_logging = app.config.get("ENVIRONMENT") == "production"

    root_logger = setup_logging(
        log_level=log_level,
        enable_file_logging=enable_file_logging
    )

    # Set Flask's logger to use our configured logger
    app.logger.handlers = root_logger.handlers
    app.logger.setLevel(log_level)

    logger.info(f"Starting Bookstore client in {app.config.get('ENVIRONMENT')} mode")

    # =========================================================================
    # CORE INITIALIZATION (FAIL-FAST)
    # =========================================================================

    try:
        base_url = _validate_base_url(app.config.get("BOOKSTORE_API_BASE_URL"))
    except ConfigurationError as e:
        logger.error(f"FATAL: Cannot start application - {e}")
        raise

    app.config["BOOKSTORE_API_BASE_URL"] = base_url
    logger.info(f"Bookstore API: {base_url}")

    # =========================================================================
    # SERVICES INITIALIZATION
    # =========================================================================

    if registry is None:
        registry = ProviderRegistry(
            base_url,
            timeout=app.config.get("BOOKSTORE_API_TIMEOUT", 30.0),
            page_size=app.config.get("BOOKS_PAGE_SIZE", 10),
            idle_timeout=app.permanent_session_lifetime.total_seconds(),
        )
    app.config["PROVIDER_REGISTRY"] = registry
    logger.info("Provider registry initialized")

    # =========================================================================
    # CLEANUP REGISTRATION
    # =========================================================================

    def cleanup():
        """Close every user's HTTP session on shutdown."""
        logger.info("Shutting down...")
        registry.clear()
        logger.info("Shutdown complete")

    atexit.register(cleanup)

    # =========================================================================
    # REGISTER BLUEPRINTS
    # =========================================================================

    register_blueprints(app)

    # =========================================================================
    # ERROR HANDLERS
    # =========================================================================

    @app.errorhandler(ValidationError)
    def handle_validation_error(e):
        flash(e.message, "error")
        return {
            "success": False,
            "error": e.message,
            "errors": e.field_errors,
            "messages": drain_messages(),
        }, 400

    @app.errorhandler(BookstoreClientError)
    def handle_client_error(e):
        status = e.http_status if 400 <= e.http_status < 600 else 500
        if status >= 500:
            logger.error(f"Request failed: {e}")
        else:
            logger.warning(f"Request failed: {e}")
        flash(e.message, "error")
        return {"success": False, "error": e.message, "messages": drain_messages()}, status

    @app.errorhandler(404)
    def handle_not_found(e):
        return {"success": False, "error": "Not found."}, 404

    @app.errorhandler(405)
    def handle_method_not_allowed(e):
        return {"success": False, "error": "Method not allowed."}, 405

    @app.errorhandler(500)
    def handle_server_error(e):
        logger.error(f"500 error: {e}", exc_info=True)
        return {"success": False, "error": "An unexpected error occurred. Please try again."}, 500

    @app.errorhandler(HTTPException)
    def handle_http_exception(e):
        return {"success": False, "error": e.description}, e.code

    logger.info("Application initialized successfully")
    return app


if __name__ == "__main__":
    app = create_app()
    debug_mode = os.environ.get("FLASK_DEBUG", "1") == "1"
    app.run(debug=debug_mode)
