"""
Configuration for the Bookstore client.

The remote bookstore API is required. The application refuses to start
without a usable BOOKSTORE_API_BASE_URL (see create_app).
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env file early so environment variables are available for Config class
# This must happen before the Config class is defined
load_dotenv(override=True)

# Base directory (where this file lives)
BASE_DIR = Path(__file__).resolve().parent


class Config:
    """Default configuration for the Flask application."""

    # Flask settings
    SECRET_KEY = os.environ.get("FLASK_SECRET_KEY", "dev-secret-key")
    SESSION_COOKIE_NAME = "bookstore_session"
    ENVIRONMENT = os.environ.get("FLASK_ENV", "development")

    # Debug mode
    DEBUG = os.environ.get("FLASK_DEBUG", "1") == "1"

    # ==========================================================================
    # Bookstore API
    # ==========================================================================
    # BOOKSTORE_API_BASE_URL: root of the REST API, including the /api prefix.
    #   Default targets a backend on the host machine as seen from an
    #   Android emulator.
    #
    # BOOKSTORE_API_TIMEOUT: seconds before a request is abandoned.
    # ==========================================================================
    BOOKSTORE_API_BASE_URL = os.environ.get(
        "BOOKSTORE_API_BASE_URL", "http://10.0.2.2:8000/api"
    )
    BOOKSTORE_API_TIMEOUT = float(
        os.environ.get("BOOKSTORE_API_TIMEOUT", "30")
    )

    # Catalog listing page size
    BOOKS_PAGE_SIZE = int(os.environ.get("BOOKS_PAGE_SIZE", "10"))

    # Seconds a signed-in session may stay idle before its API client and
    # providers are closed (also the Flask permanent session lifetime)
    PERMANENT_SESSION_LIFETIME = int(os.environ.get("SESSION_IDLE_TIMEOUT", "3600"))


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False
    TESTING = False
    SESSION_COOKIE_SECURE = True
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    TESTING = False


class TestingConfig(Config):
    """Testing configuration."""
    DEBUG = False
    TESTING = True
    SECRET_KEY = "testing-secret-key"
    BOOKSTORE_API_BASE_URL = "http://bookstore.test/api"
    BOOKSTORE_API_TIMEOUT = 5.0
