"""
Main routes.

Handles:
- / - Sections available to the signed-in user
- /health - Health check endpoint
"""

from flask import Blueprint, current_app

from logging_config import get_logger
from .helpers import current_providers


# Module logger
logger = get_logger(__name__)

main_bp = Blueprint("main", __name__)

ADMIN_SECTIONS = ["orders", "books", "categories", "authors"]
DELIVERY_MANAGER_SECTIONS = ["orders", "delivery-status"]


@main_bp.route("/", methods=["GET"])
def index():
    """Entry point: what the current user can open next."""
    providers = current_providers()
    if providers is None:
        return {"authenticated": False, "sections": ["login"]}

    sections = DELIVERY_MANAGER_SECTIONS if providers.is_delivery_manager else ADMIN_SECTIONS
    return {
        "authenticated": True,
        "user": providers.public_user(),
        "sections": list(sections),
    }


@main_bp.route("/health", methods=["GET"])
def health():
    """Health check endpoint with service status."""
    health_status = {
        "status": "ok",
        "environment": current_app.config.get("ENVIRONMENT", "unknown"),
        "checks": {}
    }

    registry = current_app.config.get("PROVIDER_REGISTRY")
    if registry is not None:
        health_status["checks"]["sessions"] = len(registry)
    else:
        health_status["checks"]["sessions"] = "not_available"
        health_status["status"] = "degraded"

    if current_app.config.get("BOOKSTORE_API_BASE_URL"):
        health_status["checks"]["api_base_url"] = "configured"
    else:
        health_status["checks"]["api_base_url"] = "missing"
        health_status["status"] = "degraded"

    status_code = 200 if health_status["status"] == "ok" else 503
    return health_status, status_code
