"""
Delivery manager status routes.

Handles:
- GET /delivery-status - Current status (busy triggers a reset attempt)
- POST /delivery-status - Switch between online and offline
- POST /delivery-status/reset - Clear a stuck busy status
"""

from flask import Blueprint, g

from logging_config import get_logger
from .helpers import delivery_manager_required, login_required, request_data, respond


# Module logger
logger = get_logger(__name__)

delivery_status_bp = Blueprint("delivery_status", __name__)


@delivery_status_bp.route("/delivery-status", methods=["GET"])
@login_required
@delivery_manager_required
def current_status():
    provider = g.providers.delivery_status
    if not provider.load_current_status() and provider.error:
        return respond(False, provider.error, status=502)
    return {"success": True, **provider.snapshot.to_dict()}


@delivery_status_bp.route("/delivery-status", methods=["POST"])
@login_required
@delivery_manager_required
def update_status():
    """Body: {"status": "online" | "offline"}"""
    provider = g.providers.delivery_status
    new_status = request_data().get("status") or ""
    provider.load_current_status()

    if not provider.update_status(new_status):
        return respond(False, provider.error or "Could not update status", **provider.snapshot.to_dict())
    return respond(True, f"Status changed to {provider.current_status}", **provider.snapshot.to_dict())


@delivery_status_bp.route("/delivery-status/reset", methods=["POST"])
@login_required
@delivery_manager_required
def reset_status():
    provider = g.providers.delivery_status
    was_reset = provider.reset_status()
    if was_reset is None:
        return respond(False, provider.error, status=502)

    message = "Status reset to online" if was_reset else "Status was not reset (active deliveries remain)"
    return respond(True, message, was_reset=was_reset, **provider.snapshot.to_dict())
