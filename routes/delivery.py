"""
Delivery manager routes.

Handles:
- /delivery/orders/<id>/actions - Actions offered for the order
- /delivery/orders/<id>/approve, /reject, /start, /complete - Run an action
- /delivery/orders/<id>/tracking - Assignment tracking (in-delivery orders)

Every action route refetches the order and the manager's status first, so
the gate is evaluated against the server's current state rather than
whatever the manager's screen showed.
"""

from flask import Blueprint, g

from core.exceptions import ActionNotAllowedError
from models.delivery import DeliveryAction
from logging_config import get_logger
from services.delivery_actions import DeliveryActionResult
from .helpers import delivery_manager_required, login_required, request_data, respond, sanitize_text


# Module logger
logger = get_logger(__name__)

delivery_bp = Blueprint("delivery", __name__, url_prefix="/delivery")

# Constants
MAX_REASON_LENGTH = 500


def _load(order_id: int):
    providers = g.providers
    order = providers.orders.fetch_order(order_id)
    providers.delivery_status.load_current_status()
    return order, providers.workflow


def _result_response(result: DeliveryActionResult):
    status = 200
    if not result.success:
        status = getattr(result.error, "http_status", 400) if result.error is not None else 400
    body, _ = respond(
        result.success,
        result.message,
        action=result.action.value,
        order=result.order.to_dict() if result.order else None,
        actions=result.actions.to_dict() if result.actions else None,
    )
    return body, status


@delivery_bp.route("/orders/<int:order_id>/actions", methods=["GET"])
@login_required
@delivery_manager_required
def actions(order_id):
    order, workflow = _load(order_id)
    return {
        "success": True,
        "order_id": order.id,
        "status": order.normalized_status,
        "delivery_status": g.providers.delivery_status.current_status,
        "actions": workflow.actions_for(order).to_dict(),
    }


@delivery_bp.route("/orders/<int:order_id>/approve", methods=["POST"])
@login_required
@delivery_manager_required
def approve(order_id):
    order, workflow = _load(order_id)
    return _result_response(workflow.approve(order))


@delivery_bp.route("/orders/<int:order_id>/reject", methods=["POST"])
@login_required
@delivery_manager_required
def reject(order_id):
    """Body: {"reason": optional failure reason}"""
    reason = sanitize_text(request_data().get("reason"), max_length=MAX_REASON_LENGTH) or None
    order, workflow = _load(order_id)
    return _result_response(workflow.reject(order, reason))


@delivery_bp.route("/orders/<int:order_id>/start", methods=["POST"])
@login_required
@delivery_manager_required
def start(order_id):
    order, workflow = _load(order_id)
    return _result_response(workflow.start(order))


@delivery_bp.route("/orders/<int:order_id>/complete", methods=["POST"])
@login_required
@delivery_manager_required
def complete(order_id):
    order, workflow = _load(order_id)
    return _result_response(workflow.complete(order))


@delivery_bp.route("/orders/<int:order_id>/tracking", methods=["GET"])
@login_required
@delivery_manager_required
def tracking(order_id):
    order, workflow = _load(order_id)
    offered = workflow.actions_for(order)
    if not offered.allows(DeliveryAction.TRACK_LOCATION):
        raise ActionNotAllowedError(DeliveryAction.TRACK_LOCATION.value, order.normalized_status, offered.reason)

    if order.assignment_id is None:
        return respond(False, "Delivery assignment not found for this order.", status=404)

    data = g.providers.orders.get_assignment_tracking(order.assignment_id)
    if data is None:
        return respond(False, g.providers.orders.error, status=502)
    return {"success": True, "order_id": order.id, "tracking": data}
