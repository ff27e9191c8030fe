"""
Order routes (admin order list and order detail).

Handles:
- /orders - List with search/status/type filters
- /orders/<id> - Detail plus the delivery actions offered for it
- /orders/<id>/status, /assign, /reject - Admin changes
- /orders/<id>/notes - Add, edit, delete notes
- /orders/<id>/location - Delivery location
- /delivery-managers/available - Managers that can take an order
"""

from flask import Blueprint, g, request

from models.order import OrderStatus, OrderType
from logging_config import get_logger
from .helpers import login_required, request_data, respond, sanitize_text


# Module logger
logger = get_logger(__name__)

orders_bp = Blueprint("orders", __name__)

# Constants
MAX_SEARCH_LENGTH = 100
MAX_NOTE_LENGTH = 1000
MAX_REASON_LENGTH = 500

VALID_STATUSES = {status.value for status in OrderStatus}
VALID_ORDER_TYPES = {order_type.value for order_type in OrderType}


@orders_bp.route("/orders", methods=["GET"])
@login_required
def list_orders():
    """
    Order list.

    Query: search, status, order_type. For delivery managers the list is
    narrowed to the statuses they work with unless a status is given.
    """
    providers = g.providers
    search = sanitize_text(request.args.get("search"), max_length=MAX_SEARCH_LENGTH) or None
    status = (request.args.get("status") or "").strip().lower() or None
    order_type = (request.args.get("order_type") or "").strip().lower() or None

    if status and status not in VALID_STATUSES:
        return respond(False, f"Unknown order status: {status}")
    if order_type and order_type not in VALID_ORDER_TYPES:
        return respond(False, f"Unknown order type: {order_type}")

    if not providers.orders.load_orders(search=search, status=status, order_type=order_type):
        return respond(False, providers.orders.error, status=502)

    if providers.is_delivery_manager and not status:
        orders = providers.orders.delivery_manager_orders()
    else:
        orders = providers.orders.orders

    return {
        "success": True,
        "orders": [order.to_dict() for order in orders],
        "count": len(orders),
        "status_counts": providers.orders.status_counts(),
    }


@orders_bp.route("/orders/<int:order_id>", methods=["GET"])
@login_required
def order_detail(order_id):
    providers = g.providers
    order = providers.orders.fetch_order(order_id)

    workflow = providers.workflow
    if providers.is_delivery_manager:
        providers.delivery_status.load_current_status()

    return {
        "success": True,
        "order": order.to_dict(),
        "actions": workflow.actions_for(order).to_dict(),
    }


@orders_bp.route("/orders/<int:order_id>/status", methods=["POST"])
@login_required
def update_status(order_id):
    providers = g.providers
    status = (request_data().get("status") or "").strip().lower()

    if status not in VALID_STATUSES:
        return respond(False, "Please select a valid order status.")

    if not providers.orders.update_order_status(order_id, status):
        return respond(False, providers.orders.error, status=502)
    return _order_response(providers, order_id, "Order status updated")


@orders_bp.route("/orders/<int:order_id>/assign", methods=["POST"])
@login_required
def assign(order_id):
    providers = g.providers
    try:
        manager_id = int(request_data().get("delivery_manager_id"))
    except (TypeError, ValueError):
        return respond(False, "Please select a delivery manager.")

    if not providers.orders.assign_delivery_manager(order_id, manager_id):
        return respond(False, providers.orders.error, status=502)
    return _order_response(providers, order_id, "Delivery manager assigned")


@orders_bp.route("/orders/<int:order_id>/reject", methods=["POST"])
@login_required
def reject(order_id):
    providers = g.providers
    reason = sanitize_text(request_data().get("rejection_reason"), max_length=MAX_REASON_LENGTH)

    if not reason:
        return respond(False, "Please enter a rejection reason.")

    if not providers.orders.reject_order(order_id, reason):
        return respond(False, providers.orders.error, status=502)
    return _order_response(providers, order_id, "Order rejected")


@orders_bp.route("/orders/<int:order_id>/notes", methods=["POST", "PUT", "DELETE"])
@login_required
def notes(order_id):
    """
    POST: add a note {"content"}
    PUT: edit a note {"content", "note_id"?}
    DELETE: delete a note {"note_id"?}
    """
    providers = g.providers
    data = request_data()
    content = sanitize_text(data.get("content"), max_length=MAX_NOTE_LENGTH)

    note_id = data.get("note_id")
    if note_id not in (None, ""):
        try:
            note_id = int(note_id)
        except (TypeError, ValueError):
            return respond(False, "Invalid note id.")
    else:
        note_id = None

    if request.method in ("POST", "PUT") and not content:
        return respond(False, "Note cannot be empty.")

    if request.method == "POST":
        ok, message = providers.orders.add_order_note(order_id, content), "Note added"
    elif request.method == "PUT":
        ok, message = providers.orders.edit_order_note(order_id, content, note_id), "Note updated"
    else:
        ok, message = providers.orders.delete_order_note(order_id, note_id), "Note deleted"

    if not ok:
        return respond(False, providers.orders.error, status=502)
    return _order_response(providers, order_id, message)


@orders_bp.route("/orders/<int:order_id>/location", methods=["GET"])
@login_required
def location(order_id):
    providers = g.providers
    data = providers.orders.get_delivery_location(order_id)
    if data is None:
        return respond(False, providers.orders.error, status=502)
    return {"success": True, "location": data}


@orders_bp.route("/delivery-managers/available", methods=["GET"])
@login_required
def available_managers():
    providers = g.providers
    managers = providers.orders.load_available_delivery_managers()
    if providers.orders.error:
        return respond(False, providers.orders.error, status=502)
    return {
        "success": True,
        "delivery_managers": [manager.to_dict() for manager in managers],
    }


def _order_response(providers, order_id: int, message: str):
    order = providers.orders.find_cached(order_id)
    return respond(True, message, order=order.to_dict() if order else None)
