"""
Delivery action gating and the delivery manager workflow.

GATING:
    resolve_delivery_actions() decides which buttons a delivery manager gets
    for an order. It is the only place these rules live; routes, the order
    detail payload and the workflow itself all call it.

    Priority (first match wins, at most one group is offered):
        1. Approve + Reject     waiting_for_delivery_manager, online, not finished
        2. Start Delivery       approved, online, not finished
        3. Complete + Track     in delivery, not finished

    "Finished" covers terminal order statuses and terminal assignment
    statuses, so a cancelled order or a failed assignment never offers
    anything regardless of the order status the list endpoint still shows.

WORKFLOW:
    Each action re-checks the gate, calls the API, then resyncs: the order
    is refetched (falling back to the order in the action response) and the
    manager status reloaded, since approving or completing changes it on
    the server. A failed status reload is logged and does not fail the
    action.

Usage:
    workflow = DeliveryWorkflow(client, orders_provider, status_provider, user_id)
    result = workflow.start(order)
    flash(result.message, "success" if result.success else "error")
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from core.api_client import BookstoreAPIClient
from core.error_messages import extract_server_message
from core.exceptions import ActionNotAllowedError, ApiRequestError, BookstoreClientError
from models.delivery import DeliveryAction, DeliveryActions, ManagerStatus, NO_ACTIONS_MESSAGE
from models.order import Order, OrderStatus, normalize_status
from logging_config import get_logger
from .delivery_status_provider import DeliveryStatusProvider
from .orders_provider import OrdersProvider


# Module logger
logger = get_logger(__name__)


# =============================================================================
# GATING
# =============================================================================

IN_DELIVERY_STATUSES = frozenset({
    OrderStatus.IN_DELIVERY.value,
    OrderStatus.DELIVERY_IN_PROGRESS.value,
    OrderStatus.IN_PROGRESS.value,
})

FINISHED_ORDER_STATUSES = frozenset({
    OrderStatus.COMPLETED.value,
    OrderStatus.DELIVERED.value,
    OrderStatus.REJECTED.value,
    OrderStatus.CANCELLED.value,
    OrderStatus.REJECTED_BY_DELIVERY_MANAGER.value,
    OrderStatus.REJECTED_BY_ADMIN.value,
})

FINISHED_ASSIGNMENT_STATUSES = frozenset({"completed", "delivered", "rejected", "cancelled", "failed"})

OFFLINE_REASON = "Go online to approve, reject or start deliveries"


def resolve_delivery_actions(
    order_status: Optional[str],
    assignment_status: Optional[str] = None,
    manager_status: Optional[str] = None
) -> DeliveryActions:
    """
    Work out the delivery actions offered for an order.

    Args:
        order_status: Order status as sent by the server
        assignment_status: Status of the order's delivery assignment, if any
        manager_status: Signed-in delivery manager's status

    Returns:
        DeliveryActions with at most one group of actions
    """
    order_status = normalize_status(order_status)
    assignment_status = normalize_status(assignment_status)
    manager_status = normalize_status(manager_status)

    finished = (
        order_status in FINISHED_ORDER_STATUSES
        or assignment_status in FINISHED_ASSIGNMENT_STATUSES
    )
    if finished:
        return DeliveryActions()

    online = manager_status == ManagerStatus.ONLINE.value
    waiting = order_status == OrderStatus.WAITING_FOR_DELIVERY_MANAGER.value
    approved = order_status == OrderStatus.APPROVED.value

    if waiting and online:
        return DeliveryActions(available=(DeliveryAction.APPROVE, DeliveryAction.REJECT), reason="")
    if approved and online:
        return DeliveryActions(available=(DeliveryAction.START_DELIVERY,), reason="")
    if order_status in IN_DELIVERY_STATUSES:
        return DeliveryActions(
            available=(DeliveryAction.COMPLETE_DELIVERY, DeliveryAction.TRACK_LOCATION),
            reason="",
        )

    if waiting or approved:
        return DeliveryActions(reason=OFFLINE_REASON)
    return DeliveryActions(reason=NO_ACTIONS_MESSAGE)


def actions_for_order(order: Order, manager_status: Optional[str]) -> DeliveryActions:
    return resolve_delivery_actions(order.status, order.assignment_status, manager_status)


# =============================================================================
# WORKFLOW
# =============================================================================

@dataclass
class DeliveryActionResult:
    """Outcome of one workflow action."""

    success: bool
    action: DeliveryAction
    message: str
    order: Optional[Order] = None
    """Order after the resync (None if the action failed before the call)."""

    actions: Optional[DeliveryActions] = None
    """Actions offered for the resynced order."""

    error: Optional[Exception] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "action": self.action.value,
            "message": self.message,
            "order": self.order.to_dict() if self.order else None,
            "actions": self.actions.to_dict() if self.actions else None,
        }


class DeliveryWorkflow:
    """
    Delivery manager actions on orders.

    Built per request from the signed-in user's client, providers and id.
    """

    def __init__(
        self,
        client: BookstoreAPIClient,
        orders: OrdersProvider,
        delivery_status: DeliveryStatusProvider,
        user_id: Optional[int] = None
    ):
        self._client = client
        self._orders = orders
        self._delivery_status = delivery_status
        self._user_id = user_id

    def actions_for(self, order: Order) -> DeliveryActions:
        return actions_for_order(order, self._delivery_status.current_status)

    def _require(self, order: Order, action: DeliveryAction) -> None:
        actions = self.actions_for(order)
        if not actions.allows(action):
            raise ActionNotAllowedError(action.value, order.normalized_status, actions.reason)

    # -------------------------------------------------------------------------
    # Actions
    # -------------------------------------------------------------------------

    def approve(self, order: Order) -> DeliveryActionResult:
        """Accept an order waiting for this delivery manager."""
        self._require(order, DeliveryAction.APPROVE)

        if not self._user_id:
            return DeliveryActionResult(
                success=False,
                action=DeliveryAction.APPROVE,
                message="User ID not found. Please login again.",
                order=order,
                actions=self.actions_for(order),
            )

        return self._run(
            order,
            DeliveryAction.APPROVE,
            lambda: self._client.approve_assignment(order.id, self._user_id),
            success_message="Order approved successfully",
            failure_message=lambda e: f"Error approving order: {e.message}",
        )

    def reject(self, order: Order, reason: Optional[str] = None) -> DeliveryActionResult:
        """
        Decline an assigned order.

        The assignment id is required by the endpoint; when the cached order
        lacks it the order is refetched once before giving up.
        """
        if not order.is_waiting_for_delivery_manager:
            return DeliveryActionResult(
                success=False,
                action=DeliveryAction.REJECT,
                message=f"Assignment cannot be rejected. Current order status: {order.status}",
                order=order,
                actions=self.actions_for(order),
            )

        self._require(order, DeliveryAction.REJECT)

        assignment_id = order.assignment_id
        if assignment_id is None:
            logger.info(f"Order {order.id} has no assignment id cached, refetching")
            refreshed = self._orders.get_order_by_id(order.id)
            if refreshed is not None:
                order = refreshed
                assignment_id = refreshed.assignment_id

        if assignment_id is None:
            return DeliveryActionResult(
                success=False,
                action=DeliveryAction.REJECT,
                message="Delivery assignment not found for this order. Please refresh and try again.",
                order=order,
                actions=self.actions_for(order),
            )

        reason = (reason or "").strip() or None
        success_message = f"Assignment rejected. Reason: {reason}" if reason else "Assignment rejected successfully"

        return self._run(
            order,
            DeliveryAction.REJECT,
            lambda: self._client.update_assignment_status(assignment_id, "rejected", reason),
            success_message=success_message,
            failure_message=_reject_failure_message,
        )

    def start(self, order: Order) -> DeliveryActionResult:
        self._require(order, DeliveryAction.START_DELIVERY)
        return self._run(
            order,
            DeliveryAction.START_DELIVERY,
            lambda: self._client.start_delivery(order.id),
            success_message="Delivery started successfully",
            failure_message=lambda e: f"Error starting delivery: {e.message}",
        )

    def complete(self, order: Order) -> DeliveryActionResult:
        self._require(order, DeliveryAction.COMPLETE_DELIVERY)
        return self._run(
            order,
            DeliveryAction.COMPLETE_DELIVERY,
            lambda: self._client.complete_delivery(order.id),
            success_message="Order marked as delivered",
            failure_message=lambda e: f"Error completing delivery: {e.message}",
        )

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _run(
        self,
        order: Order,
        action: DeliveryAction,
        call: Callable[[], Any],
        success_message: str,
        failure_message: Callable[[BookstoreClientError], str]
    ) -> DeliveryActionResult:
        logger.info(f"{action.value} on order {order.id} (status: {order.normalized_status})")
        try:
            response = call()
        except BookstoreClientError as e:
            logger.warning(f"{action.value} failed for order {order.id}: {e}")
            return DeliveryActionResult(
                success=False,
                action=action,
                message=failure_message(e),
                order=order,
                actions=self.actions_for(order),
                error=e,
            )

        refreshed = self._resync(order, response)
        return DeliveryActionResult(
            success=True,
            action=action,
            message=success_message,
            order=refreshed,
            actions=self.actions_for(refreshed),
        )

    def _resync(self, order: Order, response: Any) -> Order:
        """Refetch the order and the manager status after a change."""
        refreshed = self._orders.resync_order(order.id, response if isinstance(response, dict) else None)

        if not self._delivery_status.load_current_status():
            logger.warning(
                f"Delivery status refresh after order {order.id} update failed (non-critical): "
                f"{self._delivery_status.error or 'not signed in'}"
            )

        return refreshed or order


def _reject_failure_message(error: BookstoreClientError) -> str:
    if isinstance(error, ApiRequestError) and error.status_code == 400 and not error.server_message:
        return "Error rejecting assignment: Invalid request. The assignment status may not allow rejection."
    return f"Error rejecting assignment: {extract_server_message(error.message)}"
