"""
Orders provider.

Holds the orders visible to the signed-in admin or delivery manager and
wraps every order endpoint of the delivery API. After any call that changes
an order on the server, the order is refetched and swapped into the cached
list; the response of the mutating call is only used when that refetch
fails.
"""

from __future__ import annotations

from collections import Counter
from typing import Any, Dict, List, Optional

from core.api_client import BookstoreAPIClient
from core.exceptions import BookstoreClientError
from models.delivery import DeliveryAgent
from models.order import Order, OrderStatus, normalize_status
from logging_config import get_logger
from .provider import BaseProvider


# Module logger
logger = get_logger(__name__)

DELIVERY_MANAGER_STATUSES = frozenset({
    OrderStatus.WAITING_FOR_DELIVERY_MANAGER.value,
    OrderStatus.APPROVED.value,
    OrderStatus.IN_DELIVERY.value,
    OrderStatus.DELIVERY_IN_PROGRESS.value,
    OrderStatus.IN_PROGRESS.value,
    OrderStatus.DELIVERED.value,
    OrderStatus.COMPLETED.value,
    OrderStatus.REJECTED_BY_DELIVERY_MANAGER.value,
})
"""Order statuses a delivery manager's order list shows."""


class OrdersProvider(BaseProvider):
    """
    Order list plus per-order operations.

    Attributes:
        orders: Cached orders from the last load (newest server order)
        available_managers: Delivery managers from the last availability load
    """

    def __init__(self, client: BookstoreAPIClient):
        super().__init__(client)
        self._orders: List[Order] = []
        self._available_managers: List[DeliveryAgent] = []

    @property
    def orders(self) -> List[Order]:
        return list(self._orders)

    @property
    def available_managers(self) -> List[DeliveryAgent]:
        return list(self._available_managers)

    def clear(self) -> None:
        self._orders = []
        self._available_managers = []
        super().clear()

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    def load_orders(
        self,
        search: Optional[str] = None,
        status: Optional[str] = None,
        order_type: Optional[str] = None
    ) -> bool:
        """
        Replace the cached list with the server's.

        Returns:
            True on success; on failure error is "Failed to load orders: ..."
        """
        with self._loading():
            try:
                payloads = self._client.list_orders(search=search, status=status, order_type=order_type)
                self._orders = [Order.from_dict(p) for p in payloads if isinstance(p, dict)]
                logger.debug(f"Loaded {len(self._orders)} orders")
                return True
            except BookstoreClientError as e:
                self._fail("Failed to load orders", e)
                return False

    def fetch_order(self, order_id: int) -> Order:
        """
        Fetch one order and swap it into the cache.

        Raises:
            BookstoreClientError: On any API failure
        """
        order = Order.from_dict(self._client.get_order(order_id))
        self.replace_order(order)
        return order

    def get_order_by_id(self, order_id: int) -> Optional[Order]:
        """fetch_order() that records failures instead of raising."""
        try:
            return self.fetch_order(order_id)
        except BookstoreClientError as e:
            self._fail("Failed to load order", e)
            self.notify_listeners()
            return None

    def find_cached(self, order_id: int) -> Optional[Order]:
        for order in self._orders:
            if order.id == order_id:
                return order
        return None

    def replace_order(self, order: Order) -> None:
        """Swap the cached order with the same id, or prepend if new."""
        orders = list(self._orders)
        for index, existing in enumerate(orders):
            if existing.id == order.id:
                orders[index] = order
                break
        else:
            orders.insert(0, order)
        self._orders = orders
        self.notify_listeners()

    def resync_order(self, order_id: int, fallback: Optional[Dict[str, Any]] = None) -> Optional[Order]:
        """
        Refetch an order after a server-side change.

        Args:
            order_id: Order to refetch
            fallback: Response of the mutating call; its ``order`` (if any)
                is used when the refetch fails

        Returns:
            Fresh order, the fallback order, or None when neither is available
        """
        try:
            return self.fetch_order(order_id)
        except BookstoreClientError as e:
            logger.warning(f"Refetch of order {order_id} failed, using action response: {e}")

        fallback_order = fallback.get("order") if isinstance(fallback, dict) else None
        if isinstance(fallback_order, dict):
            order = Order.from_dict(fallback_order)
            self.replace_order(order)
            return order
        return None

    # -------------------------------------------------------------------------
    # Admin operations
    # -------------------------------------------------------------------------

    def update_order_status(self, order_id: int, status: str) -> bool:
        with self._loading():
            try:
                response = self._client.update_order_status(order_id, status)
            except BookstoreClientError as e:
                self._fail("Failed to update order status", e)
                return False
            self.resync_order(order_id, response)
            return True

    def assign_delivery_manager(self, order_id: int, delivery_manager_id: int) -> bool:
        with self._loading():
            try:
                response = self._client.assign_delivery_manager(order_id, delivery_manager_id)
            except BookstoreClientError as e:
                self._fail("Failed to assign delivery manager", e)
                return False
            self.resync_order(order_id, response)
            return True

    def reject_order(self, order_id: int, rejection_reason: str) -> bool:
        with self._loading():
            try:
                self._client.reject_order(order_id, rejection_reason)
            except BookstoreClientError as e:
                self._fail("Failed to reject order", e)
                return False
            self.resync_order(order_id)
            return True

    def load_available_delivery_managers(self) -> List[DeliveryAgent]:
        with self._loading():
            try:
                payloads = self._client.get_available_delivery_managers()
            except BookstoreClientError as e:
                self._fail("Failed to load available delivery managers", e)
                return []
            self._available_managers = [DeliveryAgent.from_dict(p) for p in payloads if isinstance(p, dict)]
            return self.available_managers

    def get_delivery_location(self, order_id: int) -> Optional[Dict[str, Any]]:
        try:
            return self._client.get_delivery_location(order_id)
        except BookstoreClientError as e:
            self._fail("Failed to get delivery location", e)
            self.notify_listeners()
            return None

    def get_assignment_tracking(self, assignment_id: int) -> Optional[Dict[str, Any]]:
        try:
            return self._client.get_assignment_tracking(assignment_id)
        except BookstoreClientError as e:
            self._fail("Failed to get delivery tracking", e)
            self.notify_listeners()
            return None

    # -------------------------------------------------------------------------
    # Notes
    # -------------------------------------------------------------------------

    def add_order_note(self, order_id: int, content: str) -> bool:
        return self._change_notes(order_id, "add notes", self._client.add_order_note, order_id, content)

    def edit_order_note(self, order_id: int, content: str, note_id: Optional[int] = None) -> bool:
        return self._change_notes(
            order_id, "edit notes", self._client.edit_order_note, order_id, content, note_id
        )

    def delete_order_note(self, order_id: int, note_id: Optional[int] = None) -> bool:
        return self._change_notes(
            order_id, "delete notes", self._client.delete_order_note, order_id, note_id
        )

    def _change_notes(self, order_id: int, action: str, call, *args) -> bool:
        with self._loading():
            try:
                call(*args)
            except BookstoreClientError as e:
                self._fail(f"Failed to {action}", e)
                return False
            self.resync_order(order_id)
            return True

    # -------------------------------------------------------------------------
    # Views over the cache
    # -------------------------------------------------------------------------

    def orders_with_status(self, status: str) -> List[Order]:
        wanted = normalize_status(status)
        return [o for o in self._orders if o.normalized_status == wanted]

    def delivery_manager_orders(self) -> List[Order]:
        return [o for o in self._orders if o.normalized_status in DELIVERY_MANAGER_STATUSES]

    def status_counts(self) -> Dict[str, int]:
        return dict(Counter(o.normalized_status for o in self._orders))
