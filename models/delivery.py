"""
Delivery data models.

- ManagerStatus / DeliveryStatus: the signed-in delivery manager's own
  availability, as reported by /delivery-profiles/current_status/
- DeliveryAgent: a delivery manager as listed for assignment by admins
- DeliveryAction / DeliveryActions: the output of the action gating
  function in services.delivery_actions

DeliveryActions is frozen: it is computed from one (order status,
assignment status, manager status) triple and never updated in place.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Any, List, Optional, Tuple

from .fields import first_of, parse_float, parse_int


class ManagerStatus(str, Enum):
    """
    Availability of a delivery manager.

    ONLINE and OFFLINE are switched by the manager. BUSY is set by the
    server while a delivery is in progress and cleared when it completes.
    """

    ONLINE = "online"
    BUSY = "busy"
    OFFLINE = "offline"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["ManagerStatus"]:
        """Member for a raw string (case/space-insensitive), or None."""
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            return None


MANUAL_STATUSES = (ManagerStatus.ONLINE, ManagerStatus.OFFLINE)
"""Statuses a manager may switch to themselves."""


@dataclass(frozen=True)
class DeliveryStatus:
    """The delivery manager's status snapshot."""

    status: ManagerStatus = ManagerStatus.OFFLINE
    can_change_manually: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "delivery_status": self.status.value,
            "can_change_manually": self.can_change_manually,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DeliveryStatus":
        status = ManagerStatus.parse(data.get("delivery_status")) or ManagerStatus.OFFLINE
        can_change = data.get("can_change_manually")
        if can_change is None:
            can_change = status != ManagerStatus.BUSY
        return cls(status=status, can_change_manually=bool(can_change))


@dataclass
class DeliveryAgent:
    """A delivery manager candidate for assignment."""

    id: int
    name: str
    email: str = ""
    phone: str = ""
    status: str = ManagerStatus.OFFLINE.value
    address: Optional[str] = None
    vehicle_type: Optional[str] = None
    vehicle_number: Optional[str] = None
    rating: Optional[float] = None
    total_deliveries: int = 0
    completed_deliveries: int = 0
    active_deliveries: int = 0

    @property
    def is_online(self) -> bool:
        return self.status == ManagerStatus.ONLINE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "status": self.status,
            "address": self.address,
            "vehicle_type": self.vehicle_type,
            "vehicle_number": self.vehicle_number,
            "rating": self.rating,
            "total_deliveries": self.total_deliveries,
            "completed_deliveries": self.completed_deliveries,
            "active_deliveries": self.active_deliveries,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DeliveryAgent":
        status = first_of(data, "status", "delivery_status", "status_display", default="offline")
        return cls(
            id=parse_int(data.get("id"), default=0),
            name=first_of(data, "name", "full_name", default=""),
            email=data.get("email") or "",
            phone=str(first_of(data, "phone", "phone_number", default="")),
            status=str(status).strip().lower(),
            address=data.get("address"),
            vehicle_type=first_of(data, "vehicleType", "vehicle_type"),
            vehicle_number=first_of(data, "vehicleNumber", "vehicle_number"),
            rating=parse_float(data.get("rating"), default=None),
            total_deliveries=parse_int(first_of(data, "totalDeliveries", "total_deliveries"), default=0),
            completed_deliveries=parse_int(
                first_of(data, "completedDeliveries", "completed_deliveries"), default=0
            ),
            active_deliveries=parse_int(first_of(data, "activeDeliveries", "active_deliveries"), default=0),
        )


class DeliveryAction(str, Enum):
    """Actions a delivery manager can take on an order."""

    APPROVE = "approve"
    REJECT = "reject"
    START_DELIVERY = "start_delivery"
    COMPLETE_DELIVERY = "complete_delivery"
    TRACK_LOCATION = "track_location"


NO_ACTIONS_MESSAGE = "No actions available"


@dataclass(frozen=True)
class DeliveryActions:
    """
    Which delivery actions are offered for an order.

    At most one group is ever non-empty: (APPROVE, REJECT), (START_DELIVERY,)
    or (COMPLETE_DELIVERY, TRACK_LOCATION).
    """

    available: Tuple[DeliveryAction, ...] = ()
    """Offered actions, in display order."""

    reason: str = NO_ACTIONS_MESSAGE
    """Why nothing is offered (empty when something is)."""

    def allows(self, action: DeliveryAction) -> bool:
        return action in self.available

    @property
    def approve(self) -> bool:
        return self.allows(DeliveryAction.APPROVE)

    @property
    def reject(self) -> bool:
        return self.allows(DeliveryAction.REJECT)

    @property
    def start_delivery(self) -> bool:
        return self.allows(DeliveryAction.START_DELIVERY)

    @property
    def complete_delivery(self) -> bool:
        return self.allows(DeliveryAction.COMPLETE_DELIVERY)

    @property
    def track_location(self) -> bool:
        return self.allows(DeliveryAction.TRACK_LOCATION)

    @property
    def is_empty(self) -> bool:
        return not self.available

    def to_dict(self) -> Dict[str, Any]:
        actions: List[str] = [a.value for a in self.available]
        return {
            "actions": actions,
            "approve": self.approve,
            "reject": self.reject,
            "start_delivery": self.start_delivery,
            "complete_delivery": self.complete_delivery,
            "track_location": self.track_location,
            "message": self.reason if self.is_empty else "",
        }
