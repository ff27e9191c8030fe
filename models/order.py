"""
Order data models.

These models mirror the delivery API's order payloads: an order with its
customer, line items, amounts, notes and (once a delivery manager is
involved) its delivery assignment.

The server is the authority on every field. An Order is built from a
response, read by routes and the delivery gating function, and replaced
wholesale by the next fetch; nothing here mutates server state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Any, List, Optional

from .fields import first_of, format_datetime, parse_datetime, parse_float, parse_int

DEFAULT_TAX_RATE = 0.08
"""Applied to the subtotal when the server omits tax_amount."""


class OrderStatus(str, Enum):
    """
    Order status strings used by the delivery API.

    Members compare equal to their raw strings, so payload values can be
    checked directly against them.

    Lifecycle (delivery path):
        PENDING -> CONFIRMED -> WAITING_FOR_DELIVERY_MANAGER -> APPROVED
            -> IN_DELIVERY -> DELIVERED/COMPLETED
    """

    PENDING = "pending"
    CONFIRMED = "confirmed"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    PENDING_ASSIGNMENT = "pending_assignment"
    ASSIGNED_TO_DELIVERY = "assigned_to_delivery"
    WAITING_FOR_DELIVERY_MANAGER = "waiting_for_delivery_manager"
    APPROVED = "approved"
    IN_DELIVERY = "in_delivery"
    DELIVERY_IN_PROGRESS = "delivery_in_progress"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    REJECTED = "rejected"
    REJECTED_BY_ADMIN = "rejected_by_admin"
    REJECTED_BY_DELIVERY_MANAGER = "rejected_by_delivery_manager"


class OrderType(str, Enum):
    PURCHASE = "purchase"
    BORROWING = "borrowing"
    RETURN_COLLECTION = "return_collection"


ORDER_TYPE_DISPLAY = {
    OrderType.PURCHASE: "Purchase Order",
    OrderType.BORROWING: "Borrowing Request",
    OrderType.RETURN_COLLECTION: "Return Request",
}


def normalize_status(value: Optional[str]) -> str:
    """Trimmed, lowercased status string ('' for None)."""
    return (value or "").strip().lower()


@dataclass
class OrderItem:
    """One line of an order."""

    book_id: Optional[int]
    """Catalog id of the book."""

    book_title: str = "Unknown Book"
    book_author: Optional[str] = None
    book_image: Optional[str] = None

    quantity: int = 1
    unit_price: float = 0.0
    total_price: float = 0.0

    id: Optional[int] = None
    order_id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "book_id": self.book_id,
            "book_title": self.book_title,
            "book_author": self.book_author,
            "book_image": self.book_image,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "total_price": self.total_price,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OrderItem":
        """
        Create from an item payload.

        Older endpoints nest the book (``{"book": {"id", "title", ...}}``);
        newer ones flatten it into ``book_*`` fields.
        """
        book = data.get("book")
        if isinstance(book, dict):
            author = book.get("author")
            book_id = parse_int(book.get("id"))
            title = book.get("title") or book.get("name") or "Unknown Book"
            author_name = author.get("name") if isinstance(author, dict) else book.get("author_name")
            image = first_of(book, "primary_image_url", "cover_url", "image")
        else:
            book_id = parse_int(first_of(data, "book_id", "book"))
            title = data.get("book_title") or "Unknown Book"
            author_name = data.get("book_author")
            image = data.get("book_image")

        quantity = parse_int(data.get("quantity"), default=1)
        unit_price = parse_float(first_of(data, "unit_price", "price"))
        total_price = parse_float(data.get("total_price"), default=None)
        if total_price is None:
            total_price = unit_price * quantity

        return cls(
            id=parse_int(data.get("id")),
            order_id=parse_int(first_of(data, "order_id", "order")),
            book_id=book_id,
            book_title=str(title),
            book_author=str(author_name) if author_name is not None else None,
            book_image=str(image) if image is not None else None,
            quantity=quantity,
            unit_price=unit_price,
            total_price=total_price,
        )


@dataclass
class OrderNote:
    """A note attached to an order by staff or the customer."""

    id: int
    content: str
    author_id: Optional[int] = None
    author_name: Optional[str] = None
    author_type: Optional[str] = None
    can_edit: bool = False
    can_delete: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "content": self.content,
            "author": self.author_id,
            "author_name": self.author_name,
            "author_type": self.author_type,
            "can_edit": self.can_edit,
            "can_delete": self.can_delete,
            "created_at": format_datetime(self.created_at),
            "updated_at": format_datetime(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OrderNote":
        return cls(
            id=parse_int(data.get("id"), default=0),
            content=data.get("content") or "",
            author_id=parse_int(data.get("author")),
            author_name=data.get("author_name"),
            author_type=data.get("author_type"),
            can_edit=bool(data.get("can_edit", False)),
            can_delete=bool(data.get("can_delete", False)),
            created_at=parse_datetime(data.get("created_at")),
            updated_at=parse_datetime(data.get("updated_at")),
        )


@dataclass
class OrderAddress:
    """Postal address. Delivery addresses are sometimes only a street line and a city."""

    address1: str = ""
    city: str = ""
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    company: Optional[str] = None
    address2: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    phone: Optional[str] = None

    @property
    def one_line(self) -> str:
        parts = [self.address1, self.address2, self.city, self.state, self.postal_code, self.country]
        return ", ".join(p for p in parts if p)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "first_name": self.first_name,
            "last_name": self.last_name,
            "company": self.company,
            "address1": self.address1,
            "address2": self.address2,
            "city": self.city,
            "state": self.state,
            "postal_code": self.postal_code,
            "country": self.country,
            "phone": self.phone,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OrderAddress":
        return cls(
            first_name=data.get("first_name"),
            last_name=data.get("last_name"),
            company=data.get("company"),
            address1=data.get("address1") or "",
            address2=data.get("address2"),
            city=data.get("city") or "",
            state=data.get("state"),
            postal_code=data.get("postal_code"),
            country=data.get("country"),
            phone=data.get("phone"),
        )


@dataclass
class PaymentInfo:
    payment_method: str = "unknown"
    status: str = "pending"
    transaction_id: Optional[str] = None
    card_last4: Optional[str] = None
    card_brand: Optional[str] = None
    processed_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "payment_method": self.payment_method,
            "status": self.status,
            "transaction_id": self.transaction_id,
            "card_last4": self.card_last4,
            "card_brand": self.card_brand,
            "processed_at": format_datetime(self.processed_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PaymentInfo":
        return cls(
            payment_method=first_of(data, "payment_type", "payment_method", default="unknown"),
            status=data.get("status") or "pending",
            transaction_id=data.get("transaction_id"),
            card_last4=data.get("card_last4"),
            card_brand=data.get("card_brand"),
            processed_at=parse_datetime(first_of(data, "created_at", "processed_at")),
        )


@dataclass
class DeliveryAssignment:
    """
    Server-side link between an order and a delivery manager.

    Has its own status (assigned, accepted, in_progress, delivered,
    rejected, ...) that moves independently of the order's status.
    """

    id: Optional[int]
    """Assignment id, used by the update-status and tracking endpoints."""

    order_id: Optional[int] = None

    status: str = "assigned"
    """Assignment status as reported by the server."""

    delivery_manager_id: Optional[int] = None
    delivery_manager_name: Optional[str] = None
    delivery_manager_phone: Optional[str] = None
    delivery_manager_email: Optional[str] = None

    assigned_by_name: Optional[str] = None
    failure_reason: Optional[str] = None

    assigned_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "order": self.order_id,
            "status": self.status,
            "delivery_manager": self.delivery_manager_id,
            "delivery_manager_name": self.delivery_manager_name,
            "delivery_manager_phone": self.delivery_manager_phone,
            "delivery_manager_email": self.delivery_manager_email,
            "assigned_by_name": self.assigned_by_name,
            "failure_reason": self.failure_reason,
            "assigned_at": format_datetime(self.assigned_at),
            "started_at": format_datetime(self.started_at),
            "completed_at": format_datetime(self.completed_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DeliveryAssignment":
        """
        Create from an assignment payload.

        ``delivery_manager`` is either an id or an object; the flat
        ``delivery_manager_*`` fields fill whatever the object left out.
        """
        manager = data.get("delivery_manager")
        manager_id = name = phone = email = None
        if isinstance(manager, dict):
            manager_id = parse_int(manager.get("id"))
            name = first_of(manager, "full_name", "get_full_name", "name")
            phone = first_of(manager, "phone", "phone_number")
            email = manager.get("email")
        elif manager is not None:
            manager_id = parse_int(manager)

        return cls(
            id=parse_int(data.get("id")),
            order_id=parse_int(first_of(data, "order", "order_id")),
            status=data.get("status") or "assigned",
            delivery_manager_id=manager_id,
            delivery_manager_name=name or data.get("delivery_manager_name"),
            delivery_manager_phone=phone or data.get("delivery_manager_phone"),
            delivery_manager_email=email or data.get("delivery_manager_email"),
            assigned_by_name=data.get("assigned_by_name"),
            failure_reason=data.get("failure_reason"),
            assigned_at=parse_datetime(data.get("assigned_at")),
            started_at=parse_datetime(data.get("started_at")),
            completed_at=parse_datetime(data.get("completed_at")),
        )


@dataclass
class Order:
    """
    A customer order as seen by admins and delivery managers.

    Amounts are floats parsed leniently (missing or malformed -> 0.0).
    """

    id: int
    order_number: str = ""
    status: str = OrderStatus.PENDING.value
    order_type: str = OrderType.PURCHASE.value

    # Customer
    user_id: Optional[int] = None
    customer_name: str = "Unknown"
    customer_email: str = ""
    customer_phone: str = ""

    # Amounts
    total_amount: float = 0.0
    delivery_cost: float = 0.0
    tax_amount: float = 0.0
    discount_amount: float = 0.0
    coupon_code: Optional[str] = None
    payment_method: Optional[str] = None

    items: List[OrderItem] = field(default_factory=list)
    total_quantity: Optional[int] = None

    notes: Optional[str] = None
    """Legacy single delivery note."""

    order_notes: List[OrderNote] = field(default_factory=list)
    """Threaded notes from the activity log."""

    cancellation_reason: Optional[str] = None
    delivery_address: Optional[OrderAddress] = None
    billing_address: Optional[OrderAddress] = None
    payment_info: Optional[PaymentInfo] = None
    delivery_assignment: Optional[DeliveryAssignment] = None

    # Borrowing orders carry a single book
    book_title: Optional[str] = None
    book_author: Optional[str] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    # -------------------------------------------------------------------------
    # Derived values
    # -------------------------------------------------------------------------

    @property
    def subtotal(self) -> float:
        return sum(item.total_price for item in self.items)

    @property
    def final_total(self) -> float:
        return self.subtotal + self.delivery_cost + self.tax_amount - self.discount_amount

    @property
    def normalized_status(self) -> str:
        return normalize_status(self.status)

    @property
    def assignment_status(self) -> Optional[str]:
        return self.delivery_assignment.status if self.delivery_assignment else None

    @property
    def assignment_id(self) -> Optional[int]:
        return self.delivery_assignment.id if self.delivery_assignment else None

    @property
    def is_cancelled(self) -> bool:
        return self.normalized_status == OrderStatus.CANCELLED

    @property
    def is_waiting_for_delivery_manager(self) -> bool:
        return self.normalized_status == OrderStatus.WAITING_FOR_DELIVERY_MANAGER

    @property
    def is_purchase(self) -> bool:
        return self.order_type.lower() == OrderType.PURCHASE

    @property
    def is_borrowing(self) -> bool:
        return self.order_type.lower() == OrderType.BORROWING

    @property
    def is_return_collection(self) -> bool:
        return self.order_type.lower() == OrderType.RETURN_COLLECTION

    @property
    def order_type_display(self) -> str:
        try:
            return ORDER_TYPE_DISPLAY[OrderType(self.order_type.lower())]
        except ValueError:
            return self.order_type

    @property
    def status_display(self) -> str:
        """'waiting_for_delivery_manager' -> 'Waiting For Delivery Manager'."""
        return self.normalized_status.replace("_", " ").title()

    @property
    def notes_list(self) -> List[OrderNote]:
        """Threaded notes, or the legacy note wrapped as one, or nothing."""
        if self.order_notes:
            return list(self.order_notes)
        if self.notes:
            return [OrderNote(id=0, content=self.notes, created_at=self.updated_at, updated_at=self.updated_at)]
        return []

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "order_number": self.order_number,
            "status": self.status,
            "status_display": self.status_display,
            "order_type": self.order_type,
            "user_id": self.user_id,
            "customer_name": self.customer_name,
            "customer_email": self.customer_email,
            "customer_phone": self.customer_phone,
            "payment_method": self.payment_method,
            "total_amount": self.total_amount,
            "delivery_cost": self.delivery_cost,
            "tax_amount": self.tax_amount,
            "discount_amount": self.discount_amount,
            "coupon_code": self.coupon_code,
            "subtotal": self.subtotal,
            "final_total": self.final_total,
            "items": [item.to_dict() for item in self.items],
            "total_quantity": self.total_quantity,
            "notes": [note.to_dict() for note in self.notes_list],
            "cancellation_reason": self.cancellation_reason,
            "delivery_address": self.delivery_address.to_dict() if self.delivery_address else None,
            "billing_address": self.billing_address.to_dict() if self.billing_address else None,
            "payment_info": self.payment_info.to_dict() if self.payment_info else None,
            "delivery_assignment": (
                self.delivery_assignment.to_dict() if self.delivery_assignment else None
            ),
            "book_title": self.book_title,
            "book_author": self.book_author,
            "created_at": format_datetime(self.created_at),
            "updated_at": format_datetime(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Order":
        """
        Create from an order payload.

        Customer data comes from the nested ``customer`` object (with its
        ``profile``) when present, else from flat ``customer_*`` fields.
        When the server omits ``tax_amount`` and the order has items, tax is
        DEFAULT_TAX_RATE of the subtotal.
        """
        customer = data.get("customer")
        customer_data = customer if isinstance(customer, dict) else {}
        profile = customer_data.get("profile") if isinstance(customer_data.get("profile"), dict) else {}

        user_id = parse_int(customer_data.get("id"))
        if user_id is None and isinstance(customer, (int, str)) and not isinstance(customer, bool):
            user_id = parse_int(customer)
        if user_id is None:
            user_id = parse_int(data.get("user_id"))

        phone = (
            profile.get("phone_number")
            or customer_data.get("phone_number")
            or data.get("customer_phone")
            or ""
        )

        raw_notes = data.get("notes")
        order_notes = []
        if isinstance(raw_notes, list):
            order_notes = [OrderNote.from_dict(n) for n in raw_notes if isinstance(n, dict)]
        legacy_notes = data.get("delivery_notes")
        if legacy_notes is None and isinstance(raw_notes, str):
            legacy_notes = raw_notes

        items = [OrderItem.from_dict(i) for i in data.get("items") or [] if isinstance(i, dict)]

        assignment = data.get("delivery_assignment")

        order = cls(
            id=parse_int(data.get("id"), default=0),
            order_number=str(data.get("order_number") or ""),
            status=data.get("status") or OrderStatus.PENDING.value,
            order_type=data.get("order_type") or OrderType.PURCHASE.value,
            user_id=user_id,
            customer_name=(
                customer_data.get("full_name")
                or customer_data.get("get_full_name")
                or data.get("customer_name")
                or "Unknown"
            ),
            customer_email=customer_data.get("email") or data.get("customer_email") or "",
            customer_phone=str(phone),
            payment_method=data.get("payment_method"),
            total_amount=parse_float(data.get("total_amount")),
            delivery_cost=parse_float(data.get("delivery_cost")),
            tax_amount=parse_float(data.get("tax_amount")),
            discount_amount=parse_float(data.get("discount_amount")),
            coupon_code=first_of(data, "discount_code", "coupon_code"),
            items=items,
            total_quantity=parse_int(data.get("total_quantity")),
            notes=legacy_notes,
            order_notes=order_notes,
            cancellation_reason=data.get("cancellation_reason"),
            delivery_address=_parse_delivery_address(data),
            billing_address=(
                OrderAddress.from_dict(data["billing_address"])
                if isinstance(data.get("billing_address"), dict) else None
            ),
            payment_info=_parse_payment_info(data),
            delivery_assignment=(
                DeliveryAssignment.from_dict(assignment) if isinstance(assignment, dict) else None
            ),
            book_title=data.get("book_title"),
            book_author=data.get("book_author"),
            created_at=parse_datetime(data.get("created_at")),
            updated_at=parse_datetime(data.get("updated_at")),
        )

        if data.get("tax_amount") is None and order.items:
            order.tax_amount = order.subtotal * DEFAULT_TAX_RATE

        return order


def _parse_delivery_address(data: Dict[str, Any]) -> Optional[OrderAddress]:
    address = data.get("delivery_address")
    if isinstance(address, dict):
        return OrderAddress.from_dict(address)
    if isinstance(address, str) and address:
        return OrderAddress(address1=address, city=data.get("delivery_city") or "")
    return None


def _parse_payment_info(data: Dict[str, Any]) -> Optional[PaymentInfo]:
    for key in ("payment", "payment_info"):
        if isinstance(data.get(key), dict):
            return PaymentInfo.from_dict(data[key])
    if data.get("payment_method"):
        return PaymentInfo(
            payment_method=data["payment_method"],
            status=data.get("status") or "pending",
            processed_at=parse_datetime(data.get("created_at")),
        )
    return None
