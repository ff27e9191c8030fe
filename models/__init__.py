"""
Data models for the Bookstore client.

This module contains dataclasses mirroring the bookstore API payloads:
- Book, Author, Category: catalog entities
- Order, OrderItem, OrderNote, DeliveryAssignment: orders and their delivery
- DeliveryStatus, DeliveryAgent: delivery manager availability
- DeliveryActions: result of the delivery action gating function

Every model is created from a response with from_dict() and replaced
wholesale by the next fetch. DeliveryStatus and DeliveryActions are frozen.
"""

from .catalog import Author, Book, Category
from .order import (
    DeliveryAssignment,
    Order,
    OrderAddress,
    OrderItem,
    OrderNote,
    OrderStatus,
    OrderType,
    PaymentInfo,
    normalize_status,
)
from .delivery import (
    DeliveryAction,
    DeliveryActions,
    DeliveryAgent,
    DeliveryStatus,
    ManagerStatus,
    MANUAL_STATUSES,
    NO_ACTIONS_MESSAGE,
)

__all__ = [
    # Catalog models
    "Author",
    "Book",
    "Category",
    # Order models
    "DeliveryAssignment",
    "Order",
    "OrderAddress",
    "OrderItem",
    "OrderNote",
    "OrderStatus",
    "OrderType",
    "PaymentInfo",
    "normalize_status",
    # Delivery models
    "DeliveryAction",
    "DeliveryActions",
    "DeliveryAgent",
    "DeliveryStatus",
    "ManagerStatus",
    "MANUAL_STATUSES",
    "NO_ACTIONS_MESSAGE",
]
