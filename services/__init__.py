"""
Services layer for the Bookstore client.

This package holds the client-side state and business logic:
- BaseProvider: loading/error state and change listeners
- OrdersProvider, DeliveryStatusProvider: order and delivery manager state
- BooksProvider, CategoriesProvider, AuthorsProvider: catalog state
- resolve_delivery_actions / DeliveryWorkflow: delivery action gating and execution
- ProviderRegistry: one ProviderSet per signed-in session

Request Model:
    Flask worker thread
    └── ProviderRegistry.get(session key) -> ProviderSet
        └── providers -> BookstoreAPIClient (that user's requests.Session)

No service starts background threads; every API call happens on the
request thread that asked for it.
"""

from .provider import BaseProvider
from .orders_provider import OrdersProvider
from .delivery_status_provider import DeliveryStatusProvider
from .catalog_providers import AuthorsProvider, BooksProvider, CategoriesProvider
from .delivery_actions import (
    DeliveryActionResult,
    DeliveryWorkflow,
    actions_for_order,
    resolve_delivery_actions,
)
from .session_registry import ProviderRegistry, ProviderSet

__all__ = [
    "BaseProvider",
    "OrdersProvider",
    "DeliveryStatusProvider",
    "BooksProvider",
    "CategoriesProvider",
    "AuthorsProvider",
    "DeliveryActionResult",
    "DeliveryWorkflow",
    "actions_for_order",
    "resolve_delivery_actions",
    "ProviderRegistry",
    "ProviderSet",
]
