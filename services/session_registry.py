"""
Per-user provider sets for the Flask server.

Each signed-in browser session owns one BookstoreAPIClient (holding that
user's tokens) and one set of providers built on it. The Flask session
cookie only stores an opaque key; the registry maps that key to the
ProviderSet.

Thread Safety:
    - Uses threading.Lock for all map operations
    - Providers inside a set are not locked; their state is swapped by
      reference, see services.provider

Idle Expiry:
    A set not looked up for ``idle_timeout`` seconds is closed and dropped
    the next time the registry is touched.

Usage:
    registry = ProviderRegistry(base_url, timeout=30.0, page_size=10)

    key, providers = registry.login(email, password)
    session["provider_key"] = key

    providers = registry.get(session["provider_key"])
    providers.orders.load_orders()
"""

from __future__ import annotations

import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from core.api_client import BookstoreAPIClient
from core.exceptions import BookstoreClientError
from models.fields import parse_int
from logging_config import get_logger, get_session_logger
from .catalog_providers import AuthorsProvider, BooksProvider, CategoriesProvider
from .delivery_actions import DeliveryWorkflow
from .delivery_status_provider import DeliveryStatusProvider
from .orders_provider import OrdersProvider


# Module logger
logger = get_logger(__name__)

ClientFactory = Callable[..., BookstoreAPIClient]

DELIVERY_MANAGER_USER_TYPE = "delivery_admin"


@dataclass
class ProviderSet:
    """Everything one signed-in user works with."""

    client: BookstoreAPIClient
    orders: OrdersProvider
    delivery_status: DeliveryStatusProvider
    books: BooksProvider
    categories: CategoriesProvider
    authors: AuthorsProvider
    user: Dict[str, Any] = field(default_factory=dict)
    """The ``data`` block returned by login (user_id, email, user_type, ...)."""

    @classmethod
    def build(
        cls,
        client: BookstoreAPIClient,
        page_size: int = 10,
        user: Optional[Dict[str, Any]] = None
    ) -> "ProviderSet":
        return cls(
            client=client,
            orders=OrdersProvider(client),
            delivery_status=DeliveryStatusProvider(client),
            books=BooksProvider(client, page_size=page_size),
            categories=CategoriesProvider(client, page_size=page_size),
            authors=AuthorsProvider(client, page_size=page_size),
            user=dict(user or {}),
        )

    @property
    def user_id(self) -> Optional[int]:
        return parse_int(self.user.get("user_id") or self.user.get("id"))

    @property
    def user_type(self) -> str:
        return str(self.user.get("user_type") or "")

    @property
    def is_delivery_manager(self) -> bool:
        return self.user_type == DELIVERY_MANAGER_USER_TYPE

    @property
    def workflow(self) -> DeliveryWorkflow:
        return DeliveryWorkflow(self.client, self.orders, self.delivery_status, self.user_id)

    def public_user(self) -> Dict[str, Any]:
        """User details without the tokens."""
        return {k: v for k, v in self.user.items() if "token" not in k and k not in ("access", "refresh")}

    def close(self) -> None:
        for provider in (self.orders, self.delivery_status, self.books, self.categories, self.authors):
            provider.clear()
        self.client.clear_tokens()
        self.client.close()


class ProviderRegistry:
    """
    Thread-safe map of session key -> ProviderSet.

    Args:
        base_url: Bookstore API base URL
        timeout: Request timeout in seconds
        page_size: Page size for catalog providers
        client_factory: Builds the API client; tests pass a factory
            returning a client over a mocked session
        idle_timeout: Seconds without a lookup after which a set is closed
            (None keeps sets until logout or shutdown)
        clock: Monotonic time source
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        page_size: int = 10,
        client_factory: Optional[ClientFactory] = None,
        idle_timeout: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        self._base_url = base_url
        self._timeout = timeout
        self._page_size = page_size
        self._client_factory = client_factory or BookstoreAPIClient
        self._idle_timeout = idle_timeout
        self._clock = clock
        self._sets: Dict[str, ProviderSet] = {}
        self._last_seen: Dict[str, float] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sets)

    def login(self, email: str, password: str) -> Tuple[str, ProviderSet]:
        """
        Sign in against the API and register a fresh provider set.

        Returns:
            (session key, provider set)

        Raises:
            BookstoreClientError: If the API rejects the login
        """
        client = self._client_factory(self._base_url, timeout=self._timeout)
        try:
            user = client.login(email, password)
        except BookstoreClientError:
            client.close()
            raise

        key = uuid.uuid4().hex
        providers = ProviderSet.build(client, page_size=self._page_size, user=user)
        self.create(key, providers)
        get_session_logger(key).info(f"Session started for {user.get('email', email)}")
        return key, providers

    def create(self, key: str, providers: ProviderSet) -> None:
        """Register a provider set; an existing set under the key is closed."""
        with self._lock:
            expired = self._pop_expired()
            previous = self._sets.get(key)
            self._sets[key] = providers
            self._last_seen[key] = self._clock()
        if previous is not None and previous is not providers:
            previous.close()
        self._close_expired(expired)
        logger.debug(f"Registered providers for session {key[:8]}")

    def get(self, key: Optional[str]) -> Optional[ProviderSet]:
        """Look up a session's providers and mark the session as active."""
        with self._lock:
            expired = self._pop_expired()
            providers = self._sets.get(key) if key else None
            if providers is not None:
                self._last_seen[key] = self._clock()
        self._close_expired(expired)
        return providers

    def discard(self, key: Optional[str]) -> bool:
        """
        Close and forget a session's providers.

        Returns:
            True if the key was registered
        """
        if not key:
            return False
        with self._lock:
            providers = self._sets.pop(key, None)
            self._last_seen.pop(key, None)
        if providers is None:
            return False
        providers.close()
        get_session_logger(key).info("Session ended")
        return True

    def clear(self) -> int:
        """
        Close every provider set.

        Returns:
            Number of sets removed
        """
        with self._lock:
            sets = list(self._sets.items())
            self._sets.clear()
            self._last_seen.clear()
        self._close_all(sets)
        if sets:
            logger.info(f"Cleared {len(sets)} provider sets")
        return len(sets)

    # -------------------------------------------------------------------------
    # Idle expiry
    # -------------------------------------------------------------------------

    def _pop_expired(self) -> List[Tuple[str, ProviderSet]]:
        """Remove idle sets from the map. Caller holds the lock."""
        if self._idle_timeout is None:
            return []
        cutoff = self._clock() - self._idle_timeout
        stale = [key for key, seen in self._last_seen.items() if seen < cutoff]
        expired = []
        for key in stale:
            self._last_seen.pop(key, None)
            providers = self._sets.pop(key, None)
            if providers is not None:
                expired.append((key, providers))
        return expired

    def _close_expired(self, expired: List[Tuple[str, ProviderSet]]) -> None:
        if not expired:
            return
        self._close_all(expired)
        for key, _ in expired:
            get_session_logger(key).info("Session expired after inactivity")

    @staticmethod
    def _close_all(sets: List[Tuple[str, ProviderSet]]) -> None:
        for key, providers in sets:
            try:
                providers.close()
            except Exception as e:
                logger.warning(f"Error closing provider set {key[:8]}: {e}")
