"""
Base class for state-holding providers.

A provider owns an in-memory view of some server data (orders, books,
the manager's status), exposes ``is_loading`` and ``error``, and notifies
registered listeners whenever any of it changes.

STATE REPLACEMENT:
    Providers never patch server data piecemeal. Each successful fetch
    builds new model objects and swaps the reference held by the provider,
    so a reader on another Flask thread sees either the old list or the new
    one, never a half-built one.

ERRORS:
    Public provider methods do not raise for API failures. They store a
    message in ``error``, reset ``is_loading``, notify, and return
    False/None. Routes read ``error`` to build the flashed message.

Usage:
    provider = OrdersProvider(client)
    provider.add_listener(lambda: print("orders changed"))

    if not provider.load_orders(status="approved"):
        flash(provider.error, "error")
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Callable, Iterator, List, Optional

from core.api_client import BookstoreAPIClient
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

Listener = Callable[[], None]


class BaseProvider:
    """
    Listener registry plus loading/error state.

    Subclasses implement clear() to drop their data and call
    ``super().clear()``.
    """

    def __init__(self, client: BookstoreAPIClient):
        """
        Args:
            client: API client of the user this provider belongs to

        Raises:
            ValueError: If client is None
        """
        if client is None:
            raise ValueError("client is required")

        self._client = client
        self._listeners: List[Listener] = []
        self._is_loading = False
        self._error: Optional[str] = None

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    @property
    def error(self) -> Optional[str]:
        """Message from the last failed operation, None after a success."""
        return self._error

    @property
    def is_authenticated(self) -> bool:
        return self._client.is_authenticated

    def set_token(self, access_token: Optional[str], refresh_token: Optional[str] = None) -> None:
        """Hand a new token to the underlying client; empty tokens are ignored."""
        if access_token:
            self._client.set_tokens(access_token, refresh_token)
        else:
            logger.debug(f"{type(self).__name__}.set_token called without a token")

    def clear_error(self) -> None:
        self._error = None
        self.notify_listeners()

    def clear(self) -> None:
        """Drop all held data and state."""
        self._is_loading = False
        self._error = None
        self.notify_listeners()

    # -------------------------------------------------------------------------
    # Listeners
    # -------------------------------------------------------------------------

    def add_listener(self, listener: Listener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def notify_listeners(self) -> None:
        """
        Call every listener.

        A listener that raises is logged and skipped; the rest still run.
        """
        for listener in list(self._listeners):
            try:
                listener()
            except Exception as e:
                logger.error(f"{type(self).__name__} listener failed: {e}", exc_info=True)

    # -------------------------------------------------------------------------
    # Helpers for subclasses
    # -------------------------------------------------------------------------

    @contextmanager
    def _loading(self) -> Iterator[None]:
        """Mark the provider busy for the duration of an operation."""
        self._is_loading = True
        self._error = None
        self.notify_listeners()
        try:
            yield
        finally:
            self._is_loading = False
            self.notify_listeners()

    def _fail(self, message: str, error: Optional[Exception] = None) -> None:
        """Record a failure. ``message`` is used as a prefix when error is given."""
        if error is not None:
            # BookstoreClientError keeps debugging details out of its message
            message = f"{message}: {getattr(error, 'message', error)}"
        self._error = message
        logger.warning(f"{type(self).__name__}: {self._error}")
