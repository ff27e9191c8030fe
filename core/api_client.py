"""
HTTP client for the bookstore REST API.

This module wraps a ``requests.Session`` with the conventions the bookstore
API uses: bearer-token authentication, JSON bodies, a ``success``/``data``
envelope on most endpoints, and error bodies carrying ``error`` or
``message``.

ONE CLIENT PER SIGNED-IN USER:
    - Each user's ProviderSet (services.session_registry) owns one client
    - The client holds that user's access and refresh tokens
    - Requests from concurrent Flask threads share the client; only the
      token refresh is serialized

ERRORS:
    Every failure is raised, never returned. Non-2xx responses become
    ApiRequestError (or a 401/403/404 subclass) whose message reads
    ``Failed to <action>: <status> - <server text>``. Transport failures
    become NetworkError, undecodable bodies ResponseParseError.

TOKEN REFRESH:
    A 401 on an authenticated call triggers exactly one POST /token/refresh/
    with the refresh token. On success the original request is retried once
    with the new access token; otherwise the 401 is raised.

Usage:
    client = BookstoreAPIClient("http://localhost:8000/api", timeout=30.0)
    user = client.login("manager@example.com", "secret")

    orders = client.list_orders(status="waiting_for_delivery_manager")
    client.approve_assignment(orders[0]["id"], user["user_id"])
    order = client.get_order(orders[0]["id"])
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, List, Optional

import requests

from logging_config import get_logger
from .error_messages import format_validation_errors
from .exceptions import (
    ApiRequestError,
    AuthenticationError,
    NetworkError,
    PermissionDeniedError,
    ResourceNotFoundError,
    ResponseParseError,
)


# Module logger
logger = get_logger(__name__)

DEFAULT_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}


class BookstoreAPIClient:
    """
    Client for the bookstore REST API.

    Methods return decoded JSON (dicts and lists); turning those into model
    objects is the providers' job.

    Attributes:
        base_url: API root without trailing slash (e.g. http://host:8000/api)
        timeout: Per-request timeout in seconds
        is_authenticated: Whether an access token is held
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        access_token: Optional[str] = None,
        refresh_token: Optional[str] = None,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the client.

        Args:
            base_url: API root, e.g. "http://localhost:8000/api"
            timeout: Seconds before a request is abandoned
            access_token: JWT access token, if already signed in
            refresh_token: JWT refresh token used on 401
            session: requests.Session to use (a new one by default)
            logger: Logger instance (module logger if not provided)

        Raises:
            ValueError: If base_url is empty or timeout is not positive
        """
        if not base_url:
            raise ValueError("base_url is required - set BOOKSTORE_API_BASE_URL")
        if timeout <= 0:
            raise ValueError("timeout must be positive")

        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._session = session or requests.Session()
        self._logger = logger or get_logger("core.api_client")

        self._access_token = access_token
        self._refresh_token = refresh_token
        self._refresh_lock = threading.Lock()

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def timeout(self) -> float:
        return self._timeout

    @property
    def access_token(self) -> Optional[str]:
        return self._access_token

    @property
    def refresh_token(self) -> Optional[str]:
        return self._refresh_token

    @property
    def is_authenticated(self) -> bool:
        """Whether an access token is held (not whether it is still valid)."""
        return bool(self._access_token)

    def set_tokens(self, access_token: Optional[str], refresh_token: Optional[str] = None) -> None:
        """Replace the access token, and the refresh token when one is given."""
        self._access_token = access_token
        if refresh_token is not None:
            self._refresh_token = refresh_token

    def clear_tokens(self) -> None:
        self._access_token = None
        self._refresh_token = None

    def close(self) -> None:
        """Release pooled connections."""
        self._session.close()

    # =========================================================================
    # REQUEST PLUMBING
    # =========================================================================

    def _headers(self, authenticated: bool) -> Dict[str, str]:
        headers = dict(DEFAULT_HEADERS)
        if authenticated and self._access_token:
            headers["Authorization"] = f"Bearer {self._access_token}"
        return headers

    def _send(
        self,
        method: str,
        path: str,
        action: str,
        params: Optional[Dict[str, Any]] = None,
        payload: Optional[Dict[str, Any]] = None,
        authenticated: bool = True,
    ) -> requests.Response:
        url = f"{self._base_url}{path}"
        try:
            response = self._session.request(
                method,
                url,
                params=params,
                json=payload,
                headers=self._headers(authenticated),
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            self._logger.error(f"{method} {path} failed: {e}")
            raise NetworkError(action, e) from e

        self._logger.debug(f"{method} {path} -> {response.status_code}")
        return response

    def _request(
        self,
        method: str,
        path: str,
        action: str,
        params: Optional[Dict[str, Any]] = None,
        payload: Optional[Dict[str, Any]] = None,
        authenticated: bool = True,
    ) -> Any:
        """
        Perform a request and return the decoded body.

        Args:
            method: HTTP method
            path: Path below base_url, starting with "/"
            action: Verb phrase for error messages ("load orders")
            params: Query parameters (None values are dropped)
            payload: JSON body
            authenticated: Whether to send the bearer token

        Returns:
            Decoded JSON body ({} for an empty body)

        Raises:
            NetworkError: If no response was received
            ApiRequestError: If the status is not 2xx
            ResponseParseError: If the body is not JSON
        """
        if params:
            params = {k: v for k, v in params.items() if v is not None and v != ""}

        response = self._send(method, path, action, params, payload, authenticated)

        # One refresh-and-retry on 401
        if response.status_code == 401 and authenticated and self._refresh_token:
            self._logger.info(f"Received 401 for {path}, attempting token refresh...")
            if self._try_refresh():
                self._logger.info("Token refreshed, retrying request...")
                response = self._send(method, path, action, params, payload, authenticated)

        self._raise_for_status(response, action)
        return self._decode(response, action)

    def _decode(self, response: requests.Response, action: str) -> Any:
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            self._logger.error(f"Invalid JSON while trying to {action}: {e}")
            raise ResponseParseError(f"Invalid JSON in response: {e}", action=action)

    def _raise_for_status(self, response: requests.Response, action: str) -> None:
        status = response.status_code
        if 200 <= status < 300:
            return

        payload = self._error_payload(response)
        server_message = self._pick_message(payload) or response.text.strip()

        self._logger.warning(f"Failed to {action}: {status} - {server_message}")

        if status == 401:
            raise AuthenticationError(action, server_message, payload)
        if status == 403:
            raise PermissionDeniedError(action, server_message, payload)
        if status == 404:
            raise ResourceNotFoundError(action, server_message, payload)
        raise ApiRequestError(action, status, server_message, payload)

    @staticmethod
    def _error_payload(response: requests.Response) -> Dict[str, Any]:
        try:
            data = response.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}

    @staticmethod
    def _pick_message(payload: Dict[str, Any]) -> str:
        # Server puts the explanation under "error" first, then "message"
        for key in ("error", "message", "detail"):
            value = payload.get(key)
            if isinstance(value, dict):
                return format_validation_errors(value)
            if value:
                return str(value)
        if isinstance(payload.get("errors"), dict):
            return format_validation_errors(payload["errors"])
        return ""

    @staticmethod
    def _unwrap(data: Any, action: str, key: str = "data") -> Any:
        """
        Unwrap the ``{"success": true, key: ...}`` envelope.

        Raises:
            ResponseParseError: If success is not true or key is missing
        """
        if not isinstance(data, dict) or data.get("success") is not True or data.get(key) is None:
            message = "Invalid response format from server"
            if isinstance(data, dict) and data.get("message"):
                message = f"{message}: {data['message']}"
            raise ResponseParseError(message, action=action)
        return data[key]

    @staticmethod
    def _as_list(data: Any, *keys: str) -> List[Dict[str, Any]]:
        """Accept a bare list or a dict holding the list under one of keys."""
        if isinstance(data, list):
            return data
        if isinstance(data, dict):
            for key in keys:
                if isinstance(data.get(key), list):
                    return data[key]
        return []

    @staticmethod
    def _flag(value: Optional[bool]) -> Optional[str]:
        if value is None:
            return None
        return "true" if value else "false"

    # =========================================================================
    # AUTHENTICATION
    # =========================================================================

    def login(self, email: str, password: str) -> Dict[str, Any]:
        """
        Sign in and keep the returned tokens.

        Returns:
            The ``data`` block: user_id, email, user_type, full_name, tokens

        Raises:
            AuthenticationError: If credentials are rejected or tokens missing
        """
        data = self._request(
            "POST", "/users/login/", "log in",
            payload={"email": email, "password": password},
            authenticated=False,
        )
        if not isinstance(data, dict) or not data.get("success", True) or not isinstance(data.get("data"), dict):
            message = data.get("message") or data.get("error") if isinstance(data, dict) else ""
            raise AuthenticationError("log in", message or "Login failed")

        user = data["data"]
        access = user.get("access_token") or user.get("access")
        if not access:
            raise AuthenticationError("log in", "Login response missing access token")

        self.set_tokens(access, user.get("refresh_token") or user.get("refresh"))
        self._logger.info(f"Signed in as {user.get('email', email)} ({user.get('user_type', 'unknown')})")
        return user

    def refresh_access_token(self) -> str:
        """
        Exchange the refresh token for a new access token.

        Returns:
            The new access token (also stored on the client)

        Raises:
            AuthenticationError: If no refresh token is held or it was rejected
        """
        if not self._refresh_token:
            raise AuthenticationError("refresh token", "No refresh token available")

        response = self._send(
            "POST", "/token/refresh/", "refresh token",
            payload={"refresh": self._refresh_token},
            authenticated=False,
        )
        if response.status_code != 200:
            raise AuthenticationError("refresh token", f"Token refresh failed: {response.status_code}")

        data = self._decode(response, "refresh token")
        access = data.get("access") or data.get("access_token") if isinstance(data, dict) else None
        if not access:
            raise AuthenticationError("refresh token", "Token refresh response missing access token")

        self.set_tokens(access, data.get("refresh") or data.get("refresh_token"))
        return access

    def _try_refresh(self) -> bool:
        stale_token = self._access_token
        with self._refresh_lock:
            # Another thread may have refreshed while we waited
            if self._access_token and self._access_token != stale_token:
                return True
            try:
                self.refresh_access_token()
                return True
            except (AuthenticationError, NetworkError, ResponseParseError) as e:
                self._logger.warning(f"Token refresh failed: {e}")
                return False

    # =========================================================================
    # ORDERS
    # =========================================================================

    def list_orders(
        self,
        search: Optional[str] = None,
        status: Optional[str] = None,
        order_type: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        data = self._request(
            "GET", "/delivery/orders/", "load orders",
            params={"search": search, "status": status, "order_type": order_type},
        )
        return self._as_list(data, "results", "data", "orders")

    def get_order(self, order_id: int) -> Dict[str, Any]:
        data = self._request("GET", f"/delivery/orders/{order_id}/", "load order")
        if isinstance(data, dict):
            for key in ("order", "data"):
                if isinstance(data.get(key), dict):
                    return data[key]
            if "id" in data:
                return data
        raise ResponseParseError(action="load order")

    def update_order_status(self, order_id: int, status: str) -> Dict[str, Any]:
        return self._request(
            "PATCH", f"/delivery/orders/{order_id}/", "update order status",
            payload={"status": status},
        )

    def assign_delivery_manager(self, order_id: int, delivery_manager_id: int) -> Dict[str, Any]:
        return self._request(
            "PATCH", f"/delivery/orders/{order_id}/assign_delivery_manager/",
            "assign delivery manager",
            payload={"delivery_manager_id": delivery_manager_id},
        )

    def reject_order(self, order_id: int, rejection_reason: str) -> None:
        self._request(
            "PATCH", f"/delivery/orders/{order_id}/reject/", "reject order",
            payload={"rejection_reason": rejection_reason},
        )

    def get_delivery_location(self, order_id: int) -> Dict[str, Any]:
        return self._request(
            "GET", f"/delivery/orders/{order_id}/delivery-location/", "get delivery location"
        )

    def get_available_delivery_managers(self) -> List[Dict[str, Any]]:
        data = self._request(
            "GET", "/delivery/orders/available_delivery_managers/",
            "load available delivery agents",
        )
        return self._as_list(data, "delivery_managers", "results", "data")

    def _log_note(self, action: str, payload: Dict[str, Any]) -> None:
        self._request("POST", "/delivery/activities/log/note/", action, payload=payload)

    def add_order_note(self, order_id: int, content: str) -> None:
        self._log_note("add notes", {
            "order_id": str(order_id),
            "notes_content": content,
            "action": "add",
        })

    def edit_order_note(self, order_id: int, content: str, note_id: Optional[int] = None) -> None:
        payload = {"order_id": str(order_id), "notes_content": content, "action": "edit"}
        if note_id is not None:
            payload["note_id"] = note_id
        self._log_note("edit notes", payload)

    def delete_order_note(self, order_id: int, note_id: Optional[int] = None) -> None:
        payload = {"order_id": str(order_id), "action": "delete"}
        if note_id is not None:
            payload["note_id"] = note_id
        self._log_note("delete notes", payload)

    # =========================================================================
    # DELIVERY ASSIGNMENTS
    # =========================================================================

    def approve_assignment(self, order_id: int, delivery_manager_id: int) -> Dict[str, Any]:
        """Delivery manager accepts the order assigned to them."""
        return self._request(
            "PATCH", f"/delivery/orders/{order_id}/approve/", "approve order",
            payload={"delivery_manager_id": delivery_manager_id},
        )

    def update_assignment_status(
        self,
        assignment_id: int,
        status: str,
        failure_reason: Optional[str] = None
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"status": status}
        if failure_reason:
            payload["failure_reason"] = failure_reason
        return self._request(
            "PATCH", f"/delivery/assignments/{assignment_id}/update-status/",
            "update delivery status",
            payload=payload,
        )

    def start_delivery(self, order_id: int) -> Dict[str, Any]:
        return self._request(
            "PATCH", f"/delivery/orders/{order_id}/start_delivery/", "start delivery"
        )

    def complete_delivery(self, order_id: int) -> Dict[str, Any]:
        return self._request(
            "PATCH", f"/delivery/orders/{order_id}/complete_delivery/", "complete delivery"
        )

    def get_assignment_tracking(self, assignment_id: int) -> Dict[str, Any]:
        return self._request(
            "GET", f"/delivery/assignments/{assignment_id}/tracking/", "get delivery tracking"
        )

    # =========================================================================
    # DELIVERY MANAGER STATUS
    # =========================================================================

    def get_delivery_status(self) -> Dict[str, Any]:
        """Returns ``{"delivery_status": ..., "can_change_manually": ...}``."""
        data = self._request("GET", "/delivery-profiles/current_status/", "get delivery status")
        return self._unwrap(data, "get delivery status")

    def update_delivery_status(self, delivery_status: str) -> Dict[str, Any]:
        data = self._request(
            "POST", "/delivery-profiles/update_status/", "update status",
            payload={"delivery_status": delivery_status},
        )
        if isinstance(data, dict) and data.get("success") is True:
            return data.get("data") or {}
        return self._unwrap(data, "update status")

    def reset_delivery_status(self) -> Dict[str, Any]:
        """Ask the server to re-derive a stuck ``busy`` status."""
        data = self._request("POST", "/delivery-profiles/reset_status/", "reset status")
        if isinstance(data, dict) and data.get("success") is True:
            return data.get("data") or {}
        return self._unwrap(data, "reset status")

    # =========================================================================
    # CATALOG - BOOKS
    # =========================================================================

    def list_books(
        self,
        page: int = 1,
        limit: int = 10,
        search: Optional[str] = None,
        category_id: Optional[int] = None,
        author_id: Optional[int] = None,
        is_available: Optional[bool] = None,
        is_new: Optional[bool] = None,
        ordering: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        params = {
            "page": page,
            "limit": limit,
            "search": search,
            "category": category_id,
            "author": author_id,
            "is_available": self._flag(is_available),
            "is_new": self._flag(is_new),
            "ordering": ordering,
        }
        try:
            data = self._request("GET", "/library/books/", "load books", params=params)
        except ResourceNotFoundError as e:
            if e.error_code == "NO_LIBRARY":
                raise ResourceNotFoundError("load books", "NO_LIBRARY_FOUND", e.payload) from e
            raise
        return self._unwrap(data, "load books")

    def get_book(self, book_id: int) -> Dict[str, Any]:
        data = self._request("GET", f"/library/books/{book_id}/", "load book")
        return self._unwrap(data, "load book")

    def create_book(self, book: Dict[str, Any]) -> Dict[str, Any]:
        data = self._request("POST", "/library/books/create/", "create book", payload=book)
        return self._unwrap(data, "create book")

    def update_book(self, book_id: int, book: Dict[str, Any]) -> Dict[str, Any]:
        data = self._request("PUT", f"/library/books/{book_id}/update/", "update book", payload=book)
        return self._unwrap(data, "update book")

    def delete_book(self, book_id: int) -> None:
        self._request("DELETE", f"/library/books/{book_id}/delete/", "delete book")

    # =========================================================================
    # CATALOG - CATEGORIES AND AUTHORS
    # =========================================================================

    def list_categories(self, page: int = 1, limit: int = 10, search: Optional[str] = None) -> List[Dict[str, Any]]:
        data = self._request(
            "GET", "/library/categories/", "load categories",
            params={"page": page, "limit": limit, "search": search},
        )
        return self._as_list(data, "data", "results")

    def get_category(self, category_id: int) -> Dict[str, Any]:
        data = self._request("GET", f"/library/categories/{category_id}/", "load category")
        return self._unwrap(data, "load category")

    def create_category(self, category: Dict[str, Any]) -> Dict[str, Any]:
        data = self._request("POST", "/library/categories/create/", "create category", payload=category)
        return self._unwrap(data, "create category")

    def update_category(self, category_id: int, category: Dict[str, Any]) -> Dict[str, Any]:
        data = self._request(
            "PUT", f"/library/categories/{category_id}/update/", "update category", payload=category
        )
        return self._unwrap(data, "update category")

    def delete_category(self, category_id: int) -> None:
        data = self._request("DELETE", f"/library/categories/{category_id}/delete/", "delete category")
        # 200 with success false still means the category was kept
        if isinstance(data, dict) and data.get("success") is False:
            raise ApiRequestError("delete category", 400, data.get("message") or "Cannot delete category", data)

    def list_authors(self, page: int = 1, limit: int = 10, search: Optional[str] = None) -> List[Dict[str, Any]]:
        data = self._request(
            "GET", "/library/authors/", "load authors",
            params={"page": page, "limit": limit, "search": search},
        )
        return self._as_list(data, "data", "results")

    def get_author(self, author_id: int) -> Dict[str, Any]:
        data = self._request("GET", f"/library/authors/{author_id}/", "load author")
        return self._unwrap(data, "load author")

    def create_author(self, author: Dict[str, Any]) -> Dict[str, Any]:
        data = self._request("POST", "/library/authors/create/", "create author", payload=author)
        return self._unwrap(data, "create author")

    def update_author(self, author_id: int, author: Dict[str, Any]) -> Dict[str, Any]:
        data = self._request(
            "PUT", f"/library/authors/{author_id}/update/", "update author", payload=author
        )
        return self._unwrap(data, "update author")

    def delete_author(self, author_id: int) -> None:
        self._request("DELETE", f"/library/authors/{author_id}/delete/", "delete author")
