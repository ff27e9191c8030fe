"""
Custom exceptions for the Bookstore client.

Exception Hierarchy:
    BookstoreClientError (base)
    ├── ConfigurationError      - API base URL missing or invalid (startup failure)
    ├── NetworkError            - Server unreachable, connection dropped, timeout
    ├── ResponseParseError      - Body is not JSON or lacks the expected envelope
    ├── ApiRequestError         - Server answered with a non-success status
    │   ├── AuthenticationError     - 401 after refresh, or no token at all
    │   ├── PermissionDeniedError   - 403
    │   └── ResourceNotFoundError   - 404
    ├── ActionNotAllowedError   - Delivery action not offered for the order's state
    └── ValidationError         - Client-side form validation failed

Usage:
    ConfigurationError makes create_app() fail fast.
    Everything else is raised per call and caught at the provider or route
    boundary, where it becomes a user-facing message.
"""

from typing import Optional, Dict, Any, List


class BookstoreClientError(Exception):
    """
    Base exception for all Bookstore client errors.

    All custom exceptions inherit from this class, allowing callers to catch
    all application-specific errors with a single except clause if needed.
    """

    http_status = 500
    """Status a route answers with when this error reaches it."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        """
        Initialize the exception.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional context for debugging
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# =============================================================================
# STARTUP ERRORS - Application will not start if these occur
# =============================================================================

class ConfigurationError(BookstoreClientError):
    """
    The bookstore API cannot be addressed with the current configuration.

    Typical causes:
    - BOOKSTORE_API_BASE_URL empty in .env
    - URL without http:// or https:// scheme
    """

    def __init__(self, setting: str, value: Any):
        message = f"Invalid configuration for {setting}: {value!r}"
        details = {
            "setting": setting,
            "resolution": f"Set {setting} in .env to the API root, e.g. http://localhost:8000/api"
        }
        super().__init__(message, details)
        self.setting = setting
        self.value = value


# =============================================================================
# TRANSPORT ERRORS
# =============================================================================

class NetworkError(BookstoreClientError):
    """
    The request never produced an HTTP response.

    Raised for connection failures, DNS errors and timeouts. The original
    exception is kept on ``cause``.
    """

    http_status = 502

    def __init__(self, action: str, cause: Exception):
        message = f"Failed to {action}: {cause}"
        details = {
            "action": action,
            "error_type": type(cause).__name__,
            "resolution": "Check the network connection and that the bookstore API is running"
        }
        super().__init__(message, details)
        self.action = action
        self.cause = cause


class ResponseParseError(BookstoreClientError):
    """Response body could not be decoded or had an unexpected shape."""

    http_status = 502

    def __init__(self, message: str = "Invalid response format from server", action: Optional[str] = None):
        details = {"action": action} if action else {}
        super().__init__(message, details)
        self.action = action


# =============================================================================
# API ERRORS - Server answered, but not with success
# =============================================================================

class ApiRequestError(BookstoreClientError):
    """
    Non-success HTTP response from the bookstore API.

    The message always has the shape ``Failed to <action>: <status> - <text>``,
    which is also what the substring matchers in core.error_messages expect.

    Attributes:
        action: Short description of the attempted operation
        status_code: HTTP status returned by the server
        server_message: Text extracted from the error body
        payload: Decoded error body (empty dict when not JSON)
    """

    def __init__(
        self,
        action: str,
        status_code: int,
        server_message: str = "",
        payload: Optional[Dict[str, Any]] = None
    ):
        message = f"Failed to {action}: {status_code}"
        if server_message:
            message = f"{message} - {server_message}"
        super().__init__(message)
        self.action = action
        self.status_code = status_code
        self.server_message = server_message
        self.payload = payload or {}

    @property
    def http_status(self) -> int:
        return self.status_code

    @property
    def error_code(self) -> Optional[str]:
        """Machine-readable code from the body (e.g. 'AUTHOR_HAS_BOOKS')."""
        return self.payload.get("error_code") or self.payload.get("code")


class AuthenticationError(ApiRequestError):
    """
    The API rejected our credentials.

    Raised on 401 once the refresh attempt has failed, and before any call
    is made when no access token is available.
    """

    def __init__(
        self,
        action: str = "authenticate",
        server_message: str = "Authentication required. Please log in first.",
        payload: Optional[Dict[str, Any]] = None
    ):
        super().__init__(action, 401, server_message, payload)


class PermissionDeniedError(ApiRequestError):
    """403 - the signed-in user's role does not allow the operation."""

    def __init__(self, action: str, server_message: str = "", payload: Optional[Dict[str, Any]] = None):
        super().__init__(action, 403, server_message, payload)


class ResourceNotFoundError(ApiRequestError):
    """404 - the order, book, author or category does not exist."""

    def __init__(self, action: str, server_message: str = "", payload: Optional[Dict[str, Any]] = None):
        super().__init__(action, 404, server_message, payload)


# =============================================================================
# CLIENT-SIDE ERRORS
# =============================================================================

class ActionNotAllowedError(BookstoreClientError):
    """
    A delivery action was requested that the order's state does not offer.

    The server remains the authority; this only stops the client from firing
    a call it would not have shown a button for.
    """

    http_status = 409

    def __init__(self, action: str, order_status: str, reason: str = ""):
        message = reason or f"Action '{action}' is not available for order status '{order_status}'"
        details = {
            "action": action,
            "order_status": order_status,
            "resolution": "Refresh the order; its status may have changed on the server"
        }
        super().__init__(message, details)
        self.action = action
        self.order_status = order_status


class ValidationError(BookstoreClientError):
    """Form input rejected before anything was sent to the API."""

    http_status = 400

    def __init__(self, field_errors: Dict[str, List[str]]):
        from .error_messages import format_validation_errors

        super().__init__(format_validation_errors(field_errors))
        self.field_errors = field_errors
