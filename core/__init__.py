"""
Core module for the Bookstore client.

Contains fundamental infrastructure components:
- exceptions: Custom exception hierarchy
- error_messages: Exception-to-user-message conversion
- api_client: requests-based client for the bookstore REST API
"""

from .exceptions import (
    BookstoreClientError,
    ConfigurationError,
    NetworkError,
    ResponseParseError,
    ApiRequestError,
    AuthenticationError,
    PermissionDeniedError,
    ResourceNotFoundError,
    ActionNotAllowedError,
    ValidationError,
)
from .api_client import BookstoreAPIClient

__all__ = [
    "BookstoreClientError",
    "ConfigurationError",
    "NetworkError",
    "ResponseParseError",
    "ApiRequestError",
    "AuthenticationError",
    "PermissionDeniedError",
    "ResourceNotFoundError",
    "ActionNotAllowedError",
    "ValidationError",
    "BookstoreAPIClient",
]
