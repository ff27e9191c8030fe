"""
User-facing error text.

Turns exceptions and error payloads from the bookstore API into the short
messages flashed to the user. Some server errors only identify themselves
through substrings of the message ("403", "AUTHOR_HAS_BOOKS"), so matching
here is on text rather than on exception type.
"""

from __future__ import annotations

import re
from typing import Any, Dict, Optional

import requests

# "Failed to reject assignment: 400 - Order already rejected" -> "Order already rejected"
_BAD_REQUEST_MESSAGE = re.compile(r":\s*400\s*-\s*(.+)$")
_ANY_STATUS_MESSAGE = re.compile(r":\s*\d+\s*-\s*(.+)$")

_PERMISSION_MARKERS = ("Permission denied", "403", "Unauthorized")
_AUTHOR_HAS_BOOKS = "AUTHOR_HAS_BOOKS"

_DELETE_PERMISSION_MESSAGES = {
    "book": "You do not have permission to delete books. Only library administrators can delete books.",
    "author": "You do not have permission to delete authors. Only library administrators can delete authors.",
    "category": "You do not have permission to delete categories. Only library administrators can delete categories.",
}

_DELETE_AUTHOR_HAS_BOOKS_MESSAGES = {
    "book": "Cannot delete this book because it is associated with an author who has other books.",
    "author": "Cannot delete an author who still has books. Reassign or delete the books first.",
}


def describe_api_error(status_code: int, data: Optional[Dict[str, Any]] = None) -> str:
    """
    Map an HTTP status to a message suitable for a toast.

    400 and 422 prefer the server's own ``message``; 401/403/404 and the 5xx
    family always use the fixed text.
    """
    data = data or {}
    if status_code == 400:
        return data.get("message") or "Invalid request. Please check your input."
    if status_code == 401:
        return "Authentication failed. Please log in again."
    if status_code == 403:
        return "You are not authorized to perform this action."
    if status_code == 404:
        return "Resource not found."
    if status_code == 422:
        return data.get("message") or "Validation error. Please check your input."
    if status_code in (500, 501, 502, 503):
        return "Server error. Please try again later."
    return data.get("message") or "An unexpected error occurred."


def describe_network_error(error: Exception) -> str:
    """Message for a request that never got an HTTP response."""
    cause = getattr(error, "cause", error)
    if isinstance(cause, requests.ConnectionError):
        return "No internet connection. Please check your network settings."
    if isinstance(cause, requests.Timeout):
        return "Could not reach the server. Please try again later."
    if isinstance(cause, ValueError):
        return "Invalid response format from the server."
    return f"Network error: {cause}"


def format_validation_errors(errors: Optional[Dict[str, Any]]) -> str:
    """
    Flatten ``{field: [messages]}`` into one ``field: a, b`` line per field.
    """
    if not errors:
        return "Validation failed."

    lines = []
    for field_name, messages in errors.items():
        if isinstance(messages, (list, tuple)):
            lines.append(f"{field_name}: {', '.join(str(m) for m in messages)}")
        else:
            lines.append(f"{field_name}: {messages}")
    return "\n".join(lines)


def describe_delete_error(entity: str, message: str) -> str:
    """
    Friendly text for a failed book/author/category delete.

    Args:
        entity: "book", "author" or "category"
        message: str() of the exception that was raised

    Returns:
        Role message for permission failures, the AUTHOR_HAS_BOOKS message
        where one exists for the entity, otherwise "Error: <message>".
    """
    if any(marker in message for marker in _PERMISSION_MARKERS):
        return _DELETE_PERMISSION_MESSAGES.get(
            entity, "You are not authorized to perform this action."
        )
    if _AUTHOR_HAS_BOOKS in message and entity in _DELETE_AUTHOR_HAS_BOOKS_MESSAGES:
        return _DELETE_AUTHOR_HAS_BOOKS_MESSAGES[entity]
    return f"Error: {message}"


def extract_server_message(message: str) -> str:
    """
    Pull the server's text out of a ``Failed to x: <status> - <text>`` string.

    A 400 is tried first since that is where the server puts its business
    rule explanations; any other status is tried next. Returns the input
    unchanged when neither pattern matches.
    """
    match = _BAD_REQUEST_MESSAGE.search(message) or _ANY_STATUS_MESSAGE.search(message)
    if match:
        return match.group(1).strip()
    return message
