"""
Tests for user-facing error text and the exception hierarchy.
"""

import pytest
import requests

from core.error_messages import (
    describe_api_error,
    describe_delete_error,
    describe_network_error,
    extract_server_message,
    format_validation_errors,
)
from core.exceptions import (
    ActionNotAllowedError,
    ApiRequestError,
    AuthenticationError,
    BookstoreClientError,
    ConfigurationError,
    NetworkError,
    ValidationError,
)


class TestDescribeApiError:
    """Test the status-to-message table."""

    @pytest.mark.parametrize("status,expected", [
        (401, "Authentication failed. Please log in again."),
        (403, "You are not authorized to perform this action."),
        (404, "Resource not found."),
        (500, "Server error. Please try again later."),
        (503, "Server error. Please try again later."),
    ])
    def test_fixed_messages(self, status, expected):
        # Server text is ignored for these
        assert describe_api_error(status, {"message": "ignored"}) == expected

    def test_bad_request_prefers_server_message(self):
        assert describe_api_error(400, {"message": "Email taken"}) == "Email taken"
        assert describe_api_error(400) == "Invalid request. Please check your input."

    def test_unprocessable_prefers_server_message(self):
        assert describe_api_error(422, {"message": "Bad date"}) == "Bad date"
        assert describe_api_error(422, {}) == "Validation error. Please check your input."

    def test_other_status(self):
        assert describe_api_error(418) == "An unexpected error occurred."


class TestDescribeNetworkError:

    def test_connection_error(self):
        error = NetworkError("load orders", requests.ConnectionError("refused"))
        assert describe_network_error(error) == "No internet connection. Please check your network settings."

    def test_timeout(self):
        error = NetworkError("load orders", requests.Timeout("slow"))
        assert describe_network_error(error) == "Could not reach the server. Please try again later."

    def test_bare_exception(self):
        assert describe_network_error(ValueError("bad json")) == "Invalid response format from the server."


class TestDeleteErrors:
    """Test substring rules for delete failures."""

    @pytest.mark.parametrize("message", [
        "Failed to delete book: 403 - Permission denied",
        "Failed to delete book: 401 - Unauthorized",
    ])
    def test_book_permission(self, message):
        assert describe_delete_error("book", message) == (
            "You do not have permission to delete books. Only library administrators can delete books."
        )

    def test_author_has_books(self):
        message = "Failed to delete author: 400 - AUTHOR_HAS_BOOKS"
        assert describe_delete_error("author", message) == (
            "Cannot delete an author who still has books. Reassign or delete the books first."
        )
        assert describe_delete_error("book", message).startswith("Cannot delete this book")

    def test_author_has_books_unknown_for_category(self):
        message = "Failed to delete category: 400 - AUTHOR_HAS_BOOKS"
        assert describe_delete_error("category", message) == f"Error: {message}"

    def test_fallback(self):
        assert describe_delete_error("book", "Failed to delete book: 500") == "Error: Failed to delete book: 500"


class TestExtractServerMessage:

    def test_bad_request_text(self):
        message = "Failed to update delivery status: 400 - Assignment already rejected"
        assert extract_server_message(message) == "Assignment already rejected"

    def test_other_status_text(self):
        assert extract_server_message("Failed to x: 409 - Conflict") == "Conflict"

    def test_unmatched_returned_unchanged(self):
        assert extract_server_message("Something odd") == "Something odd"


class TestFormatValidationErrors:

    def test_lines_per_field(self):
        text = format_validation_errors({"title": ["required"], "price": ["not a number", "negative"]})
        assert text.splitlines() == ["title: required", "price: not a number, negative"]

    def test_empty(self):
        assert format_validation_errors({}) == "Validation failed."


class TestExceptions:
    """Test exception hierarchy behavior."""

    def test_api_request_error_message(self):
        error = ApiRequestError("load orders", 500)
        assert str(error) == "Failed to load orders: 500"
        assert error.http_status == 500

    def test_error_code_from_payload(self):
        error = ApiRequestError("delete author", 400, "x", {"error_code": "AUTHOR_HAS_BOOKS"})
        assert error.error_code == "AUTHOR_HAS_BOOKS"

    def test_authentication_error_default_message(self):
        error = AuthenticationError()
        assert error.http_status == 401
        assert "Authentication required. Please log in first." in str(error)

    def test_details_appended(self):
        error = ConfigurationError("BOOKSTORE_API_BASE_URL", "")
        assert isinstance(error, BookstoreClientError)
        assert "resolution" in error.details
        assert "Details:" in str(error)

    def test_action_not_allowed(self):
        error = ActionNotAllowedError("start_delivery", "pending")
        assert error.http_status == 409
        assert error.message == "Action 'start_delivery' is not available for order status 'pending'"

    def test_validation_error_keeps_fields(self):
        error = ValidationError({"name": ["This field is required"]})
        assert error.http_status == 400
        assert error.field_errors == {"name": ["This field is required"]}
        assert str(error) == "name: This field is required"
