"""
Unit tests for the bookstore REST API client.

The requests.Session is a MagicMock; responses are real requests.Response
objects so status handling and JSON decoding run unmodified.
"""

import pytest
import requests

from core.api_client import BookstoreAPIClient
from core.exceptions import (
    ApiRequestError,
    AuthenticationError,
    NetworkError,
    PermissionDeniedError,
    ResourceNotFoundError,
    ResponseParseError,
)
from conftest import BASE_URL, make_response, order_payload


def _call(http_session, index=0):
    """(method, url, kwargs) of the index-th request made."""
    args, kwargs = http_session.request.call_args_list[index]
    return args[0], args[1], kwargs


class TestClientConstruction:
    """Test client setup and token handling."""

    def test_empty_base_url_rejected(self):
        with pytest.raises(ValueError, match="base_url"):
            BookstoreAPIClient("")

    def test_non_positive_timeout_rejected(self):
        with pytest.raises(ValueError, match="timeout"):
            BookstoreAPIClient(BASE_URL, timeout=0)

    def test_trailing_slash_stripped(self, http_session):
        client = BookstoreAPIClient(BASE_URL + "/", session=http_session)
        assert client.base_url == BASE_URL

    def test_authentication_follows_tokens(self, http_session):
        client = BookstoreAPIClient(BASE_URL, session=http_session)
        assert client.is_authenticated is False

        client.set_tokens("a", "r")
        assert client.is_authenticated is True
        assert client.refresh_token == "r"

        # Refresh token kept when only the access token changes
        client.set_tokens("b")
        assert client.refresh_token == "r"

        client.clear_tokens()
        assert client.is_authenticated is False
        assert client.refresh_token is None

    def test_close_closes_session(self, api_client, http_session):
        api_client.close()
        http_session.close.assert_called_once()


class TestRequestPlumbing:
    """Test headers, params and error mapping."""

    def test_bearer_and_json_headers(self, api_client, http_session):
        http_session.request.return_value = make_response(200, [])

        api_client.list_orders()

        method, url, kwargs = _call(http_session)
        assert method == "GET"
        assert url == f"{BASE_URL}/delivery/orders/"
        assert kwargs["headers"]["Authorization"] == "Bearer access-1"
        assert kwargs["headers"]["Content-Type"] == "application/json"
        assert kwargs["timeout"] == 5.0

    def test_empty_params_dropped(self, api_client, http_session):
        http_session.request.return_value = make_response(200, {"results": []})

        api_client.list_orders(search="", status="approved", order_type=None)

        _, _, kwargs = _call(http_session)
        assert kwargs["params"] == {"status": "approved"}

    def test_error_message_format(self, api_client, http_session):
        http_session.request.return_value = make_response(400, {"error": "Order already approved"})

        with pytest.raises(ApiRequestError) as exc_info:
            api_client.approve_assignment(42, 5)

        assert str(exc_info.value) == "Failed to approve order: 400 - Order already approved"
        assert exc_info.value.status_code == 400

    def test_error_message_falls_back_to_message_then_text(self, api_client, http_session):
        http_session.request.return_value = make_response(409, {"message": "Conflict here"})
        with pytest.raises(ApiRequestError, match="409 - Conflict here"):
            api_client.start_delivery(42)

        http_session.request.return_value = make_response(500, text="Internal Server Error")
        with pytest.raises(ApiRequestError, match="500 - Internal Server Error"):
            api_client.start_delivery(42)

    def test_field_errors_flattened(self, api_client, http_session):
        http_session.request.return_value = make_response(
            400, {"errors": {"title": ["This field is required."]}}
        )

        with pytest.raises(ApiRequestError, match="title: This field is required."):
            api_client.create_book({"title": ""})

    def test_status_subclasses(self, api_client, http_session):
        api_client.clear_tokens()
        api_client.set_tokens("access-1")

        http_session.request.return_value = make_response(403, {"detail": "nope"})
        with pytest.raises(PermissionDeniedError):
            api_client.delete_book(1)

        http_session.request.return_value = make_response(404, {"detail": "Not found."})
        with pytest.raises(ResourceNotFoundError):
            api_client.get_order(999)

        # No refresh token: 401 raised straight away
        http_session.request.return_value = make_response(401, {"detail": "expired"})
        with pytest.raises(AuthenticationError):
            api_client.list_orders()
        assert http_session.request.call_count == 3

    def test_network_error_wraps_cause(self, api_client, http_session):
        cause = requests.ConnectionError("connection refused")
        http_session.request.side_effect = cause

        with pytest.raises(NetworkError) as exc_info:
            api_client.list_orders()

        assert exc_info.value.cause is cause
        assert exc_info.value.http_status == 502

    def test_invalid_json_raises_parse_error(self, api_client, http_session):
        http_session.request.return_value = make_response(200, text="<html>oops</html>")

        with pytest.raises(ResponseParseError):
            api_client.list_orders()

    def test_empty_body_is_empty_dict(self, api_client, http_session):
        http_session.request.return_value = make_response(204)

        # Deletes accept 204 with no body
        api_client.delete_book(3)
        method, url, _ = _call(http_session)
        assert method == "DELETE"
        assert url == f"{BASE_URL}/library/books/3/delete/"


class TestTokenRefresh:
    """Test the single refresh-and-retry on 401."""

    def test_refresh_then_retry_once(self, api_client, http_session):
        http_session.request.side_effect = [
            make_response(401, {"detail": "Token expired"}),
            make_response(200, {"access": "access-2"}),
            make_response(200, [order_payload()]),
        ]

        orders = api_client.list_orders()

        assert len(orders) == 1
        assert api_client.access_token == "access-2"
        assert http_session.request.call_count == 3

        _, refresh_url, refresh_kwargs = _call(http_session, 1)
        assert refresh_url == f"{BASE_URL}/token/refresh/"
        assert refresh_kwargs["json"] == {"refresh": "refresh-1"}
        assert "Authorization" not in refresh_kwargs["headers"]

        _, _, retry_kwargs = _call(http_session, 2)
        assert retry_kwargs["headers"]["Authorization"] == "Bearer access-2"

    def test_second_401_is_raised(self, api_client, http_session):
        http_session.request.side_effect = [
            make_response(401, {"detail": "Token expired"}),
            make_response(200, {"access": "access-2", "refresh": "refresh-2"}),
            make_response(401, {"detail": "Still not allowed"}),
        ]

        with pytest.raises(AuthenticationError, match="Still not allowed"):
            api_client.list_orders()

        # No second refresh attempt
        assert http_session.request.call_count == 3
        assert api_client.refresh_token == "refresh-2"

    def test_failed_refresh_raises_original_401(self, api_client, http_session):
        http_session.request.side_effect = [
            make_response(401, {"detail": "Token expired"}),
            make_response(401, {"detail": "Refresh token expired"}),
        ]

        with pytest.raises(AuthenticationError, match="Token expired"):
            api_client.list_orders()

        assert http_session.request.call_count == 2
        assert api_client.access_token == "access-1"


class TestAuthentication:
    """Test login."""

    def test_login_stores_tokens(self, http_session):
        client = BookstoreAPIClient(BASE_URL, session=http_session)
        http_session.request.return_value = make_response(200, {
            "success": True,
            "data": {
                "user_id": 5,
                "email": "omar@example.com",
                "user_type": "delivery_admin",
                "access_token": "jwt-access",
                "refresh_token": "jwt-refresh",
            },
        })

        user = client.login("omar@example.com", "pw")

        assert user["user_type"] == "delivery_admin"
        assert client.access_token == "jwt-access"
        assert client.refresh_token == "jwt-refresh"

        method, url, kwargs = _call(http_session)
        assert (method, url) == ("POST", f"{BASE_URL}/users/login/")
        assert kwargs["json"] == {"email": "omar@example.com", "password": "pw"}
        assert "Authorization" not in kwargs["headers"]

    def test_login_unsuccessful_envelope(self, http_session):
        client = BookstoreAPIClient(BASE_URL, session=http_session)
        http_session.request.return_value = make_response(200, {"success": False, "message": "Account disabled"})

        with pytest.raises(AuthenticationError, match="Account disabled"):
            client.login("x@example.com", "pw")
        assert client.is_authenticated is False

    def test_login_bad_credentials_not_refreshed(self, http_session):
        client = BookstoreAPIClient(BASE_URL, session=http_session, refresh_token="stale")
        http_session.request.return_value = make_response(401, {"error": "Invalid credentials"})

        with pytest.raises(AuthenticationError, match="Invalid credentials"):
            client.login("x@example.com", "wrong")
        assert http_session.request.call_count == 1


class TestOrderEndpoints:
    """Test order and delivery endpoint shapes."""

    def test_get_order_unwraps_envelope(self, api_client, http_session):
        http_session.request.return_value = make_response(200, {"success": True, "order": order_payload(7)})
        assert api_client.get_order(7)["id"] == 7

        http_session.request.return_value = make_response(200, order_payload(8))
        assert api_client.get_order(8)["id"] == 8

    def test_get_order_unexpected_shape(self, api_client, http_session):
        http_session.request.return_value = make_response(200, {"success": True})
        with pytest.raises(ResponseParseError):
            api_client.get_order(7)

    def test_reject_assignment_payload(self, api_client, http_session):
        http_session.request.return_value = make_response(200, {"success": True})

        api_client.update_assignment_status(900, "rejected", "Too far away")

        method, url, kwargs = _call(http_session)
        assert method == "PATCH"
        assert url == f"{BASE_URL}/delivery/assignments/900/update-status/"
        assert kwargs["json"] == {"status": "rejected", "failure_reason": "Too far away"}

    def test_note_payload_uses_string_order_id(self, api_client, http_session):
        http_session.request.return_value = make_response(200, {"success": True})

        api_client.edit_order_note(42, "Leave at door", note_id=3)

        _, url, kwargs = _call(http_session)
        assert url == f"{BASE_URL}/delivery/activities/log/note/"
        assert kwargs["json"] == {
            "order_id": "42",
            "notes_content": "Leave at door",
            "action": "edit",
            "note_id": 3,
        }

    def test_available_managers_list(self, api_client, http_session):
        http_session.request.return_value = make_response(
            200, {"delivery_managers": [{"id": 5, "name": "Omar"}]}
        )
        assert api_client.get_available_delivery_managers() == [{"id": 5, "name": "Omar"}]

    def test_delivery_status_requires_success_envelope(self, api_client, http_session):
        http_session.request.return_value = make_response(
            200, {"success": True, "data": {"delivery_status": "online", "can_change_manually": True}}
        )
        assert api_client.get_delivery_status()["delivery_status"] == "online"

        http_session.request.return_value = make_response(200, {"delivery_status": "online"})
        with pytest.raises(ResponseParseError, match="Invalid response format from server"):
            api_client.get_delivery_status()


class TestCatalogEndpoints:
    """Test library endpoints."""

    def test_list_books_params(self, api_client, http_session):
        http_session.request.return_value = make_response(200, {"success": True, "data": []})

        api_client.list_books(page=2, limit=10, search="dune", category_id=4, is_available=False)

        _, url, kwargs = _call(http_session)
        assert url == f"{BASE_URL}/library/books/"
        assert kwargs["params"] == {
            "page": 2,
            "limit": 10,
            "search": "dune",
            "category": 4,
            "is_available": "false",
        }

    def test_list_books_no_library(self, api_client, http_session):
        http_session.request.return_value = make_response(
            404, {"error_code": "NO_LIBRARY", "message": "No library"}
        )

        with pytest.raises(ResourceNotFoundError, match="NO_LIBRARY_FOUND"):
            api_client.list_books()

    def test_delete_category_unsuccessful_body(self, api_client, http_session):
        http_session.request.return_value = make_response(
            200, {"success": False, "message": "Category has books"}
        )

        with pytest.raises(ApiRequestError, match="Category has books"):
            api_client.delete_category(2)

    def test_list_authors_plain_or_wrapped(self, api_client, http_session):
        http_session.request.return_value = make_response(200, [{"id": 1, "name": "Herbert"}])
        assert api_client.list_authors()[0]["name"] == "Herbert"

        http_session.request.return_value = make_response(200, {"data": [{"id": 2, "name": "Le Guin"}]})
        assert api_client.list_authors()[0]["name"] == "Le Guin"

    @pytest.mark.parametrize("method,path", [
        ("get_category", "/library/categories/77/"),
        ("get_author", "/library/authors/77/"),
    ])
    def test_lookup_by_id(self, api_client, http_session, method, path):
        http_session.request.return_value = make_response(
            200, {"success": True, "message": "ok", "data": {"id": 77, "name": "Poetry"}}
        )

        result = getattr(api_client, method)(77)

        verb, url, _ = _call(http_session)
        assert verb == "GET"
        assert url == f"{BASE_URL}{path}"
        assert result == {"id": 77, "name": "Poetry"}
