"""
Pytest fixtures shared by the Bookstore client tests.

The HTTP layer is mocked at the requests.Session level: tests queue
requests.Response objects on a MagicMock session and inspect the calls
made on it. Route tests use the Flask test client with a registry whose
provider sets wrap a MagicMock API client.
"""

import json
from typing import Any, Dict, Optional
from unittest.mock import MagicMock

import pytest
import requests

from app import create_app
from core.api_client import BookstoreAPIClient
from routes.helpers import SESSION_KEY
from services.session_registry import ProviderRegistry, ProviderSet


BASE_URL = "http://bookstore.test/api"


def make_response(status_code: int = 200, body: Any = None, text: Optional[str] = None) -> requests.Response:
    """Build a real requests.Response carrying a JSON (or raw text) body."""
    response = requests.Response()
    response.status_code = status_code
    if text is not None:
        response._content = text.encode("utf-8")
    elif body is not None:
        response._content = json.dumps(body).encode("utf-8")
        response.headers["Content-Type"] = "application/json"
    else:
        response._content = b""
    return response


def order_payload(order_id: int = 42, status: str = "waiting_for_delivery_manager", **overrides) -> Dict[str, Any]:
    """Order as returned by GET /delivery/orders/<id>/."""
    payload = {
        "id": order_id,
        "order_number": f"ORD-{order_id:05d}",
        "status": status,
        "order_type": "purchase",
        "customer": {"id": 7, "full_name": "Nadia Haddad", "email": "nadia@example.com", "phone": "0999"},
        "total_amount": "43.20",
        "delivery_cost": "5.00",
        "items": [
            {"id": 1, "book_id": 3, "book_title": "Dune", "quantity": 2, "unit_price": "12.50", "total_price": "25.00"},
        ],
        "delivery_assignment": {
            "id": 900,
            "order_id": order_id,
            "delivery_manager": {"id": 5, "full_name": "Omar K", "phone": "0555"},
            "status": "assigned",
        },
    }
    payload.update(overrides)
    return payload


# Fixtures

@pytest.fixture
def http_session():
    """MagicMock standing in for requests.Session."""
    return MagicMock()


@pytest.fixture
def api_client(http_session):
    """Signed-in client over the mocked session."""
    return BookstoreAPIClient(
        BASE_URL,
        timeout=5.0,
        access_token="access-1",
        refresh_token="refresh-1",
        session=http_session,
    )


@pytest.fixture
def mock_client():
    """MagicMock API client for provider and route tests."""
    client = MagicMock(spec=BookstoreAPIClient)
    client.is_authenticated = True
    return client


@pytest.fixture
def registry():
    return ProviderRegistry(BASE_URL, timeout=5.0, page_size=10)


@pytest.fixture
def app(registry):
    app = create_app("config.TestingConfig", registry=registry)
    yield app
    registry.clear()


@pytest.fixture
def web(app):
    """Flask test client (not signed in)."""
    return app.test_client()


def _sign_in(web, registry, mock_client, user: Dict[str, Any], key: str) -> ProviderSet:
    providers = ProviderSet.build(mock_client, page_size=10, user=user)
    registry.create(key, providers)
    with web.session_transaction() as sess:
        sess[SESSION_KEY] = key
    return providers


@pytest.fixture
def admin(web, registry, mock_client):
    """Provider set of a signed-in library admin."""
    return _sign_in(
        web, registry, mock_client,
        {"user_id": 1, "email": "admin@example.com", "user_type": "library_admin", "access_token": "secret"},
        "admin-session",
    )


@pytest.fixture
def manager(web, registry, mock_client):
    """Provider set of a signed-in delivery manager."""
    return _sign_in(
        web, registry, mock_client,
        {"user_id": 5, "email": "omar@example.com", "user_type": "delivery_admin", "access_token": "secret"},
        "manager-session",
    )
