"""
Tests for the per-session provider registry.
"""

import threading

import pytest
from unittest.mock import MagicMock

from app import create_app
from core.api_client import BookstoreAPIClient
from core.exceptions import ApiRequestError
from services.delivery_actions import DeliveryWorkflow
from services.session_registry import ProviderRegistry, ProviderSet
from conftest import BASE_URL


LOGIN_DATA = {
    "user_id": 5,
    "email": "omar@example.com",
    "user_type": "delivery_admin",
    "access_token": "access-1",
    "refresh_token": "refresh-1",
}


@pytest.fixture
def factory():
    """Client factory handing out MagicMock clients."""
    clients = []

    def build(base_url, timeout):
        client = MagicMock(spec=BookstoreAPIClient)
        client.base_url = base_url
        client.timeout = timeout
        client.login.return_value = dict(LOGIN_DATA)
        clients.append(client)
        return client

    build.clients = clients
    return build


@pytest.fixture
def registry(factory):
    return ProviderRegistry(BASE_URL, timeout=7.5, page_size=25, client_factory=factory)


class TestLogin:
    """Test sign-in through the registry."""

    def test_registers_provider_set(self, registry, factory):
        key, providers = registry.login("omar@example.com", "pw")

        client = factory.clients[0]
        assert client.base_url == BASE_URL
        assert client.timeout == 7.5
        client.login.assert_called_once_with("omar@example.com", "pw")

        assert len(key) == 32
        assert registry.get(key) is providers
        assert len(registry) == 1
        assert providers.books.items_per_page == 25

    def test_each_login_gets_own_client(self, registry, factory):
        key_a, set_a = registry.login("a@example.com", "pw")
        key_b, set_b = registry.login("b@example.com", "pw")

        assert key_a != key_b
        assert set_a.client is not set_b.client
        assert set_a.orders is not set_b.orders
        assert len(registry) == 2

    def test_failed_login_closes_client(self, registry, factory):
        def failing(base_url, timeout):
            client = factory(base_url, timeout)
            client.login.side_effect = ApiRequestError("login", 401, "Invalid credentials")
            return client

        registry = ProviderRegistry(BASE_URL, client_factory=failing)

        with pytest.raises(ApiRequestError):
            registry.login("omar@example.com", "wrong")

        factory.clients[0].close.assert_called_once()
        assert len(registry) == 0


class TestRegistryMap:

    def test_get_unknown_or_empty_key(self, registry):
        assert registry.get(None) is None
        assert registry.get("") is None
        assert registry.get("missing") is None

    def test_create_replaces_and_closes_previous(self, registry, mock_client):
        old = ProviderSet.build(MagicMock(spec=BookstoreAPIClient))
        new = ProviderSet.build(mock_client)

        registry.create("k", old)
        registry.create("k", new)

        assert registry.get("k") is new
        old.client.close.assert_called_once()
        mock_client.close.assert_not_called()

    def test_discard(self, registry):
        key, providers = registry.login("omar@example.com", "pw")

        assert registry.discard(key) is True
        assert registry.discard(key) is False
        assert registry.discard(None) is False

        providers.client.clear_tokens.assert_called_once()
        providers.client.close.assert_called_once()
        assert registry.get(key) is None

    def test_clear_counts_and_survives_close_errors(self, registry):
        registry.login("a@example.com", "pw")
        _, broken = registry.login("b@example.com", "pw")
        broken.client.close.side_effect = RuntimeError("already closed")

        assert registry.clear() == 2
        assert len(registry) == 0
        assert registry.clear() == 0

    def test_concurrent_logins(self, registry):
        threads = [threading.Thread(target=registry.login, args=(f"u{i}@example.com", "pw")) for i in range(10)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(registry) == 10


class TestProviderSet:
    """Test the per-user bundle."""

    def test_user_fields(self, mock_client):
        providers = ProviderSet.build(mock_client, user=LOGIN_DATA)

        assert providers.user_id == 5
        assert providers.user_type == "delivery_admin"
        assert providers.is_delivery_manager is True

    def test_user_id_fallback_to_id(self, mock_client):
        providers = ProviderSet.build(mock_client, user={"id": "12", "user_type": "library_admin"})

        assert providers.user_id == 12
        assert providers.is_delivery_manager is False

    def test_public_user_strips_tokens(self, mock_client):
        providers = ProviderSet.build(mock_client, user=dict(LOGIN_DATA, access="a", refresh="r"))

        public = providers.public_user()

        assert public == {"user_id": 5, "email": "omar@example.com", "user_type": "delivery_admin"}

    def test_workflow_uses_user_id(self, mock_client):
        providers = ProviderSet.build(mock_client, user=LOGIN_DATA)

        workflow = providers.workflow

        assert isinstance(workflow, DeliveryWorkflow)
        assert workflow._user_id == 5
        assert workflow._orders is providers.orders

    def test_close_clears_providers(self, mock_client):
        mock_client.list_orders.return_value = [{"id": 1, "status": "approved"}]
        providers = ProviderSet.build(mock_client)
        providers.orders.load_orders()
        providers.delivery_status.set_status_locally("online")

        providers.close()

        assert providers.orders.orders == []
        assert providers.delivery_status.is_offline
        mock_client.clear_tokens.assert_called_once()
        mock_client.close.assert_called_once()


class TestIdleExpiry:
    """Test that idle provider sets are closed and dropped."""

    @pytest.fixture
    def clock(self):
        now = [1000.0]

        def read():
            return now[0]

        read.advance = lambda seconds: now.__setitem__(0, now[0] + seconds)
        return read

    @pytest.fixture
    def expiring(self, factory, clock):
        return ProviderRegistry(BASE_URL, client_factory=factory, idle_timeout=60, clock=clock)

    def test_idle_set_expires_on_get(self, expiring, clock):
        key, providers = expiring.login("omar@example.com", "pw")

        clock.advance(61)

        assert expiring.get(key) is None
        assert len(expiring) == 0
        providers.client.close.assert_called_once()

    def test_idle_set_expires_on_create(self, expiring, clock, mock_client):
        key, providers = expiring.login("omar@example.com", "pw")

        clock.advance(120)
        expiring.create("other", ProviderSet.build(mock_client))

        assert expiring.get(key) is None
        assert expiring.get("other") is not None
        assert len(expiring) == 1
        providers.client.close.assert_called_once()

    def test_get_refreshes_last_access(self, expiring, clock):
        key, providers = expiring.login("omar@example.com", "pw")

        for _ in range(5):
            clock.advance(50)
            assert expiring.get(key) is providers

        providers.client.close.assert_not_called()

    def test_only_idle_sets_expire(self, expiring, clock):
        idle_key, idle = expiring.login("a@example.com", "pw")
        clock.advance(40)
        active_key, active = expiring.login("b@example.com", "pw")
        clock.advance(30)

        assert expiring.get(active_key) is active
        assert expiring.get(idle_key) is None
        idle.client.close.assert_called_once()
        active.client.close.assert_not_called()

    def test_no_timeout_never_expires(self, factory, clock):
        registry = ProviderRegistry(BASE_URL, client_factory=factory, clock=clock)
        key, providers = registry.login("omar@example.com", "pw")

        clock.advance(10 ** 9)

        assert registry.get(key) is providers

    def test_app_uses_session_lifetime(self):
        app = create_app("config.TestingConfig")
        registry = app.config["PROVIDER_REGISTRY"]

        assert registry._idle_timeout == app.permanent_session_lifetime.total_seconds()
        assert registry._idle_timeout > 0
