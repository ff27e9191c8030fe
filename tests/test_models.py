"""
Tests for the data models' lenient parsing.
"""

import pytest

from models.catalog import Author, Book, Category
from models.delivery import (
    DeliveryAction,
    DeliveryActions,
    DeliveryAgent,
    DeliveryStatus,
    ManagerStatus,
)
from models.fields import parse_float, parse_int
from models.order import DEFAULT_TAX_RATE, Order, OrderItem
from conftest import order_payload


class TestFields:

    @pytest.mark.parametrize("value,expected", [("12.50", 12.5), (3, 3.0), ("", 0.0), (None, 0.0), ("abc", 0.0)])
    def test_parse_float(self, value, expected):
        assert parse_float(value) == expected

    @pytest.mark.parametrize("value,expected", [("7", 7), (7.0, 7), ("7.0", 7), ("x", None), (True, None)])
    def test_parse_int(self, value, expected):
        assert parse_int(value) == expected


class TestBook:
    """Test Book parsing from the two payload shapes."""

    def test_nested_author_and_category(self):
        book = Book.from_dict({
            "id": 3,
            "name": "Dune",
            "author": {"id": 9, "name": "Frank Herbert", "bio": "SF author"},
            "category": {"id": 2, "name": "Science Fiction"},
            "price": "19.99",
            "quantity": 5,
            "availableCopies": 3,
            "coverUrl": "http://img/dune.jpg",
        })

        assert book.title == "Dune"
        assert book.author.name == "Frank Herbert"
        assert book.author.biography == "SF author"
        assert book.category.id == 2
        assert book.price == pytest.approx(19.99)
        assert book.primary_image_url == "http://img/dune.jpg"
        assert book.is_borrowed_out is True

    def test_flat_author_and_category(self):
        book = Book.from_dict({
            "id": 4,
            "title": "Emma",
            "author": 11,
            "author_name": "Jane Austen",
            "category_id": 6,
            "category_name": "Classics",
        })

        assert book.author == Author(id=11, name="Jane Austen")
        assert book.category == Category(id=6, name="Classics")
        assert book.is_borrowed_out is False

    def test_to_dict_sends_ids(self):
        book = Book(id=None, title="New", author=Author(id=11, name=""), category=Category(id=6, name=""))
        data = book.to_dict()
        assert data["author"] == 11
        assert data["category"] == 6

    def test_effective_price(self):
        book = Book(id=1, title="x", price=20.0, discounted_price=15.0, has_active_discount=True)
        assert book.effective_price == 15.0
        book.has_active_discount = False
        assert book.effective_price == 20.0


class TestAuthor:

    def test_server_field_names(self):
        author = Author(id=1, name="Le Guin", biography="b", country="US", birth_date="1929-10-21T00:00:00Z")
        data = author.to_dict()
        assert data["bio"] == "b"
        assert data["nationality"] == "US"
        assert data["birth_date"] == "1929-10-21"

    def test_from_alternative_keys(self):
        author = Author.from_dict({"id": 1, "name": "Le Guin", "bio": "b", "nationality": "US", "bookCount": "4"})
        assert author.biography == "b"
        assert author.country == "US"
        assert author.book_count == 4


class TestOrder:
    """Test Order parsing."""

    def test_customer_and_assignment(self):
        order = Order.from_dict(order_payload(42))

        assert order.customer_name == "Nadia Haddad"
        assert order.user_id == 7
        assert order.assignment_id == 900
        assert order.assignment_status == "assigned"
        assert order.delivery_assignment.delivery_manager_name == "Omar K"
        assert order.is_waiting_for_delivery_manager is True

    def test_default_tax_when_missing(self):
        order = Order.from_dict(order_payload(42))
        assert order.subtotal == pytest.approx(25.0)
        assert order.tax_amount == pytest.approx(25.0 * DEFAULT_TAX_RATE)

    def test_explicit_tax_kept(self):
        order = Order.from_dict(order_payload(42, tax_amount="1.00"))
        assert order.tax_amount == pytest.approx(1.0)

    def test_flat_customer_fields(self):
        order = Order.from_dict({
            "id": 1,
            "status": " Approved ",
            "customer_name": "Sam",
            "customer_email": "sam@example.com",
            "user_id": "3",
        })

        assert order.customer_name == "Sam"
        assert order.user_id == 3
        assert order.normalized_status == "approved"
        assert order.items == []
        assert order.tax_amount == 0.0

    def test_legacy_item_with_nested_book(self):
        item = OrderItem.from_dict({
            "book": {"id": 3, "title": "Dune", "author": {"name": "Frank Herbert"}},
            "quantity": 2,
            "unit_price": "10",
        })

        assert item.book_id == 3
        assert item.book_author == "Frank Herbert"
        assert item.total_price == 20.0

    def test_status_display(self):
        order = Order.from_dict(order_payload(1, status="waiting_for_delivery_manager"))
        assert order.status_display == "Waiting For Delivery Manager"

    def test_notes_list_wraps_legacy_note(self):
        order = Order.from_dict(order_payload(1, notes="Ring twice"))
        assert [n.content for n in order.notes_list] == ["Ring twice"]


class TestDeliveryModels:

    def test_manager_status_parse(self):
        assert ManagerStatus.parse(" Online ") == ManagerStatus.ONLINE
        assert ManagerStatus.parse("away") is None
        assert ManagerStatus.parse(None) is None

    def test_delivery_status_defaults(self):
        status = DeliveryStatus.from_dict({"delivery_status": "busy"})
        assert status.status == ManagerStatus.BUSY
        assert status.can_change_manually is False

        assert DeliveryStatus.from_dict({}).status == ManagerStatus.OFFLINE

    def test_agent_status_lowercased(self):
        agent = DeliveryAgent.from_dict({"id": "5", "full_name": "Omar", "status": "Online", "totalDeliveries": 12})
        assert agent.is_online is True
        assert agent.total_deliveries == 12

    def test_actions_to_dict(self):
        actions = DeliveryActions(available=(DeliveryAction.START_DELIVERY,), reason="")
        data = actions.to_dict()
        assert data["actions"] == ["start_delivery"]
        assert data["start_delivery"] is True
        assert data["approve"] is False
        assert data["message"] == ""

        assert DeliveryActions().to_dict()["message"] == "No actions available"
