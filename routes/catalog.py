"""
Catalog routes (library admin).

Handles:
- /books, /books/<id> - List with filters, create, view, update, delete
- /categories, /categories/<id> - Same shape
- /authors, /authors/<id> - Same shape

Create and update validate the submitted form before anything is sent to
the API; all text fields go through bleach.
"""

import math
from typing import Any, Dict, List, Optional

from flask import Blueprint, g, request

from core.exceptions import ValidationError
from models.catalog import Author, Book, Category
from logging_config import get_logger
from services.catalog_providers import BOOK_STATUS_FILTERS
from .helpers import login_required, query_int, request_data, respond, sanitize_text


# Module logger
logger = get_logger(__name__)

catalog_bp = Blueprint("catalog", __name__)

# Constants
MAX_TITLE_LENGTH = 255
MAX_NAME_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 2000
MAX_SEARCH_LENGTH = 100
MAX_URL_LENGTH = 500
MAX_QUANTITY = 100000


# =============================================================================
# FORM VALIDATION
# =============================================================================

class _Form:
    """Collects field errors while reading a submitted form."""

    def __init__(self, data: Dict[str, Any]):
        self.data = data
        self.errors: Dict[str, List[str]] = {}

    def error(self, name: str, message: str) -> None:
        self.errors.setdefault(name, []).append(message)

    def text(self, name: str, max_length: int, required: bool = False) -> str:
        raw = self.data.get(name)
        value = sanitize_text(raw)
        if required and not value:
            self.error(name, "This field is required")
        elif len(value) > max_length:
            self.error(name, f"Must be at most {max_length} characters")
        return value[:max_length]

    def number(self, name: str) -> Optional[float]:
        raw = self.data.get(name)
        if raw in (None, ""):
            return None
        try:
            value = float(raw)
        except (TypeError, ValueError):
            self.error(name, "Must be a valid number")
            return None
        if not math.isfinite(value):
            self.error(name, "Must be a valid number")
            return None
        if value < 0:
            self.error(name, "Must not be negative")
            return None
        return value

    def integer(self, name: str, maximum: Optional[int] = None) -> Optional[int]:
        raw = self.data.get(name)
        if raw in (None, ""):
            return None
        try:
            value = int(str(raw).strip())
        except (TypeError, ValueError):
            self.error(name, "Must be a whole number")
            return None
        if value < 0:
            self.error(name, "Must not be negative")
            return None
        if maximum is not None and value > maximum:
            self.error(name, f"Must be at most {maximum}")
            return None
        return value

    def flag(self, name: str, default: bool = True) -> bool:
        raw = self.data.get(name)
        if raw is None or raw == "":
            return default
        if isinstance(raw, bool):
            return raw
        return str(raw).strip().lower() in ("1", "true", "yes", "on")

    def validate(self) -> None:
        if self.errors:
            raise ValidationError(self.errors)


def book_from_form(data: Dict[str, Any], book_id: Optional[int] = None) -> Book:
    """
    Validate a book form.

    Raises:
        ValidationError: With every field error found
    """
    form = _Form(data)
    title = form.text("title", MAX_TITLE_LENGTH, required=True)
    description = form.text("description", MAX_DESCRIPTION_LENGTH)
    price = form.number("price")
    borrow_price = form.number("borrow_price")
    quantity = form.integer("quantity", maximum=MAX_QUANTITY)
    available_copies = form.integer("available_copies", maximum=MAX_QUANTITY)
    author_id = form.integer("author_id")
    category_id = form.integer("category_id")
    image_url = form.text("primary_image_url", MAX_URL_LENGTH) or None

    if quantity is not None and available_copies is not None and available_copies > quantity:
        form.error("available_copies", "Cannot exceed total quantity")

    form.validate()

    return Book(
        id=book_id,
        title=title,
        description=description,
        author=Author(id=author_id, name="") if author_id is not None else None,
        category=Category(id=category_id, name="") if category_id is not None else None,
        price=price,
        borrow_price=borrow_price,
        quantity=quantity,
        available_copies=available_copies,
        primary_image_url=image_url,
        is_active=form.flag("is_active"),
    )


def category_from_form(data: Dict[str, Any], category_id: Optional[int] = None) -> Category:
    form = _Form(data)
    name = form.text("name", MAX_NAME_LENGTH, required=True)
    description = form.text("description", MAX_DESCRIPTION_LENGTH)
    form.validate()
    return Category(id=category_id, name=name, description=description, is_active=form.flag("is_active"))


def author_from_form(data: Dict[str, Any], author_id: Optional[int] = None) -> Author:
    form = _Form(data)
    name = form.text("name", MAX_NAME_LENGTH, required=True)
    biography = form.text("biography", MAX_DESCRIPTION_LENGTH) or form.text("bio", MAX_DESCRIPTION_LENGTH)
    country = form.text("country", MAX_NAME_LENGTH) or form.text("nationality", MAX_NAME_LENGTH)
    birth_date = form.text("birth_date", 10) or None
    death_date = form.text("death_date", 10) or None
    photo = form.text("photo", MAX_URL_LENGTH) or None
    form.validate()
    return Author(
        id=author_id,
        name=name,
        biography=biography,
        photo=photo,
        country=country,
        birth_date=birth_date,
        death_date=death_date,
        is_active=form.flag("is_active"),
    )


def _page(provider) -> Dict[str, int]:
    return {
        "current_page": provider.current_page,
        "total_pages": provider.total_pages,
        "total_items": provider.total_items,
        "items_per_page": provider.items_per_page,
    }


# =============================================================================
# BOOKS
# =============================================================================

@catalog_bp.route("/books", methods=["GET"])
@login_required
def list_books():
    """Query: page, search, category, author, status (available|unavailable|borrowed)."""
    provider = g.providers.books
    status = (request.args.get("status") or "").strip().lower() or None
    if status and status not in BOOK_STATUS_FILTERS:
        return respond(False, f"Unknown availability filter: {status}")

    ok = provider.load_books(
        page=query_int("page", default=1, minimum=1),
        search=sanitize_text(request.args.get("search"), max_length=MAX_SEARCH_LENGTH) or None,
        category=request.args.get("category") or None,
        author=request.args.get("author") or None,
        status=status,
    )
    if not ok:
        return respond(False, provider.error, status=401 if not provider.is_authenticated else 502)

    return {"success": True, "books": [book.to_dict() for book in provider.books], **_page(provider)}


@catalog_bp.route("/books", methods=["POST"])
@login_required
def create_book():
    provider = g.providers.books
    book = provider.create_book(book_from_form(request_data()))
    if book is None:
        return respond(False, provider.error, status=502)
    return respond(True, "Book created successfully", status=201, book=book.to_dict())


@catalog_bp.route("/books/<int:book_id>", methods=["GET"])
@login_required
def get_book(book_id):
    provider = g.providers.books
    book = provider.get_book_by_id(book_id)
    if book is None:
        return respond(False, provider.error or "Book not found", status=404)
    return {"success": True, "book": book.to_dict()}


@catalog_bp.route("/books/<int:book_id>", methods=["PUT"])
@login_required
def update_book(book_id):
    provider = g.providers.books
    book = provider.update_book(book_from_form(request_data(), book_id=book_id))
    if book is None:
        return respond(False, provider.error, status=502)
    return respond(True, "Book updated successfully", book=book.to_dict())


@catalog_bp.route("/books/<int:book_id>", methods=["DELETE"])
@login_required
def delete_book(book_id):
    provider = g.providers.books
    if not provider.delete_book(book_id):
        return respond(False, provider.error)
    return respond(True, "Book deleted successfully")


# =============================================================================
# CATEGORIES
# =============================================================================

@catalog_bp.route("/categories", methods=["GET"])
@login_required
def list_categories():
    provider = g.providers.categories
    ok = provider.load_categories(
        page=query_int("page", default=1, minimum=1),
        search=sanitize_text(request.args.get("search"), max_length=MAX_SEARCH_LENGTH) or None,
    )
    if not ok:
        return respond(False, provider.error, status=502)
    return {
        "success": True,
        "categories": [category.to_dict() for category in provider.categories],
        **_page(provider),
    }


@catalog_bp.route("/categories", methods=["POST"])
@login_required
def create_category():
    provider = g.providers.categories
    category = provider.create_category(category_from_form(request_data()))
    if category is None:
        return respond(False, provider.error, status=502)
    return respond(True, "Category created successfully", status=201, category=category.to_dict())


@catalog_bp.route("/categories/<int:category_id>", methods=["GET"])
@login_required
def get_category(category_id):
    provider = g.providers.categories
    category = provider.get_category_by_id(category_id)
    if category is None:
        return respond(False, provider.error or "Category not found", status=404)
    return {"success": True, "category": category.to_dict()}


@catalog_bp.route("/categories/<int:category_id>", methods=["PUT"])
@login_required
def update_category(category_id):
    provider = g.providers.categories
    category = provider.update_category(category_from_form(request_data(), category_id=category_id))
    if category is None:
        return respond(False, provider.error, status=502)
    return respond(True, "Category updated successfully", category=category.to_dict())


@catalog_bp.route("/categories/<int:category_id>", methods=["DELETE"])
@login_required
def delete_category(category_id):
    provider = g.providers.categories
    if not provider.delete_category(category_id):
        return respond(False, provider.error)
    return respond(True, "Category deleted successfully")


# =============================================================================
# AUTHORS
# =============================================================================

@catalog_bp.route("/authors", methods=["GET"])
@login_required
def list_authors():
    provider = g.providers.authors
    ok = provider.load_authors(
        page=query_int("page", default=1, minimum=1),
        search=sanitize_text(request.args.get("search"), max_length=MAX_SEARCH_LENGTH) or None,
    )
    if not ok:
        return respond(False, provider.error, status=502)
    return {
        "success": True,
        "authors": [author.to_dict() for author in provider.authors],
        **_page(provider),
    }


@catalog_bp.route("/authors", methods=["POST"])
@login_required
def create_author():
    provider = g.providers.authors
    author = provider.create_author(author_from_form(request_data()))
    if author is None:
        return respond(False, provider.error, status=502)
    return respond(True, "Author created successfully", status=201, author=author.to_dict())


@catalog_bp.route("/authors/<int:author_id>", methods=["GET"])
@login_required
def get_author(author_id):
    provider = g.providers.authors
    author = provider.get_author_by_id(author_id)
    if author is None:
        return respond(False, provider.error or "Author not found", status=404)
    return {"success": True, "author": author.to_dict()}


@catalog_bp.route("/authors/<int:author_id>", methods=["PUT"])
@login_required
def update_author(author_id):
    provider = g.providers.authors
    author = provider.update_author(author_from_form(request_data(), author_id=author_id))
    if author is None:
        return respond(False, provider.error, status=502)
    return respond(True, "Author updated successfully", author=author.to_dict())


@catalog_bp.route("/authors/<int:author_id>", methods=["DELETE"])
@login_required
def delete_author(author_id):
    provider = g.providers.authors
    if not provider.delete_author(author_id):
        return respond(False, provider.error)
    return respond(True, "Author deleted successfully")
